from __future__ import annotations
from typing import NewType, Literal

EntityId = NewType("EntityId", int)   # 1-based, dense
BlockNum = NewType("BlockNum", int)
Address  = NewType("Address", str)    # 0x-prefixed, checksummed
EntityKind = Literal["checkpoints", "milestones"]

MAX_UINT64 = 2**64 - 1
ADDRESS_LENGTH = 20
