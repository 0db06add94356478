from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, Protocol
from .value_types import Address, BlockNum, EntityId, ADDRESS_LENGTH

@dataclass(slots=True, frozen=True)
class ClosedRange:
    start: int
    end: int
    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"invalid range: start ({self.start}) > end ({self.end})")
    def __len__(self) -> int: return self.end - self.start + 1
    def __iter__(self) -> Iterator[int]: return iter(range(self.start, self.end + 1))


class Entity(Protocol):
    """Anything covering a contiguous, inclusive span of block numbers."""

    def block_num_range(self) -> ClosedRange: ...


@dataclass(slots=True, frozen=True)
class Checkpoint:
    id: EntityId
    proposer: Address
    start_block: BlockNum
    end_block: BlockNum
    root_hash: str                     # 0x-prefixed, lowercase
    chain_id: str
    timestamp: int                     # unix seconds
    def block_num_range(self) -> ClosedRange: return ClosedRange(self.start_block, self.end_block)

@dataclass(slots=True, frozen=True)
class Milestone:
    id: EntityId
    proposer: Address
    start_block: BlockNum
    end_block: BlockNum
    hash: str                          # 0x-prefixed, lowercase
    chain_id: str
    timestamp: int
    milestone_id: str = ""             # upstream tag, opaque
    def block_num_range(self) -> ClosedRange: return ClosedRange(self.start_block, self.end_block)

@dataclass(slots=True, frozen=True)
class Withdrawal:
    index: int = 0
    validator_index: int = 0
    address: bytes = bytes(ADDRESS_LENGTH)
    amount: int = 0                    # gwei
