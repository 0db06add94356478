from __future__ import annotations
import os, json, asyncio
from typing import Iterable
from ..domain.codec import entity_to_row
from ..domain.models import Checkpoint, Milestone
from ..domain.value_types import EntityKind
from ..ports.storage import EntitySink

class JSONLEntitySink(EntitySink):
    def __init__(self, path: str) -> None:
        self.path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self._lock = asyncio.Lock()

    async def write_entities(self, kind: EntityKind, entities: Iterable[Checkpoint | Milestone]) -> int:
        lines = [json.dumps({"kind": kind, **entity_to_row(e)}, separators=(",", ":")) + "\n" for e in entities]
        async with self._lock:
            with open(self.path, "a") as f:
                f.writelines(lines); f.flush(); os.fsync(f.fileno())
        return len(lines)
