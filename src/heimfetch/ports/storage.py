from __future__ import annotations

from typing import Iterable, Protocol
from ..domain.models import Checkpoint, Milestone
from ..domain.value_types import EntityKind


class EntitySink(Protocol):
    """Port for persisting a batch of fetched entities (e.g., Parquet, JSONL)."""

    async def write_entities(
        self,
        kind: EntityKind,
        entities: Iterable[Checkpoint | Milestone],
    ) -> int:
        """Persist the entities and return how many were written."""
