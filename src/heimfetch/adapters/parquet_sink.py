from __future__ import annotations
import os, pyarrow as pa, pyarrow.parquet as pq
from typing import Iterable

from ..domain.codec import entity_to_row
from ..domain.models import Checkpoint, Milestone
from ..domain.value_types import EntityKind
from ..ports.storage import EntitySink

ENTITY_SCHEMA = pa.schema([
    ("kind", pa.string()),
    ("id", pa.int64()),
    ("proposer", pa.string()),
    ("start_block", pa.int64()),
    ("end_block", pa.int64()),
    ("hash", pa.string()),
    ("chain_id", pa.string()),
    ("timestamp", pa.int64()),
    pa.field("milestone_id", pa.string(), nullable=True),
])

def _entities_to_table(kind: EntityKind, entities: Iterable[Checkpoint | Milestone]) -> pa.Table:
    rows = [{"kind": kind, **entity_to_row(e)} for e in entities]
    table = pa.Table.from_pylist(rows, schema=ENTITY_SCHEMA)
    return table.sort_by([("start_block", "ascending")])

class ParquetEntitySink(EntitySink):
    """Writes one Parquet file per call; the previous file at `path` is replaced atomically."""

    def __init__(self, path: str, codec: str = "zstd") -> None:
        self.path = path
        self.codec = codec
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

    async def write_entities(self, kind: EntityKind, entities: Iterable[Checkpoint | Milestone]) -> int:
        tmp = self.path + ".tmp"
        table = _entities_to_table(kind, entities)
        pq.write_table(table, tmp, compression=self.codec)
        os.replace(tmp, self.path)
        return table.num_rows
