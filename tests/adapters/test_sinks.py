from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pyarrow.parquet as pq
import pytest

from conftest import make_checkpoint, make_milestone
from heimfetch.adapters.jsonl_sink import JSONLEntitySink
from heimfetch.adapters.parquet_sink import ENTITY_SCHEMA, ParquetEntitySink


@pytest.mark.asyncio
async def test_jsonl_appends_one_line_per_entity(tmp_path: Path) -> None:
    path = tmp_path / "out" / "milestones.jsonl"
    sink = JSONLEntitySink(str(path))

    assert await sink.write_entities("milestones", [make_milestone(1), make_milestone(2)]) == 2
    assert await sink.write_entities("milestones", [make_milestone(3)]) == 1

    rows = [json.loads(line) for line in path.read_text().splitlines()]
    assert [r["id"] for r in rows] == [1, 2, 3]
    assert rows[0]["kind"] == "milestones"
    assert rows[1]["start_block"] == 16


@pytest.mark.asyncio
async def test_parquet_writes_sorted_table(tmp_path: Path) -> None:
    path = tmp_path / "checkpoints.parquet"
    sink = ParquetEntitySink(str(path))

    written = await sink.write_entities("checkpoints", [make_checkpoint(3), make_checkpoint(1), make_checkpoint(2)])

    assert written == 3
    table = pq.read_table(path)
    assert table.schema.names == ENTITY_SCHEMA.names
    assert table.column("id").to_pylist() == [1, 2, 3]
    assert not (tmp_path / "checkpoints.parquet.tmp").exists()


@pytest.mark.asyncio
async def test_parquet_empty(tmp_path: Path) -> None:
    path = tmp_path / "empty.parquet"
    assert await ParquetEntitySink(str(path)).write_entities("checkpoints", []) == 0
    assert pq.read_table(path).num_rows == 0


@pytest.mark.asyncio
async def test_milestone_tag_is_persisted(tmp_path: Path) -> None:
    milestone = replace(make_milestone(1), milestone_id="tag-1")

    jsonl = tmp_path / "milestones.jsonl"
    await JSONLEntitySink(str(jsonl)).write_entities("milestones", [milestone])
    assert json.loads(jsonl.read_text())["milestone_id"] == "tag-1"

    parquet = tmp_path / "mixed.parquet"
    await ParquetEntitySink(str(parquet)).write_entities("milestones", [milestone, make_checkpoint(2)])
    assert pq.read_table(parquet).column("milestone_id").to_pylist() == ["tag-1", None]
