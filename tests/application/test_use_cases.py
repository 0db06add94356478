from __future__ import annotations

import pytest

from conftest import FakeCheckpointService, FakeMilestoneService, shuffled_pages
from heimfetch.adapters.heimdall_httpx import HeimdallCheckpoints, HeimdallClient, HeimdallMilestones
from heimfetch.adapters.jsonl_sink import JSONLEntitySink
from heimfetch.adapters.parquet_sink import ParquetEntitySink
from heimfetch.application.entity_fetcher import EntityFetcher
from heimfetch.application.use_cases import build_service, build_sink, fetch_and_persist, resolve_range
from heimfetch.domain.models import ClosedRange


class RecordingSink:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list]] = []

    async def write_entities(self, kind, entities) -> int:
        batch = list(entities)
        self.calls.append((kind, batch))
        return len(batch)


class TestResolveRange:
    @pytest.mark.asyncio
    async def test_latest_uses_last_id(self) -> None:
        fetcher = EntityFetcher("milestones", FakeMilestoneService(last_id=90))
        assert await resolve_range(fetcher, "earliest", "latest") == ClosedRange(1, 90)

    @pytest.mark.asyncio
    async def test_explicit_bounds(self) -> None:
        fetcher = EntityFetcher("milestones", FakeMilestoneService(last_id=90))
        assert await resolve_range(fetcher, 4, "9") == ClosedRange(4, 9)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("start, end", [(0, 5), (6, 5), (100, "latest")])
    async def test_rejects_bad_bounds(self, start, end) -> None:
        fetcher = EntityFetcher("milestones", FakeMilestoneService(last_id=90))
        with pytest.raises(ValueError):
            await resolve_range(fetcher, start, end)


@pytest.mark.asyncio
async def test_fetch_and_persist_bulk() -> None:
    service = FakeCheckpointService(shuffled_pages(300, 120))
    sink = RecordingSink()

    res = await fetch_and_persist(
        fetcher=EntityFetcher("checkpoints", service), sink=sink,
        kind="checkpoints", start=50, end="latest",
    )

    assert res == {"start": 50, "end": 300, "fetched": 251, "written": 251}
    kind, batch = sink.calls[0]
    assert kind == "checkpoints"
    assert [c.id for c in batch] == list(range(50, 301))
    assert service.entity_calls == []


@pytest.mark.asyncio
async def test_fetch_and_persist_propagates_failure() -> None:
    sink = RecordingSink()
    with pytest.raises(RuntimeError):
        await fetch_and_persist(
            fetcher=EntityFetcher("milestones", FakeMilestoneService(last_id=10, fail_at=3)),
            sink=sink, kind="milestones", start=1, end=5,
        )
    assert sink.calls == []


@pytest.mark.asyncio
async def test_builders(tmp_path) -> None:
    async with HeimdallClient("https://heimdall.test") as client:
        assert isinstance(build_service("checkpoints", client), HeimdallCheckpoints)
        assert isinstance(build_service("milestones", client), HeimdallMilestones)
        with pytest.raises(ValueError):
            build_service("spans", client)  # type: ignore[arg-type]
    assert isinstance(build_sink(str(tmp_path / "a.parquet")), ParquetEntitySink)
    assert isinstance(build_sink(str(tmp_path / "a.jsonl")), JSONLEntitySink)
