from __future__ import annotations
import time
from typing import Dict

import structlog

from heimfetch.adapters.heimdall_httpx import HeimdallCheckpoints, HeimdallClient, HeimdallMilestones
from heimfetch.adapters.jsonl_sink import JSONLEntitySink
from heimfetch.adapters.parquet_sink import ParquetEntitySink
from heimfetch.application.entity_fetcher import BATCH_FETCH_THRESHOLD, EntityFetcher
from ..domain.models import Checkpoint, ClosedRange, Milestone
from ..domain.value_types import EntityKind
from ..ports.service import RemoteEntityService
from ..ports.storage import EntitySink

log = structlog.get_logger("heimfetch.use_cases")


def build_service(kind: EntityKind, client: HeimdallClient) -> RemoteEntityService[Checkpoint] | RemoteEntityService[Milestone]:
    if kind == "checkpoints":
        return HeimdallCheckpoints(client)
    if kind == "milestones":
        return HeimdallMilestones(client)
    raise ValueError(f"unknown entity kind: {kind!r}")


def build_sink(out_path: str) -> EntitySink:
    if out_path.endswith(".parquet"):
        return ParquetEntitySink(out_path)
    return JSONLEntitySink(out_path)


async def resolve_range(fetcher: EntityFetcher, start: int | str, end: int | str) -> ClosedRange:
    """Turn CLI-style bounds ('earliest'/'genesis', 'latest') into a validated ClosedRange."""
    s_id = 1 if (isinstance(start, str) and start.lower() in ("earliest", "genesis")) else int(start)
    e_id = await fetcher.fetch_last_entity_id() if (isinstance(end, str) and end.lower() == "latest") else int(end)
    if s_id < 1:
        raise ValueError(f"start ({s_id}) must be >= 1, entity ids are 1-based")
    if s_id > e_id:
        raise ValueError(f"start ({s_id}) must be <= end ({e_id})")
    return ClosedRange(s_id, e_id)


async def fetch_and_persist(
    *,
    fetcher: EntityFetcher,
    sink: EntitySink,
    kind: EntityKind,
    start: int | str,
    end: int | str,
) -> dict[str, int]:
    id_range = await resolve_range(fetcher, start, end)
    t0 = time.monotonic()
    log.info("fetch range", entity=kind, start=id_range.start, end=id_range.end,
             strategy="bulk" if len(id_range) > BATCH_FETCH_THRESHOLD and fetcher.supports_paging else "sequential")
    entities = await fetcher.fetch_entities_range(id_range)
    written = await sink.write_entities(kind, entities)
    log.info("fetch range done", entity=kind, fetched=len(entities), written=written,
             elapsed=round(time.monotonic() - t0, 3))
    return {
        "start": id_range.start,
        "end": id_range.end,
        "fetched": len(entities),
        "written": written,
    }


async def fetch_entities_to_file(
    *,
    heimdall_url: str,
    kind: EntityKind,
    start: int | str,          # supports 'earliest'/'genesis'
    end: int | str,            # supports 'latest'
    out_path: str,
    timeout_s: float = 20,
    max_conn: int = 64,
) -> Dict[str, int]:
    """
    Fetch [start, end] of `kind` from Heimdall and write it to `out_path`
    (Parquet for *.parquet, JSONL otherwise).
    """
    async with HeimdallClient(heimdall_url, timeout_s=timeout_s, max_conn=max_conn) as client:
        fetcher = EntityFetcher(kind, build_service(kind, client))
        return await fetch_and_persist(
            fetcher=fetcher,
            sink=build_sink(out_path),
            kind=kind,
            start=start,
            end=end,
        )


async def fetch_last_id(*, heimdall_url: str, kind: EntityKind, timeout_s: float = 20, max_conn: int = 64) -> int:
    async with HeimdallClient(heimdall_url, timeout_s=timeout_s, max_conn=max_conn) as client:
        return await EntityFetcher(kind, build_service(kind, client)).fetch_last_entity_id()
