from __future__ import annotations
import asyncio, httpx
from typing import Any, Mapping
import structlog
from ..domain.codec import checkpoint_from_dict, milestone_from_dict, as_int
from ..domain.errors import DecodeError, RemoteServiceError
from ..domain.models import Checkpoint, Milestone
from ..ports.service import PagedEntityService, RemoteEntityService

log = structlog.get_logger("heimfetch.heimdall")

MAX_ATTEMPTS = 3

def _retry_delay(r: httpx.Response, attempt: int) -> float:
    ra = r.headers.get("Retry-After")
    return max(1.0, float(ra)) if ra and ra.isdigit() else (1.0 * (2**attempt))

def _field(obj: Any, key: str, path: str) -> Any:
    if not isinstance(obj, Mapping) or key not in obj:
        raise DecodeError(f"{path}: response has no {key!r} member")
    return obj[key]

class HeimdallClient:
    """Thin JSON-over-HTTP client for the Heimdall REST API; returns the `result` member."""

    def __init__(self, base_url: str, timeout_s: float = 20, max_conn: int = 64,
                 transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            http2=True,
            timeout=httpx.Timeout(timeout_s),
            limits=httpx.Limits(max_connections=max_conn, max_keepalive_connections=max_conn//2),
            transport=transport,
        )

    async def get_result(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        # retry on 429 only; everything else surfaces to the caller
        for attempt in range(MAX_ATTEMPTS):
            r = await self.client.get(path, params=params)
            if r.status_code == 429:
                if attempt == MAX_ATTEMPTS - 1:
                    break
                delay = _retry_delay(r, attempt)
                log.warning("rate limited", path=path, attempt=attempt + 1, delay=delay)
                await asyncio.sleep(delay); continue
            r.raise_for_status()
            try:
                data = r.json()
            except ValueError as e:
                raise DecodeError(f"{path}: response is not JSON") from e
            if isinstance(data, Mapping) and data.get("error"):
                err = data["error"]
                if isinstance(err, Mapping):
                    raise RemoteServiceError(path, str(err.get("message")), err.get("code"))
                raise RemoteServiceError(path, str(err))
            return _field(data, "result", path)
        raise RemoteServiceError(path, f"retries exhausted after {MAX_ATTEMPTS} attempts", 429)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> HeimdallClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class HeimdallCheckpoints(PagedEntityService[Checkpoint]):
    def __init__(self, client: HeimdallClient) -> None:
        self.client = client

    async def fetch_last_entity_id(self) -> int:
        res = await self.client.get_result("/checkpoints/count")
        return as_int(_field(res, "result", "/checkpoints/count"), "checkpoint count")

    async def fetch_entity(self, id: int) -> Checkpoint:
        return checkpoint_from_dict(await self.client.get_result(f"/checkpoints/{id}"))

    async def fetch_entities_page(self, page: int, limit: int) -> list[Checkpoint]:
        res = await self.client.get_result("/checkpoints/list", params={"page": page, "limit": limit})
        if res is None:
            return []
        if not isinstance(res, list):
            raise DecodeError(f"/checkpoints/list: expected a list, got {type(res).__name__}")
        return [checkpoint_from_dict(d) for d in res]


class HeimdallMilestones(RemoteEntityService[Milestone]):
    """Milestones have no list endpoint, so ranges are always fetched id by id."""

    def __init__(self, client: HeimdallClient) -> None:
        self.client = client

    async def fetch_last_entity_id(self) -> int:
        res = await self.client.get_result("/milestone/count")
        return as_int(_field(res, "count", "/milestone/count"), "milestone count")

    async def fetch_entity(self, id: int) -> Milestone:
        return milestone_from_dict(await self.client.get_result(f"/milestone/{id}"), id=id)
