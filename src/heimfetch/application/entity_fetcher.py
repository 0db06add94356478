from __future__ import annotations

import time
from typing import Callable, Generic, TypeVar

import structlog

from ..domain.models import ClosedRange, Entity
from ..ports.service import PagedEntityService, RemoteEntityService

TEntity = TypeVar("TEntity", bound=Entity)

# above this many ids a full paged listing beats one request per id
BATCH_FETCH_THRESHOLD = 100
PAGE_LIMIT = 10_000
PROGRESS_LOG_INTERVAL = 30.0  # seconds


class EntityFetcher(Generic[TEntity]):
    """
    Fetches ranges of id-addressed entities from a RemoteEntityService.

    Small ranges are fetched id by id. Large ranges are sliced out of the whole
    collection when the service can list it page by page. Every call runs
    strictly sequentially and fails fast: the first collaborator error is
    re-raised as is and nothing fetched before it is returned.
    """

    def __init__(
        self,
        name: str,
        service: RemoteEntityService[TEntity],
        *,
        logger: structlog.BoundLogger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.service = service
        self.log = (logger or structlog.get_logger("heimfetch.fetcher")).bind(entity=name)
        self._clock = clock

    @property
    def supports_paging(self) -> bool:
        return isinstance(self.service, PagedEntityService)

    async def fetch_last_entity_id(self) -> int:
        return await self.service.fetch_last_entity_id()

    async def fetch_entities_range(self, id_range: ClosedRange) -> list[TEntity]:
        count = len(id_range)
        if count > BATCH_FETCH_THRESHOLD and self.supports_paging:
            all_entities = await self.fetch_all_entities()
            # assumes the sorted collection is dense: position i holds id i+1
            start_index = id_range.start - 1
            return all_entities[start_index:start_index + count]
        return await self.fetch_entities_range_sequentially(id_range)

    async def fetch_entities_range_sequentially(self, id_range: ClosedRange) -> list[TEntity]:
        entities: list[TEntity] = []
        for id in id_range:
            entities.append(await self.service.fetch_entity(id))
        return entities

    async def fetch_all_entities(self) -> list[TEntity]:
        """
        Pull every page until the first empty one, then sort by range start.

        Pages may arrive in any order upstream, hence the final sort. A progress
        event is logged at most once per PROGRESS_LOG_INTERVAL, checked between
        pages without ever waiting on it.
        """
        if not isinstance(self.service, PagedEntityService):
            raise TypeError(f"{self.name} service does not support paged listing")
        service: PagedEntityService[TEntity] = self.service

        entities: list[TEntity] = []
        fetch_start = self._clock()
        last_report = fetch_start

        page = 1
        while True:
            entities_page = await service.fetch_entities_page(page, PAGE_LIMIT)
            if not entities_page:
                break
            entities.extend(entities_page)

            now = self._clock()
            if now - last_report >= PROGRESS_LOG_INTERVAL:
                self.log.debug(f"{self.name} progress", page=page, len=len(entities))
                last_report = now
            page += 1

        entities.sort(key=lambda e: e.block_num_range().start)

        self.log.debug(
            f"{self.name} done",
            len=len(entities),
            duration=round(self._clock() - fetch_start, 3),
        )
        return entities
