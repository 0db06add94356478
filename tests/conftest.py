"""Shared fakes for the remote entity services."""

from __future__ import annotations

from typing import Callable, Sequence

import pytest

from heimfetch.domain.models import Checkpoint, Milestone
from heimfetch.domain.value_types import Address, BlockNum, EntityId

PROPOSER = Address("0x5973918275C01F50555d44e92c9d9b353CaDAD54")
SPAN = 256


def make_checkpoint(id: int) -> Checkpoint:
    return Checkpoint(
        id=EntityId(id),
        proposer=PROPOSER,
        start_block=BlockNum((id - 1) * SPAN),
        end_block=BlockNum(id * SPAN - 1),
        root_hash="0x" + f"{id:064x}",
        chain_id="137",
        timestamp=1_600_000_000 + id,
    )


def make_milestone(id: int) -> Milestone:
    return Milestone(
        id=EntityId(id),
        proposer=PROPOSER,
        start_block=BlockNum((id - 1) * 16),
        end_block=BlockNum(id * 16 - 1),
        hash="0x" + f"{id:064x}",
        chain_id="137",
        timestamp=1_700_000_000 + id,
    )


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeMilestoneService:
    """Id-only service: no fetch_entities_page, so it never qualifies for bulk fetching."""

    def __init__(self, last_id: int, fail_at: int | None = None) -> None:
        self.last_id = last_id
        self.fail_at = fail_at
        self.entity_calls: list[int] = []

    async def fetch_last_entity_id(self) -> int:
        return self.last_id

    async def fetch_entity(self, id: int) -> Milestone:
        self.entity_calls.append(id)
        if id == self.fail_at:
            raise RuntimeError(f"boom at {id}")
        return make_milestone(id)


class FakeCheckpointService:
    """Paged service serving `pages` verbatim, followed by empty pages."""

    def __init__(
        self,
        pages: Sequence[Sequence[Checkpoint]],
        *,
        fail_page: int | None = None,
        on_page: Callable[[int], None] | None = None,
    ) -> None:
        self.pages = [list(p) for p in pages]
        self.fail_page = fail_page
        self.on_page = on_page
        self.page_calls: list[tuple[int, int]] = []
        self.entity_calls: list[int] = []

    @property
    def last_id(self) -> int:
        return sum(len(p) for p in self.pages)

    async def fetch_last_entity_id(self) -> int:
        return self.last_id

    async def fetch_entity(self, id: int) -> Checkpoint:
        self.entity_calls.append(id)
        return make_checkpoint(id)

    async def fetch_entities_page(self, page: int, limit: int) -> list[Checkpoint]:
        self.page_calls.append((page, limit))
        if self.on_page is not None:
            self.on_page(page)
        if page == self.fail_page:
            raise RuntimeError(f"page {page} failed")
        if page > len(self.pages):
            return []
        return self.pages[page - 1]


def shuffled_pages(count: int, page_size: int) -> list[list[Checkpoint]]:
    """Pages of checkpoints 1..count, each page reversed and the page order rotated."""
    ids = list(range(1, count + 1))
    pages = [list(reversed(ids[i:i + page_size])) for i in range(0, count, page_size)]
    pages = pages[1:] + pages[:1]
    return [[make_checkpoint(i) for i in p] for p in pages]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
