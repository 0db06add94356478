# heimfetch/ports/service.py
from __future__ import annotations

from typing import Protocol, Sequence, TypeVar, runtime_checkable
from ..domain.models import Entity

TEntity = TypeVar("TEntity", bound=Entity, covariant=True)


@runtime_checkable
class RemoteEntityService(Protocol[TEntity]):
    """Port for a remote service exposing entities addressed by a dense, 1-based id."""

    async def fetch_last_entity_id(self) -> int:
        """Return the highest currently known entity id."""

    async def fetch_entity(self, id: int) -> TEntity:
        """Return exactly the entity with the given id, or raise."""


@runtime_checkable
class PagedEntityService(RemoteEntityService[TEntity], Protocol[TEntity]):
    """A RemoteEntityService that can also list the whole collection page by page."""

    async def fetch_entities_page(self, page: int, limit: int) -> Sequence[TEntity]:
        """Return up to `limit` entities of 1-based `page`; empty exactly when no pages remain.

        Order across pages is not guaranteed to be globally sorted.
        """
