"""
In-Memory Repositories.

Dictionary-backed implementations of the repository interfaces for tests
and local dry runs. Writes are serialized with an asyncio lock and stored
entities are copied so callers never share mutable state with the store.
"""

import asyncio
import uuid
from collections.abc import Iterable
from typing import Generic, TypeVar

from src.domain.entities import Brokerage, Company, StockRating, utc_now
from src.domain.repositories.interfaces import (
    BrokerageRepository,
    CompanyRepository,
    RepositoryError,
    StockRatingRepository,
)

E = TypeVar("E", Company, Brokerage, StockRating)


class _InMemoryStore(Generic[E]):
    def __init__(self, entities: Iterable[E] = ()) -> None:
        self._rows: dict[uuid.UUID, E] = {e.id: e.model_copy(deep=True) for e in entities}
        self._lock = asyncio.Lock()

    async def get_by_id(self, entity_id: uuid.UUID) -> E | None:
        row = self._rows.get(entity_id)
        return row.model_copy(deep=True) if row is not None else None

    async def list_all(self) -> list[E]:
        return [row.model_copy(deep=True) for row in self._rows.values()]

    async def count(self) -> int:
        return len(self._rows)

    async def update(self, entity: E) -> None:
        async with self._lock:
            if entity.id not in self._rows:
                raise RepositoryError(f"{type(entity).__name__} {entity.id} not found")
            self._rows[entity.id] = entity.model_copy(update={"updated_at": utc_now()}, deep=True)

    async def _delete(self, entity_id: uuid.UUID) -> None:
        async with self._lock:
            if self._rows.pop(entity_id, None) is None:
                raise RepositoryError(f"record {entity_id} not found")


class InMemoryCompanyRepository(_InMemoryStore[Company], CompanyRepository):
    pass


class InMemoryBrokerageRepository(_InMemoryStore[Brokerage], BrokerageRepository):
    pass


class InMemoryStockRatingRepository(_InMemoryStore[StockRating], StockRatingRepository):
    async def delete(self, rating_id: uuid.UUID) -> None:
        await self._delete(rating_id)
