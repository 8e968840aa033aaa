"""
Repository Interfaces.

Async data-access contracts consumed by the integrity engine, plus the
storage error taxonomy every implementation maps its driver errors onto.
"""

import uuid
from abc import ABC, abstractmethod

from src.core.retry_handler import NonRetryableError, RetryableError
from src.domain.entities import Brokerage, Company, StockRating


class RepositoryError(NonRetryableError):
    """A storage call failed."""

    pass


class TransientRepositoryError(RepositoryError, RetryableError):
    """A storage call failed on a conflict that may succeed when retried."""

    pass


class CompanyRepository(ABC):
    """Read access to companies, plus in-place normalization updates."""

    @abstractmethod
    async def get_by_id(self, company_id: uuid.UUID) -> Company | None:
        """Return the company, or None when no such ID exists."""

    @abstractmethod
    async def list_all(self) -> list[Company]:
        """Return every company."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of companies."""

    @abstractmethod
    async def update(self, company: Company) -> None:
        """Persist field changes of an existing company in one transaction."""


class BrokerageRepository(ABC):
    """Read access to brokerages, plus in-place normalization updates."""

    @abstractmethod
    async def get_by_id(self, brokerage_id: uuid.UUID) -> Brokerage | None:
        """Return the brokerage, or None when no such ID exists."""

    @abstractmethod
    async def list_all(self) -> list[Brokerage]:
        """Return every brokerage."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of brokerages."""

    @abstractmethod
    async def update(self, brokerage: Brokerage) -> None:
        """Persist field changes of an existing brokerage in one transaction."""


class StockRatingRepository(ABC):
    """Stock rating access; the only repository the engine deletes from."""

    @abstractmethod
    async def get_by_id(self, rating_id: uuid.UUID) -> StockRating | None:
        """Return the rating, or None when no such ID exists."""

    @abstractmethod
    async def list_all(self) -> list[StockRating]:
        """Return every rating."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of ratings."""

    @abstractmethod
    async def update(self, rating: StockRating) -> None:
        """Persist field changes of an existing rating in one transaction."""

    @abstractmethod
    async def delete(self, rating_id: uuid.UUID) -> None:
        """Delete a single rating row in one transaction."""
