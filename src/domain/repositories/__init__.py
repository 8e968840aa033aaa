"""
Repositories.

Abstract async repositories, the storage error taxonomy, and in-memory
implementations.
"""

from src.domain.repositories.interfaces import (
    BrokerageRepository,
    CompanyRepository,
    RepositoryError,
    StockRatingRepository,
    TransientRepositoryError,
)
from src.domain.repositories.memory import (
    InMemoryBrokerageRepository,
    InMemoryCompanyRepository,
    InMemoryStockRatingRepository,
)

__all__ = [
    # Interfaces
    "BrokerageRepository",
    "CompanyRepository",
    "StockRatingRepository",
    # Errors
    "RepositoryError",
    "TransientRepositoryError",
    # In-memory
    "InMemoryBrokerageRepository",
    "InMemoryCompanyRepository",
    "InMemoryStockRatingRepository",
]
