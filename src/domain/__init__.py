"""
Domain Module.

Entities (companies, brokerages, stock ratings) and the repository
contracts the integrity engine works against.
"""

from src.domain.entities import (
    Brokerage,
    Company,
    StockRating,
    parse_price,
)

__all__ = [
    "Brokerage",
    "Company",
    "StockRating",
    "parse_price",
]
