"""
Graph Schema.

Node labels, constraints and property mapping for the stock ratings graph.
Stock ratings keep their company and brokerage references as ID properties
so dangling references stay observable.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel

from src.domain.entities import Brokerage, Company, StockRating


class NodeLabel(str, Enum):
    """Node labels in the stock ratings graph."""

    COMPANY = "Company"
    BROKERAGE = "Brokerage"
    STOCK_RATING = "StockRating"


SCHEMA_CONSTRAINTS = [
    "CREATE CONSTRAINT company_id IF NOT EXISTS FOR (n:Company) REQUIRE n.id IS UNIQUE",
    "CREATE CONSTRAINT brokerage_id IF NOT EXISTS FOR (n:Brokerage) REQUIRE n.id IS UNIQUE",
    "CREATE CONSTRAINT stock_rating_id IF NOT EXISTS FOR (n:StockRating) REQUIRE n.id IS UNIQUE",
]

SCHEMA_INDEXES = [
    "CREATE INDEX company_ticker IF NOT EXISTS FOR (n:Company) ON (n.ticker)",
    "CREATE INDEX brokerage_name IF NOT EXISTS FOR (n:Brokerage) ON (n.name)",
    "CREATE INDEX rating_company IF NOT EXISTS FOR (n:StockRating) ON (n.company_id)",
    "CREATE INDEX rating_brokerage IF NOT EXISTS FOR (n:StockRating) ON (n.brokerage_id)",
    "CREATE INDEX rating_event_time IF NOT EXISTS FOR (n:StockRating) ON (n.event_time)",
]

M = TypeVar("M", Company, Brokerage, StockRating)


def to_node_properties(entity: BaseModel) -> dict[str, Any]:
    """Flatten an entity into Neo4j-storable properties (UUIDs as strings)."""
    props = entity.model_dump()
    return {k: str(v) if isinstance(v, uuid.UUID) else v for k, v in props.items()}


def from_node_properties(model: type[M], props: dict[str, Any]) -> M:
    """Rebuild an entity from node properties, converting driver temporal types."""
    native = {}
    for key, value in props.items():
        if hasattr(value, "to_native") and not isinstance(value, datetime):
            value = value.to_native()
        native[key] = value
    return model.model_validate(native)
