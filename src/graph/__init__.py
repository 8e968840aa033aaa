"""
Graph Storage Module.

Neo4j client, schema and repository implementations for companies,
brokerages and stock ratings.
"""

from src.graph.neo4j_client import StockGraphClient, map_driver_error
from src.graph.repositories import (
    Neo4jBrokerageRepository,
    Neo4jCompanyRepository,
    Neo4jStockRatingRepository,
)
from src.graph.schema import NodeLabel

__all__ = [
    # Schema
    "NodeLabel",
    # Client
    "StockGraphClient",
    "map_driver_error",
    # Repositories
    "Neo4jCompanyRepository",
    "Neo4jBrokerageRepository",
    "Neo4jStockRatingRepository",
]
