"""
Neo4j Repositories.

Repository implementations over StockGraphClient. Every write is a single
statement in its own transaction and touches exactly one node.
"""

import uuid
from typing import Generic

from src.domain.entities import Brokerage, Company, StockRating, utc_now
from src.domain.repositories.interfaces import (
    BrokerageRepository,
    CompanyRepository,
    RepositoryError,
    StockRatingRepository,
)
from src.graph.neo4j_client import StockGraphClient
from src.graph.schema import M, NodeLabel, from_node_properties, to_node_properties


class _Neo4jRepository(Generic[M]):
    label: NodeLabel
    model: type[M]

    def __init__(self, client: StockGraphClient):
        self._client = client

    async def get_by_id(self, entity_id: uuid.UUID) -> M | None:
        rows = await self._client.execute_read(
            f"MATCH (n:{self.label.value} {{id: $id}}) RETURN properties(n) AS props",
            {"id": str(entity_id)},
        )
        return from_node_properties(self.model, rows[0]["props"]) if rows else None

    async def list_all(self) -> list[M]:
        rows = await self._client.execute_read(
            f"MATCH (n:{self.label.value}) RETURN properties(n) AS props ORDER BY n.id"
        )
        return [from_node_properties(self.model, row["props"]) for row in rows]

    async def count(self) -> int:
        rows = await self._client.execute_read(
            f"MATCH (n:{self.label.value}) RETURN count(n) AS total"
        )
        return rows[0]["total"] if rows else 0

    async def update(self, entity: M) -> None:
        props = to_node_properties(entity.model_copy(update={"updated_at": utc_now()}))
        stats = await self._client.execute_write(
            f"MATCH (n:{self.label.value} {{id: $id}}) SET n += $props",
            {"id": props["id"], "props": props},
        )
        if stats["properties_set"] == 0:
            raise RepositoryError(f"{self.label.value} {entity.id} not found")


class Neo4jCompanyRepository(_Neo4jRepository[Company], CompanyRepository):
    label = NodeLabel.COMPANY
    model = Company


class Neo4jBrokerageRepository(_Neo4jRepository[Brokerage], BrokerageRepository):
    label = NodeLabel.BROKERAGE
    model = Brokerage


class Neo4jStockRatingRepository(_Neo4jRepository[StockRating], StockRatingRepository):
    label = NodeLabel.STOCK_RATING
    model = StockRating

    async def delete(self, rating_id: uuid.UUID) -> None:
        stats = await self._client.execute_write(
            "MATCH (n:StockRating {id: $id}) DETACH DELETE n",
            {"id": str(rating_id)},
        )
        if stats["nodes_deleted"] == 0:
            raise RepositoryError(f"StockRating {rating_id} not found")
