"""
Stock Graph Client Module.

Async Neo4j client for the stock ratings graph: connection lifecycle,
schema setup, reads and single-statement managed write transactions.
Driver exceptions are mapped onto the repository error taxonomy.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from neo4j import (
    AsyncDriver,
    AsyncGraphDatabase,
    AsyncManagedTransaction,
    AsyncSession,
    unit_of_work,
)
from neo4j.exceptions import (
    ClientError,
    DriverError,
    Neo4jError,
    ServiceUnavailable,
    SessionExpired,
    TransientError,
)

from src.config.settings import Neo4jSettings, get_settings
from src.domain.repositories.interfaces import RepositoryError, TransientRepositoryError
from src.graph.schema import SCHEMA_CONSTRAINTS, SCHEMA_INDEXES

logger = structlog.get_logger(__name__)


def map_driver_error(error: Exception) -> RepositoryError:
    """Translate a driver exception into a repository error."""
    if isinstance(error, (TransientError, ServiceUnavailable, SessionExpired)):
        return TransientRepositoryError(f"transient Neo4j failure: {error}")
    return RepositoryError(f"Neo4j failure: {error}")


async def _read_work(
    tx: AsyncManagedTransaction, query: str, parameters: dict[str, Any]
) -> list[dict[str, Any]]:
    result = await tx.run(query, parameters)
    return await result.data()


async def _write_work(
    tx: AsyncManagedTransaction, query: str, parameters: dict[str, Any]
) -> dict[str, int]:
    result = await tx.run(query, parameters)
    summary = await result.consume()
    return {
        "nodes_created": summary.counters.nodes_created,
        "nodes_deleted": summary.counters.nodes_deleted,
        "properties_set": summary.counters.properties_set,
    }


class StockGraphClient:
    """
    Neo4j client for companies, brokerages and stock ratings.

    Usage:
        client = StockGraphClient()
        await client.connect()
        rows = await client.execute_read("MATCH (c:Company) RETURN c.id AS id")
        await client.close()
    """

    def __init__(self, settings: Neo4jSettings | None = None) -> None:
        self._driver: AsyncDriver | None = None
        self._settings = settings or get_settings().neo4j

    async def connect(self) -> None:
        """Establish connection to Neo4j database."""
        if self._driver is not None:
            return

        self._driver = AsyncGraphDatabase.driver(
            self._settings.uri,
            auth=(self._settings.username, self._settings.password.get_secret_value()),
            max_connection_pool_size=self._settings.max_connection_pool_size,
        )
        try:
            await self._driver.verify_connectivity()
        except (Neo4jError, DriverError) as e:
            await self._driver.close()
            self._driver = None
            raise map_driver_error(e) from e
        logger.info("Connected to Neo4j", uri=self._settings.uri)

    async def close(self) -> None:
        """Close the database connection."""
        if self._driver is not None:
            await self._driver.close()
            self._driver = None
            logger.info("Disconnected from Neo4j")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session."""
        if self._driver is None:
            await self.connect()

        assert self._driver is not None  # Type guard for mypy
        async with self._driver.session(database=self._settings.database) as session:
            yield session

    # =========================================================================
    # Schema Management
    # =========================================================================

    async def setup_schema(self) -> dict[str, Any]:
        """
        Create uniqueness constraints and lookup indexes.

        Returns:
            Dictionary with the outcome of every statement
        """
        results: dict[str, list[Any]] = {"constraints": [], "indexes": [], "errors": []}

        async with self.session() as session:
            for kind, queries in (("constraints", SCHEMA_CONSTRAINTS), ("indexes", SCHEMA_INDEXES)):
                for query in queries:
                    try:
                        await session.run(query)
                        results[kind].append({"query": query[:50], "status": "created"})
                    except ClientError as e:
                        if "already exists" in str(e).lower():
                            results[kind].append({"query": query[:50], "status": "exists"})
                        else:
                            results["errors"].append({"query": query[:50], "error": str(e)})
                            logger.warning("Schema statement failed", query=query[:50], error=str(e))

        logger.info(
            "Schema setup completed",
            constraints=len(results["constraints"]),
            indexes=len(results["indexes"]),
            errors=len(results["errors"]),
        )
        return results

    # =========================================================================
    # Query Execution
    # =========================================================================

    def _timed(self, work):
        return unit_of_work(timeout=self._settings.query_timeout_ms / 1000)(work)

    async def execute_read(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute a read query in a managed read transaction.

        Returns:
            List of result records as dictionaries

        Raises:
            RepositoryError: On any driver failure (TransientRepositoryError if retryable)
        """
        try:
            async with self.session() as session:
                records = await session.execute_read(
                    self._timed(_read_work), query, parameters or {}
                )
        except (Neo4jError, DriverError) as e:
            raise map_driver_error(e) from e

        logger.debug("Read executed", query=query[:100], result_count=len(records))
        return records

    async def execute_write(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> dict[str, int]:
        """
        Execute a single write statement in its own managed transaction.

        Returns summary counters.
        """
        try:
            async with self.session() as session:
                stats = await session.execute_write(
                    self._timed(_write_work), query, parameters or {}
                )
        except (Neo4jError, DriverError) as e:
            raise map_driver_error(e) from e

        logger.debug("Write executed", query=query[:100], **stats)
        return stats
