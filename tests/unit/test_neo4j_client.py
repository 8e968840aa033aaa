"""
Unit Tests for Neo4j Client.

Tests the StockGraphClient class functionality.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from neo4j.exceptions import ClientError, ServiceUnavailable, TransientError

from src.config.settings import Neo4jSettings
from src.domain.repositories.interfaces import RepositoryError, TransientRepositoryError
from src.graph.neo4j_client import StockGraphClient, map_driver_error
from src.graph.schema import SCHEMA_CONSTRAINTS, SCHEMA_INDEXES


def _mock_driver(session: MagicMock | None = None) -> MagicMock:
    driver = MagicMock()
    driver.verify_connectivity = AsyncMock()
    driver.close = AsyncMock()
    session = session or MagicMock()
    session_ctx = MagicMock()
    session_ctx.__aenter__ = AsyncMock(return_value=session)
    session_ctx.__aexit__ = AsyncMock(return_value=False)
    driver.session.return_value = session_ctx
    return driver


class TestStockGraphClient:
    """Test cases for StockGraphClient."""

    # =========================================================================
    # Connection Tests
    # =========================================================================

    @pytest.mark.asyncio
    async def test_connect_success(self) -> None:
        """Test successful database connection."""
        with patch("src.graph.neo4j_client.AsyncGraphDatabase") as mock_db:
            mock_driver = _mock_driver()
            mock_db.driver.return_value = mock_driver

            client = StockGraphClient(Neo4jSettings())
            await client.connect()

            mock_db.driver.assert_called_once()
            mock_driver.verify_connectivity.assert_called_once()

    @pytest.mark.asyncio
    async def test_connect_already_connected(self) -> None:
        """Test that connect() is idempotent."""
        with patch("src.graph.neo4j_client.AsyncGraphDatabase") as mock_db:
            mock_db.driver.return_value = _mock_driver()

            client = StockGraphClient(Neo4jSettings())
            await client.connect()
            await client.connect()  # Second call should be no-op

            assert mock_db.driver.call_count == 1

    @pytest.mark.asyncio
    async def test_connect_failure_is_mapped(self) -> None:
        with patch("src.graph.neo4j_client.AsyncGraphDatabase") as mock_db:
            mock_driver = _mock_driver()
            mock_driver.verify_connectivity = AsyncMock(side_effect=ServiceUnavailable("no route"))
            mock_db.driver.return_value = mock_driver

            client = StockGraphClient(Neo4jSettings())
            with pytest.raises(TransientRepositoryError):
                await client.connect()

            mock_driver.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        """Test database disconnection."""
        with patch("src.graph.neo4j_client.AsyncGraphDatabase") as mock_db:
            mock_driver = _mock_driver()
            mock_db.driver.return_value = mock_driver

            client = StockGraphClient(Neo4jSettings())
            await client.connect()
            await client.close()

            mock_driver.close.assert_called_once()

    # =========================================================================
    # Query Tests
    # =========================================================================

    @pytest.mark.asyncio
    async def test_execute_read_uses_managed_transaction(self) -> None:
        session = MagicMock()
        session.execute_read = AsyncMock(return_value=[{"total": 3}])

        with patch("src.graph.neo4j_client.AsyncGraphDatabase") as mock_db:
            mock_db.driver.return_value = _mock_driver(session)
            client = StockGraphClient(Neo4jSettings())

            records = await client.execute_read("MATCH (n) RETURN count(n) AS total")

        assert records == [{"total": 3}]
        session.execute_read.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_execute_write_maps_transient_errors(self) -> None:
        session = MagicMock()
        session.execute_write = AsyncMock(side_effect=TransientError("deadlock detected"))

        with patch("src.graph.neo4j_client.AsyncGraphDatabase") as mock_db:
            mock_db.driver.return_value = _mock_driver(session)
            client = StockGraphClient(Neo4jSettings())

            with pytest.raises(TransientRepositoryError):
                await client.execute_write("MATCH (n:StockRating {id: $id}) DETACH DELETE n", {"id": "x"})

    # =========================================================================
    # Schema Tests
    # =========================================================================

    @pytest.mark.asyncio
    async def test_setup_schema(self) -> None:
        session = MagicMock()
        session.run = AsyncMock()

        with patch("src.graph.neo4j_client.AsyncGraphDatabase") as mock_db:
            mock_db.driver.return_value = _mock_driver(session)
            client = StockGraphClient(Neo4jSettings())

            results = await client.setup_schema()

        assert session.run.await_count == len(SCHEMA_CONSTRAINTS) + len(SCHEMA_INDEXES)
        assert len(results["constraints"]) == len(SCHEMA_CONSTRAINTS)
        assert results["errors"] == []

    @pytest.mark.asyncio
    async def test_setup_schema_tolerates_existing(self) -> None:
        session = MagicMock()
        session.run = AsyncMock(side_effect=ClientError("An equivalent constraint already exists"))

        with patch("src.graph.neo4j_client.AsyncGraphDatabase") as mock_db:
            mock_db.driver.return_value = _mock_driver(session)
            client = StockGraphClient(Neo4jSettings())

            results = await client.setup_schema()

        assert all(r["status"] == "exists" for r in results["constraints"])
        assert results["errors"] == []


class TestErrorMapping:
    """Test cases for map_driver_error."""

    def test_transient_errors(self) -> None:
        assert isinstance(map_driver_error(TransientError("lock")), TransientRepositoryError)
        assert isinstance(map_driver_error(ServiceUnavailable("down")), TransientRepositoryError)

    def test_other_errors(self) -> None:
        error = map_driver_error(ClientError("syntax"))

        assert isinstance(error, RepositoryError)
        assert not isinstance(error, TransientRepositoryError)
