"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing the stock ratings
integrity engine.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.config.settings import Settings, get_settings
from src.domain.entities import Brokerage, Company
from src.graph.neo4j_client import StockGraphClient
from src.integrity.integrity_logger import IntegrityLogger
from tests.factories import make_brokerage, make_company, make_rating


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with mock values."""
    with patch.dict(
        "os.environ",
        {
            "NEO4J_URI": "bolt://localhost:7687",
            "NEO4J_USERNAME": "neo4j",
            "NEO4J_PASSWORD": "password123",
            "INTEGRITY_DUPLICATES_WARNING_LIMIT": "7",
            "INTEGRITY_DUPLICATE_WINDOW_HOURS": "12",
        },
    ):
        # Clear cache and get fresh settings
        get_settings.cache_clear()
        settings = get_settings()
    get_settings.cache_clear()
    return settings


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def apple() -> Company:
    return make_company()


@pytest.fixture
def goldman() -> Brokerage:
    return make_brokerage()


@pytest.fixture
def clean_data(apple: Company, goldman: Brokerage) -> dict[str, list[Any]]:
    """A small dataset without any integrity issue."""
    microsoft = make_company(ticker="MSFT", name="Microsoft Corporation")
    morgan = make_brokerage(name="Morgan Stanley")
    return {
        "companies": [apple, microsoft],
        "brokerages": [goldman, morgan],
        "ratings": [
            make_rating(apple, goldman),
            make_rating(
                microsoft,
                morgan,
                action="reiterated by",
                rating_from="Overweight",
                rating_to="Overweight",
                target_from="$400.00",
                target_to="$420.00",
            ),
            make_rating(
                apple,
                morgan,
                action="downgraded by",
                rating_from="Buy",
                rating_to="Neutral",
                target_from="$200.00",
                target_to="$170.00",
            ),
        ],
    }


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_sink() -> MagicMock:
    """Create a mock lifecycle event sink."""
    return MagicMock(spec=IntegrityLogger)


@pytest.fixture
def mock_graph_client() -> MagicMock:
    """Create a mock Neo4j client."""
    client = MagicMock(spec=StockGraphClient)

    # Connection methods
    client.connect = AsyncMock()
    client.close = AsyncMock()

    # Query methods
    client.execute_read = AsyncMock(return_value=[])
    client.execute_write = AsyncMock(
        return_value={"nodes_created": 0, "nodes_deleted": 0, "properties_set": 0}
    )

    return client
