"""
Application Settings - Pydantic Settings for configuration management.

Supports environment variables and .env file loading.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BeforeValidator, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_to_lowercase(v: str) -> str:
    """Normalize string to lowercase."""
    if isinstance(v, str):
        return v.lower()
    return v


class Neo4jSettings(BaseSettings):
    """Neo4j database connection settings."""

    model_config = SettingsConfigDict(env_prefix="NEO4J_")

    uri: str = Field(default="bolt://localhost:7687", description="Neo4j connection URI")
    username: str = Field(default="neo4j", description="Neo4j username")
    password: SecretStr = Field(default=SecretStr("password"), description="Neo4j password")
    database: str = Field(default="neo4j", description="Neo4j database name")
    max_connection_pool_size: int = Field(default=50, description="Connection pool size")
    query_timeout_ms: int = Field(default=30000, description="Query timeout in milliseconds")


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_format: Annotated[
        Literal["json", "console"],
        BeforeValidator(normalize_to_lowercase),
    ] = Field(
        default="json", description="Log format (json for production, console for development)"
    )


class IntegritySettings(BaseSettings):
    """Integrity validation and repair settings."""

    model_config = SettingsConfigDict(env_prefix="INTEGRITY_")

    # Severity thresholds
    orphans_critical_limit: int = Field(
        default=0, ge=0, description="Orphans per reference type tolerated before they turn critical"
    )
    consistency_warning_limit: int = Field(
        default=5, ge=0, description="Inconsistencies tolerated before the category is critical"
    )
    duplicates_warning_limit: int = Field(
        default=3, ge=0, description="Duplicate groups tolerated before the category is critical"
    )
    business_rules_warning_limit: int = Field(
        default=5, ge=0, description="Rule violations tolerated before the category is critical"
    )
    max_recommendations: int = Field(default=10, ge=1, description="Recommendations kept per report")

    # Rules
    max_age_years_business: int = Field(
        default=20, ge=1, description="Oldest acceptable stock rating event time, in years"
    )
    duplicate_window_hours: int = Field(
        default=24,
        ge=1,
        description="Bucket width used to group stock ratings of one company/brokerage pair",
    )

    # Repair
    repair_max_retries: int = Field(default=3, ge=0, description="Retries per repair mutation")
    repair_initial_delay: float = Field(
        default=0.2, ge=0.0, description="First retry delay for repair mutations (seconds)"
    )

    # Validation
    validation_timeout_seconds: float | None = Field(
        default=300.0, description="Upper bound for a full validation run (None disables)"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Stock Ratings Integrity", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    # Sub-settings
    neo4j: Neo4jSettings = Field(default_factory=Neo4jSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    integrity: IntegritySettings = Field(default_factory=IntegritySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
