"""
Domain Entities.

Companies, brokerages and the stock ratings that link them, plus the
normalization helpers shared by validation and repair.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

NIL_UUID = uuid.UUID(int=0)

_PRICE_RE = re.compile(r"^-?\$?-?\d+(?:\.\d+)?$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_ticker(ticker: str) -> str:
    return ticker.strip().upper()


def normalize_name(name: str) -> str:
    """Trim and collapse inner whitespace runs to a single space."""
    return " ".join(name.split())


def normalize_action(action: str) -> str:
    return " ".join(action.split()).lower()


def normalize_rating(rating: str) -> str:
    return rating.strip()


def business_key(value: str) -> str:
    """Case-insensitive identity key for tickers and names."""
    return normalize_name(value).casefold()


def parse_price(value: str) -> float | None:
    """
    Parse a price target string such as "$4.20" or "$1,234.50".

    Returns None for empty or unparseable values.
    """
    cleaned = value.strip().replace(",", "").replace(" ", "")
    if not cleaned or not _PRICE_RE.match(cleaned):
        return None
    negative = cleaned.startswith("-") or cleaned.startswith("$-")
    amount = float(cleaned.replace("$", "").replace("-", ""))
    return -amount if negative else amount


class _TimestampedModel(BaseModel):
    created_at: datetime = Field(default_factory=utc_now, description="When the record was stored")
    updated_at: datetime = Field(default_factory=utc_now, description="Last modification")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class Company(_TimestampedModel):
    """A publicly traded company, identified by its ticker."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Unique identifier")
    ticker: str = Field(..., description="Ticker symbol (unique, case-insensitive)")
    name: str = Field(..., description="Company name")
    sector: str = Field(default="", description="Sector")
    exchange: str = Field(default="", description="Listing exchange, e.g. NYSE")
    market_cap: float = Field(default=0.0, description="Market capitalization in millions USD")
    is_active: bool = Field(default=True, description="Whether the company is tracked")

    def __str__(self) -> str:
        return f"{self.ticker} - {self.name}"


class Brokerage(_TimestampedModel):
    """A brokerage firm issuing stock ratings."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Unique identifier")
    name: str = Field(..., description="Brokerage name (unique, case-insensitive)")
    website: str = Field(default="", description="Website URL")
    country: str = Field(default="", description="ISO 3166-1 alpha-3 country code")
    is_active: bool = Field(default=True, description="Whether the brokerage is tracked")

    def __str__(self) -> str:
        return self.name


class StockRating(_TimestampedModel):
    """A rating event issued by a brokerage for a company."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Unique identifier")
    company_id: uuid.UUID = Field(..., description="Rated company")
    brokerage_id: uuid.UUID = Field(..., description="Issuing brokerage")
    action: str = Field(..., description='e.g. "upgraded by", "downgraded by", "reiterated by"')
    rating_from: str = Field(default="", description='Previous rating, e.g. "Hold"')
    rating_to: str = Field(default="", description='New rating, e.g. "Buy"')
    target_from: str = Field(default="", description='Previous price target, e.g. "$4.20"')
    target_to: str = Field(default="", description='New price target, e.g. "$4.70"')
    event_time: datetime = Field(..., description="When the rating was issued")
    source: str = Field(default="api", description="Data source")
    is_processed: bool = Field(default=False, description="Processing status")

    @field_validator("event_time")
    @classmethod
    def _event_time_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def is_upgrade(self) -> bool:
        return "upgrade" in self.action.lower()

    def is_downgrade(self) -> bool:
        return "downgrade" in self.action.lower()

    def is_reiteration(self) -> bool:
        return "reiterat" in self.action.lower()

    def is_target_raise(self) -> bool:
        return "target raised" in normalize_action(self.action)

    def is_target_cut(self) -> bool:
        return "target lowered" in normalize_action(self.action)

    def payload_signature(self) -> tuple[Any, ...]:
        """Fields that must match for two ratings to be exact duplicates."""
        return (
            self.company_id,
            self.brokerage_id,
            normalize_action(self.action),
            normalize_rating(self.rating_from).casefold(),
            normalize_rating(self.rating_to).casefold(),
            parse_price(self.target_from),
            parse_price(self.target_to),
            self.event_time,
        )

    def __str__(self) -> str:
        return self.action
