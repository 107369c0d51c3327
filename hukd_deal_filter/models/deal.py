"""
Deal data models for the HotUKDeals Deal Filter system.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from .filter import FilterStatus

TWELVE_MONTHS_IN_SECONDS = 365 * 24 * 60 * 60
TWENTY_FOUR_HOURS_IN_SECONDS = 24 * 60 * 60


def _now_ms() -> int:
    return int(time.time() * 1000)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CandidateDeal:
    """Deal discovered by the scraper for one search term."""

    id: str
    title: str
    link: str
    search_term: str
    price: Optional[str] = None
    merchant: Optional[str] = None
    original_price: Optional[str] = None
    savings_percentage: Optional[float] = None
    merchant_url: Optional[str] = None

    def validate(self) -> bool:
        """Validate the candidate deal data."""
        if not self.id or not self.id.strip():
            raise ValueError("Deal ID cannot be empty")

        if not self.title or not self.title.strip():
            raise ValueError("Deal title cannot be empty")

        if not self.link or not self.link.strip():
            raise ValueError("Deal link cannot be empty")

        parsed_url = urlparse(self.link)
        if not parsed_url.scheme or not parsed_url.netloc:
            raise ValueError(f"Invalid URL format: {self.link}")

        if len(self.title) > 500:
            raise ValueError("Deal title too long (max 500 characters)")

        if self.savings_percentage is not None:
            if not (0 <= self.savings_percentage <= 100):
                raise ValueError("Savings percentage must be between 0 and 100")

        return True


@dataclass
class DealRecord:
    """
    Persisted deal sighting for one channel.

    Identity is the (channel_id, deal_id) pair: at most one record exists per
    channel per deal no matter how many scrape cycles rediscover it.
    """

    channel_id: str
    deal_id: str
    search_term: str
    title: str
    link: str
    price: Optional[str] = None
    merchant: Optional[str] = None
    match_details: Optional[str] = None
    filter_status: FilterStatus = FilterStatus.PASSED
    filter_reason: Optional[str] = None
    notified: bool = False
    timestamp: int = field(default_factory=_now_ms)
    created_at: str = field(default_factory=_now_iso)
    expires_at: int = field(
        default_factory=lambda: int(time.time()) + TWELVE_MONTHS_IN_SECONDS
    )

    def validate(self) -> bool:
        """Validate the deal record."""
        if not self.channel_id or not self.channel_id.strip():
            raise ValueError("Channel ID cannot be empty")

        if not self.deal_id or not self.deal_id.strip():
            raise ValueError("Deal ID cannot be empty")

        if not self.search_term:
            raise ValueError("Search term cannot be empty")

        if not self.title or not self.link:
            raise ValueError("Deal title and link are required")

        if not isinstance(self.filter_status, FilterStatus):
            raise ValueError("filter_status must be a FilterStatus enum")

        return True


@dataclass
class QueuedDeal:
    """Deal held back during quiet hours, waiting for the next flush."""

    channel_id: str
    deal_id: str
    search_term: str
    title: str
    link: str
    price: Optional[str] = None
    merchant: Optional[str] = None
    match_details: Optional[str] = None
    queued_deal_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    queued_at: int = field(default_factory=_now_ms)
    created_at: str = field(default_factory=_now_iso)
    expires_at: int = field(
        default_factory=lambda: int(time.time()) + TWENTY_FOUR_HOURS_IN_SECONDS
    )
    flushed_at: Optional[int] = None

    def validate(self) -> bool:
        """Validate the queued deal."""
        if not self.queued_deal_id:
            raise ValueError("Queued deal ID cannot be empty")

        if not self.channel_id or not self.deal_id:
            raise ValueError("Queued deal must reference a channel and a deal")

        if not self.title or not self.link:
            raise ValueError("Deal title and link are required")

        return True
