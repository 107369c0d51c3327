"""
Protocol interfaces for the HotUKDeals Deal Filter system.

This module defines the protocol interfaces that establish system
boundaries with external collaborators (scraper, channel store,
notification transport) and enable dependency injection throughout
the application.
"""

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Protocol

from .models.alert import FormattedAlert
from .models.channel import Channel
from .models.deal import CandidateDeal, DealRecord, QueuedDeal
from .models.delivery import Deliverable, DeliveryResult
from .models.filter import FilterConfig, FilterResult

if TYPE_CHECKING:
    from .models.config import Configuration


class IDealSource(Protocol):
    """Protocol for the scraper that produces candidate deals."""

    def fetch_deals(self, search_term: str) -> List[CandidateDeal]:
        """Fetch current listing results for a search term."""
        ...


class IChannelSource(Protocol):
    """Protocol for the read-only channel and config store."""

    def list_channels(self) -> List[Channel]:
        """List all channels with their configs and schedules."""
        ...

    def get_channel(self, channel_id: str) -> Optional[Channel]:
        """Get one channel by ID."""
        ...


class IFilterEngine(Protocol):
    """Protocol for evaluating deals against filter configurations."""

    def evaluate(self, deal: CandidateDeal, config: Optional[FilterConfig]) -> FilterResult:
        """Classify a deal and attach match evidence."""
        ...


class IAlertFormatter(Protocol):
    """Protocol for formatting batched deal alerts."""

    def format_alert(self, deals: List[Deliverable]) -> FormattedAlert:
        """Format one or more deliverable deals into an alert."""
        ...


class IMessageDispatcher(Protocol):
    """Protocol for the notification transport."""

    def send_deals(self, deals: List[Deliverable]) -> DeliveryResult:
        """Deliver one or more deals as a single batched notification."""
        ...

    def test_connection(self) -> bool:
        """Test connection to the messaging platform."""
        ...


class IDealStore(Protocol):
    """Protocol for the dedup store and quiet-hours queue."""

    def record_deal(self, record: DealRecord) -> bool:
        """Insert a record unless its (channel, deal) identity exists."""
        ...

    def deal_exists(self, channel_id: str, deal_id: str) -> bool:
        """Check whether a deal is recorded for a channel."""
        ...

    def mark_notified(self, channel_id: str, deal_ids: Iterable[str]) -> int:
        """Mark recorded deals as notified."""
        ...

    def enqueue_deal(self, queued: QueuedDeal) -> bool:
        """Queue a deal for delivery after quiet hours."""
        ...

    def get_queued_deals_for_channel(self, channel_id: str) -> List[QueuedDeal]:
        """Pending queue entries of a channel, oldest first."""
        ...

    def list_channels_with_queued_deals(self) -> List[str]:
        """Channels with queue entries."""
        ...

    def mark_queued_flushed(self, queued_deal_ids: Iterable[str], now: Optional[int] = None) -> int:
        """Mark queue entries as delivered."""
        ...

    def delete_queued_deals(self, queued_deal_ids: Iterable[str]) -> int:
        """Delete queue entries by id."""
        ...

    def delete_flushed_queued_deals(self, channel_id: str) -> int:
        """Delete entries left behind by an interrupted flush."""
        ...

    def purge_expired(self, now: Optional[float] = None) -> Dict[str, int]:
        """Delete expired records."""
        ...


class IConfigurationManager(Protocol):
    """Protocol for managing system configuration."""

    def load_config(self) -> "Configuration":
        """Load configuration from file."""
        ...

    def get_config(self) -> "Configuration":
        """Get current configuration, loading if necessary."""
        ...

    def reload_if_changed(self) -> bool:
        """Reload configuration without restart."""
        ...
