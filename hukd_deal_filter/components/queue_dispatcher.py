"""
Queue dispatcher for deals held back during quiet hours.

A sweep walks every channel that has queued deals, re-checks the channel's
quiet-hours gate and, once the window has ended, delivers the whole queue as
one batch. Each channel is handled in isolation: a failure is recorded and
logged, and whatever was not delivered stays queued for the next sweep.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..interfaces import IChannelSource, IDealStore, IMessageDispatcher
from ..models.channel import Channel
from ..models.deal import QueuedDeal
from ..models.delivery import Deliverable
from ..utils.error_handling import ErrorCategory, ErrorSeverity, get_error_tracker
from ..utils.logging import get_logger
from .match_details import summarize_serialized
from .message_dispatcher import MessageDispatcherFactory
from .quiet_hours import is_quiet

DispatcherFactory = Callable[[Channel], IMessageDispatcher]


@dataclass
class SweepResult:
    """Outcome of one queue sweep, by channel."""

    flushed: List[str] = field(default_factory=list)
    still_quiet: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    delivered_count: int = 0


def to_deliverable(queued: QueuedDeal) -> Deliverable:
    """Convert a queue entry into what the transport consumes."""
    _, summary = summarize_serialized(queued.match_details, queued.search_term)
    return Deliverable(
        title=queued.title,
        link=queued.link,
        match_summary=summary,
        search_term=queued.search_term,
        price=queued.price,
        merchant=queued.merchant,
        deal_id=queued.deal_id,
    )


class QueueDispatcher:
    """Flushes quiet-hours queues once each channel's window has ended."""

    def __init__(
        self,
        store: IDealStore,
        channel_source: IChannelSource,
        dispatcher_factory: Optional[DispatcherFactory] = None,
    ):
        """
        Initialize the queue dispatcher.

        Args:
            store: Deal store holding the queue
            channel_source: Lookup for channel schedules and webhooks
            dispatcher_factory: Builds the transport for a channel
        """
        self.store = store
        self.channel_source = channel_source
        self.dispatcher_factory = dispatcher_factory or MessageDispatcherFactory.for_channel
        self.logger = get_logger("queue.dispatcher")
        self.error_tracker = get_error_tracker()

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Flush the queue of every channel whose quiet hours have ended.

        Args:
            now: Instant to evaluate quiet hours at, defaults to now

        Returns:
            SweepResult: Per-channel outcome of the sweep
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        result = SweepResult()

        channel_ids = self.store.list_channels_with_queued_deals()
        self.logger.info(
            "Starting queue sweep", extra={"channels_with_queue": len(channel_ids)}
        )

        for channel_id in channel_ids:
            try:
                outcome, delivered = self._process_channel(channel_id, now)
            except Exception as e:
                self.error_tracker.record_error(
                    component="queue.dispatcher",
                    category=ErrorCategory.QUEUE_FLUSH,
                    severity=ErrorSeverity.HIGH,
                    message=f"Failed to flush queue for channel {channel_id}: {e}",
                    exception=e,
                    context={"channel_id": channel_id},
                )
                result.failed.append(channel_id)
                continue

            getattr(result, outcome).append(channel_id)
            result.delivered_count += delivered

        self.logger.info(
            "Queue sweep complete",
            extra={
                "flushed": len(result.flushed),
                "still_quiet": len(result.still_quiet),
                "failed": len(result.failed),
                "skipped": len(result.skipped),
                "delivered_count": result.delivered_count,
            },
        )
        return result

    def _process_channel(self, channel_id: str, now: datetime):
        """Handle one channel; returns the outcome name and the deals delivered."""
        # Entries marked by an interrupted flush were already delivered
        leftover = self.store.delete_flushed_queued_deals(channel_id)
        if leftover:
            self.logger.info(
                "Removed entries left by an interrupted flush",
                extra={"channel_id": channel_id, "count": leftover},
            )

        channel = self.channel_source.get_channel(channel_id)
        if channel is None:
            self.logger.warning(
                "Queued deals reference an unknown channel",
                extra={"channel_id": channel_id},
            )
            return "skipped", 0

        if is_quiet(channel.quiet_hours, now):
            self.logger.debug(
                "Channel still in quiet hours", extra={"channel_id": channel_id}
            )
            return "still_quiet", 0

        queued = self.store.get_queued_deals_for_channel(channel_id)
        if not queued:
            return "skipped", 0

        deliverables = [to_deliverable(entry) for entry in queued]
        dispatcher = self.dispatcher_factory(channel)
        delivery = dispatcher.send_deals(deliverables)

        # Messages that went out are settled even when a later one failed
        delivered = queued if delivery.success else queued[: delivery.delivered_count]
        if delivered:
            self._settle(channel_id, delivered, now)

        if not delivery.success:
            raise RuntimeError(
                f"{delivery.error_message or 'delivery failed'} "
                f"({len(delivered)} of {len(queued)} queued deal(s) delivered)"
            )

        self.logger.info(
            "Flushed quiet-hours queue",
            extra={"channel_id": channel_id, "deal_count": len(queued)},
        )
        return "flushed", len(queued)

    def _settle(self, channel_id: str, entries: List[QueuedDeal], now: datetime) -> None:
        """Mark delivered entries flushed, their deals notified, then drop them."""
        queued_ids = [entry.queued_deal_id for entry in entries]
        self.store.mark_queued_flushed(queued_ids, int(now.timestamp() * 1000))
        self.store.mark_notified(channel_id, [entry.deal_id for entry in entries])
        self.store.delete_queued_deals(queued_ids)
