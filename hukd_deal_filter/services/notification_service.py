"""
Notification service that turns scraped candidates into channel notifications.

For each candidate the service evaluates the channel's filter configuration,
records the sighting in the deal store with its match evidence and collects
the deals that passed. Passed deals are either delivered as one batch or,
during the channel's quiet hours, queued for the queue dispatcher.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from ..components.filter_engine import FilterEngine
from ..components.match_details import format_match_summary, serialize_match_details
from ..components.message_dispatcher import MessageDispatcherFactory
from ..components.quiet_hours import is_quiet
from ..interfaces import IDealSource, IDealStore, IFilterEngine, IMessageDispatcher
from ..models.channel import Channel
from ..models.deal import (
    TWELVE_MONTHS_IN_SECONDS,
    TWENTY_FOUR_HOURS_IN_SECONDS,
    CandidateDeal,
    DealRecord,
    QueuedDeal,
)
from ..models.delivery import Deliverable
from ..models.filter import FilterConfig, FilterResult
from ..models.match import MatchDetails
from ..utils.error_handling import ErrorCategory, ErrorSeverity, get_error_tracker
from ..utils.logging import get_logger


Candidate = Tuple[CandidateDeal, FilterConfig]


@dataclass
class ChannelProcessingResult:
    """Summary of one processing cycle for a channel."""

    channel_id: str
    evaluated: int = 0
    duplicates: int = 0
    filtered: int = 0
    passed: int = 0
    queued: int = 0
    delivered: int = 0
    delivery_failed: bool = False
    errors: int = 0


class NotificationService:
    """
    Processes candidate deals for a channel.

    A deal is recorded once per channel. Only the call that creates the
    record goes on to notify, so a deal rediscovered by a later or
    overlapping cycle is never announced twice.
    """

    def __init__(
        self,
        store: IDealStore,
        filter_engine: Optional[IFilterEngine] = None,
        dispatcher_factory: Optional[Callable[[Channel], IMessageDispatcher]] = None,
    ):
        self.store = store
        self.filter_engine = filter_engine or FilterEngine()
        self.dispatcher_factory = dispatcher_factory or MessageDispatcherFactory.for_channel
        self.logger = get_logger("notification.service")
        self.error_tracker = get_error_tracker()

    def collect_candidates(self, channel: Channel, deal_source: IDealSource) -> List[Candidate]:
        """Fetch listing results for each enabled search term of a channel."""
        candidates: List[Candidate] = []
        for config in channel.enabled_configs:
            try:
                deals = deal_source.fetch_deals(config.search_term)
            except Exception as e:
                self.error_tracker.record_error(
                    component="notification.service",
                    category=ErrorCategory.SYSTEM,
                    severity=ErrorSeverity.MEDIUM,
                    message=f"Failed to fetch deals for '{config.search_term}': {e}",
                    exception=e,
                    context={"channel_id": channel.channel_id},
                )
                continue
            candidates.extend((deal, config) for deal in deals)
        return candidates

    def scan_channel(
        self, channel: Channel, deal_source: IDealSource, now: Optional[datetime] = None
    ) -> ChannelProcessingResult:
        """Fetch and process current deals for every search term of a channel."""
        return self.process_channel(channel, self.collect_candidates(channel, deal_source), now)

    def process_channel(
        self,
        channel: Channel,
        candidates: Iterable[Candidate],
        now: Optional[datetime] = None,
    ) -> ChannelProcessingResult:
        """
        Evaluate, record and deliver or queue candidate deals for a channel.

        Args:
            channel: Channel the candidates were fetched for
            candidates: (deal, filter configuration) pairs
            now: Processing instant, defaults to now

        Returns:
            ChannelProcessingResult: Counts for this cycle
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        result = ChannelProcessingResult(channel_id=channel.channel_id)
        to_notify: List[Tuple[DealRecord, Deliverable]] = []

        for deal, config in candidates:
            try:
                outcome = self._record_candidate(channel, deal, config, now)
            except Exception as e:
                result.errors += 1
                self.error_tracker.record_error(
                    component="notification.service",
                    category=ErrorCategory.STORAGE,
                    severity=ErrorSeverity.MEDIUM,
                    message=f"Failed to record deal {deal.id}: {e}",
                    exception=e,
                    context={"channel_id": channel.channel_id, "deal_id": deal.id},
                )
                continue

            if outcome is None:
                result.duplicates += 1
                continue

            result.evaluated += 1
            record, filter_result = outcome
            if not filter_result.passed:
                result.filtered += 1
                continue

            result.passed += 1
            to_notify.append(
                (
                    record,
                    Deliverable(
                        title=record.title,
                        link=record.link,
                        match_summary=format_match_summary(
                            filter_result.match_details or MatchDetails(), record.search_term
                        ),
                        search_term=record.search_term,
                        price=record.price,
                        merchant=record.merchant,
                        deal_id=record.deal_id,
                    ),
                )
            )

        if to_notify:
            if is_quiet(channel.quiet_hours, now):
                result.queued = self._enqueue(channel, [r for r, _ in to_notify], now)
            else:
                self._deliver(channel, to_notify, result)

        self.logger.info(
            "Processed channel",
            extra={
                "channel_id": result.channel_id,
                "evaluated": result.evaluated,
                "duplicates": result.duplicates,
                "filtered": result.filtered,
                "passed": result.passed,
                "queued": result.queued,
                "delivered": result.delivered,
            },
        )
        return result

    def _record_candidate(
        self, channel: Channel, deal: CandidateDeal, config: FilterConfig, now: datetime
    ) -> Optional[Tuple[DealRecord, FilterResult]]:
        """Evaluate and record a deal; None means it was already handled."""
        if self.store.deal_exists(channel.channel_id, deal.id):
            return None

        filter_result = self.filter_engine.evaluate(deal, config)
        epoch_seconds = int(now.timestamp())

        record = DealRecord(
            channel_id=channel.channel_id,
            deal_id=deal.id,
            search_term=deal.search_term or config.search_term,
            title=deal.title,
            link=deal.link,
            price=deal.price,
            merchant=deal.merchant,
            match_details=(
                serialize_match_details(filter_result.match_details)
                if filter_result.match_details is not None
                else None
            ),
            filter_status=filter_result.filter_status,
            filter_reason=filter_result.filter_reason,
            notified=False,
            timestamp=int(now.timestamp() * 1000),
            created_at=now.astimezone(timezone.utc).isoformat(),
            expires_at=epoch_seconds + TWELVE_MONTHS_IN_SECONDS,
        )

        # Another cycle may have recorded the deal since the existence check
        if not self.store.record_deal(record):
            return None

        return record, filter_result

    def _enqueue(self, channel: Channel, records: List[DealRecord], now: datetime) -> int:
        queued = 0
        for record in records:
            entry = QueuedDeal(
                channel_id=record.channel_id,
                deal_id=record.deal_id,
                search_term=record.search_term,
                title=record.title,
                link=record.link,
                price=record.price,
                merchant=record.merchant,
                match_details=record.match_details,
                queued_at=int(now.timestamp() * 1000),
                created_at=now.astimezone(timezone.utc).isoformat(),
                expires_at=int(now.timestamp()) + TWENTY_FOUR_HOURS_IN_SECONDS,
            )
            if self.store.enqueue_deal(entry):
                queued += 1

        self.logger.info(
            "Queued deals during quiet hours",
            extra={"channel_id": channel.channel_id, "queued": queued},
        )
        return queued

    def _deliver(
        self,
        channel: Channel,
        to_notify: List[Tuple[DealRecord, Deliverable]],
        result: ChannelProcessingResult,
    ) -> None:
        deliverables = [deliverable for _, deliverable in to_notify]
        try:
            dispatcher = self.dispatcher_factory(channel)
            delivery = dispatcher.send_deals(deliverables)
        except Exception as e:
            result.delivery_failed = True
            self.error_tracker.record_error(
                component="notification.service",
                category=ErrorCategory.MESSAGE_DELIVERY,
                severity=ErrorSeverity.HIGH,
                message=f"Failed to deliver deals to channel {channel.channel_id}: {e}",
                exception=e,
                context={"channel_id": channel.channel_id},
            )
            return

        delivered = to_notify if delivery.success else to_notify[: delivery.delivered_count]
        if delivered:
            self.store.mark_notified(channel.channel_id, [r.deal_id for r, _ in delivered])
        result.delivered = len(delivered)

        if not delivery.success:
            result.delivery_failed = True
            self.logger.error(
                "Delivery failed, undelivered deals left un-notified",
                extra={
                    "channel_id": channel.channel_id,
                    "deal_count": len(deliverables),
                    "delivered": len(delivered),
                    "error": delivery.error_message,
                },
            )
