"""Unit tests for the quiet-hours queue dispatcher."""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import requests

from hukd_deal_filter.components.match_details import (
    compute_match_details,
    serialize_match_details,
)
from hukd_deal_filter.components.message_dispatcher import DiscordDispatcher
from hukd_deal_filter.components.queue_dispatcher import QueueDispatcher, to_deliverable
from hukd_deal_filter.models.channel import Channel, QuietHoursSchedule
from hukd_deal_filter.models.deal import DealRecord
from hukd_deal_filter.models.delivery import DeliveryResult
from hukd_deal_filter.models.filter import FilterConfig
from hukd_deal_filter.utils.error_handling import get_error_tracker

DISCORD_WEBHOOK = "https://discord.com/api/webhooks/123/abc"

MORNING = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
NIGHT = datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc)


class StaticChannelSource:
    """In-memory channel source."""

    def __init__(self, channels):
        self.channels = {channel.channel_id: channel for channel in channels}

    def list_channels(self):
        return list(self.channels.values())

    def get_channel(self, channel_id):
        return self.channels.get(channel_id)


def make_channel(channel_id, quiet_hours=None):
    return Channel(
        channel_id=channel_id,
        name=channel_id.upper(),
        webhook_url=DISCORD_WEBHOOK,
        quiet_hours=quiet_hours
        or QuietHoursSchedule(enabled=True, start="22:00", end="08:00", timezone="UTC"),
    )


def ok_dispatcher():
    dispatcher = Mock()
    dispatcher.send_deals.side_effect = lambda deals: DeliveryResult(
        success=True,
        delivery_time=datetime.now(),
        error_message=None,
        delivered_count=len(deals),
    )
    return dispatcher


def queue_deal(store, make_queued, channel_id, deal_id, queued_at=1_000, **kwargs):
    store.record_deal(
        DealRecord(
            channel_id=channel_id,
            deal_id=deal_id,
            search_term="NB10000",
            title=f"Deal {deal_id}",
            link=f"https://www.hotukdeals.com/deals/{deal_id}",
        )
    )
    entry = make_queued(channel_id=channel_id, deal_id=deal_id, queued_at=queued_at, **kwargs)
    store.enqueue_deal(entry)
    return entry


class TestSweep:
    """Test cases for QueueDispatcher.sweep."""

    def test_flushes_channel_after_quiet_hours(self, store, make_queued):
        queue_deal(store, make_queued, "c1", "late", queued_at=2_000)
        queue_deal(store, make_queued, "c1", "early", queued_at=1_000)
        dispatcher = ok_dispatcher()
        sweeper = QueueDispatcher(
            store, StaticChannelSource([make_channel("c1")]), lambda channel: dispatcher
        )

        result = sweeper.sweep(MORNING)

        assert result.flushed == ["c1"]
        assert result.delivered_count == 2
        dispatcher.send_deals.assert_called_once()
        sent = dispatcher.send_deals.call_args[0][0]
        assert [d.deal_id for d in sent] == ["early", "late"]

        assert store.list_channels_with_queued_deals() == []
        assert store.get_deal("c1", "early").notified is True
        assert store.get_deal("c1", "late").notified is True

    def test_still_quiet_keeps_queue(self, store, make_queued):
        queue_deal(store, make_queued, "c1", "d1")
        dispatcher = ok_dispatcher()
        sweeper = QueueDispatcher(
            store, StaticChannelSource([make_channel("c1")]), lambda channel: dispatcher
        )

        result = sweeper.sweep(NIGHT)

        assert result.still_quiet == ["c1"]
        dispatcher.send_deals.assert_not_called()
        assert len(store.get_queued_deals_for_channel("c1")) == 1
        assert store.get_deal("c1", "d1").notified is False

    def test_failing_channel_does_not_block_others(self, store, make_queued):
        queue_deal(store, make_queued, "c1", "d1", queued_at=1_000)
        queue_deal(store, make_queued, "c2", "d2", queued_at=2_000)

        failing = Mock()
        failing.send_deals.side_effect = ConnectionError("webhook down")
        working = ok_dispatcher()
        dispatchers = {"c1": failing, "c2": working}

        sweeper = QueueDispatcher(
            store,
            StaticChannelSource([make_channel("c1"), make_channel("c2")]),
            lambda channel: dispatchers[channel.channel_id],
        )
        result = sweeper.sweep(MORNING)

        assert result.failed == ["c1"]
        assert result.flushed == ["c2"]
        assert [q.deal_id for q in store.get_queued_deals_for_channel("c1")] == ["d1"]
        assert store.get_queued_deals_for_channel("c2") == []
        assert store.get_deal("c1", "d1").notified is False
        assert store.get_deal("c2", "d2").notified is True
        last_error = get_error_tracker().get_component_errors("queue.dispatcher", 1)[-1]
        assert last_error.context == {"channel_id": "c1"}
        assert last_error.exception_type == "ConnectionError"

    def test_unsuccessful_delivery_is_a_failure(self, store, make_queued):
        queue_deal(store, make_queued, "c1", "d1")
        dispatcher = Mock()
        dispatcher.send_deals.return_value = DeliveryResult(
            success=False, delivery_time=datetime.now(), error_message="HTTP 404"
        )
        sweeper = QueueDispatcher(
            store, StaticChannelSource([make_channel("c1")]), lambda channel: dispatcher
        )

        result = sweeper.sweep(MORNING)

        assert result.failed == ["c1"]
        assert len(store.get_queued_deals_for_channel("c1")) == 1

    def test_partial_delivery_settles_sent_prefix(self, store, make_queued):
        for i in range(11):
            queue_deal(store, make_queued, "c1", f"d{i:02d}", queued_at=1_000 + i)
        dispatcher = Mock()
        dispatcher.send_deals.return_value = DeliveryResult(
            success=False,
            delivery_time=datetime.now(),
            error_message="Message 2/2 failed",
            delivered_count=10,
        )
        sweeper = QueueDispatcher(
            store, StaticChannelSource([make_channel("c1")]), lambda channel: dispatcher
        )

        result = sweeper.sweep(MORNING)

        assert result.failed == ["c1"]
        assert [q.deal_id for q in store.get_queued_deals_for_channel("c1")] == ["d10"]
        assert store.get_deal("c1", "d09").notified is True
        assert store.get_deal("c1", "d10").notified is False
        last_error = get_error_tracker().get_component_errors("queue.dispatcher", 1)[-1]
        assert "10 of 11 queued deal(s) delivered" in last_error.message

    @patch("requests.Session.post")
    def test_failed_second_message_is_not_resent(self, mock_post, store, make_queued):
        """Deals from a message that went out are announced once across sweeps."""
        for i in range(11):
            queue_deal(store, make_queued, "c1", f"d{i:02d}", queued_at=1_000 + i)

        posted = []

        def post(url, json=None, timeout=None):
            posted.append(json)
            if len(posted) == 2:
                raise requests.ConnectionError("webhook down")
            response = Mock()
            response.raise_for_status.return_value = None
            return response

        mock_post.side_effect = post
        sweeper = QueueDispatcher(
            store,
            StaticChannelSource([make_channel("c1")]),
            lambda channel: DiscordDispatcher(channel.webhook_url, max_retries=0),
        )

        first = sweeper.sweep(MORNING)
        second = sweeper.sweep(MORNING)

        assert first.failed == ["c1"]
        assert second.flushed == ["c1"]
        assert second.delivered_count == 1
        titles = [embed["title"] for payload in posted for embed in payload["embeds"]]
        assert titles.count("Deal d00") == 1
        assert titles.count("Deal d10") == 2
        assert store.list_channels_with_queued_deals() == []
        assert all(store.get_deal("c1", f"d{i:02d}").notified for i in range(11))

    def test_no_retry_within_sweep(self, store, make_queued):
        queue_deal(store, make_queued, "c1", "d1")
        dispatcher = Mock()
        dispatcher.send_deals.side_effect = ConnectionError("down")
        sweeper = QueueDispatcher(
            store, StaticChannelSource([make_channel("c1")]), lambda channel: dispatcher
        )

        sweeper.sweep(MORNING)

        assert dispatcher.send_deals.call_count == 1

    def test_unknown_channel_is_skipped(self, store, make_queued):
        queue_deal(store, make_queued, "gone", "d1")
        sweeper = QueueDispatcher(store, StaticChannelSource([]), lambda channel: ok_dispatcher())

        result = sweeper.sweep(MORNING)

        assert result.skipped == ["gone"]
        assert len(store.get_queued_deals_for_channel("gone")) == 1

    def test_interrupted_flush_is_cleaned_up_without_resend(self, store, make_queued):
        entry = queue_deal(store, make_queued, "c1", "d1")
        store.mark_queued_flushed([entry.queued_deal_id])
        dispatcher = ok_dispatcher()
        sweeper = QueueDispatcher(
            store, StaticChannelSource([make_channel("c1")]), lambda channel: dispatcher
        )

        result = sweeper.sweep(MORNING)

        assert result.skipped == ["c1"]
        dispatcher.send_deals.assert_not_called()
        assert store.list_channels_with_queued_deals() == []

    def test_disabled_quiet_hours_flush(self, store, make_queued):
        queue_deal(store, make_queued, "c1", "d1")
        dispatcher = ok_dispatcher()
        channel = make_channel("c1", QuietHoursSchedule(enabled=False))
        sweeper = QueueDispatcher(store, StaticChannelSource([channel]), lambda c: dispatcher)

        assert sweeper.sweep(NIGHT).flushed == ["c1"]

    def test_empty_sweep(self, store):
        sweeper = QueueDispatcher(store, StaticChannelSource([]), lambda c: ok_dispatcher())

        result = sweeper.sweep(MORNING)

        assert result.flushed == [] and result.failed == [] and result.delivered_count == 0


class TestToDeliverable:
    """Test cases for converting queue entries."""

    def test_uses_stored_evidence(self, make_queued):
        details = compute_match_details(
            "Amazing NB10000 Power Bank", "Amazon", FilterConfig(search_term="NB10000")
        )
        entry = make_queued(match_details=serialize_match_details(details))

        deliverable = to_deliverable(entry)

        assert deliverable.match_summary == '"Amazing [NB10000] Power Bank" matched: NB10000'
        assert deliverable.deal_id == entry.deal_id

    def test_absent_evidence_falls_back(self, make_queued):
        for stored in (None, "not valid json"):
            deliverable = to_deliverable(make_queued(match_details=stored))

            assert deliverable.match_summary == 'Returned by HotUKDeals search for "NB10000"'
