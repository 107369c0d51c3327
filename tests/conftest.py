"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the HotUKDeals Deal Filter test suite.
"""

import os
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from hukd_deal_filter.models.channel import Channel, QuietHoursSchedule
from hukd_deal_filter.models.deal import CandidateDeal, QueuedDeal
from hukd_deal_filter.models.delivery import Deliverable, DeliveryResult
from hukd_deal_filter.models.filter import FilterConfig
from hukd_deal_filter.storage.deal_store import DealStore

DISCORD_WEBHOOK = "https://discord.com/api/webhooks/123/abc"
SLACK_WEBHOOK = "https://hooks.slack.com/services/T000/B000/XXXX"


# Test data fixtures
@pytest.fixture
def power_bank_deal():
    """A deal that matches the "NB10000" search term."""
    return CandidateDeal(
        id="deal_1001",
        title="Amazing NB10000 Power Bank",
        link="https://www.hotukdeals.com/deals/nb10000-power-bank-1001",
        search_term="NB10000",
        price="£19.99",
        merchant="Amazon",
        savings_percentage=40.0,
    )


@pytest.fixture
def steam_deck_config():
    """Create a sample FilterConfig for testing."""
    return FilterConfig(
        search_term="steam deck",
        exclude_keywords=["refurbished"],
        max_price=400,
        min_discount=10,
    )


@pytest.fixture
def quiet_schedule():
    """Overnight quiet hours in UTC."""
    return QuietHoursSchedule(enabled=True, start="22:00", end="08:00", timezone="UTC")


@pytest.fixture
def sample_channel(quiet_schedule):
    """Create a sample Channel with overnight quiet hours."""
    return Channel(
        channel_id="c1",
        name="Gadgets",
        webhook_url=DISCORD_WEBHOOK,
        platform="discord",
        quiet_hours=quiet_schedule,
        configs=[FilterConfig(search_term="NB10000")],
    )


@pytest.fixture
def sample_deliverable():
    """Create a sample Deliverable for testing."""
    return Deliverable(
        title="Amazing NB10000 Power Bank",
        link="https://www.hotukdeals.com/deals/nb10000-power-bank-1001",
        match_summary='"Amazing [NB10000] Power Bank" matched: NB10000',
        search_term="NB10000",
        price="£19.99",
        merchant="Amazon",
        deal_id="deal_1001",
    )


@pytest.fixture
def make_queued():
    """Factory for queued deals with controllable ordering."""

    def _make(channel_id="c1", deal_id="d1", queued_at=1_000, **kwargs):
        defaults = dict(
            search_term="NB10000",
            title=f"Deal {deal_id}",
            link=f"https://www.hotukdeals.com/deals/{deal_id}",
            price="£10.00",
            merchant="Argos",
        )
        defaults.update(kwargs)
        return QueuedDeal(
            channel_id=channel_id,
            deal_id=deal_id,
            queued_at=queued_at,
            **defaults,
        )

    return _make


# Store fixtures
@pytest.fixture
def store(tmp_path):
    """Create an initialized SQLite deal store in a temporary directory."""
    deal_store = DealStore(str(tmp_path / "deals.db"))
    deal_store.init_db()
    return deal_store


# Mock fixtures
@pytest.fixture
def mock_message_dispatcher():
    """Create a mock message dispatcher for testing."""
    dispatcher = Mock()
    dispatcher.send_deals.side_effect = lambda deals: DeliveryResult(
        success=True,
        delivery_time=datetime.now(timezone.utc),
        error_message=None,
        delivered_count=len(deals),
    )
    dispatcher.test_connection.return_value = True
    return dispatcher


# Environment fixtures
@pytest.fixture
def mock_env_vars():
    """Mock environment variables for testing."""
    env_vars = {
        "DISCORD_WEBHOOK_URL": DISCORD_WEBHOOK,
        "SLACK_WEBHOOK_URL": SLACK_WEBHOOK,
    }

    # Store original values
    original_values = {}
    for key, value in env_vars.items():
        original_values[key] = os.environ.get(key)
        os.environ[key] = value

    yield env_vars

    # Restore original values
    for key, original_value in original_values.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Add unit marker to all tests by default
        if not any(
            marker.name in ["integration", "slow"] for marker in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
