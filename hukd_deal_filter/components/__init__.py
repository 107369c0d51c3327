"""
Core components for the HotUKDeals Deal Filter system.

This module contains the components that filter deals, explain matches,
gate deliveries on quiet hours and dispatch alerts to channel webhooks.
"""

from .alert_formatter import AlertFormatter
from .filter_engine import FilterEngine
from .message_dispatcher import (
    DiscordDispatcher,
    MessageDispatcherFactory,
    SlackDispatcher,
)
from .queue_dispatcher import QueueDispatcher, SweepResult

__all__ = [
    "AlertFormatter",
    "FilterEngine",
    "DiscordDispatcher",
    "SlackDispatcher",
    "MessageDispatcherFactory",
    "QueueDispatcher",
    "SweepResult",
]
