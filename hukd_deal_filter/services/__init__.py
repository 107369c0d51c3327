"""
Service layer for the HotUKDeals Deal Filter system.

This module contains the services that load configuration and turn
scraped deals into recorded, delivered or queued channel notifications.
"""

from .config_manager import ConfigurationManager, YamlChannelSource
from .notification_service import ChannelProcessingResult, NotificationService

__all__ = [
    "ConfigurationManager",
    "YamlChannelSource",
    "NotificationService",
    "ChannelProcessingResult",
]
