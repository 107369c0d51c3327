"""
Data models for the HotUKDeals Deal Filter system.

This module contains all data classes and type definitions used throughout
the application for representing deals, filter configuration, match
evidence, channels and system configuration.
"""

from .alert import FormattedAlert
from .channel import Channel, QuietHoursSchedule
from .config import Configuration, DatabaseConfig, DeliveryConfig
from .deal import CandidateDeal, DealRecord, QueuedDeal
from .delivery import Deliverable, DeliveryResult
from .filter import FilterConfig, FilterResult, FilterStatus
from .match import MatchDetails, MatchSegment

__all__ = [
    "CandidateDeal",
    "DealRecord",
    "QueuedDeal",
    "FilterConfig",
    "FilterResult",
    "FilterStatus",
    "MatchDetails",
    "MatchSegment",
    "Channel",
    "QuietHoursSchedule",
    "Deliverable",
    "DeliveryResult",
    "FormattedAlert",
    "Configuration",
    "DatabaseConfig",
    "DeliveryConfig",
]
