"""
Persistence layer for deal records and quiet-hours queue entries.
"""

from .deal_store import DealStore

__all__ = ["DealStore"]
