"""
Message delivery models.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Deliverable:
    """Deal as handed to the notification transport."""

    title: str
    link: str
    match_summary: str
    search_term: str
    price: Optional[str] = None
    merchant: Optional[str] = None
    deal_id: Optional[str] = None


@dataclass
class DeliveryResult:
    """Result of message delivery attempt."""

    success: bool
    delivery_time: datetime
    error_message: Optional[str]
    delivered_count: int = 0

    def validate(self) -> bool:
        """Validate delivery result data."""
        if not isinstance(self.success, bool):
            raise ValueError("success must be a boolean")

        if not isinstance(self.delivery_time, datetime):
            raise ValueError("delivery_time must be a datetime object")

        if self.error_message is not None:
            if not isinstance(self.error_message, str):
                raise ValueError("error_message must be a string or None")

            if len(self.error_message) > 500:
                raise ValueError("error_message too long (max 500 characters)")

        # Logical validation: if success is False, error_message should be provided
        if not self.success and not self.error_message:
            raise ValueError("error_message should be provided when success is False")

        if self.delivered_count < 0:
            raise ValueError("delivered_count cannot be negative")

        return True
