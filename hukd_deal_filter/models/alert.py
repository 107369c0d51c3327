"""
Alert formatting models.
"""

from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass
class FormattedAlert:
    """Batched alert ready for delivery, one payload per message chunk."""

    title: str
    message: str
    deal_count: int
    platform_specific_data: Dict[str, List[Dict[str, Any]]]

    def validate(self) -> bool:
        """Validate formatted alert data."""
        if not isinstance(self.title, str):
            raise ValueError("title must be a string")

        if not self.title.strip():
            raise ValueError("title cannot be empty")

        if len(self.title) > 200:
            raise ValueError("title too long (max 200 characters)")

        if not isinstance(self.message, str):
            raise ValueError("message must be a string")

        if not self.message.strip():
            raise ValueError("message cannot be empty")

        if not isinstance(self.deal_count, int) or self.deal_count <= 0:
            raise ValueError("deal_count must be a positive integer")

        if not isinstance(self.platform_specific_data, dict):
            raise ValueError("platform_specific_data must be a dictionary")

        for platform, payloads in self.platform_specific_data.items():
            if not isinstance(payloads, list) or not payloads:
                raise ValueError(f"{platform} payloads must be a non-empty list")

        return True
