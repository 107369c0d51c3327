"""
Filter configuration and filter result models.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .match import MatchDetails


class FilterStatus(Enum):
    """Outcome of evaluating a deal against a filter configuration."""

    PASSED = "passed"
    FILTERED_NO_MATCH = "filtered_no_match"
    FILTERED_EXCLUDE = "filtered_exclude"
    FILTERED_INCLUDE = "filtered_include"
    FILTERED_PRICE_TOO_HIGH = "filtered_price_too_high"
    FILTERED_DISCOUNT_TOO_LOW = "filtered_discount_too_low"


@dataclass(frozen=True)
class FilterConfig:
    """Search term configuration bound to a channel."""

    search_term: str
    include_keywords: List[str] = field(default_factory=list)
    exclude_keywords: List[str] = field(default_factory=list)
    case_sensitive: bool = False
    max_price: Optional[float] = None
    min_discount: Optional[float] = None
    enabled: bool = True
    exact_phrase: bool = False

    def validate(self) -> bool:
        """Validate filter configuration."""
        if not isinstance(self.search_term, str) or not self.search_term.strip():
            raise ValueError("Search term cannot be empty")

        if len(self.search_term) > 200:
            raise ValueError("Search term too long (max 200 characters)")

        for name, keywords in (
            ("Include keywords", self.include_keywords),
            ("Exclude keywords", self.exclude_keywords),
        ):
            if not isinstance(keywords, list):
                raise ValueError(f"{name} must be a list")
            for keyword in keywords:
                if not isinstance(keyword, str) or not keyword.strip():
                    raise ValueError(f"{name} must be non-empty strings")

        if self.max_price is not None and self.max_price <= 0:
            raise ValueError("Maximum price must be positive")

        if self.min_discount is not None:
            if not (0 <= self.min_discount <= 100):
                raise ValueError("Minimum discount must be between 0 and 100")

        return True


@dataclass
class FilterResult:
    """Result of applying a filter configuration to a deal."""

    passed: bool
    filter_status: FilterStatus
    filter_reason: Optional[str] = None
    match_details: Optional["MatchDetails"] = None

    def validate(self) -> bool:
        """Validate filter result data."""
        if not isinstance(self.passed, bool):
            raise ValueError("passed must be a boolean")

        if not isinstance(self.filter_status, FilterStatus):
            raise ValueError("filter_status must be a FilterStatus enum")

        if self.passed != (self.filter_status == FilterStatus.PASSED):
            raise ValueError("passed must agree with filter_status")

        if not self.passed and not self.filter_reason:
            raise ValueError("filter_reason should be provided when a deal is filtered")

        return True
