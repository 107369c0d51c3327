"""
Match evidence models.
"""

from dataclasses import dataclass, field
from typing import List

SEGMENT_POSITIONS = ("title", "merchant")


@dataclass
class MatchSegment:
    """A snippet of deal text around a matched term."""

    position: str
    text: str
    matched_term: str

    def validate(self) -> bool:
        """Validate segment data."""
        if self.position not in SEGMENT_POSITIONS:
            raise ValueError(f"Segment position must be one of: {SEGMENT_POSITIONS}")

        if not self.matched_term:
            raise ValueError("Matched term cannot be empty")

        if "[" not in self.text or "]" not in self.text:
            raise ValueError("Segment text must bracket the matched term")

        return True


@dataclass
class MatchDetails:
    """Structured evidence of why a deal matched (or failed) a filter."""

    search_term_matches: List[str] = field(default_factory=list)
    include_keyword_matches: List[str] = field(default_factory=list)
    exclude_keyword_status: str = ""
    matched_segments: List[MatchSegment] = field(default_factory=list)
    filter_status: str = ""

    @property
    def has_direct_match(self) -> bool:
        return bool(self.search_term_matches)
