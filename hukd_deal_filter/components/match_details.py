"""
Match evidence computation for the HotUKDeals Deal Filter system.

Computes structured, serializable proof of why a deal's text matched (or
failed to match) a search term configuration, plus a one-line summary for
notifications. Matching is literal substring containment, so a short search
word can match inside a longer unrelated word.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..models.filter import FilterConfig
from ..models.match import SEGMENT_POSITIONS, MatchDetails, MatchSegment

logger = logging.getLogger(__name__)

# Words of context kept on each side of a matched term in a segment snippet
SEGMENT_CONTEXT_WORDS = 3

NO_EXCLUDE_KEYWORDS = "No exclude keywords configured"


def _normalize(text: str, case_sensitive: bool) -> str:
    return text if case_sensitive else text.lower()


def split_search_term(search_term: Optional[str]) -> List[str]:
    """Split a search term into its non-empty whitespace-separated words."""
    if not isinstance(search_term, str):
        return []
    return search_term.split()


def extract_segment(
    text: str,
    matched_term: str,
    case_sensitive: bool,
    context_words: int = SEGMENT_CONTEXT_WORDS,
) -> Optional[str]:
    """
    Build a snippet around the first occurrence of a term in text.

    The matched text is wrapped in brackets with up to `context_words` words
    kept on either side; "..." marks text cut from either end.

    Returns:
        The snippet, or None when the term does not occur in text.
    """
    if not text or not matched_term:
        return None

    flags = 0 if case_sensitive else re.IGNORECASE
    match = re.search(re.escape(matched_term), text, flags)
    if match is None:
        return None

    left = text[: match.start()]
    right = text[match.end():]

    left_words = left.split()
    right_words = right.split()

    # A match inside a longer word keeps the rest of that word glued to it
    glued_left = left_words.pop() if left and not left[-1].isspace() else ""
    glued_right = right_words.pop(0) if right and not right[0].isspace() else ""

    core = f"{glued_left}[{match.group(0)}]{glued_right}"
    before = left_words[-context_words:] if context_words else []
    after = right_words[:context_words]

    segment = " ".join(before + [core] + after)
    if len(left_words) > len(before):
        segment = "..." + segment
    if len(right_words) > len(after):
        segment = segment + "..."

    return segment


def _find_segment(
    title: str, merchant: str, term: str, case_sensitive: bool
) -> Optional[MatchSegment]:
    """Locate a term in the title first, then the merchant."""
    for position, text in zip(SEGMENT_POSITIONS, (title, merchant)):
        snippet = extract_segment(text, term, case_sensitive)
        if snippet:
            return MatchSegment(position=position, text=snippet, matched_term=term)
    return None


def _describe_excludes(
    exclude_keywords: List[str], search_text: str, case_sensitive: bool
) -> str:
    if not exclude_keywords:
        return NO_EXCLUDE_KEYWORDS

    found = [
        keyword
        for keyword in exclude_keywords
        if _normalize(keyword, case_sensitive) in search_text
    ]
    if found:
        return f"Contains excluded keywords: {', '.join(found)}"

    return f"No excluded keywords found (checked: {', '.join(exclude_keywords)})"


def compute_match_details(
    title: str, merchant: Optional[str], config: FilterConfig
) -> MatchDetails:
    """
    Compute match evidence for a deal against a filter configuration.

    Args:
        title: Deal title as scraped
        merchant: Merchant name, if any
        config: Filter configuration to explain

    Returns:
        MatchDetails describing which terms matched and where
    """
    title = title or ""
    merchant = merchant or ""
    case_sensitive = bool(getattr(config, "case_sensitive", False))
    search_term = getattr(config, "search_term", "") or ""
    include_keywords = list(getattr(config, "include_keywords", None) or [])
    exclude_keywords = list(getattr(config, "exclude_keywords", None) or [])

    search_text = _normalize(f"{title} {merchant}", case_sensitive)

    search_term_matches: List[str] = []
    for word in split_search_term(search_term):
        if word in search_term_matches:
            continue
        if _normalize(word, case_sensitive) in search_text:
            search_term_matches.append(word)

    include_keyword_matches = [
        keyword
        for keyword in include_keywords
        if _normalize(keyword, case_sensitive) in search_text
    ]

    matched_segments: List[MatchSegment] = []
    for term in search_term_matches + include_keyword_matches:
        segment = _find_segment(title, merchant, term, case_sensitive)
        if segment is not None:
            matched_segments.append(segment)

    if search_term_matches:
        quoted = '", "'.join(search_term_matches)
        filter_status = f'Matched "{quoted}" from search term "{search_term}"'
    else:
        filter_status = f'No direct match found for search term "{search_term}"'

    return MatchDetails(
        search_term_matches=search_term_matches,
        include_keyword_matches=include_keyword_matches,
        exclude_keyword_status=_describe_excludes(
            exclude_keywords, search_text, case_sensitive
        ),
        matched_segments=matched_segments,
        filter_status=filter_status,
    )


def format_match_summary(details: MatchDetails, search_term: Optional[str] = None) -> str:
    """
    Build a one-line, human-readable explanation of a match.

    Suitable for the "Why Matched" field of a notification.
    """
    parts: List[str] = []

    if details.search_term_matches:
        matched = ", ".join(details.search_term_matches)
        if details.matched_segments:
            parts.append(f'"{details.matched_segments[0].text}" matched: {matched}')
        else:
            parts.append(f"Matched: {matched}")

    if details.include_keyword_matches:
        parts.append(
            f"Required keywords found: {', '.join(details.include_keyword_matches)}"
        )

    if not parts:
        if search_term:
            parts.append(f'Returned by HotUKDeals search for "{search_term}"')
        else:
            parts.append("Returned by HotUKDeals search")

    return ". ".join(parts)


def match_details_to_dict(details: MatchDetails) -> Dict[str, Any]:
    """Convert match details to their JSON document shape."""
    return {
        "searchTermMatches": list(details.search_term_matches),
        "includeKeywordMatches": list(details.include_keyword_matches),
        "excludeKeywordStatus": details.exclude_keyword_status,
        "matchedSegments": [
            {
                "position": segment.position,
                "text": segment.text,
                "matchedTerm": segment.matched_term,
            }
            for segment in details.matched_segments
        ],
        "filterStatus": details.filter_status,
    }


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError("expected a list of strings")
    return list(value)


def _string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("expected a string")
    return value


def match_details_from_dict(data: Dict[str, Any]) -> MatchDetails:
    """
    Build match details from their JSON document shape.

    Raises:
        ValueError: If the document does not have the expected shape
    """
    if not isinstance(data, dict):
        raise ValueError("match details must be a JSON object")

    try:
        raw_segments = data["matchedSegments"]
        if not isinstance(raw_segments, list):
            raise ValueError("matchedSegments must be a list")

        segments = []
        for raw in raw_segments:
            if not isinstance(raw, dict):
                raise ValueError("segment must be a JSON object")
            position = _string(raw["position"])
            if position not in SEGMENT_POSITIONS:
                raise ValueError(f"invalid segment position: {position}")
            segments.append(
                MatchSegment(
                    position=position,
                    text=_string(raw["text"]),
                    matched_term=_string(raw["matchedTerm"]),
                )
            )

        return MatchDetails(
            search_term_matches=_string_list(data["searchTermMatches"]),
            include_keyword_matches=_string_list(data["includeKeywordMatches"]),
            exclude_keyword_status=_string(data["excludeKeywordStatus"]),
            matched_segments=segments,
            filter_status=_string(data["filterStatus"]),
        )
    except KeyError as e:
        raise ValueError(f"missing match details field: {e}")


def serialize_match_details(details: MatchDetails) -> str:
    """Serialize match details to a JSON string for storage."""
    return json.dumps(match_details_to_dict(details), ensure_ascii=False)


def deserialize_match_details(serialized: Optional[str]) -> Optional[MatchDetails]:
    """
    Deserialize match details from storage.

    Returns None for missing or malformed input; callers must treat that as
    "no evidence available".
    """
    if not serialized:
        return None

    try:
        return match_details_from_dict(json.loads(serialized))
    except (TypeError, ValueError, RecursionError) as e:
        logger.debug(f"Discarding unreadable match details: {e}")
        return None


def summarize_serialized(
    serialized: Optional[str], search_term: Optional[str] = None
) -> Tuple[Optional[MatchDetails], str]:
    """Deserialize stored evidence and build its summary, degrading gracefully."""
    details = deserialize_match_details(serialized)
    if details is None:
        fallback = MatchDetails()
        return None, format_match_summary(fallback, search_term)
    return details, format_match_summary(details, search_term)
