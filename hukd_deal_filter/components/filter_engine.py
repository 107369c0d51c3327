"""Filter engine for applying search term, keyword, price and discount filters to deals."""

import logging
import re
from typing import Iterable, List, Optional, Tuple

from ..models.deal import CandidateDeal
from ..models.filter import FilterConfig, FilterResult, FilterStatus
from .match_details import compute_match_details, split_search_term

logger = logging.getLogger(__name__)

_PRICE_NOISE = re.compile(r"[£$€\s,]")


def parse_price(price: Optional[str]) -> Optional[float]:
    """Parse a display price such as "£1,234.56" into a number of pounds."""
    if price is None:
        return None

    if isinstance(price, (int, float)):
        return float(price)

    cleaned = _PRICE_NOISE.sub("", str(price))
    match = re.match(r"^\d+(?:\.\d+)?", cleaned)
    if not match:
        return None

    return float(match.group(0))


def _normalize(text: str, case_sensitive: bool) -> str:
    return text if case_sensitive else text.lower()


def _no_match(search_term: str, exact_phrase: bool = False) -> FilterResult:
    if exact_phrase:
        reason = f'Search term "{search_term}" not found in deal'
    else:
        reason = f'No words from search term "{search_term}" found in deal'
    return FilterResult(
        passed=False,
        filter_status=FilterStatus.FILTERED_NO_MATCH,
        filter_reason=reason,
    )


def _classify(deal: CandidateDeal, config: FilterConfig) -> FilterResult:
    """Run the filter checks in priority order; the first failing check wins."""
    search_term = getattr(config, "search_term", None)
    if not isinstance(search_term, str):
        return _no_match(str(search_term or ""))

    case_sensitive = bool(config.case_sensitive)
    title = _normalize(deal.title or "", case_sensitive)
    merchant = _normalize(deal.merchant or "", case_sensitive)
    search_text = f"{title} {merchant}"

    if config.exact_phrase:
        phrase = _normalize(search_term.strip(), case_sensitive)
        if not phrase or phrase not in search_text:
            return _no_match(search_term, exact_phrase=True)
    else:
        words = [_normalize(w, case_sensitive) for w in split_search_term(search_term)]
        if not any(word in search_text for word in words):
            return _no_match(search_term)

    if config.exclude_keywords:
        for keyword in config.exclude_keywords:
            normalized = _normalize(keyword, case_sensitive)
            if normalized in search_text:
                return FilterResult(
                    passed=False,
                    filter_status=FilterStatus.FILTERED_EXCLUDE,
                    filter_reason=f'Excluded keyword "{keyword}" found in deal',
                )

    if config.include_keywords:
        missing = [
            normalized
            for normalized in (
                _normalize(keyword, case_sensitive) for keyword in config.include_keywords
            )
            if normalized not in search_text
        ]
        if missing:
            return FilterResult(
                passed=False,
                filter_status=FilterStatus.FILTERED_INCLUDE,
                filter_reason=f"Required keyword(s) not found: {', '.join(missing)}",
            )

    if config.max_price is not None:
        price = parse_price(deal.price)
        if price is not None and price > config.max_price:
            return FilterResult(
                passed=False,
                filter_status=FilterStatus.FILTERED_PRICE_TOO_HIGH,
                filter_reason=(
                    f"Price {deal.price} exceeds maximum £{config.max_price:.2f}"
                ),
            )

    if config.min_discount is not None and deal.savings_percentage is not None:
        if deal.savings_percentage < config.min_discount:
            return FilterResult(
                passed=False,
                filter_status=FilterStatus.FILTERED_DISCOUNT_TOO_LOW,
                filter_reason=(
                    f"Discount {deal.savings_percentage:g}% is below minimum "
                    f"{config.min_discount:g}%"
                ),
            )

    return FilterResult(passed=True, filter_status=FilterStatus.PASSED)


def evaluate(deal: CandidateDeal, config: Optional[FilterConfig]) -> FilterResult:
    """
    Evaluate a deal against a filter configuration.

    Pure and total: a missing configuration classifies as filtered_no_match,
    since an empty search term can never match anything. Match evidence is
    attached to every result, passed or filtered.
    """
    if config is None:
        return _no_match("")

    result = _classify(deal, config)
    result.match_details = compute_match_details(deal.title, deal.merchant, config)
    return result


def apply_filter_to_deals(
    deals: Iterable[CandidateDeal], config: FilterConfig
) -> List[Tuple[CandidateDeal, FilterResult]]:
    """Evaluate several deals against one configuration, e.g. for a live preview."""
    return [(deal, evaluate(deal, config)) for deal in deals]


class FilterEngine:
    """Applies a channel's filter configurations to candidate deals."""

    def evaluate(self, deal: CandidateDeal, config: Optional[FilterConfig]) -> FilterResult:
        """Evaluate a deal and log the decision."""
        result = evaluate(deal, config)

        if result.passed:
            logger.debug(
                f"Deal {deal.id} passed filters for search term "
                f"'{getattr(config, 'search_term', '')}'"
            )
        else:
            logger.debug(
                f"Deal {deal.id} filtered: {result.filter_status.value} "
                f"({result.filter_reason})"
            )

        return result
