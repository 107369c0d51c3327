"""Unit tests for the filter engine."""

from hukd_deal_filter.components.filter_engine import (
    FilterEngine,
    apply_filter_to_deals,
    evaluate,
    parse_price,
)
from hukd_deal_filter.models.deal import CandidateDeal
from hukd_deal_filter.models.filter import FilterConfig, FilterStatus


def make_deal(title="Steam Deck OLED 512GB Gaming Console", merchant="Amazon", **kwargs):
    return CandidateDeal(
        id=kwargs.pop("id", "deal_1"),
        title=title,
        link="https://www.hotukdeals.com/deals/steam-deck-oled-1",
        search_term=kwargs.pop("search_term", "steam deck"),
        merchant=merchant,
        **kwargs,
    )


class TestScenarios:
    """The reference steam deck scenarios."""

    def test_scenario_a_passes(self):
        """Test both search words match and the deal passes."""
        result = evaluate(make_deal(), FilterConfig(search_term="steam deck"))

        assert result.passed is True
        assert result.filter_status == FilterStatus.PASSED
        assert result.filter_reason is None
        assert {"steam", "deck"} <= set(result.match_details.search_term_matches)

    def test_scenario_b_exclude(self):
        """Test an exclude keyword filters the deal and is named in the reason."""
        result = evaluate(
            make_deal(), FilterConfig(search_term="steam deck", exclude_keywords=["OLED"])
        )

        assert result.passed is False
        assert result.filter_status == FilterStatus.FILTERED_EXCLUDE
        assert "OLED" in result.filter_reason

    def test_scenario_c_include(self):
        """Test missing include keywords are reported in lower case."""
        result = evaluate(
            make_deal(),
            FilterConfig(search_term="steam deck", include_keywords=["512GB", "OLED", "LCD"]),
        )

        assert result.filter_status == FilterStatus.FILTERED_INCLUDE
        assert "lcd" in result.filter_reason
        assert result.filter_reason == "Required keyword(s) not found: lcd"


class TestSearchTermCheck:
    """Test cases for the search term check."""

    def test_no_words_match(self):
        """Test a deal with none of the search words is filtered_no_match."""
        result = evaluate(make_deal(), FilterConfig(search_term="xbox series"))

        assert result.filter_status == FilterStatus.FILTERED_NO_MATCH
        assert result.filter_reason == 'No words from search term "xbox series" found in deal'

    def test_any_word_is_enough(self):
        """Test OR semantics across search words."""
        result = evaluate(make_deal(), FilterConfig(search_term="xbox deck"))

        assert result.passed is True
        assert result.match_details.search_term_matches == ["deck"]

    def test_merchant_counts_as_search_text(self):
        """Test search words may match the merchant."""
        result = evaluate(make_deal(), FilterConfig(search_term="amazon"))

        assert result.passed is True

    def test_missing_merchant_is_empty(self):
        """Test an absent merchant behaves as an empty string."""
        result = evaluate(make_deal(merchant=None), FilterConfig(search_term="amazon"))

        assert result.filter_status == FilterStatus.FILTERED_NO_MATCH

    def test_partial_word_overlap_matches(self):
        """Test matching is literal substring containment."""
        deal = make_deal(title="Apple iPad Air 11-inch", merchant="Currys")
        result = evaluate(deal, FilterConfig(search_term="pad"))

        assert result.passed is True

    def test_empty_search_term(self):
        """Test an empty search term never matches."""
        result = evaluate(make_deal(), FilterConfig(search_term=""))

        assert result.filter_status == FilterStatus.FILTERED_NO_MATCH

    def test_whitespace_search_term(self):
        """Test a whitespace-only search term never matches."""
        result = evaluate(make_deal(), FilterConfig(search_term="   "))

        assert result.filter_status == FilterStatus.FILTERED_NO_MATCH

    def test_missing_config(self):
        """Test a missing configuration degrades to filtered_no_match."""
        result = evaluate(make_deal(), None)

        assert result.passed is False
        assert result.filter_status == FilterStatus.FILTERED_NO_MATCH

    def test_non_string_search_term(self):
        """Test a malformed search term degrades to filtered_no_match."""
        result = evaluate(make_deal(), FilterConfig(search_term=None))

        assert result.filter_status == FilterStatus.FILTERED_NO_MATCH

    def test_exact_phrase(self):
        """Test exact phrase mode requires the whole term in order."""
        config = FilterConfig(search_term="deck steam", exact_phrase=True)
        result = evaluate(make_deal(), config)

        assert result.filter_status == FilterStatus.FILTERED_NO_MATCH
        assert result.filter_reason == 'Search term "deck steam" not found in deal'

        passing = evaluate(make_deal(), FilterConfig(search_term="Steam Deck", exact_phrase=True))
        assert passing.passed is True


class TestKeywordChecks:
    """Test cases for include and exclude keywords."""

    def test_exclude_takes_precedence_over_include(self):
        """Test an exclude hit wins over a missing include keyword."""
        config = FilterConfig(
            search_term="steam deck", include_keywords=["LCD"], exclude_keywords=["OLED"]
        )

        result = evaluate(make_deal(), config)

        assert result.filter_status == FilterStatus.FILTERED_EXCLUDE

    def test_first_exclude_keyword_in_list_order(self):
        """Test the first matching exclude keyword is reported."""
        config = FilterConfig(
            search_term="steam deck", exclude_keywords=["refurbished", "Gaming", "OLED"]
        )

        result = evaluate(make_deal(), config)

        assert result.filter_reason == 'Excluded keyword "Gaming" found in deal'

    def test_include_reason_names_only_missing(self):
        """Test the include reason lists exactly the missing keywords."""
        config = FilterConfig(search_term="steam deck", include_keywords=["missing", "512gb"])

        result = evaluate(make_deal(), config)

        assert result.filter_reason == "Required keyword(s) not found: missing"

    def test_include_reason_lists_all_missing(self):
        """Test every missing include keyword is collected."""
        config = FilterConfig(search_term="steam deck", include_keywords=["LCD", "1TB"])

        result = evaluate(make_deal(), config)

        assert result.filter_reason == "Required keyword(s) not found: lcd, 1tb"

    def test_case_sensitivity(self):
        """Test the same deal passes case-insensitively and fails case-sensitively."""
        insensitive = FilterConfig(search_term="steam", include_keywords=["oled"])
        sensitive = FilterConfig(
            search_term="steam", include_keywords=["oled"], case_sensitive=True
        )

        assert evaluate(make_deal(), insensitive).passed is True
        assert evaluate(make_deal(), sensitive).passed is False

    def test_case_sensitive_include_reason_keeps_case(self):
        """Test case-sensitive configs report keywords unchanged."""
        config = FilterConfig(
            search_term="Steam", include_keywords=["Oled"], case_sensitive=True
        )

        result = evaluate(make_deal(), config)

        assert result.filter_reason == "Required keyword(s) not found: Oled"


class TestNumericGates:
    """Test cases for price and discount gates."""

    def test_price_too_high(self):
        """Test a price above the maximum is filtered."""
        deal = make_deal(price="£449.99")
        result = evaluate(deal, FilterConfig(search_term="steam deck", max_price=400))

        assert result.filter_status == FilterStatus.FILTERED_PRICE_TOO_HIGH
        assert result.filter_reason == "Price £449.99 exceeds maximum £400.00"

    def test_price_within_limit(self):
        """Test a price at the maximum passes."""
        deal = make_deal(price="£400")
        result = evaluate(deal, FilterConfig(search_term="steam deck", max_price=400))

        assert result.passed is True

    def test_unparseable_price_passes(self):
        """Test deals without a parsed price pass the price gate."""
        for price in (None, "FREE", "See deal"):
            deal = make_deal(price=price)
            result = evaluate(deal, FilterConfig(search_term="steam deck", max_price=10))
            assert result.passed is True

    def test_discount_too_low(self):
        """Test a discount below the minimum is filtered."""
        deal = make_deal(savings_percentage=5.0)
        result = evaluate(deal, FilterConfig(search_term="steam deck", min_discount=10))

        assert result.filter_status == FilterStatus.FILTERED_DISCOUNT_TOO_LOW
        assert result.filter_reason == "Discount 5% is below minimum 10%"

    def test_missing_discount_passes(self):
        """Test deals without a discount pass the discount gate."""
        result = evaluate(make_deal(), FilterConfig(search_term="steam deck", min_discount=10))

        assert result.passed is True

    def test_include_checked_before_price(self):
        """Test the include check wins over the price gate."""
        deal = make_deal(price="£999")
        config = FilterConfig(search_term="steam deck", include_keywords=["LCD"], max_price=10)

        assert evaluate(deal, config).filter_status == FilterStatus.FILTERED_INCLUDE


class TestParsePrice:
    """Test cases for display price parsing."""

    def test_parse_price_values(self):
        assert parse_price("£49.99") == 49.99
        assert parse_price("£1,234.56") == 1234.56
        assert parse_price("£ 12") == 12.0
        assert parse_price("€5") == 5.0
        assert parse_price(15) == 15.0

    def test_parse_price_missing(self):
        assert parse_price(None) is None
        assert parse_price("FREE") is None
        assert parse_price("") is None


class TestEvaluation:
    """Test cases for purity and helpers."""

    def test_evaluate_is_idempotent(self):
        """Test evaluating twice yields identical results."""
        config = FilterConfig(
            search_term="steam deck", include_keywords=["512GB"], exclude_keywords=["LCD"]
        )

        assert evaluate(make_deal(), config) == evaluate(make_deal(), config)

    def test_match_details_attached_to_filtered_results(self):
        """Test evidence is computed for rejected deals too."""
        result = evaluate(
            make_deal(), FilterConfig(search_term="steam deck", exclude_keywords=["OLED"])
        )

        assert result.match_details is not None
        assert result.match_details.exclude_keyword_status == "Contains excluded keywords: OLED"

    def test_apply_filter_to_deals(self):
        """Test evaluating a list of deals for a preview."""
        deals = [make_deal(id="a"), make_deal(id="b", title="Xbox Series X")]

        results = apply_filter_to_deals(deals, FilterConfig(search_term="steam deck"))

        assert [deal.id for deal, _ in results] == ["a", "b"]
        assert [result.passed for _, result in results] == [True, False]

    def test_filter_engine_matches_function(self):
        """Test the FilterEngine wrapper returns the same result."""
        config = FilterConfig(search_term="steam deck")

        assert FilterEngine().evaluate(make_deal(), config) == evaluate(make_deal(), config)

    def test_results_validate(self):
        """Test produced results are internally consistent."""
        for config in (
            FilterConfig(search_term="steam deck"),
            FilterConfig(search_term="xbox"),
            FilterConfig(search_term="steam", exclude_keywords=["oled"]),
        ):
            assert evaluate(make_deal(), config).validate() is True
