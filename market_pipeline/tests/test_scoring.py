"""Tests for opportunity scoring and the hit list finder."""

import json

import httpx
import pytest
import respx

from market_pipeline.fetcher.base import UpstreamError
from market_pipeline.models.award import AwardRecord
from market_pipeline.models.opportunity import HitListOpportunity
from market_pipeline.scoring.engine import (
    ScoringPolicy,
    amount_band_score,
    competition_level,
    rank_opportunities,
    score_award,
    win_probability,
)
from market_pipeline.scoring.hit_list import HitListFinder

from .conftest import TODAY, make_award_row, search_page


# ---------------------------------------------------------------------------
# Scoring rules
# ---------------------------------------------------------------------------
class TestScoringRules:
    @pytest.mark.parametrize(
        "amount,level",
        [(5_000_001, "high"), (5_000_000, "medium"), (1_000_001, "medium"), (1_000_000, "low"), (0, "low")],
    )
    def test_competition_level_bounds_are_exclusive(self, amount, level):
        assert competition_level(amount) == level

    @pytest.mark.parametrize(
        "amount,set_aside,expected",
        [
            (999_999, "SMALL BUSINESS SET-ASIDE", "high"),
            (1_000_000, "SMALL BUSINESS SET-ASIDE", "medium"),
            (250_000, "8(a) Sole Source", "high"),
            (99_999, "Unrestricted", "medium"),
            (100_000, "Unrestricted", "low"),
            (50_000, "", "medium"),
        ],
    )
    def test_win_probability(self, amount, set_aside, expected):
        assert win_probability(amount, set_aside) == expected

    @pytest.mark.parametrize(
        "amount,band",
        [(100_000, 3), (1_000_000, 3), (50_000, 2), (99_999, 2), (1_000_001, 1), (49_999, 0)],
    )
    def test_amount_bands(self, amount, band):
        assert amount_band_score(amount) == band

    def test_custom_policy_moves_thresholds(self):
        policy = ScoringPolicy(competition_high=2_000_000, competition_medium=500_000)
        assert competition_level(1_000_000, policy) == "medium"
        assert competition_level(3_000_000, policy) == "high"

    def test_policy_rejects_inverted_thresholds(self):
        with pytest.raises(ValueError, match="competition_medium"):
            ScoringPolicy(competition_high=1_000, competition_medium=2_000)

    def test_policy_rejects_unordered_bands(self):
        with pytest.raises(ValueError, match="amount bands"):
            ScoringPolicy(sweet_spot_low=2_000_000)

    def test_scoring_is_deterministic(self):
        record = AwardRecord.from_api(make_award_row())
        assert score_award(record) == score_award(record)

    def test_score_award_fields(self):
        record = AwardRecord.from_api(make_award_row(**{"Set-Aside Type": "", "type_of_set_aside_description": ""}))
        opportunity = score_award(record, fallback_naics="541330")
        assert opportunity.id == "36C25024P0001"
        assert opportunity.set_aside == "Unrestricted"
        assert opportunity.competition_level == "low"
        assert opportunity.win_probability == "low"
        assert opportunity.potential_value == 250000
        assert opportunity.link.startswith("https://www.usaspending.gov/award/")

    def test_rank_is_stable_for_equal_keys(self):
        first = HitListOpportunity(id="first", amount=200_000, win_probability="high")
        second = HitListOpportunity(id="second", amount=300_000, win_probability="high")
        low = HitListOpportunity(id="low", amount=500_000, win_probability="low")
        small = HitListOpportunity(id="small", amount=60_000, win_probability="high")

        ranked = rank_opportunities([low, first, small, second])

        assert [o.id for o in ranked] == ["first", "second", "small", "low"]


# ---------------------------------------------------------------------------
# Hit list finder
# ---------------------------------------------------------------------------
@pytest.fixture
def hit_list_rows():
    return [
        make_award_row(**{"Award ID": "A"}),
        make_award_row(
            **{"Award ID": "B", "Award Amount": 150_000, "Set-Aside Type": "", "type_of_set_aside_description": ""}
        ),
        make_award_row(**{"Award ID": "C", "Award Amount": 2_000_000}),
        make_award_row(
            **{"Award ID": "D", "Award Amount": 50_000, "Set-Aside Type": "", "type_of_set_aside_description": ""}
        ),
    ]


@pytest.mark.asyncio
@respx.mock
async def test_hit_list_curated_first_then_ranked(search_url, fetcher, datasets, small_business_inputs, hit_list_rows):
    route = respx.post(search_url).mock(return_value=search_page(hit_list_rows))

    result = await HitListFinder(fetcher, datasets, today=TODAY).find(small_business_inputs)

    assert route.call_count == 1
    assert [o.id for o in result.opportunities] == ["hl-1", "A", "D", "C", "B"]
    assert result.opportunities[0].source == "curated"
    assert [o.win_probability for o in result.opportunities[1:]] == ["high", "medium", "medium", "low"]
    assert result.metadata["totalFound"] == 4
    assert result.metadata["curatedCount"] == 1
    assert result.metadata["searchCriteria"]["amountRange"] == "$10K - $10M"
    assert result.metadata["naicsFilterDropped"] is False


@pytest.mark.asyncio
@respx.mock
async def test_hit_list_request_filters(search_url, fetcher, datasets, small_business_inputs):
    route = respx.post(search_url).mock(return_value=search_page([]))

    await HitListFinder(fetcher, datasets, today=TODAY).find(small_business_inputs)

    filters = json.loads(route.calls.last.request.content)["filters"]
    assert filters["time_period"] == [{"start_date": "2024-10-17", "end_date": "2026-10-17"}]
    assert filters["award_amounts"] == [{"lower_bound": 10_000, "upper_bound": 10_000_000}]
    assert filters["naics_codes"] == ["541330"]
    assert filters["set_aside_type_codes"]


@pytest.mark.asyncio
@respx.mock
async def test_hit_list_with_no_awards_keeps_curated(search_url, fetcher, datasets, small_business_inputs):
    respx.post(search_url).mock(return_value=search_page([]))

    result = await HitListFinder(fetcher, datasets, today=TODAY).find(small_business_inputs)

    assert [o.id for o in result.opportunities] == ["hl-1"]
    assert result.metadata["totalFound"] == 0


@pytest.mark.asyncio
@respx.mock
async def test_hit_list_upstream_failure_raises(search_url, fetcher, datasets, small_business_inputs):
    respx.post(search_url).mock(return_value=httpx.Response(503))

    with pytest.raises(UpstreamError):
        await HitListFinder(fetcher, datasets, today=TODAY).find(small_business_inputs)
