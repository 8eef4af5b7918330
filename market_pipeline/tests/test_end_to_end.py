"""End-to-end: agency discovery, hit list and the combined report over one mocked award search."""

import json
import logging

import pytest
import respx

from market_pipeline.aggregator.agency_search import AgencyFinder
from market_pipeline.reports.assembler import ReportAssembler
from market_pipeline.scoring.hit_list import HitListFinder

from .conftest import TODAY, search_page


@pytest.mark.asyncio
@respx.mock
async def test_discovery_to_report(search_url, fetcher, datasets, small_business_inputs, sample_award_rows, caplog):
    route = respx.post(search_url).mock(return_value=search_page(sample_award_rows))

    with caplog.at_level(logging.INFO):
        search = await AgencyFinder(fetcher, datasets, min_agencies_target=2, today=TODAY).find(
            small_business_inputs
        )

    # Two offices already meet the target: one search, no widening
    assert route.call_count == 1
    assert search.success
    assert search.total_count == 2
    assert [a.spending for a in search.agencies] == [2_000_000, 400_000]
    assert search.total_spending == 2_400_000
    assert not search.was_auto_adjusted
    assert search.alternative_searches == []

    body = json.loads(route.calls.last.request.content)
    assert body["filters"]["naics_codes"] == ["541330"]

    hit_list = await HitListFinder(fetcher, datasets, today=TODAY).find(small_business_inputs)
    scored = [o for o in hit_list.opportunities if o.source == "usaspending"]
    assert [o.id for o in hit_list.opportunities[:1]] == ["hl-1"]
    assert [o.id for o in scored] == ["36C25024P0001", "47PC0024C0003", "36C25024P0002"]
    assert [o.win_probability for o in scored] == ["high", "medium", "low"]
    assert [o.competition_level for o in scored] == ["low", "medium", "low"]

    idv_before = route.call_count
    with caplog.at_level(logging.INFO):
        report = await ReportAssembler(datasets, idv_fetcher=fetcher, today=TODAY).assemble(
            small_business_inputs, [a.name for a in search.agencies], search.agencies
        )

    assert route.call_count == idv_before + 1
    assert report.metadata.total_agencies == 2
    assert report.government_buyers.summary.total_spending == 2_400_000
    assert report.idv_contracts.summary.total_contracts == 3
    assert {b.id for b in report.government_buyers.agencies} == {a.id for a in search.agencies}
    assert "report_assembled agencies=2" in caplog.text
