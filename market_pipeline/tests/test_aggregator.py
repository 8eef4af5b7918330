"""Tests for bucket aggregation, command expansion and the find-agencies pipeline."""

import json
import logging

import httpx
import pytest
import respx

from market_pipeline.aggregator.agency_search import AgencyFinder, page_cap
from market_pipeline.aggregator.buckets import AgencyAggregator, aggregate_awards, count_unique_offices, office_key
from market_pipeline.aggregator.command_expansion import (
    CommandExpansion,
    detect_service_branch,
    exclude_dod,
    fpds_office_bucket,
    is_dod_bucket,
    split_evenly,
)
from market_pipeline.fetcher.base import UpstreamError
from market_pipeline.fetcher.fpds import FpdsOffice
from market_pipeline.joiners.commands import CommandDirectory
from market_pipeline.models.agency import AgencyBucket
from market_pipeline.models.award import AwardRecord
from market_pipeline.models.core_inputs import BusinessType, CoreInputs

from .conftest import TODAY, fpds_entry, fpds_page, make_award_row, search_page


def _records(rows):
    return [AwardRecord.from_api(row) for row in rows]


def _bucket(**overrides) -> AgencyBucket:
    values = {
        "id": "Department of the Navy|Department of the Navy",
        "name": "Department of the Navy",
        "contracting_office": "Department of the Navy",
        "sub_agency": "Department of the Navy",
        "parent_agency": "Department of Defense",
        "spending": 1000.0,
        "contract_count": 3,
    }
    values.update(overrides)
    return AgencyBucket(**values)


# ---------------------------------------------------------------------------
# Buckets
# ---------------------------------------------------------------------------
class TestAggregation:
    def test_spending_and_counts_are_conserved(self, sample_award_rows):
        records = _records(sample_award_rows)
        buckets = aggregate_awards(records)

        assert sum(b.spending for b in buckets) == sum(r.amount for r in records)
        assert sum(b.contract_count for b in buckets) == len(records)

    def test_one_bucket_per_office(self, sample_award_rows):
        buckets = aggregate_awards(_records(sample_award_rows))

        ids = [b.id for b in buckets]
        assert len(ids) == len(set(ids)) == 2
        va = next(b for b in buckets if b.parent_agency == "Department of Veterans Affairs")
        assert va.id == "Veterans Health Administration|Network Contract Office 7"
        assert va.spending == 400000
        assert va.contract_count == 2
        assert va.location == "GA"
        assert va.has_specific_office

    def test_sorted_by_spending_desc(self, sample_award_rows):
        buckets = aggregate_awards(_records(sample_award_rows))
        assert [b.spending for b in buckets] == sorted((b.spending for b in buckets), reverse=True)
        assert buckets[0].parent_agency == "General Services Administration"

    def test_fold_per_page_matches_single_fold(self, sample_award_rows):
        records = _records(sample_award_rows)
        paged = AgencyAggregator().fold(records[:1]).fold(records[1:]).buckets()
        whole = aggregate_awards(records)
        assert [(b.id, b.spending, b.contract_count) for b in paged] == [
            (b.id, b.spending, b.contract_count) for b in whole
        ]

    def test_missing_office_falls_back_to_sub_agency(self):
        record = AwardRecord.from_api(make_award_row(**{"Awarding Office": ""}))
        assert office_key(record) == ("Veterans Health Administration", "Veterans Health Administration")
        bucket = aggregate_awards([record])[0]
        assert not bucket.has_specific_office

    def test_missing_agency_is_unknown(self):
        record = AwardRecord.from_api(
            make_award_row(**{"Awarding Agency": "", "Awarding Sub Agency": "", "Awarding Office": ""})
        )
        bucket = aggregate_awards([record])[0]
        assert bucket.parent_agency == "Unknown Agency"
        assert bucket.id == "Unknown Agency|Unknown Agency"

    def test_location_unknown_without_state(self):
        record = AwardRecord.from_api(make_award_row(**{"Place of Performance State Code": ""}))
        assert aggregate_awards([record])[0].location == "Unknown"

    def test_count_unique_offices(self, sample_award_rows):
        assert count_unique_offices(_records(sample_award_rows)) == 2
        assert count_unique_offices([]) == 0


# ---------------------------------------------------------------------------
# Command expansion
# ---------------------------------------------------------------------------
class TestCommandExpansion:
    def test_split_evenly_sums_back(self):
        spends, counts = split_evenly(1000.0, 7, 3)
        assert sum(spends) == pytest.approx(1000.0)
        assert sum(counts) == 7
        assert counts == [3, 2, 2]

    def test_generic_navy_bucket_expands_to_commands(self, datasets):
        expansion = CommandExpansion(CommandDirectory(datasets), limit=5)
        out = expansion.apply([_bucket()])

        assert {b.command for b in out} == {"NAVSEA", "NAVFAC"}
        assert sum(b.spending for b in out) == pytest.approx(1000.0)
        assert sum(b.contract_count for b in out) == 3
        navsea = next(b for b in out if b.command == "NAVSEA")
        assert navsea.id == "Department of the Navy|Naval Sea Systems Command"
        assert navsea.expanded_from == "Department of the Navy|Department of the Navy"
        assert navsea.osbp.email == "navsea@example.mil"
        assert navsea.forecast_url == "https://www.navsea.navy.mil/forecast"

    def test_limit_caps_commands(self, datasets):
        out = CommandExpansion(CommandDirectory(datasets), limit=1).apply([_bucket()])
        assert len(out) == 1
        assert out[0].spending == 1000.0

    def test_specific_office_passes_through(self, datasets):
        bucket = _bucket(id="x|NAVFAC Atlantic", name="NAVFAC Atlantic", has_specific_office=True)
        assert CommandExpansion(CommandDirectory(datasets)).apply([bucket]) == [bucket]

    def test_civilian_bucket_passes_through(self, datasets):
        bucket = _bucket(id="va|va", parent_agency="Department of Veterans Affairs", sub_agency="VHA", name="VHA")
        assert CommandExpansion(CommandDirectory(datasets)).apply([bucket]) == [bucket]

    def test_colliding_ids_merge_and_conserve(self, datasets):
        existing = _bucket(
            id="Department of the Navy|Naval Sea Systems Command",
            name="Naval Sea Systems Command",
            contracting_office="Naval Sea Systems Command",
            has_specific_office=True,
            spending=300.0,
            contract_count=1,
        )
        out = CommandExpansion(CommandDirectory(datasets)).apply([_bucket(), existing])

        ids = [b.id for b in out]
        assert len(ids) == len(set(ids))
        assert sum(b.spending for b in out) == pytest.approx(1300.0)
        assert sum(b.contract_count for b in out) == 4
        assert out[0].id == "Department of the Navy|Naval Sea Systems Command"

    def test_no_commands_leaves_bucket(self, empty_datasets):
        bucket = _bucket()
        assert CommandExpansion(CommandDirectory(empty_datasets)).apply([bucket]) == [bucket]

    def test_never_more_commands_than_contracts(self, datasets):
        out = CommandExpansion(CommandDirectory(datasets)).apply([_bucket(contract_count=1, spending=1000.5)])

        assert len(out) == 1
        assert out[0].contract_count == 1
        assert out[0].spending == 1000.5

    def test_every_share_carries_a_contract(self, datasets):
        bucket = _bucket(
            id="Defense Agencies|Defense Agencies",
            name="Defense Agencies",
            contracting_office="Defense Agencies",
            sub_agency="Defense Agencies",
            spending=250000.5,
            contract_count=2,
        )
        out = CommandExpansion(CommandDirectory(datasets)).apply([bucket])

        assert len(out) == 2
        assert all(b.contract_count >= 1 for b in out)
        assert sum(b.spending for b in out) == pytest.approx(250000.5)


class TestFpdsOffices:
    @pytest.mark.parametrize(
        "office_name, office_id, agency_name, expected",
        [
            ("Contracting Office", "N00024", "DEPT OF THE NAVY", "Department of the Navy"),
            ("Naval Facilities Engineering Command Atlantic", "", "", "Department of the Navy"),
            ("MICC Fort Carson", "", "DEPT OF DEFENSE", "Department of the Army"),
            ("42nd Contracting Squadron", "", "", "Department of the Air Force"),
            ("Regional Office", "W912DY", "", "Department of the Army"),
            ("Regional Office", "FA8601", "", "Department of the Air Force"),
            ("Regional Office", "H92240", "", "Department of the Navy"),
            ("Regional Office", "HQ0034", "", "Department of Defense"),
            ("Network Contract Office 7", "36C247", "VETERANS AFFAIRS, DEPARTMENT OF", "VETERANS AFFAIRS, DEPARTMENT OF"),
            ("Regional Office", "", "DEFENSE LOGISTICS AGENCY", "Department of Defense"),
        ],
    )
    def test_detect_service_branch(self, office_name, office_id, agency_name, expected):
        assert detect_service_branch(office_name, office_id, agency_name) == expected

    def test_office_bucket(self):
        office = FpdsOffice(
            office_id="N40085",
            office_name="Naval Facilities Engineering Command Mid-Atlantic",
            agency_id="1700",
            agency_name="DEPT OF THE NAVY",
            obligated_amount=5_000_000,
            contract_count=4,
        )
        bucket = fpds_office_bucket(office)

        assert bucket.id == "Department of the Navy|Naval Facilities Engineering Command Mid-Atlantic"
        assert bucket.sub_agency == bucket.parent_agency == "Department of the Navy"
        assert bucket.has_specific_office
        assert bucket.command == "NAVFAC"
        assert bucket.office_id == "N40085"
        assert bucket.sub_agency_code == "1700"
        assert (bucket.spending, bucket.contract_count) == (5_000_000, 4)
        assert is_dod_bucket(bucket)

    def test_offices_replace_generic_buckets(self, datasets):
        va = _bucket(id="va", name="NCO 7", parent_agency="Department of Veterans Affairs", sub_agency="VHA", spending=700.0)
        offices = [
            fpds_office_bucket(FpdsOffice("N40085", "NAVFAC Atlantic", agency_name="DEPT OF THE NAVY", obligated_amount=500.0)),
            fpds_office_bucket(FpdsOffice("N00024", "NAVSEA HQ", agency_name="DEPT OF THE NAVY", obligated_amount=900.0)),
            fpds_office_bucket(FpdsOffice("36C247", "NCO 7", agency_name="VETERANS AFFAIRS, DEPARTMENT OF")),
        ]

        out = CommandExpansion(CommandDirectory(datasets)).apply([_bucket(), va], offices)

        assert [b.spending for b in out] == [900.0, 700.0, 500.0]
        assert "Department of the Navy|Department of the Navy" not in {b.id for b in out}
        assert all(b.expanded_from is None for b in out)
        assert [b.command for b in out if b.id != "va"] == ["NAVSEA", "NAVFAC"]

    def test_too_few_offices_fall_back_to_directory(self, datasets, caplog):
        army = _bucket(
            id="Department of the Army|Department of the Army",
            name="Department of the Army",
            contracting_office="Department of the Army",
            sub_agency="Department of the Army",
        )
        offices = [fpds_office_bucket(FpdsOffice("N40085", "NAVFAC Atlantic", agency_name="DEPT OF THE NAVY"))]

        with caplog.at_level(logging.INFO):
            out = CommandExpansion(CommandDirectory(datasets)).apply([_bucket(), army], offices)

        assert {b.command for b in out} == {"NAVSEA", "NAVFAC", "USACE"}
        assert all(b.expanded_from for b in out)
        assert sum(b.spending for b in out) == pytest.approx(2000.0)
        assert "fpds_offices_insufficient dod_offices=1 generic=2" in caplog.text


class TestDodDetection:
    def test_dod_bucket_markers(self):
        assert is_dod_bucket(_bucket())
        assert is_dod_bucket(_bucket(parent_agency="DOD", sub_agency="x", name="y"))
        assert not is_dod_bucket(
            _bucket(parent_agency="Department of Veterans Affairs", sub_agency="VHA", name="Network Contract Office 7")
        )

    def test_exclude_dod_keeps_only_civilian(self):
        buckets = [
            _bucket(),
            _bucket(id="dla", parent_agency="Department of Defense", sub_agency="Defense Logistics Agency"),
            _bucket(id="usace", parent_agency="Other", sub_agency="Other", name="USACE Savannah District"),
            _bucket(id="va", parent_agency="Department of Veterans Affairs", sub_agency="VHA", name="NCO 7"),
        ]
        assert [b.id for b in exclude_dod(buckets)] == ["va"]


# ---------------------------------------------------------------------------
# Find agencies
# ---------------------------------------------------------------------------
def test_page_cap_scales_with_restrictiveness():
    assert page_cap(3) == 50
    assert page_cap(2) == 25
    assert page_cap(1) == 10
    assert page_cap(0) == 10


def _states(request):
    filters = json.loads(request.content)["filters"]
    return [loc["state"] for loc in filters.get("place_of_performance_locations", [])]


@pytest.mark.asyncio
@respx.mock
async def test_finder_widens_to_bordering_states(search_url, fetcher, datasets, caplog):
    """One office in-state; the bordering-state search finds a second and is kept."""
    in_state = make_award_row()
    neighbor = make_award_row(
        **{"Award ID": "N1", "Awarding Office": "Network Contract Office 8", "Place of Performance State Code": "FL"}
    )

    def handler(request):
        if len(_states(request)) > 1:
            return search_page([in_state, neighbor])
        return search_page([in_state])

    route = respx.post(search_url).mock(side_effect=handler)
    inputs = CoreInputs(business_type=BusinessType.HUBZONE, naics_code="541330", zip_code="30301")
    finder = AgencyFinder(fetcher, datasets, min_agencies_target=2, today=TODAY)

    with caplog.at_level(logging.INFO):
        result = await finder.find(inputs)

    # initial, small-business in-state, bordering states
    assert route.call_count == 3
    assert result.total_count == 2
    assert result.location_tier == 2
    assert result.was_auto_adjusted
    assert result.fallback_message == "Expanded to 6 neighboring states (2 agencies found)."
    assert result.searched_state == "GA"
    assert result.pages_fetched == 3
    assert "agency_search_complete agencies=2" in caplog.text


@pytest.mark.asyncio
@respx.mock
async def test_finder_does_not_widen_when_target_met(search_url, fetcher, datasets, sample_award_rows):
    route = respx.post(search_url).mock(return_value=search_page(sample_award_rows))
    inputs = CoreInputs(business_type=BusinessType.SMALL_BUSINESS, naics_code="541330", zip_code="30301")

    result = await AgencyFinder(fetcher, datasets, min_agencies_target=2, today=TODAY).find(inputs)

    assert route.call_count == 1
    assert not result.was_auto_adjusted
    assert result.location_tier == 1
    assert result.total_spending == 2_400_000


@pytest.mark.asyncio
@respx.mock
async def test_finder_reports_naics_correction(search_url, fetcher, datasets, sample_award_rows):
    respx.post(search_url).mock(return_value=search_page(sample_award_rows))
    inputs = CoreInputs(business_type=BusinessType.SMALL_BUSINESS, naics_code="541000")

    result = await AgencyFinder(fetcher, datasets, min_agencies_target=1, today=TODAY).find(inputs)

    assert result.naics_correction_message.startswith("NAICS 541000 was interpreted as 3-digit code 541")
    assert not result.naics_filter_dropped


@pytest.mark.asyncio
@respx.mock
async def test_finder_exclude_dod(search_url, fetcher, datasets, sample_award_rows):
    navy = make_award_row(
        **{
            "Award ID": "N00024",
            "Awarding Agency": "Department of Defense",
            "Awarding Sub Agency": "Department of the Navy",
            "Awarding Office": "",
            "Award Amount": 9_000_000,
        }
    )
    respx.post(search_url).mock(return_value=search_page(sample_award_rows + [navy]))
    inputs = CoreInputs(business_type=BusinessType.SMALL_BUSINESS, naics_code="541330", exclude_dod=True)

    result = await AgencyFinder(fetcher, datasets, min_agencies_target=1, today=TODAY).find(inputs)

    assert all(not is_dod_bucket(a) for a in result.agencies)
    assert result.total_count == 2


def _generic_navy_row():
    return make_award_row(
        **{
            "Award ID": "N00024",
            "Awarding Agency": "Department of Defense",
            "Awarding Sub Agency": "Department of the Navy",
            "Awarding Office": "",
            "Award Amount": 9_000_000,
        }
    )


@pytest.mark.asyncio
@respx.mock
async def test_finder_uses_fpds_offices_for_generic_dod(search_url, fetcher, fpds_url, fpds, datasets):
    respx.post(search_url).mock(return_value=search_page([make_award_row(), _generic_navy_row()]))
    feed = respx.get(url__startswith=fpds_url).mock(
        return_value=fpds_page(
            [
                fpds_entry("N40085", "NAVFAC MID-ATLANTIC", amount=3_000_000),
                fpds_entry("N00024", "NAVSEA HQ", amount=1_000_000),
            ]
        )
    )
    inputs = CoreInputs(business_type=BusinessType.SMALL_BUSINESS, naics_code="541330")

    result = await AgencyFinder(fetcher, datasets, min_agencies_target=1, today=TODAY, fpds=fpds).find(inputs)

    assert feed.call_count == 1
    assert feed.calls[0].request.url.params["q"] == "PRINCIPAL_NAICS_CODE:541330"
    assert [a.name for a in result.agencies] == [
        "Naval Facilities Engineering Command Mid-Atlantic",
        "Naval Sea Systems Command Headquarters",
        "Network Contract Office 7",
    ]
    assert [a.command for a in result.agencies if a.parent_agency == "Department of the Navy"] == ["NAVFAC", "NAVSEA"]
    assert all(a.expanded_from is None for a in result.agencies)


@pytest.mark.asyncio
@respx.mock
async def test_finder_falls_back_to_directory_without_fpds_offices(search_url, fetcher, fpds_url, fpds, datasets):
    respx.post(search_url).mock(return_value=search_page([make_award_row(), _generic_navy_row()]))
    feed = respx.get(url__startswith=fpds_url).mock(return_value=fpds_page([]))
    inputs = CoreInputs(business_type=BusinessType.SMALL_BUSINESS, naics_code="541330")

    result = await AgencyFinder(fetcher, datasets, min_agencies_target=1, today=TODAY, fpds=fpds).find(inputs)

    assert feed.call_count == 1
    assert {a.command for a in result.agencies if a.expanded_from} == {"NAVSEA", "NAVFAC"}
    assert result.total_spending == 9_250_000


@pytest.mark.asyncio
@respx.mock(assert_all_called=False)
async def test_finder_skips_fpds_without_generic_dod(respx_mock, search_url, fetcher, fpds_url, fpds, datasets, sample_award_rows):
    respx_mock.post(search_url).mock(return_value=search_page(sample_award_rows))
    feed = respx_mock.get(url__startswith=fpds_url).mock(return_value=fpds_page([]))
    inputs = CoreInputs(business_type=BusinessType.SMALL_BUSINESS, naics_code="541330")

    result = await AgencyFinder(fetcher, datasets, min_agencies_target=1, today=TODAY, fpds=fpds).find(inputs)

    assert feed.call_count == 0
    assert result.total_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_finder_offers_alternatives_when_empty(search_url, fetcher, datasets):
    respx.post(search_url).mock(return_value=search_page([]))
    inputs = CoreInputs(business_type=BusinessType.SMALL_BUSINESS, naics_code="541330", zip_code="30301")

    result = await AgencyFinder(fetcher, datasets, min_agencies_target=5, today=TODAY).find(inputs)

    assert result.agencies == []
    labels = [a.label for a in result.alternative_searches]
    assert labels[0] == "Expand to All Locations"
    assert labels[-1] == "Remove All Filters"
    assert len(labels) == 7
    assert [a.estimated_results for a in result.alternative_searches[:3]] == [0, 0, 0]
    assert all(a.estimated_results is None for a in result.alternative_searches[3:])


@pytest.mark.asyncio
@respx.mock
async def test_finder_raises_when_first_page_never_arrives(search_url, fetcher, datasets):
    respx.post(search_url).mock(return_value=httpx.Response(503))
    inputs = CoreInputs(business_type=BusinessType.SMALL_BUSINESS, naics_code="541330")

    with pytest.raises(UpstreamError):
        await AgencyFinder(fetcher, datasets, today=TODAY).find(inputs)


def test_alternatives_without_zip(fetcher, datasets):
    inputs = CoreInputs(business_type=BusinessType.EIGHT_A, naics_code="236220")
    alternatives = AgencyFinder(fetcher, datasets).suggest_alternatives(inputs)
    assert [a.label for a in alternatives] == [
        "Expand to 236xx Industry (Construction of Buildings)",
        "Remove Business Type Filter",
        "Remove All Filters",
    ]
    assert alternatives[0].filters["naicsCode"] == "236"
    assert alternatives[1].filters["businessType"] is None
