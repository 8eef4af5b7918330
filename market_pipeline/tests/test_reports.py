"""Tests for the report section builders and the assembler."""

import logging
from datetime import date

import httpx
import pytest
import respx
from pydantic import ValidationError

from market_pipeline.joiners.commands import CommandDirectory
from market_pipeline.joiners.contractors import PrimeContractorDirectory
from market_pipeline.joiners.december_spend import DecemberSpendDirectory
from market_pipeline.joiners.forecasts import ForecastDirectory
from market_pipeline.joiners.pain_points import PainPointDirectory
from market_pipeline.models.agency import AgencyBucket
from market_pipeline.reports import sections
from market_pipeline.reports.assembler import ReportAssembler
from market_pipeline.reports.validation import ReportRequest, validation_message

from .conftest import TODAY

REPORT_KEYS = {
    "governmentBuyers",
    "tier2Subcontracting",
    "forecastList",
    "agencyNeeds",
    "agencyPainPoints",
    "decemberSpend",
    "tribalContracting",
    "primeContractor",
    "idvContracts",
    "metadata",
}


@pytest.fixture
def va_bucket():
    return AgencyBucket(
        id="Veterans Health Administration|Network Contract Office 7",
        name="Network Contract Office 7",
        contracting_office="Network Contract Office 7",
        sub_agency="Veterans Health Administration",
        parent_agency="Department of Veterans Affairs",
        location="GA",
        spending=400_000,
        contract_count=2,
    )


@pytest.fixture
def navsea_bucket():
    return AgencyBucket(
        id="Department of the Navy|NAVSEA Philadelphia",
        name="NAVSEA Philadelphia",
        contracting_office="NAVSEA Philadelphia",
        sub_agency="Department of the Navy",
        parent_agency="Department of Defense",
        spending=2_000_000,
        contract_count=1,
    )


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_empty_datasets_still_produce_every_section(empty_datasets, small_business_inputs):
    assembler = ReportAssembler(empty_datasets, idv_fetcher=None, today=TODAY)

    report = await assembler.assemble(small_business_inputs, ["Department of Veterans Affairs"])
    wire = report.to_wire()

    assert set(wire) == REPORT_KEYS
    assert wire["metadata"]["totalAgencies"] == 1
    assert wire["metadata"]["selectedAgencies"] == ["Department of Veterans Affairs"]
    assert wire["agencyNeeds"]["needs"] == []
    assert wire["forecastList"]["forecasts"] == []
    assert wire["idvContracts"]["recommendations"] == sections.IDV_UNAVAILABLE
    assert all(wire[key]["recommendations"] for key in REPORT_KEYS - {"metadata"})


@pytest.mark.asyncio
async def test_names_only_buyers_fall_back_to_osbp(empty_datasets, small_business_inputs):
    report = await ReportAssembler(empty_datasets, today=TODAY).assemble(
        small_business_inputs, ["Department of Veterans Affairs", "General Services Administration"]
    )
    buyers = report.government_buyers.agencies
    assert [b.id for b in buyers] == ["agency-1", "agency-2"]
    assert all(b.contact_strategy == sections.OSBP_FALLBACK for b in buyers)
    assert all(b.spending == 0 for b in buyers)


@pytest.mark.asyncio
async def test_assembled_report_with_agency_data(datasets, small_business_inputs, va_bucket, navsea_bucket, caplog):
    assembler = ReportAssembler(datasets, today=TODAY)

    with caplog.at_level(logging.INFO):
        report = await assembler.assemble(
            small_business_inputs, [va_bucket.name, navsea_bucket.name], [va_bucket, navsea_bucket]
        )

    assert report.metadata.total_agencies == 2
    assert report.government_buyers.summary.total_spending == 2_400_000
    assert report.government_buyers.summary.command_enhanced_agencies == 2
    assert [n.command for n in report.agency_needs.needs if n.command] == ["NAVSEA"]
    assert [f.id for f in report.forecast_list.forecasts] == ["fc-1"]
    assert report.forecast_list.forecast_resources[0].command == "NAVSEA"
    assert report.december_spend.summary.urgent_opportunities == 1
    assert [t.name for t in report.tribal_contracting.suggested_tribes] == ["Tribal Engineering Co"]
    assert report.prime_contractor.suggested_primes[0].contract_types == ["IDIQ", "BPA", "GWAC"]
    assert "report_assembled agencies=2" in caplog.text


# ---------------------------------------------------------------------------
# Individual sections
# ---------------------------------------------------------------------------
def test_government_buyers_use_command_contacts(datasets, va_bucket):
    section = sections.government_buyers_section(CommandDirectory(datasets), [va_bucket.name], [va_bucket])
    buyer = section.agencies[0]
    assert buyer.id == va_bucket.id
    assert buyer.command == "VA"
    assert buyer.contact_strategy == "Contact VA Director at osdbu@example.gov"
    assert section.summary.total_contracts == 2
    assert section.recommendations[0].startswith("1 agencies have command-specific OSBP contacts")


def test_forecast_section_skips_past_solicitations(datasets, small_business_inputs):
    section = sections.forecast_section(
        ForecastDirectory(datasets),
        CommandDirectory(datasets),
        small_business_inputs,
        ["Department of Veterans Affairs"],
        today=TODAY,
    )
    assert [f.id for f in section.forecasts] == ["fc-1"]
    assert section.summary.total_value == 1_000_000
    assert section.forecast_resources == []


def test_pain_points_section_cross_references(datasets, small_business_inputs):
    profiles = sections.agency_profiles(PainPointDirectory(datasets), ["Department of Veterans Affairs"])
    section = sections.pain_points_section(profiles, small_business_inputs)

    relevance = {e.pain_point: e.naics_relevance for e in section.pain_points}
    assert relevance == {
        "Cybersecurity compliance gaps in legacy systems": "medium",
        "FY2026 NDAA requirement for engineering modernization": "high",
    }
    funding = {s.priority: s.funding_status for s in section.spending_priorities}
    assert funding == {
        "$5B for medical facility construction": "funded",
        "Cybersecurity engineering upgrades": "planned",
    }
    assert [(m.area, m.naics_relevant, m.funded) for m in section.high_opportunity_matches] == [
        ("Cybersecurity", True, False)
    ]
    assert section.summary.high_priority == 1
    assert section.summary.funded_priorities == 1
    assert section.summary.naics_relevant_priorities == 1


def test_naics_relevance_without_keywords_is_medium():
    assert sections.naics_relevance("anything", []) == "medium"
    assert sections.industry_keywords("999999") == []


def test_industry_keywords_have_no_duplicates():
    words = sections.industry_keywords("541330")
    assert len(words) == len(set(words))


@pytest.mark.parametrize(
    "today,opening",
    [
        (date(2026, 8, 3), 'Contact SBLOs immediately - August is "use it or lose it" season'),
        (date(2026, 10, 17), "Contact SBLOs now - agencies are planning October acquisitions"),
    ],
)
def test_december_recommendations_follow_fiscal_calendar(today, opening):
    assert sections.december_recommendations(today)[0].startswith(opening)


def test_december_spend_section(datasets, small_business_inputs):
    section = sections.december_spend_section(
        DecemberSpendDirectory(datasets), small_business_inputs, ["Department of Veterans Affairs"], TODAY
    )
    entry = section.opportunities[0]
    assert entry.estimated_q4_spend == 6e9
    assert entry.urgency_level == "high"
    assert entry.sblo_contact.email == "sblo@example.com"
    assert section.summary.total_q4_spend == 6e9


def test_tier2_section_contact_strategy(datasets, small_business_inputs):
    section = sections.tier2_section(PrimeContractorDirectory(datasets), small_business_inputs)
    prime = section.suggested_primes[0]
    assert prime.contact_strategy == "Contact Pat at pat@example.com"
    assert prime.reason == "Tier 2 subcontractor matching your NAICS code"
    assert section.recommendations[-1] == "Use provided email addresses to reach out directly"


# ---------------------------------------------------------------------------
# IDV section
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
@respx.mock
async def test_idv_section_summarizes_contracts(search_url, fetcher, small_business_inputs):
    rows = [
        {"Award ID": "IDV1", "Recipient Name": "Big Prime Inc", "Award Amount": 5_000_000},
        {"Award ID": "IDV2", "Recipient Name": "Big Prime Inc", "Award Amount": 3_000_000},
    ]
    respx.post(search_url).mock(return_value=httpx.Response(200, json={"results": rows, "page_metadata": {}}))

    section = await sections.idv_section(fetcher, small_business_inputs)

    assert section.summary.total_contracts == 2
    assert section.summary.total_value == 8_000_000
    assert section.summary.unique_primes == 1
    assert section.recommendations[0].startswith("These contracts match NAICS 541330")


@pytest.mark.asyncio
@respx.mock
async def test_idv_failure_gives_empty_section(search_url, fetcher, small_business_inputs, caplog):
    respx.post(search_url).mock(return_value=httpx.Response(500))

    with caplog.at_level(logging.WARNING):
        section = await sections.idv_section(fetcher, small_business_inputs)

    assert section.contracts == []
    assert section.recommendations == sections.IDV_UNAVAILABLE
    assert "idv_section_unavailable" in caplog.text


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------
class TestReportRequest:
    INPUTS = {"businessType": "Small Business", "naicsCode": "541330"}

    def test_names_are_sanitized(self):
        request = ReportRequest.model_validate(
            {"inputs": self.INPUTS, "selectedAgencies": ["<b>Department of Veterans Affairs</b> "]}
        )
        assert request.selected_agencies == ["Department of Veterans Affairs"]

    def test_empty_selection_rejected(self):
        with pytest.raises(ValidationError):
            ReportRequest.model_validate({"inputs": self.INPUTS, "selectedAgencies": []})

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="must be non-empty"):
            ReportRequest.model_validate({"inputs": self.INPUTS, "selectedAgencies": ["VA", "<i></i>"]})

    def test_too_many_agencies_rejected(self):
        with pytest.raises(ValidationError):
            ReportRequest.model_validate({"inputs": self.INPUTS, "selectedAgencies": ["VA"] * 51})

    def test_validation_message_lists_every_problem(self):
        errors = [
            {"loc": ("body", "selectedAgencies"), "msg": "List should have at least 1 item"},
            {"loc": ("body", "inputs", "naicsCode"), "msg": "Value error, bad NAICS"},
            {"loc": (), "msg": "Field required"},
        ]
        assert validation_message(errors) == (
            "selectedAgencies: List should have at least 1 item; inputs.naicsCode: Value error, bad NAICS; Field required"
        )
