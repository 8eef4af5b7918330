"""Pytest configuration and fixtures."""

import json
from datetime import date
from xml.sax.saxutils import escape

import httpx
import pytest
from tenacity import wait_none

from market_pipeline.config.config import DEFAULT_DATA_DIR, FPDS_FEED_URL, USASPENDING_SEARCH_URL
from market_pipeline.fetcher.awards import AwardFetcher
from market_pipeline.fetcher.fpds import FpdsFetcher
from market_pipeline.joiners.datasets import AgencyPainPoints, AuxiliaryDatasets, PainPointDatabase, load_datasets
from market_pipeline.models.core_inputs import BusinessType, CoreInputs
from market_pipeline.models.records import (
    CommandInfo,
    CuratedHitListEntry,
    DecemberSpendRecord,
    Forecast,
    PrimeContractor,
    TribalBusiness,
)

TODAY = date(2026, 10, 17)


def make_award_row(**overrides) -> dict:
    """One spending_by_award result row, display-name keys."""
    row = {
        "Award ID": "36C25024P0001",
        "Recipient Name": "Acme Engineering LLC",
        "Award Amount": 250000,
        "Awarding Agency": "Department of Veterans Affairs",
        "Awarding Sub Agency": "Veterans Health Administration",
        "Awarding Office": "Network Contract Office 7",
        "Awarding Agency Code": "036",
        "Awarding Sub Agency Code": "3600",
        "NAICS Code": "541330",
        "NAICS Description": "Engineering Services",
        "Place of Performance State Code": "GA",
        "Set-Aside Type": "SMALL BUSINESS SET-ASIDE",
        "type_of_set_aside_description": "SMALL BUSINESS SET-ASIDE",
        "Description": "A-E design services for clinic renovation",
        "Award Base Action Date": "2026-03-02",
        "generated_internal_id": "CONT_AWD_36C25024P0001_3600_-NONE-_-NONE-",
        "awarding_agency_id": "1111",
    }
    row.update(overrides)
    return row


def search_page(rows, has_next=False) -> httpx.Response:
    return httpx.Response(200, json={"results": rows, "page_metadata": {"hasNext": has_next}})


def paged_handler(pages, page_size):
    """respx side effect serving ``pages[n - 1]`` for request page n."""

    def handler(request):
        page = json.loads(request.content)["page"]
        rows = pages[page - 1] if page <= len(pages) else []
        return search_page(rows, has_next=len(rows) >= page_size and page < len(pages))

    return handler


def fpds_entry(office_id, office_name, agency_name="DEPT OF THE NAVY", amount=100000.0, agency_id="1700") -> str:
    """One FPDS ATOM entry carrying a single contract award."""
    return f"""
  <entry>
    <title>CONTRACT award</title>
    <content type="application/xml">
      <ns1:award xmlns:ns1="https://www.fpds.gov/FPDS">
        <ns1:dollarValues><ns1:obligatedAmount>{amount}</ns1:obligatedAmount></ns1:dollarValues>
        <ns1:purchaserInformation>
          <ns1:contractingOfficeAgencyID name="{escape(agency_name)}" departmentID="9700"
              departmentName="DEPT OF DEFENSE">{agency_id}</ns1:contractingOfficeAgencyID>
          <ns1:contractingOfficeID name="{escape(office_name)}">{office_id}</ns1:contractingOfficeID>
        </ns1:purchaserInformation>
      </ns1:award>
    </content>
  </entry>"""


def fpds_feed_xml(entries, next_url=None) -> str:
    link = f'<link rel="next" type="application/atom+xml" href="{escape(next_url)}"/>' if next_url else ""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<feed xmlns="http://www.w3.org/2005/Atom"><title>FPDS Public Feed</title>'
        f"{link}{''.join(entries)}</feed>"
    )


def fpds_page(entries, next_url=None) -> httpx.Response:
    return httpx.Response(200, text=fpds_feed_xml(entries, next_url), headers={"content-type": "application/xml"})


@pytest.fixture
def search_url():
    return USASPENDING_SEARCH_URL


@pytest.fixture
def fetcher():
    """Fetcher with no backoff or page delay so retry tests run instantly."""
    return AwardFetcher(page_size=100, page_delay_ms=0, max_consecutive_failures=3, retry_wait=wait_none())


@pytest.fixture
def fpds_url():
    return FPDS_FEED_URL


@pytest.fixture
def fpds():
    """FPDS client with no backoff or page delay."""
    return FpdsFetcher(max_records=100, page_delay_ms=0, max_attempts=3, retry_wait=wait_none())


@pytest.fixture
def sample_award_rows():
    """Three awards spread over two offices."""
    return [
        make_award_row(),
        make_award_row(
            **{
                "Award ID": "36C25024P0002",
                "Award Amount": 150000,
                "Set-Aside Type": "",
                "type_of_set_aside_description": "",
                "generated_internal_id": "CONT_AWD_36C25024P0002",
            }
        ),
        make_award_row(
            **{
                "Award ID": "47PC0024C0003",
                "Award Amount": 2000000,
                "Awarding Agency": "General Services Administration",
                "Awarding Sub Agency": "Public Buildings Service",
                "Awarding Office": "PBS R3 Acquisition Division",
                "Awarding Agency Code": "047",
                "Awarding Sub Agency Code": "4740",
                "Place of Performance State Code": "PA",
                "generated_internal_id": "CONT_AWD_47PC0024C0003",
                "awarding_agency_id": "2222",
            }
        ),
    ]


@pytest.fixture
def small_business_inputs():
    return CoreInputs(business_type=BusinessType.SMALL_BUSINESS, naics_code="541330")


@pytest.fixture
def datasets():
    """A small injected snapshot covering every dataset."""
    navsea = CommandInfo(
        key="NAVSEA",
        full_name="Naval Sea Systems Command",
        abbreviation="NAVSEA",
        parent_agency="Department of the Navy",
        website="https://www.navsea.navy.mil",
        forecast_url="https://www.navsea.navy.mil/forecast",
        small_business_office={"name": "NAVSEA OSBP", "director": "NAVSEA Director", "email": "navsea@example.mil"},
    )
    navfac = CommandInfo(
        key="NAVFAC",
        full_name="Naval Facilities Engineering Systems Command",
        abbreviation="NAVFAC",
        parent_agency="Department of the Navy",
        forecast_url="https://www.navfac.navy.mil/forecast",
    )
    usace = CommandInfo(
        key="USACE",
        full_name="U.S. Army Corps of Engineers",
        abbreviation="USACE",
        parent_agency="Department of the Army",
    )
    va = CommandInfo(
        key="VA",
        full_name="Department of Veterans Affairs",
        abbreviation="VA",
        parent_agency="Department of Veterans Affairs",
        small_business_office={"name": "VA OSDBU", "director": "VA Director", "email": "osdbu@example.gov"},
    )
    return AuxiliaryDatasets(
        pain_points=PainPointDatabase(
            agencies={
                "Department of Veterans Affairs": AgencyPainPoints(
                    pain_points=(
                        "Cybersecurity compliance gaps in legacy systems",
                        "FY2026 NDAA requirement for engineering modernization",
                    ),
                    priorities=("$5B for medical facility construction", "Cybersecurity engineering upgrades"),
                ),
                "Department of the Navy": AgencyPainPoints(
                    pain_points=("Shipyard infrastructure backlog",),
                    priorities=("Shipyard infrastructure optimization",),
                ),
                "NAVSEA": AgencyPainPoints(pain_points=("Ship maintenance engineering delays",)),
            },
            component_agencies={"Veterans Health Administration": "Department of Veterans Affairs"},
        ),
        commands={"NAVSEA": navsea, "NAVFAC": navfac, "USACE": usace, "VA": va},
        civilian_agencies={"VA": ("VETERANS AFFAIRS",)},
        agency_aliases={"DVA": "Department of Veterans Affairs"},
        tribal_businesses=(
            TribalBusiness(name="Tribal Engineering Co", state="GA", naics_categories=["541330"], email="a@example.com"),
            TribalBusiness(name="Tribal Builders", state="AK", naics_categories=["236220"]),
        ),
        prime_contractors=(
            PrimeContractor(
                name="Big Prime Inc",
                email="sb@example.com",
                naics_categories=["541330"],
                agencies=["Department of Veterans Affairs"],
            ),
        ),
        tier2_contractors=(
            PrimeContractor(name="Tier Two LLC", sblo_name="Pat", email="pat@example.com", naics_categories=["541330"]),
        ),
        december_spend=(
            DecemberSpendRecord(
                agency="Department of Veterans Affairs",
                program="Medical Facilities",
                unobligated_balance="$6B",
                hot_naics="Engineering (541330)",
                email="sblo@example.com",
            ),
        ),
        hit_list=(
            CuratedHitListEntry(
                id="hl-1", rank=1, title="Engineering Support", naics="541330",
                set_aside="Total Small Business", priority="high", is_urgent=True,
            ),
        ),
        forecasts=(
            Forecast(
                id="fc-1", agency="Department of Veterans Affairs", naics_code="541330",
                set_aside="Small Business", estimated_value=1_000_000, solicitation_date="2027-01-15",
            ),
            Forecast(
                id="fc-2", agency="Department of Veterans Affairs", naics_code="541330",
                set_aside="Small Business", estimated_value=2_000_000, solicitation_date="2026-01-15",
            ),
        ),
    )


@pytest.fixture
def empty_datasets():
    return AuxiliaryDatasets()


@pytest.fixture(scope="session")
def bundled_datasets():
    """The datasets shipped in the package."""
    return load_datasets(DEFAULT_DATA_DIR)
