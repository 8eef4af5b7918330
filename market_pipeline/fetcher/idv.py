"""Indefinite Delivery Vehicle (IDIQ/BPA/GWAC) contract search."""

import logging
from datetime import date
from typing import List, Literal, Optional
from urllib.parse import quote

from pydantic import Field

from ..models.base import CamelModel
from ..models.report import IDVContract
from ..taxonomy.psc import normalize_psc
from .awards import CONTRACT_AWARD_TYPES, IDV_AWARD_TYPES, AwardFetcher, AwardFilters

logger = logging.getLogger(__name__)

IDV_FIELDS = [
    "Award ID",
    "Recipient Name",
    "Recipient UEI",
    "Award Amount",
    "Total Outlays",
    "Description",
    "Start Date",
    "End Date",
    "Awarding Agency",
    "Awarding Sub Agency",
    "NAICS Code",
    "NAICS Description",
    "Product or Service Code",
    "Product or Service Code Description",
    "Contract Award Type",
    "Recipient State Code",
    "Place of Performance State Code",
    "generated_unique_award_id",
]

DEFAULT_START_DATE = date(2000, 1, 1)


class IDVSearchOptions(CamelModel):
    naics_code: Optional[str] = None
    psc_code: Optional[str] = None
    agency: Optional[str] = None
    state: Optional[str] = None
    location_type: Literal["recipient", "pop"] = "recipient"
    min_value: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)

    @property
    def search_type(self) -> str:
        return "task_orders" if self.state and self.location_type == "pop" else "idv"


class IDVSearchResult(CamelModel):
    contracts: List[IDVContract] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    has_next_page: bool = False
    search_type: str = "idv"


def clean_idv_naics(code: Optional[str]) -> str:
    """Reduce a NAICS input to the form the IDV search accepts.

    Trailing zeros are dropped, then odd lengths are padded or trimmed to
    a sector (2), a 4-digit industry group or a full 6-digit code.
    """
    code = (code or "").strip()
    if not code:
        return ""
    clean = code.rstrip("0") or code
    if len(clean) == 1:
        clean += "0"
    elif len(clean) == 3:
        clean = clean[:2]
    elif len(clean) == 5:
        clean += "0"
    return clean


def _amount(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _contract_from_row(row: dict) -> IDVContract:
    generated_id = row.get("generated_unique_award_id") or row.get("generated_internal_id") or ""
    award_id = str(row.get("Award ID") or "")
    url = (
        f"https://www.usaspending.gov/award/{generated_id}"
        if generated_id
        else f"https://www.usaspending.gov/keyword_search/{quote(award_id, safe='')}"
    )
    return IDVContract(
        award_id=award_id,
        recipient_name=row.get("Recipient Name") or "",
        recipient_uei=row.get("Recipient UEI") or "",
        amount=_amount(row.get("Award Amount")),
        total_outlays=_amount(row.get("Total Outlays")),
        description=row.get("Description") or "",
        start_date=row.get("Start Date"),
        end_date=row.get("End Date"),
        awarding_agency=row.get("Awarding Agency") or "",
        awarding_sub_agency=row.get("Awarding Sub Agency") or "",
        naics_code=str(row.get("NAICS Code") or ""),
        naics_description=row.get("NAICS Description") or "",
        psc_code=str(row.get("Product or Service Code") or ""),
        psc_description=row.get("Product or Service Code Description") or "",
        contract_award_type=row.get("Contract Award Type") or "",
        recipient_state=row.get("Recipient State Code") or "",
        place_of_performance_state=row.get("Place of Performance State Code") or "",
        generated_internal_id=generated_id,
        url=url,
    )


def build_idv_filters(options: IDVSearchOptions) -> AwardFilters:
    filters = AwardFilters(
        award_type_codes=list(CONTRACT_AWARD_TYPES if options.search_type == "task_orders" else IDV_AWARD_TYPES),
        require_codes=True,
        min_amount=options.min_value,
    )
    if options.start_date or options.end_date:
        filters.time_period = (options.start_date or DEFAULT_START_DATE, options.end_date or date.today())
    naics = clean_idv_naics(options.naics_code)
    if naics:
        filters.naics_codes = [naics]
    psc = normalize_psc(options.psc_code)
    if psc:
        filters.psc_codes = [psc]
    if options.agency:
        filters.agencies = [{"type": "awarding", "tier": "toptier", "name": options.agency}]
    if options.state:
        state = options.state.strip().upper()
        if options.location_type == "pop":
            filters.place_of_performance_states = [state]
        else:
            filters.recipient_states = [state]
    return filters


async def search_idv_contracts(fetcher: AwardFetcher, options: IDVSearchOptions) -> IDVSearchResult:
    """Run one IDV search page. Raises UpstreamError when the API keeps failing."""
    body = {
        "filters": build_idv_filters(options).to_api(),
        "fields": IDV_FIELDS,
        "page": options.page,
        "limit": options.limit,
        "sort": "Award Amount",
        "order": "desc",
        "subawards": False,
    }
    data = await fetcher.post_search(body)
    contracts = [_contract_from_row(row) for row in data.get("results") or []]
    metadata = data.get("page_metadata") or {}
    logger.info(
        "idv_search_complete search_type=%s page=%d count=%d",
        options.search_type,
        options.page,
        len(contracts),
    )
    return IDVSearchResult(
        contracts=contracts,
        total_count=int(metadata.get("total") or len(contracts)),
        page=options.page,
        has_next_page=bool(metadata.get("hasNext")),
        search_type=options.search_type,
    )
