"""AwardRecord and FetchResult - what the award search returns."""

from dataclasses import dataclass, field
from typing import Any, List, Optional
from urllib.parse import quote

from pydantic import Field

from .base import CamelModel

AWARD_URL = "https://www.usaspending.gov/award/{}"
KEYWORD_SEARCH_URL = "https://www.usaspending.gov/keyword_search/{}"


def _text(row: dict, *keys: str) -> str:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


def _amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class AwardRecord(CamelModel):
    """One historical award as returned by the spending_by_award search.

    Ephemeral: fetched per request and only used to derive buckets and
    scored opportunities.
    """

    award_id: str = Field(default="", description="Human-readable award id (PIID)")
    recipient_name: str = Field(default="", description="Awardee name")
    amount: float = Field(default=0.0, description="Award amount in dollars")
    awarding_agency: str = Field(default="", description="Top-tier awarding agency")
    awarding_sub_agency: str = Field(default="", description="Awarding sub-agency")
    awarding_office: str = Field(default="", description="Awarding office name")
    awarding_agency_code: str = Field(default="")
    awarding_sub_agency_code: str = Field(default="")
    agency_id: str = Field(default="", description="Internal awarding agency id")
    naics_code: str = Field(default="")
    naics_description: str = Field(default="")
    psc_code: str = Field(default="")
    set_aside: str = Field(default="", description="Set-aside description, empty when unrestricted")
    description: str = Field(default="")
    start_date: Optional[str] = Field(None)
    end_date: Optional[str] = Field(None)
    award_date: Optional[str] = Field(None, description="Base action date")
    place_of_performance_state: str = Field(default="", description="Two-letter state code")
    generated_internal_id: str = Field(default="", description="Id used for the canonical deep link")

    @classmethod
    def from_api(cls, row: dict) -> "AwardRecord":
        """Map a spending_by_award result row (display-name keys) to a record."""
        naics = row.get("NAICS Code") or row.get("NAICS")
        naics_desc = row.get("NAICS Description", "")
        if isinstance(naics, dict):
            naics_desc = naics_desc or naics.get("description", "")
            naics = naics.get("code")
        psc = row.get("Product or Service Code") or row.get("PSC")
        if isinstance(psc, dict):
            psc = psc.get("code")
        return cls(
            award_id=_text(row, "Award ID"),
            recipient_name=_text(row, "Recipient Name"),
            amount=_amount(row.get("Award Amount")),
            awarding_agency=_text(row, "Awarding Agency"),
            awarding_sub_agency=_text(row, "Awarding Sub Agency"),
            awarding_office=_text(row, "Awarding Office", "Awarding Office Name"),
            awarding_agency_code=_text(row, "Awarding Agency Code"),
            awarding_sub_agency_code=_text(row, "Awarding Sub Agency Code"),
            agency_id=_text(row, "awarding_agency_id", "agency_id"),
            naics_code=str(naics or "").strip(),
            naics_description=str(naics_desc or "").strip(),
            psc_code=str(psc or "").strip(),
            set_aside=_text(row, "type_of_set_aside_description", "Set-Aside Type", "type_of_set_aside"),
            description=_text(row, "Description"),
            start_date=_text(row, "Start Date") or None,
            end_date=_text(row, "End Date") or None,
            award_date=_text(row, "Award Base Action Date", "Start Date") or None,
            place_of_performance_state=_text(row, "Place of Performance State Code"),
            generated_internal_id=_text(row, "generated_internal_id", "generated_unique_award_id"),
        )

    @property
    def usaspending_url(self) -> str:
        if self.generated_internal_id:
            return AWARD_URL.format(self.generated_internal_id)
        return KEYWORD_SEARCH_URL.format(quote(self.award_id, safe=""))


@dataclass
class FetchResult:
    """Accumulated pages plus how complete the fetch was.

    ``stop_reason`` is ``last_page`` (a short page was seen), ``page_cap``
    (the caller's limit was reached) or ``errors`` (a page exhausted its
    retries; ``records`` holds everything fetched before it).
    """

    records: List[AwardRecord] = field(default_factory=list)
    pages_fetched: int = 0
    errors: List[str] = field(default_factory=list)
    stop_reason: str = "last_page"

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def complete(self) -> bool:
        return self.stop_reason != "errors"

    @property
    def total_amount(self) -> float:
        return sum(r.amount for r in self.records)
