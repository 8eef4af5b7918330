"""AgencyBucket - awards folded per (sub-agency, office)."""

from typing import List, Optional

from pydantic import Field

from .base import CamelModel


class OSBPContact(CamelModel):
    """Office of Small Business Programs contact block."""

    name: str = Field(default="")
    director: str = Field(default="")
    phone: str = Field(default="")
    email: str = Field(default="")
    address: str = Field(default="")


class AgencyBucket(CamelModel):
    """One buying office with its accumulated spend.

    ``id`` is the office key ``"{sub_agency}|{contracting_office}"``; it is
    unique within an aggregation result.
    """

    id: str = Field(..., description="Office key")
    name: str = Field(..., description="Display name (the contracting office)")
    contracting_office: str = Field(..., description="Resolved awarding office")
    sub_agency: str = Field(..., description="Resolved awarding sub-agency")
    parent_agency: str = Field(default="", description="Top-tier agency")
    has_specific_office: bool = Field(default=False, description="Raw award carried an office distinct from the sub-agency")
    agency_id: str = Field(default="")
    agency_code: str = Field(default="")
    sub_agency_code: str = Field(default="")
    office_id: str = Field(default="")
    location: str = Field(default="Unknown", description="Most common place-of-performance state")
    spending: float = Field(default=0.0, description="Sum of award amounts")
    contract_count: int = Field(default=0, description="Number of awards")

    # Filled by command expansion / enrichment
    command: Optional[str] = Field(None, description="Military command abbreviation")
    website: Optional[str] = Field(None)
    forecast_url: Optional[str] = Field(None)
    sam_forecast_url: Optional[str] = Field(None)
    osbp: Optional[OSBPContact] = Field(None)
    expanded_from: Optional[str] = Field(None, description="Id of the generic bucket this entry replaced")


class AlternativeSearch(CamelModel):
    """A relaxed version of the user's search, offered when nothing matched."""

    label: str
    description: str
    filters: dict = Field(default_factory=dict)
    estimated_results: Optional[int] = Field(None)


class AgencySearchResult(CamelModel):
    """Output of the find-agencies pipeline."""

    success: bool = True
    agencies: List[AgencyBucket] = Field(default_factory=list)
    total_count: int = 0
    total_spending: float = 0.0
    naics_correction_message: Optional[str] = None
    naics_filter_dropped: bool = False
    alternative_searches: List[AlternativeSearch] = Field(default_factory=list)
    was_auto_adjusted: bool = False
    fallback_message: Optional[str] = None
    location_tier: int = Field(default=1, description="1 state, 2 bordering, 3 region, 4 nationwide")
    searched_state: Optional[str] = None
    pages_fetched: int = 0
    fetch_errors: int = 0
