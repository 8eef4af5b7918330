"""ComprehensiveReport - one combined multi-section report.

Every section defaults to empty lists and zeroed summaries so a report
with no matching data is still complete.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import Field

from .agency import OSBPContact
from .base import CamelModel
from .core_inputs import CoreInputs


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Government buyers
# ---------------------------------------------------------------------------


class GovernmentBuyer(CamelModel):
    id: str
    name: str
    contracting_office: str = ""
    sub_agency: str = ""
    parent_agency: str = ""
    spending: float = 0.0
    contract_count: int = 0
    location: str = ""
    command: Optional[str] = None
    website: str = ""
    forecast_url: str = ""
    sam_forecast_url: str = ""
    osbp: Optional[OSBPContact] = None
    contact_strategy: str = ""


class GovernmentBuyersSummary(CamelModel):
    total_agencies: int = 0
    total_spending: float = 0.0
    total_contracts: int = 0
    command_enhanced_agencies: int = 0


class GovernmentBuyersSection(CamelModel):
    agencies: List[GovernmentBuyer] = Field(default_factory=list)
    summary: GovernmentBuyersSummary = Field(default_factory=GovernmentBuyersSummary)
    recommendations: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Subcontracting / primes
# ---------------------------------------------------------------------------


class ContactInfo(CamelModel):
    name: str = ""
    email: str = ""
    phone: str = ""


class SuggestedPrime(CamelModel):
    name: str
    reason: str = ""
    opportunities: List[str] = Field(default_factory=list, description="Specialties")
    relevant_agencies: List[str] = Field(default_factory=list)
    contact_strategy: str = ""
    sblo_name: str = ""
    email: str = ""
    phone: str = ""
    supplier_portal: str = ""
    naics_categories: List[str] = Field(default_factory=list)
    industries: List[str] = Field(default_factory=list)
    small_business_level: str = "medium"
    contract_types: List[str] = Field(default_factory=list)
    tier_classification: str = "Prime"
    certifications: List[str] = Field(default_factory=list)


class Tier2Summary(CamelModel):
    total_primes: int = 0
    opportunity_count: int = 0


class Tier2Section(CamelModel):
    suggested_primes: List[SuggestedPrime] = Field(default_factory=list)
    summary: Tier2Summary = Field(default_factory=Tier2Summary)
    recommendations: List[str] = Field(default_factory=list)


class OtherAgency(CamelModel):
    name: str
    similarity: float = 0.0
    matching_pain_points: List[str] = Field(default_factory=list)


class PrimeContractorSummary(CamelModel):
    total_primes: int = 0
    total_other_agencies: int = 0


class PrimeContractorSection(CamelModel):
    suggested_primes: List[SuggestedPrime] = Field(default_factory=list)
    other_agencies: List[OtherAgency] = Field(default_factory=list)
    summary: PrimeContractorSummary = Field(default_factory=PrimeContractorSummary)
    recommendations: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Forecasts / needs / pain points
# ---------------------------------------------------------------------------


class ForecastEntry(CamelModel):
    id: str
    agency: str
    title: str = ""
    description: str = ""
    naics_code: str = ""
    set_aside: str = ""
    estimated_value: float = 0.0
    solicitation_date: Optional[str] = None
    source_url: str = ""


class ForecastResource(CamelModel):
    command: str
    name: str
    forecast_url: str = ""
    sam_forecast_url: str = ""


class ForecastSummary(CamelModel):
    total_forecasts: int = 0
    total_value: float = 0.0
    average_value: float = 0.0
    forecast_sources: int = 0
    by_agency: dict = Field(default_factory=dict)
    by_naics: dict = Field(default_factory=dict)
    by_set_aside: dict = Field(default_factory=dict)


class ForecastSection(CamelModel):
    forecasts: List[ForecastEntry] = Field(default_factory=list)
    forecast_resources: List[ForecastResource] = Field(default_factory=list)
    summary: ForecastSummary = Field(default_factory=ForecastSummary)
    recommendations: List[str] = Field(default_factory=list)


class AgencyNeed(CamelModel):
    agency: str
    command: Optional[str] = None
    requirement: str
    capability_match: str
    positioning: str = ""
    match_strength: int = 0
    score: int = 0


class AgencyNeedsSummary(CamelModel):
    total_needs: int = 0
    match_rate: int = Field(default=0, description="Percent of needs with a specific capability match")


class AgencyNeedsSection(CamelModel):
    needs: List[AgencyNeed] = Field(default_factory=list)
    summary: AgencyNeedsSummary = Field(default_factory=AgencyNeedsSummary)
    recommendations: List[str] = Field(default_factory=list)


class PainPointEntry(CamelModel):
    agency: str
    pain_point: str
    source: str = ""
    naics_relevance: str = "medium"
    opportunity_match: str = ""
    solution_positioning: str = ""
    priority: str = "medium"


class SpendingPriorityEntry(CamelModel):
    agency: str
    priority: str
    funding_status: str = "planned"
    naics_relevance: str = "medium"
    action_item: str = ""


class OpportunityMatch(CamelModel):
    agency: str
    area: str
    pain_point: str = ""
    priority: str = ""
    naics_relevant: bool = False
    funded: bool = False


class PainPointsSummary(CamelModel):
    total_pain_points: int = 0
    total_spending_priorities: int = 0
    high_priority: int = 0
    funded_priorities: int = 0
    high_opportunity_matches: int = 0
    naics_relevant_priorities: int = 0


class PainPointsSection(CamelModel):
    pain_points: List[PainPointEntry] = Field(default_factory=list)
    spending_priorities: List[SpendingPriorityEntry] = Field(default_factory=list)
    high_opportunity_matches: List[OpportunityMatch] = Field(default_factory=list)
    summary: PainPointsSummary = Field(default_factory=PainPointsSummary)
    recommendations: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# December spend / tribal / IDV
# ---------------------------------------------------------------------------


class DecemberSpendEntry(CamelModel):
    agency: str
    program: str = ""
    estimated_q4_spend: float = 0.0
    urgency_level: str = "low"
    quick_win_strategy: str = ""
    prime_contractor: str = ""
    sblo_contact: ContactInfo = Field(default_factory=ContactInfo)
    hot_naics: str = ""


class DecemberSpendSummary(CamelModel):
    total_q4_spend: float = 0.0
    urgent_opportunities: int = 0


class DecemberSpendSection(CamelModel):
    opportunities: List[DecemberSpendEntry] = Field(default_factory=list)
    summary: DecemberSpendSummary = Field(default_factory=DecemberSpendSummary)
    recommendations: List[str] = Field(default_factory=list)


class SuggestedTribe(CamelModel):
    name: str
    region: str = "Unknown"
    capabilities: List[str] = Field(default_factory=list)
    contact_info: Optional[ContactInfo] = None
    certifications: List[str] = Field(default_factory=list)
    naics_categories: List[str] = Field(default_factory=list)


class TribalSummary(CamelModel):
    total_opportunities: int = 0
    total_value: float = 0.0


class TribalSection(CamelModel):
    suggested_tribes: List[SuggestedTribe] = Field(default_factory=list)
    recommended_agencies: List[str] = Field(default_factory=list)
    summary: TribalSummary = Field(default_factory=TribalSummary)
    recommendations: List[str] = Field(default_factory=list)


class IDVContract(CamelModel):
    award_id: str = ""
    recipient_name: str = ""
    recipient_uei: str = ""
    amount: float = 0.0
    total_outlays: float = 0.0
    description: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    awarding_agency: str = ""
    awarding_sub_agency: str = ""
    naics_code: str = ""
    naics_description: str = ""
    psc_code: str = ""
    psc_description: str = ""
    contract_award_type: str = ""
    recipient_state: str = ""
    place_of_performance_state: str = ""
    generated_internal_id: str = ""
    url: str = ""


class IDVSummary(CamelModel):
    total_contracts: int = 0
    total_value: float = 0.0
    unique_primes: int = 0


class IDVSection(CamelModel):
    contracts: List[IDVContract] = Field(default_factory=list)
    summary: IDVSummary = Field(default_factory=IDVSummary)
    recommendations: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


class ReportMetadata(CamelModel):
    generated_at: datetime = Field(default_factory=_utcnow)
    inputs: CoreInputs
    selected_agencies: List[str] = Field(default_factory=list)
    total_agencies: int = 0


class ComprehensiveReport(CamelModel):
    """All report themes plus metadata. Built once per request, never persisted here."""

    government_buyers: GovernmentBuyersSection = Field(default_factory=GovernmentBuyersSection)
    tier2_subcontracting: Tier2Section = Field(default_factory=Tier2Section)
    forecast_list: ForecastSection = Field(default_factory=ForecastSection)
    agency_needs: AgencyNeedsSection = Field(default_factory=AgencyNeedsSection)
    agency_pain_points: PainPointsSection = Field(default_factory=PainPointsSection)
    december_spend: DecemberSpendSection = Field(default_factory=DecemberSpendSection)
    tribal_contracting: TribalSection = Field(default_factory=TribalSection)
    prime_contractor: PrimeContractorSection = Field(default_factory=PrimeContractorSection)
    idv_contracts: IDVSection = Field(default_factory=IDVSection)
    metadata: ReportMetadata
