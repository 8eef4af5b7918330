"""Per-theme section builders for the combined report.

Each builder is a pure function of the request and the auxiliary
datasets, except ``idv_section`` which calls out to the award search.
A builder that finds nothing returns an empty section, never None.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from ..fetcher.awards import AwardFetcher
from ..fetcher.base import UpstreamError
from ..fetcher.idv import IDVSearchOptions, search_idv_contracts
from ..joiners.agency_needs import GENERAL_MATCH, generate_agency_needs
from ..joiners.commands import CommandDirectory, is_dod_agency
from ..joiners.contractors import PrimeContractorDirectory
from ..joiners.december_spend import DecemberSpendDirectory, quick_win_strategy, urgency_level
from ..joiners.forecasts import ForecastDirectory, statistics, upcoming
from ..joiners.matching import count_keywords, keyword_in
from ..joiners.pain_points import PainPointDirectory
from ..joiners.tribal import TribalDirectory, to_suggestion
from ..models.agency import AgencyBucket
from ..models.core_inputs import CoreInputs
from ..models.report import (
    AgencyNeedsSection,
    AgencyNeedsSummary,
    ContactInfo,
    DecemberSpendEntry,
    DecemberSpendSection,
    DecemberSpendSummary,
    ForecastEntry,
    ForecastResource,
    ForecastSection,
    ForecastSummary,
    GovernmentBuyer,
    GovernmentBuyersSection,
    GovernmentBuyersSummary,
    IDVSection,
    IDVSummary,
    OpportunityMatch,
    OtherAgency,
    PainPointEntry,
    PainPointsSection,
    PainPointsSummary,
    PrimeContractorSection,
    PrimeContractorSummary,
    SpendingPriorityEntry,
    Tier2Section,
    Tier2Summary,
    TribalSection,
    TribalSummary,
)

logger = logging.getLogger(__name__)

OSBP_FALLBACK = "Contact the Office of Small Business Programs (OSBP)"
PRIME_CONTRACT_TYPES = ["IDIQ", "BPA", "GWAC"]
IDV_MIN_VALUE = 1_000_000
IDV_LIMIT = 50
IDV_UNAVAILABLE = ["IDV contract data temporarily unavailable", "Try refreshing the report later"]

FUNDED_PATTERN = re.compile(r"\$[\d.]+[BMK]", re.IGNORECASE)

# NAICS code/prefix -> words that make a priority relevant to that industry
NAICS_KEYWORDS: Dict[str, List[str]] = {
    "54": ["consulting", "professional", "engineering", "technical", "IT", "software", "cyber", "data",
           "analytics", "AI", "cloud", "digital", "moderniz"],
    "541": ["consulting", "professional", "engineering", "technical", "IT", "software", "cyber", "data",
            "analytics", "AI", "cloud", "digital", "moderniz"],
    "23": ["construction", "building", "infrastructure", "facility", "renovation", "HVAC",
           "base infrastructure", "energy"],
    "236": ["construction", "building", "renovation", "facility"],
    "237": ["heavy construction", "infrastructure", "highway", "bridge", "utility"],
    "238": ["specialty trade", "electrical", "plumbing", "HVAC", "mechanical"],
    "56": ["administrative", "facility support", "security", "janitorial", "maintenance"],
    "561": ["administrative", "facility support", "security", "guard", "staffing"],
    "81": ["repair", "maintenance", "equipment"],
    "811": ["repair", "maintenance", "equipment", "vehicle"],
    "518": ["hosting", "cloud", "data processing", "data center"],
    "336": ["manufacturing", "aircraft", "ship", "vehicle", "defense"],
    "611": ["training", "education", "simulation"],
    "621": ["health", "medical", "clinical"],
    "622": ["hospital", "health care"],
}

# Areas where a pain point and a spending priority can line up
CROSS_REF_AREAS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Cybersecurity", ("cyber", "security", "zero trust", "cmmc", "authorization")),
    ("IT Modernization", ("moderniz", "legacy system", "cloud", "digital", "software")),
    ("Infrastructure", ("infrastructure", "facility", "construction", "building", "base")),
    ("Data & Analytics", ("data", "analytics", "ai", "machine learning", "artificial intelligence")),
    ("Workforce", ("workforce", "staffing", "personnel", "training", "hiring")),
    ("Supply Chain", ("supply chain", "logistics", "procurement", "acquisition")),
    ("Healthcare", ("health", "medical", "clinical", "patient", "ehr")),
    ("Energy & Climate", ("energy", "climate", "renewable", "sustainability", "carbon")),
    ("Compliance & Audit", ("compliance", "audit", "oversight", "ig", "inspector general")),
    ("Communications", ("5g", "communication", "network", "spectrum", "satellite")),
]


@dataclass(frozen=True)
class AgencyProfile:
    """A selected agency with the pain points and priorities found for it."""

    name: str
    pain_points: Tuple[str, ...]
    priorities: Tuple[str, ...]
    source: str = ""
    command: Optional[str] = None


def _find_bucket(name: str, agency_data: Optional[Sequence[AgencyBucket]]) -> Optional[AgencyBucket]:
    for bucket in agency_data or ():
        if bucket.name == name or bucket.contracting_office == name:
            return bucket
    return None


def agency_profiles(
    directory: PainPointDirectory,
    selected_agencies: Sequence[str],
    agency_data: Optional[Sequence[AgencyBucket]] = None,
) -> List[AgencyProfile]:
    profiles = []
    for name in selected_agencies:
        bucket = _find_bucket(name, agency_data)
        if bucket is None:
            profiles.append(
                AgencyProfile(name, directory.for_agency(name), directory.priorities_for_agency(name))
            )
            continue
        lookup = directory.for_command(
            bucket.contracting_office or name, bucket.sub_agency, bucket.parent_agency, bucket.command
        )
        profiles.append(
            AgencyProfile(
                name=name,
                pain_points=lookup.pain_points,
                priorities=directory.priorities_for_agency(name, bucket.command),
                source=lookup.source,
                command=bucket.command,
            )
        )
    return profiles


# ---------------------------------------------------------------------------
# Government buyers
# ---------------------------------------------------------------------------


def government_buyers_section(
    commands: CommandDirectory,
    selected_agencies: Sequence[str],
    agency_data: Optional[Sequence[AgencyBucket]] = None,
) -> GovernmentBuyersSection:
    if not agency_data:
        buyers = [
            GovernmentBuyer(
                id=f"agency-{index + 1}",
                name=name,
                contracting_office=name,
                sub_agency=name,
                parent_agency=name,
                location="Unknown",
                contact_strategy=OSBP_FALLBACK,
            )
            for index, name in enumerate(selected_agencies)
        ]
        return GovernmentBuyersSection(
            agencies=buyers,
            summary=GovernmentBuyersSummary(total_agencies=len(buyers)),
            recommendations=[
                "Contact the Office of Small Business Programs (OSBP) at each agency to introduce your capabilities",
                "Attend industry days and networking events",
                "Register in SAM.gov and agency-specific vendor databases",
                "Prepare tailored capability statements for each agency",
            ],
        )

    buyers = []
    for bucket in agency_data:
        office = bucket.contracting_office or bucket.name
        info = commands.enhanced_agency_info(office, bucket.sub_agency, bucket.parent_agency, bucket.command)
        osbp = bucket.osbp or info.small_business_contact
        if osbp is None and bucket.parent_agency and "DEFENSE" not in bucket.parent_agency.upper():
            logger.debug("osbp_missing office=%s parent=%s", office, bucket.parent_agency)
        buyers.append(
            GovernmentBuyer(
                id=bucket.id,
                name=bucket.name,
                contracting_office=office,
                sub_agency=bucket.sub_agency or bucket.name,
                parent_agency=bucket.parent_agency,
                spending=bucket.spending,
                contract_count=bucket.contract_count,
                location=bucket.location or "Unknown",
                command=bucket.command or info.command,
                website=bucket.website or info.website or "",
                forecast_url=bucket.forecast_url or info.forecast_url or "",
                sam_forecast_url=bucket.sam_forecast_url or info.sam_forecast_url or "",
                osbp=osbp,
                contact_strategy=f"Contact {osbp.director} at {osbp.email}" if osbp else OSBP_FALLBACK,
            )
        )

    enhanced = sum(1 for b in buyers if b.command)
    return GovernmentBuyersSection(
        agencies=buyers,
        summary=GovernmentBuyersSummary(
            total_agencies=len(agency_data),
            total_spending=sum(b.spending for b in agency_data),
            total_contracts=sum(b.contract_count for b in agency_data),
            command_enhanced_agencies=enhanced,
        ),
        recommendations=[
            f"{enhanced} agencies have command-specific OSBP contacts - use these direct lines"
            if enhanced
            else "Contact the Office of Small Business Programs (OSBP) at each agency",
            "Use the provided forecast URLs to monitor upcoming opportunities",
            "Visit command websites for industry day announcements",
            "Attend industry days and networking events",
            "Register in SAM.gov and agency-specific vendor databases",
            "Prepare tailored capability statements for each agency",
        ],
    )


# ---------------------------------------------------------------------------
# Subcontracting
# ---------------------------------------------------------------------------


def _tier2_contact(prime) -> str:
    if prime.sblo_name and prime.email:
        return f"Contact {prime.sblo_name} at {prime.email}"
    if prime.email:
        return f"Contact at {prime.email}"
    return f"Contact {prime.name} for subcontracting opportunities"


def tier2_section(primes: PrimeContractorDirectory, inputs: CoreInputs) -> Tier2Section:
    if inputs.naics_code:
        reason = "Tier 2 subcontractor matching your NAICS code"
    else:
        reason = "Tier 2 subcontractor matching your PSC category"
    suggested = [
        p.model_copy(
            update={
                "reason": reason if p.naics_categories else "Tier 2 subcontractor",
                "contact_strategy": _tier2_contact(p),
            }
        )
        for p in primes.suggest_tier2(inputs.naics_code, inputs.psc_code)
    ]
    return Tier2Section(
        suggested_primes=suggested,
        summary=Tier2Summary(
            total_primes=len(suggested),
            opportunity_count=sum(len(p.opportunities) for p in suggested),
        ),
        recommendations=[
            "Contact Tier 2 subcontractors directly for partnership opportunities",
            "Attend small business networking events to meet these contractors",
            "Review their NAICS codes to ensure capability alignment",
            "Use provided email addresses to reach out directly"
            if any(p.email for p in suggested)
            else "Search SAM.gov for additional contact information",
        ],
    )


def prime_contractor_section(
    primes: PrimeContractorDirectory,
    pain_points: PainPointDirectory,
    inputs: CoreInputs,
    selected_agencies: Sequence[str],
    profiles: Sequence[AgencyProfile],
) -> PrimeContractorSection:
    all_points = [p for profile in profiles for p in profile.pain_points]
    suggested = primes.suggest_primes(selected_agencies, inputs.naics_code, inputs.psc_code, all_points)
    shown = [
        p.model_copy(
            update={
                "reason": "Prime contractor in your industry"
                + (" working with your target agencies" if p.relevant_agencies else ""),
                "contract_types": list(PRIME_CONTRACT_TYPES),
            }
        )
        for p in suggested[:10]
    ]

    selected = set(selected_agencies)
    similar: Dict[str, float] = {}
    for name in selected_agencies:
        for match in pain_points.similar_agencies(name, 5):
            if match.agency not in selected and match.agency not in similar:
                similar[match.agency] = match.similarity
    others = [
        OtherAgency(name=name, similarity=score, matching_pain_points=list(pain_points.for_agency(name)[:3]))
        for name, score in list(similar.items())[:5]
    ]

    return PrimeContractorSection(
        suggested_primes=shown,
        other_agencies=others,
        summary=PrimeContractorSummary(total_primes=len(suggested), total_other_agencies=len(similar)),
        recommendations=[
            "Build relationships with prime contractors in your industry",
            "Attend prime contractor small business events",
            "Consider exploring similar agencies with matching pain points",
        ],
    )


# ---------------------------------------------------------------------------
# Forecasts / needs / pain points
# ---------------------------------------------------------------------------


def forecast_section(
    forecasts: ForecastDirectory,
    commands: CommandDirectory,
    inputs: CoreInputs,
    selected_agencies: Sequence[str],
    agency_data: Optional[Sequence[AgencyBucket]] = None,
    today: Optional[date] = None,
) -> ForecastSection:
    matched = forecasts.for_selected_agencies(selected_agencies, inputs.naics_code, inputs.business_type.value)
    soon = upcoming(matched, limit=20, today=today)
    stats = statistics(soon)

    resources: List[ForecastResource] = []
    seen = set()
    for bucket in agency_data or ():
        if not is_dod_agency(bucket.parent_agency):
            continue
        info = commands.enhanced_agency_info(
            bucket.contracting_office or bucket.name, bucket.sub_agency, bucket.parent_agency, bucket.command
        )
        key = info.command or bucket.sub_agency or bucket.parent_agency
        if not info.forecast_url or key in seen:
            continue
        seen.add(key)
        resources.append(
            ForecastResource(
                command=key,
                name=info.command_info.full_name if info.command_info else key,
                forecast_url=info.forecast_url,
                sam_forecast_url=info.sam_forecast_url,
            )
        )

    entries = [
        ForecastEntry(
            id=f.id,
            agency=f.agency,
            title=f.title,
            description=f.description,
            naics_code=f.naics_code,
            set_aside=f.set_aside,
            estimated_value=f.estimated_value,
            solicitation_date=f.solicitation_date,
            source_url=f.source_url,
        )
        for f in soon
    ]
    return ForecastSection(
        forecasts=entries,
        forecast_resources=resources,
        summary=ForecastSummary(
            total_forecasts=stats.total_forecasts,
            total_value=stats.total_value,
            average_value=stats.average_value,
            forecast_sources=len(resources),
            by_agency=stats.agency_counts,
            by_naics=stats.naics_counts,
            by_set_aside=stats.set_aside_counts,
        ),
        recommendations=[
            f"{len(resources)} command-specific forecast sources available - check these for the latest opportunities"
            if resources
            else "Monitor solicitation dates and prepare proposals in advance",
            "Review forecast details for NAICS codes matching your capabilities",
            "Contact agency points of contact for additional information",
            "Check agency forecast websites quarterly for updates and changes",
            "Prepare capability statements tailored to forecasted opportunities",
        ],
    )


def agency_needs_section(
    pain_points: PainPointDirectory,
    inputs: CoreInputs,
    selected_agencies: Sequence[str],
    agency_data: Optional[Sequence[AgencyBucket]] = None,
) -> AgencyNeedsSection:
    needs = generate_agency_needs(pain_points, inputs, selected_agencies, agency_data)
    matched = sum(1 for n in needs if n.capability_match != GENERAL_MATCH)
    match_rate = round(matched / len(needs) * 100) if needs else 0
    command_level = sum(1 for n in needs if n.command)
    return AgencyNeedsSection(
        needs=needs[:20],
        summary=AgencyNeedsSummary(total_needs=len(needs), match_rate=match_rate),
        recommendations=[
            f"{command_level} needs matched to specific DoD commands for targeted positioning"
            if command_level
            else "Focus on NDAA-related needs for strategic positioning",
            "Prioritize needs with strong capability matches",
            "Develop capability statements addressing specific agency requirements",
            "Reference agency needs in SBLO conversations and proposals",
            "Track agency needs alignment with your solution development roadmap",
        ],
    )


def industry_keywords(naics_code: Optional[str]) -> List[str]:
    code = naics_code or ""
    words: List[str] = []
    for key in dict.fromkeys([code, code[:3], code[:2]]):
        words.extend(NAICS_KEYWORDS.get(key, []))
    return list(dict.fromkeys(words))


def naics_relevance(text: str, keywords: Sequence[str]) -> str:
    """``high`` at two or more industry keywords, ``medium`` at one, else ``low``.

    Without any keywords for the industry everything is ``medium``.
    """
    if not keywords:
        return "medium"
    hits = count_keywords(keywords, text)
    if hits >= 2:
        return "high"
    if hits == 1:
        return "medium"
    return "low"


def is_funded(priority: str) -> bool:
    return FUNDED_PATTERN.search(priority) is not None


def _is_high_priority(point: str) -> bool:
    lower = point.lower()
    return "ndaa" in lower or "critical" in lower


def opportunity_matches(profiles: Sequence[AgencyProfile], keywords: Sequence[str]) -> List[OpportunityMatch]:
    """Areas where one agency has both a pain point and a spending priority.

    NAICS-relevant matches rank first, then funded ones.
    """
    matches = []
    for profile in profiles:
        if not profile.priorities:
            continue
        for area, area_words in CROSS_REF_AREAS:
            points = [p for p in profile.pain_points if any(keyword_in(w, p) for w in area_words)]
            priorities = [p for p in profile.priorities if any(keyword_in(w, p) for w in area_words)]
            if not points or not priorities:
                continue
            matches.append(
                OpportunityMatch(
                    agency=profile.name,
                    area=area,
                    pain_point=points[0],
                    priority=priorities[0],
                    naics_relevant=naics_relevance(priorities[0], keywords) != "low",
                    funded=is_funded(priorities[0]),
                )
            )
    matches.sort(key=lambda m: (4 if m.naics_relevant else 0) + (2 if m.funded else 0), reverse=True)
    return matches


def _opportunity_text(relevance: str, naics: str) -> str:
    if relevance == "high":
        return f"Strong NAICS {naics} alignment - directly relevant to your capabilities"
    if relevance == "medium":
        return f"Moderate alignment with NAICS {naics} capabilities"
    return "Your capabilities may address this agency challenge"


def _action_item(relevance: str, naics: str) -> str:
    if relevance == "high":
        return f"High relevance to NAICS {naics} - pursue actively"
    if relevance == "medium":
        return "Moderate relevance - explore alignment with your capabilities"
    return "Monitor for opportunities as they develop"


def pain_points_section(profiles: Sequence[AgencyProfile], inputs: CoreInputs) -> PainPointsSection:
    keywords = industry_keywords(inputs.naics_code)
    naics = inputs.naics_code or ""
    points = [(p.name, point) for p in profiles for point in p.pain_points]
    priorities = [(p.name, priority) for p in profiles for priority in p.priorities]
    matches = opportunity_matches(profiles, keywords)
    relevant = [pr for _, pr in priorities if naics_relevance(pr, keywords) != "low"]

    entries = []
    for agency, point in points[:20]:
        relevance = naics_relevance(point, keywords)
        entries.append(
            PainPointEntry(
                agency=agency,
                pain_point=point,
                source=next((p.source for p in profiles if p.name == agency and p.source), ""),
                naics_relevance=relevance,
                opportunity_match=_opportunity_text(relevance, naics),
                solution_positioning=f"Position your solutions to address: {point}",
                priority="high" if _is_high_priority(point) else "medium",
            )
        )
    spending = []
    for agency, priority in priorities[:20]:
        relevance = naics_relevance(priority, keywords)
        spending.append(
            SpendingPriorityEntry(
                agency=agency,
                priority=priority,
                funding_status="funded" if is_funded(priority) else "planned",
                naics_relevance=relevance,
                action_item=_action_item(relevance, naics),
            )
        )

    return PainPointsSection(
        pain_points=entries,
        spending_priorities=spending,
        high_opportunity_matches=matches[:15],
        summary=PainPointsSummary(
            total_pain_points=len(points),
            total_spending_priorities=len(priorities),
            high_priority=sum(1 for _, point in points if _is_high_priority(point)),
            funded_priorities=sum(1 for _, pr in priorities if is_funded(pr)),
            high_opportunity_matches=len(matches),
            naics_relevant_priorities=len(relevant),
        ),
        recommendations=[
            f"{len(matches)} high-opportunity matches found - agencies with BOTH a problem AND a funded priority "
            "in the same area"
            if matches
            else "Cross-reference pain points with spending priorities to find funded opportunities",
            f"{len(relevant)} spending priorities align with your NAICS {naics} capabilities"
            if relevant
            else "Review spending priorities for alignment with your capabilities",
            "Target funded priorities (marked with $) - these have allocated budgets ready to spend",
            "Reference pain points in capability statements and SBLO conversations",
            "Highlight NDAA-related items for strategic positioning in proposals",
            "Focus on high-opportunity matches first - these represent the strongest pursuit targets",
        ],
    )


# ---------------------------------------------------------------------------
# December spend / tribal / IDV
# ---------------------------------------------------------------------------


def december_recommendations(today: Optional[date] = None) -> List[str]:
    today = today or date.today()
    month = today.strftime("%B")
    # July through September is the last quarter of the federal fiscal year
    if today.month in (7, 8, 9):
        urgency = f'Contact SBLOs immediately - {month} is "use it or lose it" season for unspent funds'
    else:
        urgency = f"Contact SBLOs now - agencies are planning {month} acquisitions"
    return [
        urgency,
        "Focus on opportunities with high unobligated balances",
        "Prepare quick-turnaround capability statements",
        "Emphasize your set-aside certifications for fast-track opportunities",
        "Request 15-minute intro calls this week",
        "Monitor SAM.gov daily for new postings",
    ]


def december_spend_section(
    december: DecemberSpendDirectory,
    inputs: CoreInputs,
    selected_agencies: Sequence[str],
    today: Optional[date] = None,
) -> DecemberSpendSection:
    records = december.for_inputs(inputs, selected_agencies)
    entries = [
        DecemberSpendEntry(
            agency=r.agency,
            program=r.program,
            estimated_q4_spend=r.balance_amount,
            urgency_level=urgency_level(r.balance_amount),
            quick_win_strategy=quick_win_strategy(r, inputs),
            prime_contractor=r.prime_contractor,
            sblo_contact=ContactInfo(name=r.sblo_name, email=r.email, phone=r.phone),
            hot_naics=r.hot_naics,
        )
        for r in records[:20]
    ]
    return DecemberSpendSection(
        opportunities=entries,
        summary=DecemberSpendSummary(
            total_q4_spend=sum(r.balance_amount for r in records),
            urgent_opportunities=sum(1 for r in records if urgency_level(r.balance_amount) == "high"),
        ),
        recommendations=december_recommendations(today),
    )


def tribal_section(
    tribal: TribalDirectory,
    inputs: CoreInputs,
    selected_agencies: Sequence[str],
    agency_data: Optional[Sequence[AgencyBucket]] = None,
) -> TribalSection:
    businesses = tribal.suggest_for_agencies(agency_data or [], inputs.naics_code)
    suggested = [to_suggestion(b) for b in businesses[:10]]
    return TribalSection(
        suggested_tribes=suggested,
        recommended_agencies=list(selected_agencies[:5]),
        summary=TribalSummary(total_opportunities=len(businesses)),
        recommendations=[
            "Partner with 8(a) certified tribal businesses for subcontracting opportunities",
            "Leverage tribal business set-asides and sole-source opportunities",
            "Build teaming relationships with complementary capabilities",
            "Contact suggested tribal businesses using provided email addresses"
            if any(t.contact_info for t in suggested)
            else "Research tribal business contact information for partnership outreach",
        ],
    )


def search_context(inputs: CoreInputs) -> str:
    if inputs.psc_code and inputs.naics_code:
        return f"NAICS {inputs.naics_code} and PSC {inputs.psc_code}"
    if inputs.psc_code:
        return f"PSC {inputs.psc_code}"
    if inputs.naics_code:
        return f"NAICS {inputs.naics_code}"
    return "your industry"


async def idv_section(fetcher: Optional[AwardFetcher], inputs: CoreInputs) -> IDVSection:
    """Large IDVs in the user's market; an upstream failure gives an empty section."""
    if fetcher is None:
        return IDVSection(recommendations=list(IDV_UNAVAILABLE))
    options = IDVSearchOptions(
        naics_code=inputs.naics_code, psc_code=inputs.psc_code, min_value=IDV_MIN_VALUE, limit=IDV_LIMIT
    )
    try:
        result = await search_idv_contracts(fetcher, options)
    except (UpstreamError, httpx.HTTPError) as exc:
        logger.warning("idv_section_unavailable error=%s", exc)
        return IDVSection(recommendations=list(IDV_UNAVAILABLE))

    contracts = result.contracts
    return IDVSection(
        contracts=contracts,
        summary=IDVSummary(
            total_contracts=len(contracts),
            total_value=sum(c.amount for c in contracts),
            unique_primes=len({c.recipient_name for c in contracts}),
        ),
        recommendations=[
            f"These contracts match {search_context(inputs)} - contact primes for subcontracting",
            "Contact the SBLO (Small Business Liaison Officer) at each prime contractor",
            "Focus on IDVs with 1-2 years remaining - they need to meet subcontracting goals",
            "Register in prime contractor supplier portals (many have them)",
            "Prepare a strong capability statement highlighting your certifications",
            "Large primes are required to subcontract with small businesses - use this leverage",
        ],
    )
