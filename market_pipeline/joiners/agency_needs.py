"""Match agency pain points to what a business with a given NAICS can deliver."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..models.agency import AgencyBucket
from ..models.core_inputs import CoreInputs
from ..models.report import AgencyNeed
from ..taxonomy.naics import naics_match_keys
from .matching import keyword_in
from .pain_points import PainPointDirectory

GENERAL_MATCH = "General capabilities align with agency needs"

NAICS_CAPABILITIES: Dict[str, List[str]] = {
    "23": ["construction", "building construction", "heavy construction", "specialty trade contractors"],
    "54": ["professional services", "consulting", "engineering", "technical services"],
    "541": ["professional services", "consulting", "engineering", "technical services"],
    "56": ["administrative services", "facility support services", "security services"],
    "81": ["repair and maintenance", "equipment maintenance", "personal services", "civic organizations"],
    "236": ["construction", "building construction"],
    "237": ["heavy construction", "infrastructure construction"],
    "238": ["specialty trade contractors", "construction trades"],
    "518": ["data processing", "hosting", "cloud services"],
    "561": ["administrative services", "facility support services"],
    "811": ["repair and maintenance", "equipment maintenance"],
    "812": ["personal and laundry services"],
    "813": ["civic and social organizations", "membership associations"],
    "541330": ["engineering services", "professional engineering", "engineering consulting"],
    "541511": ["custom software development", "computer programming", "software services"],
    "541512": ["computer systems design", "IT services", "systems integration"],
}

# keyword -> (NAICS sectors/subsectors it applies to, capability description)
PAIN_POINT_CAPABILITIES: List[Tuple[str, Tuple[str, ...], str]] = [
    ("cyber", ("541",), "Cybersecurity expertise and compliance capabilities"),
    ("security", ("541",), "Security solutions and risk management"),
    ("cloud", ("541", "518"), "Cloud migration and cloud services"),
    ("software", ("541",), "Software development and IT services"),
    ("data", ("541", "518"), "Data management and analytics capabilities"),
    ("ai", ("541",), "AI/ML solutions and automation"),
    ("5g", ("541",), "5G and advanced communications services"),
    ("infrastructure", ("236", "237", "238", "541"), "Infrastructure development and management"),
    ("construction", ("236", "237", "238"), "Construction and facility management services"),
    ("building", ("236", "238"), "Building construction and renovation services"),
    ("facility", ("236", "238", "561"), "Facility construction and management services"),
    ("base infrastructure", ("236", "237", "238"), "Base infrastructure and facilities construction"),
    ("renovation", ("236", "238"), "Building renovation and modernization"),
    ("hvac", ("238",), "HVAC and mechanical systems"),
    ("engineering", ("541", "236", "237"), "Engineering and technical services"),
    ("maintenance", ("81", "811", "238", "561"), "Maintenance and support services"),
    ("energy", ("236", "237", "238", "541"), "Energy efficiency and renewable energy solutions"),
    ("climate", ("236", "237", "238", "541"), "Climate resilience and sustainability services"),
    ("renewable", ("236", "237", "238"), "Renewable energy construction and installation"),
    ("ship", ("336", "541", "238"), "Shipbuilding and marine construction"),
    ("shipyard", ("336", "541", "238"), "Shipyard and maritime facilities services"),
    ("aircraft", ("336", "541"), "Aircraft systems and aerospace engineering"),
    ("autonomous", ("541", "336"), "Autonomous systems and unmanned vehicles"),
    ("uas", ("541", "336"), "Unmanned aerial systems development"),
    ("training", ("541", "611"), "Training and simulation services"),
    ("simulation", ("541",), "Simulation and modeling services"),
]


@dataclass(frozen=True)
class _Target:
    name: str
    office: str = ""
    sub_agency: str = ""
    parent_agency: str = ""
    command: Optional[str] = None


def user_capabilities(inputs: CoreInputs) -> List[str]:
    caps: List[str] = []
    if inputs.naics_code:
        keys = naics_match_keys(inputs.naics_code)
        for key in dict.fromkeys([keys.code, keys.prefix, keys.sector]):
            caps.extend(NAICS_CAPABILITIES.get(key, []))
    caps.append(f"{inputs.business_type.value.lower()} business")
    return [c.lower() for c in caps]


def generate_agency_needs(
    directory: PainPointDirectory,
    inputs: CoreInputs,
    agency_names: Sequence[str],
    agency_data: Optional[Sequence[AgencyBucket]] = None,
) -> List[AgencyNeed]:
    """Pain points worth pursuing for this business, best first.

    With agency records, pain points come from the most specific command
    available and the cap is 40; with bare names it is 30.
    """
    if agency_data:
        targets = [
            _Target(a.name, a.contracting_office, a.sub_agency, a.parent_agency, a.command) for a in agency_data
        ]
    else:
        targets = [_Target(name) for name in agency_names]

    caps = user_capabilities(inputs)
    keys = naics_match_keys(inputs.naics_code) if inputs.naics_code else None
    sector = keys.sector if keys else ""
    prefix = keys.prefix if keys else ""
    industry = inputs.naics_code or "industry"

    needs: List[AgencyNeed] = []
    for target in targets:
        command: Optional[str] = None
        if agency_data:
            lookup = directory.for_command(target.office, target.sub_agency, target.parent_agency, target.command)
            points = lookup.pain_points
            if lookup.source and lookup.source not in (target.sub_agency, target.parent_agency):
                command = lookup.source
        else:
            points = directory.for_agency(target.name)

        for point in points:
            lower = point.lower()
            strength = sum(1 for c in caps if c in lower or lower in c)
            capability = GENERAL_MATCH
            for keyword, prefixes, description in PAIN_POINT_CAPABILITIES:
                if not keyword_in(keyword, lower):
                    continue
                if not sector or sector in prefixes or prefix in prefixes:
                    capability = description
                    strength += 1
                    break

            ndaa = "ndaa" in lower
            if not (strength > 0 or ndaa or "critical" in lower):
                continue

            if ndaa:
                positioning = (
                    "Strategic priority: Address this FY2026 NDAA requirement to gain "
                    "competitive advantage in agency procurement"
                )
            elif strength > 0:
                positioning = f"Strong capability match: Leverage your {industry} expertise to address this need"
            else:
                positioning = "Identify how your capabilities can be adapted or expanded to address this agency requirement"

            score = (10 if ndaa else 0) + (5 if capability != GENERAL_MATCH else 0) + (2 if command else 0)
            needs.append(
                AgencyNeed(
                    agency=target.name,
                    command=command,
                    requirement=point,
                    capability_match=capability,
                    positioning=positioning,
                    match_strength=strength,
                    score=score,
                )
            )

    needs.sort(key=lambda n: n.score, reverse=True)
    return needs[: 40 if agency_data else 30]
