"""Agency pain points and spending priorities."""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .datasets import AgencyPainPoints, AuxiliaryDatasets
from .matching import TieredMatcher

logger = logging.getLogger(__name__)

# Office-name keywords -> command key in the pain point database. Order
# matters: the first matching row wins.
COMMAND_KEYWORDS: List[Tuple[Tuple[str, ...], str]] = [
    (("NAVFAC", "NAVAL FACILITIES"), "NAVFAC"),
    (("NAVSEA", "NAVAL SEA SYSTEMS"), "NAVSEA"),
    (("NAVAIR", "NAVAL AIR SYSTEMS"), "NAVAIR"),
    (("NAVWAR", "SPAWAR"), "NAVWAR"),
    (("MARINE CORPS SYSTEMS",), "Marine Corps Systems Command"),
    (("USACE", "CORPS OF ENGINEERS"), "USACE"),
    (("ARMY CONTRACTING COMMAND", "ACC-"), "Army Contracting Command"),
    (("ARMY MATERIEL", "TACOM", "CECOM", "AMCOM"), "Army Materiel Command"),
    (("MICC", "MISSION AND INSTALLATION"), "Army Contracting Command"),
    (("AFMC", "AIR FORCE MATERIEL"), "Air Force Materiel Command"),
    (("AFSC", "AIR FORCE SUSTAINMENT"), "Air Force Sustainment Center"),
    (("SPACE SYSTEMS",), "Space Systems Command"),
    (("DLA", "DEFENSE LOGISTICS"), "Defense Logistics Agency"),
    (("DISA",), "Defense Information Systems Agency"),
    (("DCMA",), "Defense Contract Management Agency"),
    (("MDA", "MISSILE DEFENSE"), "Missile Defense Agency"),
    (("DARPA",), "DARPA"),
    (("DHA", "DEFENSE HEALTH"), "Defense Health Agency"),
]

PAIN_POINT_CATEGORIES: List[Tuple[str, Tuple[str, ...]]] = [
    ("cybersecurity", ("cyber", "security", "zero trust")),
    ("infrastructure", ("infrastructure", "facility", "building")),
    ("modernization", ("moderniz", "cloud", "digital")),
    ("compliance", ("compliance", "ndaa", "regulation")),
]


def _has_keyword(upper: str, keyword: str) -> bool:
    # Bare acronyms (DLA, MDA, DHA) must stand alone.
    if len(keyword) <= 4 and keyword.isalpha():
        return re.search(rf"\b{keyword}\b", upper) is not None
    return keyword in upper


def detect_command(office_name: str) -> Optional[str]:
    """Command key implied by an awarding-office name, if any."""
    upper = (office_name or "").upper()
    if not upper:
        return None
    for keywords, command in COMMAND_KEYWORDS:
        if any(_has_keyword(upper, k) for k in keywords):
            return command
    return None


def categorize_pain_points(points) -> Dict[str, List[str]]:
    categories: Dict[str, List[str]] = {name: [] for name, _ in PAIN_POINT_CATEGORIES}
    categories["other"] = []
    for point in points:
        lower = point.lower()
        for name, keywords in PAIN_POINT_CATEGORIES:
            if any(k in lower for k in keywords):
                categories[name].append(point)
                break
        else:
            categories["other"].append(point)
    return categories


@dataclass(frozen=True)
class PainPointLookup:
    pain_points: Tuple[str, ...]
    source: str


@dataclass(frozen=True)
class SimilarAgency:
    agency: str
    similarity: float
    shared_pain_points: Tuple[str, ...]


def _lead_words(text: str, n: int = 3) -> str:
    return " ".join(text.lower().split(" ")[:n])


class PainPointDirectory:
    """Pain point / priority lookups by agency, command or keyword."""

    def __init__(self, datasets: AuxiliaryDatasets, matcher: Optional[TieredMatcher] = None):
        self.db = datasets.pain_points
        self.matcher = matcher or datasets.matcher

    def _entry(self, agency_name: str, command: Optional[str] = None) -> Optional[AgencyPainPoints]:
        agencies = self.db.agencies
        if command:
            hit = self.matcher.lookup(command, agencies)
            if hit:
                return hit[1]
        if not agency_name:
            return None

        hit = self.matcher.lookup(agency_name, agencies, strict=True)
        if hit:
            return hit[1]

        component = self.matcher.lookup(agency_name, self.db.component_agencies, strict=True)
        if component:
            parent_hit = self.matcher.lookup(component[1], agencies, strict=True)
            if parent_hit:
                return parent_hit[1]

        hit = self.matcher.lookup(agency_name, agencies)
        if hit:
            logger.debug("pain_point_fuzzy_match agency=%s matched=%s", agency_name, hit[0])
            return hit[1]

        lower = agency_name.lower()
        if "army" in lower and "engineer" in lower:
            hit = self.matcher.lookup(agency_name, self.db.usace_offices, strict=True)
            if hit:
                return hit[1]
        return None

    def for_agency(self, agency_name: str, command: Optional[str] = None) -> Tuple[str, ...]:
        entry = self._entry(agency_name, command)
        return entry.pain_points if entry else ()

    def priorities_for_agency(self, agency_name: str, command: Optional[str] = None) -> Tuple[str, ...]:
        entry = self._entry(agency_name, command)
        return entry.priorities if entry else ()

    def for_command(
        self,
        contracting_office: str,
        sub_agency: str,
        parent_agency: str,
        command: Optional[str] = None,
    ) -> PainPointLookup:
        """Most specific pain points available: command, detected command, sub-agency, parent."""
        candidates = [command, detect_command(contracting_office), sub_agency, parent_agency]
        for candidate in candidates:
            if not candidate:
                continue
            points = self.for_agency(candidate)
            if points:
                return PainPointLookup(points, candidate)
        return PainPointLookup((), "")

    def find_by_keyword(self, keyword: str) -> List[Tuple[str, Tuple[str, ...]]]:
        lower = (keyword or "").lower()
        if not lower:
            return []
        out = []
        for name, entry in self.db.agencies.items():
            matching = tuple(p for p in entry.pain_points if lower in p.lower())
            if matching:
                out.append((name, matching))
        return out

    def similar_agencies(self, agency_name: str, limit: int = 5) -> List[SimilarAgency]:
        """Agencies sharing pain points, by overlap of each point's first three words."""
        target = self.for_agency(agency_name)
        if not target:
            return []
        target_leads = [(_lead_words(t), t.lower()) for t in target]
        results = []
        for other, entry in self.db.agencies.items():
            if other == agency_name or not entry.pain_points:
                continue
            shared = tuple(
                p
                for p in entry.pain_points
                if any(lead in p.lower() or _lead_words(p) in full for lead, full in target_leads)
            )
            if shared:
                similarity = len(shared) / max(len(target), len(entry.pain_points))
                results.append(SimilarAgency(other, similarity, shared))
        results.sort(key=lambda s: s.similarity, reverse=True)
        return results[:limit]
