"""Curated year-end hit list: hand-picked low-competition solicitations."""

from typing import Dict, List, Sequence

from ..models.core_inputs import BusinessType, CoreInputs, VeteranStatus
from ..models.opportunity import HitListOpportunity
from ..models.records import CuratedHitListEntry
from .datasets import AuxiliaryDatasets

PRIORITY_ORDER: Dict[str, int] = {"high": 3, "medium": 2, "low": 1}

SET_ASIDE_KEYWORDS: Dict[BusinessType, List[str]] = {
    BusinessType.EIGHT_A: ["8(a)", "8a"],
    BusinessType.WOMEN_OWNED: ["wosb", "women-owned", "women owned"],
    BusinessType.HUBZONE: ["hubzone"],
    BusinessType.SMALL_BUSINESS: ["small business", "total small"],
}

VETERAN_KEYWORDS: Dict[VeteranStatus, List[str]] = {
    VeteranStatus.SERVICE_DISABLED: ["sdvosb", "service-disabled veteran"],
    VeteranStatus.VETERAN_OWNED: ["vosb", "veteran"],
}


def set_aside_keywords(inputs: CoreInputs) -> List[str]:
    keywords = list(SET_ASIDE_KEYWORDS.get(inputs.business_type, [inputs.business_type.value.lower()]))
    if inputs.veteran_status:
        keywords.extend(VETERAN_KEYWORDS.get(inputs.veteran_status, []))
    return keywords


def to_opportunity(entry: CuratedHitListEntry) -> HitListOpportunity:
    priority = entry.priority if entry.priority in PRIORITY_ORDER else "medium"
    return HitListOpportunity(
        id=entry.notice_id or entry.id,
        title=entry.title,
        naics=entry.naics,
        set_aside=entry.set_aside or "Unrestricted",
        description=entry.description,
        competition_level="low",
        win_probability="high" if priority == "high" else "medium",
        link=entry.link,
        source="curated",
        rank=entry.rank,
        priority=priority,
        is_urgent=entry.is_urgent,
        deadline=entry.deadline,
        poc=entry.poc or None,
        category=entry.category or None,
    )


def _sort_key(entry: CuratedHitListEntry):
    return (-PRIORITY_ORDER.get(entry.priority, 2), not entry.is_urgent, entry.rank)


class CuratedHitList:
    def __init__(self, datasets: AuxiliaryDatasets):
        self.entries = datasets.hit_list

    def by_naics(self, naics_code: str) -> List[CuratedHitListEntry]:
        if not naics_code:
            return []
        prefix = naics_code[:3]
        return [
            e
            for e in self.entries
            if e.naics and (e.naics == naics_code or e.naics.startswith(prefix) or naics_code.startswith(e.naics[:3]))
        ]

    def by_set_aside(self, keywords: Sequence[str]) -> List[CuratedHitListEntry]:
        lowered = [k.lower() for k in keywords if k]
        return [e for e in self.entries if any(k in e.set_aside.lower() for k in lowered)]

    def for_inputs(self, inputs: CoreInputs) -> List[CuratedHitListEntry]:
        """Entries for this business, best first.

        With a NAICS code only matching entries are returned, never the
        whole list. The set-aside filter narrows only when it leaves
        something behind.
        """
        entries = self.by_naics(inputs.naics_code) if inputs.naics_code else list(self.entries)
        if entries:
            wanted = {id(e) for e in self.by_set_aside(set_aside_keywords(inputs))}
            narrowed = [e for e in entries if id(e) in wanted]
            if narrowed:
                entries = narrowed
        return sorted(entries, key=_sort_key)
