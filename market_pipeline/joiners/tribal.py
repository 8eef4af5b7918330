"""Tribal (Native American-owned) business directory."""

from typing import List, Optional, Sequence

from ..models.agency import AgencyBucket
from ..models.records import TribalBusiness
from ..models.report import ContactInfo, SuggestedTribe
from .datasets import AuxiliaryDatasets
from .matching import SubstringMatch, naics_tiered_filter

_REGION_MATCH = SubstringMatch()


def contact_score(business: TribalBusiness) -> int:
    return (3 if business.email else 0) + (1 if business.contact_name else 0)


def to_suggestion(business: TribalBusiness) -> SuggestedTribe:
    contact = None
    if business.email:
        contact = ContactInfo(name=business.contact_name, email=business.email, phone=business.phone)
    return SuggestedTribe(
        name=business.name,
        region=business.display_region,
        capabilities=business.capability_list,
        contact_info=contact,
        certifications=list(business.certifications),
        naics_categories=business.naics_list,
    )


class TribalDirectory:
    def __init__(self, datasets: AuxiliaryDatasets):
        self.businesses = datasets.tribal_businesses

    def by_naics(self, naics_code: str) -> List[TribalBusiness]:
        if not naics_code:
            return []
        return naics_tiered_filter(
            naics_code, self.businesses, lambda b: list(b.naics_categories) + list(b.all_naics_codes) + [b.primary_naics]
        )

    def by_region(self, region: str) -> List[TribalBusiness]:
        """State or region containment in either direction; blank values never match."""
        if not region or not region.strip():
            return []
        return [
            b
            for b in self.businesses
            if _REGION_MATCH.matches(region, b.state) or _REGION_MATCH.matches(region, b.region)
        ]

    def by_certification(self, certification: str) -> List[TribalBusiness]:
        lower = (certification or "").lower()
        if not lower:
            return []
        return [b for b in self.businesses if any(lower in c.lower() for c in b.certifications)]

    def suggest_for_agencies(
        self,
        agencies: Sequence[AgencyBucket],
        naics_code: Optional[str],
        limit: int = 25,
    ) -> List[TribalBusiness]:
        """NAICS matches plus businesses in the agencies' regions, best contact first."""
        found = {}
        for business in self.by_naics(naics_code or ""):
            found.setdefault(business.name, business)
        for agency in agencies:
            if agency.location and agency.location != "Unknown":
                for business in self.by_region(agency.location):
                    found.setdefault(business.name, business)
        ranked = sorted(found.values(), key=contact_score, reverse=True)
        return ranked[:limit]
