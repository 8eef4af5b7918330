"""Prime / tier-2 contractor suggestions and the searchable contractor directory."""

import re
from typing import Dict, Iterable, List, Literal, Optional, Sequence

from pydantic import Field

from ..models.base import CamelModel
from ..models.records import Contractor, PrimeContractor
from ..models.report import SuggestedPrime
from ..taxonomy.psc import psc_related_naics
from .datasets import AuxiliaryDatasets
from .matching import SubstringMatch, naics_tiered_filter

_PUNCTUATION = re.compile(r"[,.'\"\-]")
_SUFFIX = re.compile(r"\s+(LLC|INC|CORP|CORPORATION|COMPANY|CO|LTD|LP|LLP)\.?$")
_SPACES = re.compile(r"\s+")

# Pain point keyword -> NAICS prefixes of primes worth suggesting for it
PAIN_POINT_NAICS: Dict[str, List[str]] = {
    "cyber": ["541330", "541511", "541512"],
    "cloud": ["518210", "541511"],
    "it modern": ["541511", "541512", "541330"],
    "construction": ["236", "237", "238"],
    "engineering": ["541330", "541611"],
    "infrastructure": ["237", "541330"],
}

SPECIALTIES: Dict[str, str] = {
    "541330": "Engineering Services",
    "541511": "Custom Computer Programming",
    "541512": "Computer Systems Design",
    "541519": "Other Computer Related Services",
    "541611": "Administrative Management",
    "541612": "Human Resources Consulting",
    "541690": "Other Consulting Services",
    "541712": "R&D in Physical Sciences",
    "541714": "R&D in Biotechnology",
    "541715": "R&D in Physical Sciences and Engineering",
    "518210": "Data Processing",
    "334511": "Search, Detection, Navigation, Guidance Systems",
    "336411": "Aircraft Manufacturing",
    "336611": "Ship Building",
    "236": "Construction",
    "237": "Heavy Construction",
    "238": "Specialty Trade",
}

INDUSTRIES: Dict[str, str] = {
    "541": "Professional Services",
    "236": "Building Construction",
    "237": "Heavy and Civil Construction",
    "238": "Specialty Trade Contractors",
    "518": "Data Processing and Hosting",
    "332": "Fabricated Metal Manufacturing",
    "334": "Computer and Electronics Manufacturing",
    "336": "Transportation Equipment Manufacturing",
    "561": "Administrative and Support Services",
}

_AGENCY_MATCH = SubstringMatch()


def normalize_company_name(name: str) -> str:
    """``"Aleut, LLC"`` and ``"ALEUT LLC"`` normalize to the same key."""
    upper = _PUNCTUATION.sub("", (name or "").upper())
    upper = _SPACES.sub(" ", upper).strip()
    upper = _SUFFIX.sub("", upper)
    return _SPACES.sub(" ", upper).strip()


def contact_score(prime: PrimeContractor) -> int:
    return (
        (3 if prime.email else 0)
        + (2 if prime.phone else 0)
        + (1 if prime.sblo_name else 0)
        + (2 if prime.supplier_portal else 0)
    )


def small_business_level(contract_count: Optional[int], total_value: Optional[float]) -> str:
    if not contract_count and not total_value:
        return "medium"
    if (contract_count or 0) > 100 or (total_value or 0) > 1e10:
        return "high"
    if (not contract_count or contract_count < 10) and (not total_value or total_value < 1e8):
        return "low"
    return "medium"


def _specialties(codes: Iterable[str]) -> List[str]:
    out: List[str] = []
    for code in codes:
        label = SPECIALTIES.get(code) or SPECIALTIES.get(code[:3])
        if label and label not in out:
            out.append(label)
    return out


def _industries(codes: Iterable[str]) -> List[str]:
    out: List[str] = []
    for code in codes:
        label = INDUSTRIES.get(code[:3])
        if label and label not in out:
            out.append(label)
    return out


def enrich_prime(prime: PrimeContractor) -> SuggestedPrime:
    specialties = _specialties(prime.naics_categories)
    if prime.supplier_portal:
        strategy = f"Register in {prime.name} supplier portal at {prime.supplier_portal}"
    else:
        strategy = f"Contact {prime.sblo_name or 'SBLO'} at {prime.name}"
    return SuggestedPrime(
        name=prime.name,
        opportunities=specialties,
        relevant_agencies=list(prime.agencies[:5]),
        contact_strategy=strategy,
        sblo_name=prime.sblo_name,
        email=prime.email,
        phone=prime.phone,
        supplier_portal=prime.supplier_portal,
        naics_categories=list(prime.naics_categories),
        industries=_industries(prime.naics_categories),
        small_business_level=small_business_level(prime.contract_count, prime.total_contract_value),
        tier_classification=prime.tier_classification,
        certifications=list(prime.certifications),
    )


def _dedup(groups: Iterable[Iterable[PrimeContractor]]) -> List[PrimeContractor]:
    found: Dict[str, PrimeContractor] = {}
    for group in groups:
        for prime in group:
            found.setdefault(normalize_company_name(prime.name), prime)
    return list(found.values())


class PrimeContractorDirectory:
    def __init__(self, datasets: AuxiliaryDatasets):
        self.primes = datasets.prime_contractors
        self.tier2 = datasets.tier2_contractors

    def primes_by_naics(self, naics_code: str) -> List[PrimeContractor]:
        if not naics_code:
            return []
        return naics_tiered_filter(naics_code, self.primes, lambda p: p.naics_categories)

    def primes_by_agency(self, agency: str) -> List[PrimeContractor]:
        return [p for p in self.primes if any(_AGENCY_MATCH.matches(agency, a) for a in p.agencies)]

    def primes_by_psc(self, psc_code: str) -> List[PrimeContractor]:
        return _dedup(self.primes_by_naics(code) for code in psc_related_naics(psc_code))

    def tier2_by_naics(self, naics_code: str) -> List[PrimeContractor]:
        if not naics_code:
            return []
        return naics_tiered_filter(naics_code, self.tier2, lambda p: p.naics_categories)

    def suggest_primes(
        self,
        agency_names: Sequence[str],
        naics_code: Optional[str] = None,
        psc_code: Optional[str] = None,
        pain_points: Sequence[str] = (),
        limit: int = 25,
    ) -> List[SuggestedPrime]:
        """Primes by NAICS (or PSC), then by agency, then by pain point keyword; best contact first."""
        groups: List[List[PrimeContractor]] = []
        if naics_code:
            groups.append(self.primes_by_naics(naics_code))
        elif psc_code:
            groups.append(self.primes_by_psc(psc_code))
        for name in agency_names:
            groups.append(self.primes_by_agency(name))

        text = " ".join(pain_points).lower()
        prefixes = [p for keyword, codes in PAIN_POINT_NAICS.items() if keyword in text for p in codes]
        if prefixes:
            groups.append(
                [p for p in self.primes if any(c.startswith(pre) for c in p.naics_categories for pre in prefixes)]
            )

        ranked = sorted(_dedup(groups), key=contact_score, reverse=True)
        return [enrich_prime(p) for p in ranked[:limit]]

    def suggest_tier2(
        self,
        naics_code: Optional[str] = None,
        psc_code: Optional[str] = None,
        limit: int = 25,
    ) -> List[SuggestedPrime]:
        if naics_code:
            candidates = _dedup([self.tier2_by_naics(naics_code)])
        elif psc_code:
            candidates = _dedup(self.tier2_by_naics(code) for code in psc_related_naics(psc_code))
        else:
            candidates = []
        if not candidates:
            candidates = _dedup([self.tier2])
        ranked = sorted(candidates, key=contact_score, reverse=True)
        return [enrich_prime(p) for p in ranked[:limit]]


class ContractorQuery(CamelModel):
    search: Optional[str] = None
    naics: Optional[str] = None
    agency: Optional[str] = None
    source: Optional[str] = None
    has_contact: Optional[bool] = None
    has_email: Optional[bool] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    sort_by: Literal["company", "contract_value", "contract_count"] = "contract_value"
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class ContractorPage(CamelModel):
    contractors: List[Contractor] = Field(default_factory=list)
    total_count: int = 0
    filtered_count: int = 0
    limit: int = 50
    offset: int = 0


class ContractorDirectory:
    def __init__(self, datasets: AuxiliaryDatasets):
        self.contractors = datasets.contractors

    def search(self, query: ContractorQuery) -> ContractorPage:
        rows: List[Contractor] = list(self.contractors)
        if query.search:
            needle = query.search.lower()
            rows = [
                c
                for c in rows
                if needle in c.company.lower() or needle in c.sblo_name.lower() or needle in c.email.lower()
            ]
        if query.naics:
            rows = [c for c in rows if any(code.startswith(query.naics) for code in c.naics_codes)]
        if query.agency:
            needle = query.agency.lower()
            rows = [c for c in rows if needle in c.agency.lower()]
        if query.source:
            needle = query.source.lower()
            rows = [c for c in rows if needle in c.source.lower()]
        if query.has_contact is not None:
            rows = [c for c in rows if c.has_contact == query.has_contact]
        if query.has_email is not None:
            rows = [c for c in rows if c.has_email == query.has_email]
        if query.min_value is not None:
            rows = [c for c in rows if c.contract_value_num >= query.min_value]
        if query.max_value is not None:
            rows = [c for c in rows if c.contract_value_num <= query.max_value]

        if query.sort_by == "company":
            key = lambda c: c.company.lower()  # noqa: E731
        elif query.sort_by == "contract_count":
            key = lambda c: c.contract_count  # noqa: E731
        else:
            key = lambda c: c.contract_value_num  # noqa: E731
        rows.sort(key=key, reverse=query.sort_order == "desc")

        return ContractorPage(
            contractors=rows[query.offset : query.offset + query.limit],
            total_count=len(self.contractors),
            filtered_count=len(rows),
            limit=query.limit,
            offset=query.offset,
        )
