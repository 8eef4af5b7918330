"""Year-end (fiscal Q4) unobligated balances by agency program."""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..models.core_inputs import CoreInputs
from ..models.records import DecemberSpendRecord
from ..taxonomy.naics import naics_match_keys
from .datasets import AuxiliaryDatasets
from .matching import SubstringMatch

logger = logging.getLogger(__name__)

HIGH_URGENCY_BALANCE = 5e9
MEDIUM_URGENCY_BALANCE = 2e9

_AGENCY_MATCH = SubstringMatch()


def dedup_key(record: DecemberSpendRecord) -> str:
    return f"{record.agency.strip().lower()}|||{record.program.strip().lower()}"


def contact_preference(record: DecemberSpendRecord) -> Tuple[bool, bool, float]:
    """Sort key for duplicate entries: email, then phone (only without email), then balance."""
    has_email = bool(record.email)
    return has_email, (not has_email and bool(record.phone)), record.balance_amount


def dedup_records(records: Sequence[DecemberSpendRecord]) -> List[DecemberSpendRecord]:
    """One record per agency+program, keeping the best contact; exact ties keep the first seen."""
    best: Dict[str, DecemberSpendRecord] = {}
    for record in records:
        key = dedup_key(record)
        existing = best.get(key)
        if existing is None or contact_preference(record) > contact_preference(existing):
            best[key] = record
    return list(best.values())


def urgency_level(balance: float) -> str:
    if balance >= HIGH_URGENCY_BALANCE:
        return "high"
    if balance >= MEDIUM_URGENCY_BALANCE:
        return "medium"
    return "low"


def quick_win_strategy(record: DecemberSpendRecord, inputs: CoreInputs) -> str:
    parts = []
    if record.email:
        parts.append(f"Contact {record.sblo_name or 'SBLO'} at {record.email} immediately")
    elif record.prime_contractor:
        parts.append(f"Research and contact SBLO at {record.prime_contractor}")
    if record.program:
        parts.append(f"Focus on {record.program} program area")
    if record.naics_codes:
        parts.append(f"Highlight your capabilities in NAICS: {', '.join(record.naics_codes[:3])}")
    elif record.psc:
        parts.append(f"Highlight your capabilities in PSC: {record.psc}")
    parts.append(f"Emphasize your {inputs.business_type.value} certification for set-aside opportunities")
    parts.append("Prepare quick-turnaround capability statement")
    parts.append("Request 15-minute intro call this week")
    return ". ".join(parts) + "."


def _naics_matches(search: str, record: DecemberSpendRecord) -> bool:
    keys = naics_match_keys(search)
    for code in record.naics_codes:
        if code == keys.code or code.startswith(keys.code) or keys.code.startswith(code):
            return True
        if code.startswith(keys.sector) and len(keys.code) <= 2:
            return True
    return False


class DecemberSpendDirectory:
    def __init__(self, datasets: AuxiliaryDatasets):
        self.records = datasets.december_spend

    def by_naics(self, naics_code: str) -> List[DecemberSpendRecord]:
        if not naics_code:
            return []
        return [r for r in self.records if _naics_matches(naics_code, r)]

    def by_agency(self, agency: str) -> List[DecemberSpendRecord]:
        return [
            r
            for r in self.records
            if _AGENCY_MATCH.matches(agency, r.agency) or (agency and agency.lower() in r.program.lower())
        ]

    def by_agencies(self, agencies: Sequence[str]) -> List[DecemberSpendRecord]:
        seen = set()
        out = []
        for agency in agencies:
            for record in self.by_agency(agency):
                if id(record) not in seen:
                    seen.add(id(record))
                    out.append(record)
        return out

    def for_inputs(
        self, inputs: CoreInputs, selected_agencies: Optional[Sequence[str]] = None
    ) -> List[DecemberSpendRecord]:
        """Records for this business, narrowed only by filters that leave something behind.

        NAICS narrows first, then the selected agencies. Duplicates are
        collapsed by agency+program and the result is ordered by balance.
        """
        records = list(self.records)
        if inputs.naics_code:
            by_naics = self.by_naics(inputs.naics_code)
            if by_naics:
                records = by_naics
        if selected_agencies:
            wanted = {id(r) for r in self.by_agencies(selected_agencies)}
            narrowed = [r for r in records if id(r) in wanted]
            if narrowed:
                records = narrowed
        deduped = dedup_records(records)
        deduped.sort(key=lambda r: r.balance_amount, reverse=True)
        return deduped
