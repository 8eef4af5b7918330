"""Replace generic DoD buckets with command-level entries.

Two sources, tried in order: real contracting offices from the FPDS feed,
then the static command directory.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence

from ..fetcher.fpds import FpdsOffice
from ..joiners.commands import CommandDirectory
from ..joiners.pain_points import detect_command
from ..models.agency import AgencyBucket
from ..models.records import CommandInfo
from ..taxonomy.office_names import enhance_office_name

logger = logging.getLogger(__name__)

DOD_PARENT_MARKERS = ("DEPARTMENT OF DEFENSE", "DEPT OF DEFENSE")
DOD_BRANCH_MARKERS = (
    "DEPARTMENT OF THE NAVY",
    "DEPT OF THE NAVY",
    "DEPARTMENT OF THE ARMY",
    "DEPT OF THE ARMY",
    "DEPARTMENT OF THE AIR FORCE",
    "DEPT OF THE AIR FORCE",
)
CIVILIAN_EXCLUDE_SUB_MARKERS = DOD_BRANCH_MARKERS + (
    "DEFENSE LOGISTICS AGENCY",
    "DEFENSE INFORMATION",
    "DEFENSE CONTRACT",
)
CIVILIAN_EXCLUDE_NAME_MARKERS = ("NAVFAC", "NAVSEA", "USACE", "ARMY CORPS", "AIR FORCE")


def _has_dod_word(text: str) -> bool:
    return "DOD" in text.replace("-", " ").replace("(", " ").replace(")", " ").split()


def is_dod_bucket(bucket: AgencyBucket) -> bool:
    parent = bucket.parent_agency.upper()
    sub = bucket.sub_agency.upper()
    name = bucket.name.upper()
    if any(m in parent for m in DOD_PARENT_MARKERS) or _has_dod_word(parent):
        return True
    return any(m in sub or m in name for m in DOD_BRANCH_MARKERS)


def exclude_dod(buckets: Sequence[AgencyBucket]) -> List[AgencyBucket]:
    """Civilian-only view: drop anything that looks like a defense buyer."""
    kept = []
    for bucket in buckets:
        sub = bucket.sub_agency.upper()
        name = bucket.name.upper()
        if (
            is_dod_bucket(bucket)
            or any(m in sub for m in CIVILIAN_EXCLUDE_SUB_MARKERS)
            or any(m in name for m in CIVILIAN_EXCLUDE_NAME_MARKERS)
        ):
            continue
        kept.append(bucket)
    if len(kept) != len(buckets):
        logger.info("dod_excluded before=%d after=%d", len(buckets), len(kept))
    return kept


NAVY_OFFICE_MARKERS = (
    "NAVAL", "NAVY", "NAVFAC", "NAVSEA", "NAVAIR", "NAVWAR", "SPAWAR", "MARINE", "FLEET", "SUBMARINE",
)
ARMY_OFFICE_MARKERS = ("ARMY", "FORT ", "MICC", "USACE", "ACC ", "ACA ", "TACOM", "CECOM", "AMCOM", "PEO ")
AIR_FORCE_OFFICE_MARKERS = ("AIR FORCE", "AFMC", "AFLCMC", "CONTRACTING SQUADRON", "AFDW", "AFSPC", "USAF")
_CONS_WORD = re.compile(r"\bCONS\b")

NAVY = "Department of the Navy"
ARMY = "Department of the Army"
AIR_FORCE = "Department of the Air Force"
DOD = "Department of Defense"


def detect_service_branch(office_name: str, office_id: str = "", agency_name: str = "") -> str:
    """Military department of an FPDS office: agency name, office name, then DODAAC prefix."""
    name = (office_name or "").upper()
    agency = (agency_name or "").upper()
    if "NAVY" in agency or "MARINE" in agency:
        return NAVY
    if "ARMY" in agency:
        return ARMY
    if "AIR FORCE" in agency:
        return AIR_FORCE

    if any(m in name for m in NAVY_OFFICE_MARKERS):
        return NAVY
    if any(m in name for m in ARMY_OFFICE_MARKERS):
        return ARMY
    if any(m in name for m in AIR_FORCE_OFFICE_MARKERS) or _CONS_WORD.search(name):
        return AIR_FORCE

    # DODAAC prefixes: N/M Navy and Marines, W Army, F Air Force, H9 Navy special programs
    prefix = (office_id or "")[:2].upper()
    if prefix[:1] in ("N", "M") or prefix == "H9":
        return NAVY
    if prefix[:1] == "W":
        return ARMY
    if prefix[:1] == "F":
        return AIR_FORCE
    if prefix[:1] == "H":
        return DOD

    if agency_name and "DEFENSE" not in agency:
        return agency_name
    return DOD


def fpds_office_bucket(office: FpdsOffice) -> AgencyBucket:
    """An FPDS office as a bucket keyed by its military department."""
    branch = detect_service_branch(office.office_name, office.office_id, office.agency_name)
    name = enhance_office_name(office.office_name)
    return AgencyBucket(
        id=f"{branch}|{name}",
        name=name,
        contracting_office=name,
        sub_agency=branch,
        parent_agency=branch,
        has_specific_office=True,
        office_id=office.office_id,
        sub_agency_code=office.agency_id,
        location="USA",
        spending=office.obligated_amount,
        contract_count=office.contract_count,
        command=detect_command(name),
    )


def split_evenly(total: float, count: int, parts: int):
    """Split spending and count into ``parts`` shares that sum back exactly.

    The first share absorbs the remainder of both.
    """
    base_count, extra = divmod(count, parts)
    share = total / parts
    spends = [share] * parts
    spends[0] = total - share * (parts - 1)
    counts = [base_count] * parts
    counts[0] += extra
    return spends, counts


class CommandExpansion:
    """A generic "Department of the Navy" bucket says little about who buys.

    ``apply`` replaces such buckets with the real contracting offices FPDS
    reports when there are at least as many DoD offices as generic buckets.
    Otherwise each generic bucket becomes up to ``limit`` command-level
    buckets (NAVSEA, NAVFAC, ...) from the command directory, dividing its
    spend and count among them.
    """

    def __init__(self, directory: CommandDirectory, limit: int = 5):
        self.directory = directory
        self.limit = limit

    @staticmethod
    def needs_command_detail(bucket: AgencyBucket) -> bool:
        return is_dod_bucket(bucket) and not bucket.has_specific_office

    def _candidates(self, bucket: AgencyBucket) -> List[CommandInfo]:
        for text in (bucket.sub_agency, bucket.name):
            upper = text.upper()
            if any(m in upper for m in DOD_BRANCH_MARKERS):
                return self.directory.commands_for_branch(upper)[: self.limit]
        return self.directory.dod_commands()[: self.limit]

    def expand(self, bucket: AgencyBucket) -> List[AgencyBucket]:
        # Never more commands than contracts, so every share carries at least one
        commands = self._candidates(bucket)[: max(bucket.contract_count, 1)]
        if not commands:
            return []
        spends, counts = split_evenly(bucket.spending, bucket.contract_count, len(commands))
        out = []
        for info, spending, count in zip(commands, spends, counts):
            abbreviation = info.abbreviation or info.key
            out.append(
                bucket.model_copy(
                    update={
                        "id": f"{bucket.sub_agency}|{info.full_name}",
                        "name": info.full_name,
                        "contracting_office": info.full_name,
                        "has_specific_office": True,
                        "spending": spending,
                        "contract_count": count,
                        "command": abbreviation,
                        "website": info.website or None,
                        "forecast_url": info.forecast_url or None,
                        "sam_forecast_url": info.sam_forecast_url or None,
                        "osbp": info.small_business_office,
                        "expanded_from": bucket.id,
                    }
                )
            )
        return out

    @staticmethod
    def _merge(by_id: Dict[str, AgencyBucket], bucket: AgencyBucket) -> None:
        existing = by_id.get(bucket.id)
        if existing is None:
            by_id[bucket.id] = bucket
            return
        # Same office reached twice: keep one bucket holding both shares
        by_id[bucket.id] = existing.model_copy(
            update={
                "spending": existing.spending + bucket.spending,
                "contract_count": existing.contract_count + bucket.contract_count,
            }
        )

    @classmethod
    def _ranked(cls, buckets: Sequence[AgencyBucket]) -> List[AgencyBucket]:
        by_id: Dict[str, AgencyBucket] = {}
        for bucket in buckets:
            cls._merge(by_id, bucket)
        merged = list(by_id.values())
        merged.sort(key=lambda b: b.spending, reverse=True)
        return merged

    def replace_with_offices(
        self, buckets: Sequence[AgencyBucket], offices: Sequence[AgencyBucket]
    ) -> Optional[List[AgencyBucket]]:
        """Generic DoD buckets swapped for FPDS offices, or None when FPDS has too few DoD offices."""
        generic_ids = {b.id for b in buckets if self.needs_command_detail(b)}
        dod_offices = [o for o in offices if is_dod_bucket(o)]
        if len(dod_offices) < len(generic_ids):
            logger.info("fpds_offices_insufficient dod_offices=%d generic=%d", len(dod_offices), len(generic_ids))
            return None
        logger.info("command_expansion source=fpds replaced=%d offices=%d", len(generic_ids), len(dod_offices))
        return self._ranked([b for b in buckets if b.id not in generic_ids] + dod_offices)

    def apply(
        self, buckets: Sequence[AgencyBucket], fpds_offices: Optional[Sequence[AgencyBucket]] = None
    ) -> List[AgencyBucket]:
        """Expanded list, re-sorted by spending; buckets that need no detail pass through."""
        if not any(self.needs_command_detail(b) for b in buckets):
            return list(buckets)
        if fpds_offices:
            replaced = self.replace_with_offices(buckets, fpds_offices)
            if replaced is not None:
                return replaced

        out: List[AgencyBucket] = []
        expanded_any = False
        for bucket in buckets:
            replacements = self.expand(bucket) if self.needs_command_detail(bucket) else []
            if not replacements:
                out.append(bucket)
                continue
            expanded_any = True
            logger.info(
                "command_expansion source=static bucket=%s commands=%s",
                bucket.id,
                ",".join(r.command or "" for r in replacements),
            )
            out.extend(replacements)
        if not expanded_any:
            return list(buckets)
        return self._ranked(out)
