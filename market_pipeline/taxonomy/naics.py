"""NAICS normalization and sector expansion.

The award-search API matches NAICS codes exactly, so sector and subsector
inputs are expanded to the concrete 6-digit codes they contain.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

_236 = ["236115", "236116", "236117", "236118", "236210", "236220"]
_237 = ["237110", "237120", "237130", "237210", "237310", "237990"]
_238 = [
    "238110", "238120", "238130", "238140", "238150", "238160", "238170", "238190",
    "238210", "238220", "238290", "238310", "238320", "238330", "238340", "238350",
    "238390", "238910", "238990",
]
_541 = [
    "541110", "541120", "541191", "541199", "541211", "541213", "541214", "541219",
    "541310", "541320", "541330", "541340", "541350", "541360", "541370", "541380",
    "541410", "541420", "541430", "541490", "541511", "541512", "541513", "541519",
    "541611", "541612", "541613", "541614", "541618", "541620", "541690", "541713",
    "541714", "541715", "541720", "541810", "541820", "541830", "541840", "541850",
    "541860", "541870", "541890", "541910", "541921", "541922", "541930", "541940",
    "541990",
]
_561 = [
    "561110", "561210", "561311", "561312", "561320", "561330", "561410", "561421",
    "561422", "561431", "561439", "561440", "561450", "561491", "561492", "561499",
    "561510", "561520", "561591", "561599", "561611", "561612", "561613", "561621",
    "561622", "561710", "561720", "561730", "561740", "561790", "561910", "561920",
    "561990",
]
_562 = [
    "562111", "562112", "562119", "562211", "562212", "562213", "562219", "562910",
    "562920", "562991", "562998",
]
_423 = [
    "423110", "423120", "423130", "423140", "423210", "423220", "423310", "423320",
    "423330", "423390", "423410", "423420", "423430", "423440", "423450", "423460",
    "423490", "423510", "423520", "423610", "423620", "423690", "423710", "423720",
    "423730", "423740", "423810", "423820", "423830", "423840", "423850", "423860",
    "423910", "423920", "423930", "423940", "423990",
]
_811 = [
    "811111", "811112", "811113", "811118", "811121", "811122", "811191", "811192",
    "811198", "811211", "811212", "811213", "811219", "811310", "811411", "811412",
    "811420", "811430", "811490",
]
_812 = [
    "812111", "812112", "812113", "812191", "812199", "812210", "812220", "812310",
    "812320", "812331", "812332", "812910", "812921", "812922", "812930", "812990",
]
_813 = [
    "813110", "813211", "813212", "813219", "813311", "813312", "813319", "813410",
    "813910", "813920", "813930", "813940", "813990",
]

NAICS_EXPANSION: Dict[str, List[str]] = {
    "23": _236 + _237 + _238,
    "54": _541,
    "56": _561 + _562,
    "81": _811 + _812 + _813,
    "236": _236,
    "237": _237,
    "238": _238,
    "423": _423,
    "518": ["518210"],
    "541": _541,
    "561": _561,
    "811": _811,
    "812": _812,
    "813": _813,
}

INDUSTRY_NAMES: Dict[str, str] = {
    "23": "Construction",
    "54": "Professional, Scientific, and Technical Services",
    "56": "Administrative and Support and Waste Management",
    "81": "Other Services (except Public Administration)",
    "236": "Construction of Buildings",
    "237": "Heavy and Civil Engineering Construction",
    "238": "Specialty Trade Contractors",
    "423": "Merchant Wholesalers, Durable Goods",
    "518": "Data Processing and Hosting",
    "541": "Professional, Scientific, and Technical Services",
    "561": "Administrative and Support Services",
    "811": "Repair and Maintenance",
    "812": "Personal and Laundry Services",
    "813": "Religious, Grantmaking, Civic, Professional Organizations",
}


@dataclass(frozen=True)
class NaicsFilter:
    """What the award search should filter on for a user's NAICS input.

    ``codes`` is empty when no NAICS filter applies. ``naics_filter_dropped``
    distinguishes "the user gave a sector we cannot expand" from "the user
    gave no NAICS at all".
    """

    input_code: str
    normalized_code: str
    codes: Tuple[str, ...]
    expanded: bool = False
    naics_filter_dropped: bool = False
    correction_message: Optional[str] = None

    @property
    def prefix(self) -> str:
        return self.normalized_code[:3]

    @property
    def is_active(self) -> bool:
        return bool(self.codes)


@dataclass(frozen=True)
class NaicsKeys:
    code: str
    prefix: str
    sector: str


def normalize_naics_code(code: str) -> str:
    """Collapse trailing zeros to the sector/subsector the code stands for.

    ``541000`` -> ``541``, ``540000`` -> ``54``, ``54000`` -> ``54``,
    ``5410`` -> ``541``. Results are fixed points of this function.
    """
    code = (code or "").strip()
    if not code.isdigit():
        return code
    length = len(code)
    if length == 6:
        if code.endswith("0000"):
            return code[:2]
        if code.endswith("000"):
            return code[:3]
    elif length == 5:
        if code.endswith("000"):
            return code[:2]
        if code.endswith("00"):
            return code[:3]
    elif length == 4:
        if code.endswith("00"):
            return code[:2]
        if code.endswith("0"):
            return code[:3]
    return code


def industry_name(code: str) -> Optional[str]:
    code = (code or "").strip()
    return INDUSTRY_NAMES.get(code) or INDUSTRY_NAMES.get(code[:3]) or INDUSTRY_NAMES.get(code[:2])


def build_naics_filter(code: Optional[str], sector_limit: Optional[int] = None) -> NaicsFilter:
    """Turn user NAICS input into the award-search filter.

    Never raises. A 2-digit sector missing from the expansion table yields
    no filter at all, and says so via ``naics_filter_dropped``.
    """
    raw = (code or "").strip()
    if not raw:
        return NaicsFilter(input_code="", normalized_code="", codes=())

    normalized = normalize_naics_code(raw)
    message = None
    if normalized != raw:
        message = f"NAICS {raw} was interpreted as {len(normalized)}-digit code {normalized}"
        name = industry_name(normalized)
        if name:
            message += f" ({name})"

    if len(normalized) == 2:
        expansion = NAICS_EXPANSION.get(normalized)
        if not expansion:
            logger.warning("naics_filter_dropped code=%s reason=no_expansion", normalized)
            return NaicsFilter(
                input_code=raw,
                normalized_code=normalized,
                codes=(),
                naics_filter_dropped=True,
                correction_message=(
                    f"No industry expansion is available for sector {normalized}; "
                    "searching without a NAICS filter"
                ),
            )
        if sector_limit:
            expansion = expansion[:sector_limit]
        return NaicsFilter(raw, normalized, tuple(expansion), expanded=True, correction_message=message)

    if len(normalized) == 3:
        expansion = NAICS_EXPANSION.get(normalized)
        if expansion:
            return NaicsFilter(raw, normalized, tuple(expansion), expanded=True, correction_message=message)
        return NaicsFilter(raw, normalized, (normalized,), correction_message=message)

    return NaicsFilter(raw, normalized, (normalized,), correction_message=message)


def naics_match_keys(code: str) -> NaicsKeys:
    normalized = normalize_naics_code(code)
    return NaicsKeys(code=normalized, prefix=normalized[:3], sector=normalized[:2])


def naics_codes_match(search: str, candidate: str) -> bool:
    """Either code is a prefix of the other (sector/subsector containment)."""
    search = normalize_naics_code(search)
    candidate = (candidate or "").strip()
    if not search or not candidate:
        return False
    return candidate.startswith(search) or search.startswith(candidate)


def naics_widening_tiers(code: str) -> List[str]:
    """Prefixes to try, most specific first: the code, its subsector, its sector."""
    normalized = normalize_naics_code(code)
    tiers = [normalized]
    for width in (5, 3, 2):
        if len(normalized) > width:
            tiers.append(normalized[:width])
    seen = []
    for t in tiers:
        if t and t not in seen:
            seen.append(t)
    return seen
