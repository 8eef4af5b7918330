"""NAICS / PSC / set-aside / geography normalization."""

from .geography import StateTiers, bordering_states, extended_region_states, state_from_zip, states_by_tier
from .naics import (
    NaicsFilter,
    build_naics_filter,
    industry_name,
    naics_codes_match,
    naics_match_keys,
    naics_widening_tiers,
    normalize_naics_code,
)
from .office_names import clean_fpds_office_name, enhance_office_name
from .psc import normalize_psc, psc_related_naics
from .set_aside import ALL_SMALL_BUSINESS_CODES, SMALL_BUSINESS_CODES, set_aside_codes

__all__ = [
    "ALL_SMALL_BUSINESS_CODES",
    "NaicsFilter",
    "SMALL_BUSINESS_CODES",
    "StateTiers",
    "bordering_states",
    "build_naics_filter",
    "clean_fpds_office_name",
    "enhance_office_name",
    "extended_region_states",
    "industry_name",
    "naics_codes_match",
    "naics_match_keys",
    "naics_widening_tiers",
    "normalize_naics_code",
    "normalize_psc",
    "psc_related_naics",
    "set_aside_codes",
    "state_from_zip",
    "states_by_tier",
]
