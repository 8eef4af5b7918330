"""Award-search and FPDS clients: paginated fetch, retries, IDV search."""

from .awards import (
    AGENCY_SEARCH_FIELDS,
    CONTRACT_AWARD_TYPES,
    HIT_LIST_FIELDS,
    IDV_AWARD_TYPES,
    AwardFetcher,
    AwardFilters,
    fiscal_year_window,
    trailing_window,
)
from .base import UpstreamError
from .fpds import FpdsFetcher, FpdsOffice
from .idv import IDVSearchOptions, IDVSearchResult, clean_idv_naics, search_idv_contracts

__all__ = [
    "AGENCY_SEARCH_FIELDS",
    "CONTRACT_AWARD_TYPES",
    "HIT_LIST_FIELDS",
    "IDV_AWARD_TYPES",
    "AwardFetcher",
    "AwardFilters",
    "FpdsFetcher",
    "FpdsOffice",
    "IDVSearchOptions",
    "IDVSearchResult",
    "UpstreamError",
    "clean_idv_naics",
    "fiscal_year_window",
    "search_idv_contracts",
    "trailing_window",
]
