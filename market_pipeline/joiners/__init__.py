"""Lookups against the curated, read-only auxiliary datasets."""

from .agency_needs import generate_agency_needs
from .commands import CommandDirectory, EnhancedAgencyInfo, is_dod_agency
from .contractors import ContractorDirectory, ContractorPage, ContractorQuery, PrimeContractorDirectory
from .datasets import AuxiliaryDatasets, DatasetError, DatasetStore, load_datasets
from .december_spend import DecemberSpendDirectory
from .forecasts import ForecastDirectory
from .hit_list import CuratedHitList
from .matching import (
    DEFAULT_MATCHER,
    AliasMatch,
    CaseInsensitiveMatch,
    ExactMatch,
    MatchStrategy,
    SubstringMatch,
    TieredMatcher,
)
from .pain_points import PainPointDirectory, categorize_pain_points, detect_command
from .tribal import TribalDirectory

__all__ = [
    "DEFAULT_MATCHER",
    "AliasMatch",
    "AuxiliaryDatasets",
    "CaseInsensitiveMatch",
    "CommandDirectory",
    "ContractorDirectory",
    "ContractorPage",
    "ContractorQuery",
    "CuratedHitList",
    "DatasetError",
    "DatasetStore",
    "DecemberSpendDirectory",
    "EnhancedAgencyInfo",
    "ExactMatch",
    "ForecastDirectory",
    "MatchStrategy",
    "PainPointDirectory",
    "PrimeContractorDirectory",
    "SubstringMatch",
    "TieredMatcher",
    "TribalDirectory",
    "categorize_pain_points",
    "detect_command",
    "generate_agency_needs",
    "is_dod_agency",
    "load_datasets",
]
