"""Shared Pydantic models - the contract between pipeline stages and the HTTP surface."""

from .agency import AgencyBucket, AgencySearchResult, AlternativeSearch, OSBPContact
from .award import AwardRecord, FetchResult
from .core_inputs import BusinessType, CoreInputs, GoodsOrServices, VeteranStatus
from .opportunity import HitListOpportunity, HitListResult
from .records import (
    CommandInfo,
    Contractor,
    CuratedHitListEntry,
    DecemberSpendRecord,
    Forecast,
    PrimeContractor,
    ServiceBranchInfo,
    TribalBusiness,
)
from .report import ComprehensiveReport, IDVContract, ReportMetadata

__all__ = [
    "AgencyBucket",
    "AgencySearchResult",
    "AlternativeSearch",
    "AwardRecord",
    "BusinessType",
    "CommandInfo",
    "ComprehensiveReport",
    "Contractor",
    "CoreInputs",
    "CuratedHitListEntry",
    "DecemberSpendRecord",
    "FetchResult",
    "Forecast",
    "GoodsOrServices",
    "HitListOpportunity",
    "HitListResult",
    "IDVContract",
    "OSBPContact",
    "PrimeContractor",
    "ReportMetadata",
    "ServiceBranchInfo",
    "TribalBusiness",
    "VeteranStatus",
]
