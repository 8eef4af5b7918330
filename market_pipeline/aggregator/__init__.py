"""Award aggregation, DoD command expansion and the find-agencies pipeline."""

from .agency_search import AgencyFinder, page_cap
from .buckets import AgencyAggregator, aggregate_awards, count_unique_offices, office_key
from .command_expansion import (
    CommandExpansion,
    detect_service_branch,
    exclude_dod,
    fpds_office_bucket,
    is_dod_bucket,
)

__all__ = [
    "AgencyAggregator",
    "AgencyFinder",
    "CommandExpansion",
    "aggregate_awards",
    "count_unique_offices",
    "detect_service_branch",
    "exclude_dod",
    "fpds_office_bucket",
    "is_dod_bucket",
    "office_key",
    "page_cap",
]
