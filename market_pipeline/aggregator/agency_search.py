"""Find-agencies pipeline: search, widen until enough offices, aggregate, expand."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from ..config.config import Config
from ..fetcher.awards import AGENCY_SEARCH_FIELDS, AwardFetcher, AwardFilters, fiscal_year_window
from ..fetcher.base import UpstreamError
from ..fetcher.fpds import FpdsFetcher
from ..joiners.commands import CommandDirectory
from ..joiners.datasets import AuxiliaryDatasets
from ..models.agency import AgencyBucket, AgencySearchResult, AlternativeSearch
from ..models.award import AwardRecord, FetchResult
from ..models.core_inputs import BusinessType, CoreInputs, VeteranStatus
from ..taxonomy.geography import bordering_states, state_from_zip, states_by_tier
from ..taxonomy.naics import NAICS_EXPANSION, build_naics_filter, industry_name
from ..taxonomy.psc import normalize_psc
from ..taxonomy.set_aside import (
    ALL_SMALL_BUSINESS_CODES,
    BROADENABLE_TYPES,
    SMALL_BUSINESS_CODES,
    set_aside_codes,
)
from .buckets import aggregate_awards, count_unique_offices
from .command_expansion import CommandExpansion, exclude_dod, fpds_office_bucket

logger = logging.getLogger(__name__)

FISCAL_YEARS_SEARCHED = 3
ESTIMATED_ALTERNATIVES = 3


def page_cap(restrictiveness: int) -> int:
    """Narrower searches need more pages to surface enough offices."""
    if restrictiveness >= 3:
        return 50
    if restrictiveness == 2:
        return 25
    return 10


@dataclass
class _SearchState:
    """Running state of one find() call."""

    records: List[AwardRecord]
    offices: int
    location_tier: int = 1
    was_auto_adjusted: bool = False
    fallback_message: Optional[str] = None
    pages_fetched: int = 0
    fetch_errors: int = 0
    messages: List[str] = field(default_factory=list)

    def tally(self, result: FetchResult) -> None:
        self.pages_fetched += result.pages_fetched
        self.fetch_errors += result.error_count

    def adopt(self, result: FetchResult, message: str, location_tier: Optional[int] = None) -> bool:
        """Switch to ``result`` if it reaches more offices than what we have."""
        offices = count_unique_offices(result.records)
        if not result.records or offices <= self.offices:
            return False
        self.records = result.records
        self.offices = offices
        self.was_auto_adjusted = True
        self.fallback_message = message.format(offices=offices)
        if location_tier is not None:
            self.location_tier = location_tier
        return True


class AgencyFinder:
    """Ranked buying offices for a business's NAICS/PSC, set-aside and location.

    The first search uses every filter the inputs allow. While fewer than
    ``min_agencies_target`` distinct offices turn up, the search widens one
    step at a time (small-business set-asides in the same state, bordering
    states, the extended region, nationwide, every small-business program,
    no set-aside) and keeps a step only if it finds more offices. Generic
    DoD buckets are then replaced with command-level offices, from FPDS
    when an ``fpds`` fetcher is given and from the command directory
    otherwise.
    """

    def __init__(
        self,
        fetcher: AwardFetcher,
        datasets: AuxiliaryDatasets,
        min_agencies_target: int = 20,
        command_expansion_limit: int = 5,
        today: Optional[date] = None,
        fpds: Optional[FpdsFetcher] = None,
    ):
        self.fetcher = fetcher
        self.fpds = fpds
        self.datasets = datasets
        self.min_agencies_target = min_agencies_target
        self.expansion = CommandExpansion(CommandDirectory(datasets), limit=command_expansion_limit)
        self.today = today

    @classmethod
    def from_config(cls, config: Config, fetcher: AwardFetcher, datasets: AuxiliaryDatasets) -> "AgencyFinder":
        return cls(
            fetcher,
            datasets,
            min_agencies_target=config.min_agencies_target,
            command_expansion_limit=config.command_expansion_limit,
            fpds=FpdsFetcher.from_config(config) if config.fpds_enabled else None,
        )

    def build_filters(self, inputs: CoreInputs, naics_codes: List[str], state: Optional[str]) -> AwardFilters:
        filters = AwardFilters(
            time_period=fiscal_year_window(FISCAL_YEARS_SEARCHED, self.today),
            naics_codes=list(naics_codes),
            set_aside_type_codes=set_aside_codes(inputs.business_type, inputs.veteran_status),
        )
        if not naics_codes and not inputs.naics_code and inputs.psc_code:
            filters.psc_codes = [normalize_psc(inputs.psc_code)]
        if state:
            filters.place_of_performance_states = [state]
        return filters

    async def _search(self, filters: AwardFilters, max_pages: int, state: _SearchState) -> FetchResult:
        result = await self.fetcher.fetch(filters, AGENCY_SEARCH_FIELDS, max_pages)
        state.tally(result)
        return result

    async def find(self, inputs: CoreInputs) -> AgencySearchResult:
        """Run the search. Raises UpstreamError only if the very first page never arrives."""
        naics = build_naics_filter(inputs.naics_code)
        user_state = state_from_zip(inputs.zip_code)
        filters = self.build_filters(inputs, list(naics.codes), user_state)

        first = await self.fetcher.fetch(filters, AGENCY_SEARCH_FIELDS, page_cap(filters.restrictiveness))
        if first.pages_fetched == 0 and not first.complete:
            raise UpstreamError(
                "award search unavailable: " + (first.errors[-1] if first.errors else "no response"),
                attempts=first.error_count,
            )
        state = _SearchState(records=first.records, offices=count_unique_offices(first.records))
        state.tally(first)
        logger.info(
            "agency_search_initial records=%d offices=%d state=%s",
            len(first.records),
            state.offices,
            user_state or "none",
        )

        if state.offices < self.min_agencies_target:
            filters = await self._widen(inputs, filters, user_state, state)

        message = naics.correction_message
        if state.was_auto_adjusted and state.fallback_message:
            message = f"{message}\n\n{state.fallback_message}" if message else state.fallback_message

        buckets = aggregate_awards(state.records)
        fpds_offices = await self._fpds_offices(inputs, filters, buckets)
        agencies = self.expansion.apply(buckets, fpds_offices)
        if inputs.exclude_dod:
            agencies = exclude_dod(agencies)

        alternatives: List[AlternativeSearch] = []
        if not agencies:
            alternatives = await self.alternative_searches(inputs)

        result = AgencySearchResult(
            agencies=agencies,
            total_count=len(agencies),
            total_spending=sum(a.spending for a in agencies),
            naics_correction_message=message,
            naics_filter_dropped=naics.naics_filter_dropped,
            alternative_searches=alternatives,
            was_auto_adjusted=state.was_auto_adjusted,
            fallback_message=state.fallback_message,
            location_tier=state.location_tier,
            searched_state=user_state,
            pages_fetched=state.pages_fetched,
            fetch_errors=state.fetch_errors,
        )
        logger.info(
            "agency_search_complete agencies=%d spending=%.2f tier=%d adjusted=%s pages=%d errors=%d",
            result.total_count,
            result.total_spending,
            result.location_tier,
            result.was_auto_adjusted,
            result.pages_fetched,
            result.fetch_errors,
        )
        return result

    async def _fpds_offices(
        self, inputs: CoreInputs, filters: AwardFilters, buckets: List[AgencyBucket]
    ) -> Optional[List[AgencyBucket]]:
        """Command-level DoD offices from FPDS, when some bucket needs them."""
        if self.fpds is None or inputs.exclude_dod:
            return None
        if not any(self.expansion.needs_command_detail(b) for b in buckets):
            return None
        codes = filters.naics_codes or ([inputs.naics_code] if inputs.naics_code else [])
        offices = await self.fpds.offices_for_naics_codes(codes)
        return [fpds_office_bucket(o) for o in offices]

    async def _widen(
        self, inputs: CoreInputs, filters: AwardFilters, user_state: Optional[str], state: _SearchState
    ) -> AwardFilters:
        target = self.min_agencies_target
        broadened_to_small_business = False

        if user_state:
            tiers = states_by_tier(user_state)
            if (
                state.offices < target
                and inputs.business_type != BusinessType.SMALL_BUSINESS
                and filters.set_aside_type_codes
            ):
                local = filters.replace(set_aside_type_codes=list(SMALL_BUSINESS_CODES))
                result = await self._search(local, 25, state)
                if state.adopt(result, f"Showing Small Business opportunities in {user_state} ({{offices}} agencies found)."):
                    broadened_to_small_business = True
                    filters = local

            if state.offices < target:
                wider = filters.replace(place_of_performance_states=tiers.tier2)
                result = await self._search(wider, 25, state)
                state.adopt(
                    result,
                    f"Expanded to {len(tiers.tier2)} neighboring states ({{offices}} agencies found).",
                    location_tier=2,
                )

            if state.offices < target:
                wider = filters.replace(place_of_performance_states=tiers.tier3)
                result = await self._search(wider, 35, state)
                state.adopt(
                    result,
                    f"Expanded to {len(tiers.tier3)}-state region ({{offices}} agencies found).",
                    location_tier=3,
                )

            if state.offices < target:
                nationwide = filters.replace(place_of_performance_states=[])
                result = await self._search(nationwide, 50, state)
                state.adopt(result, "Showing nationwide results ({offices} agencies found).", location_tier=4)

        if state.offices < target and inputs.naics_code:
            nationwide = filters.replace(place_of_performance_states=[])
            if not broadened_to_small_business and inputs.business_type in BROADENABLE_TYPES:
                broad = nationwide.replace(set_aside_type_codes=list(ALL_SMALL_BUSINESS_CODES))
                result = await self._search(broad, 35, state)
                state.adopt(result, "Showing all small business certification types ({offices} agencies found).")

            if state.offices < target:
                open_search = nationwide.replace(set_aside_type_codes=[])
                result = await self._search(open_search, 35, state)
                state.adopt(result, "Showing all contracts in this NAICS ({offices} agencies found).")

        return filters

    def suggest_alternatives(self, inputs: CoreInputs) -> List[AlternativeSearch]:
        """Up to seven relaxed versions of the search, narrowest relaxation first."""
        naics = inputs.naics_code
        zip_code = inputs.zip_code
        business = inputs.business_type.value
        veteran = inputs.veteran_status.value if inputs.veteran_status else None
        prefix = naics[:3] if naics and len(naics) >= 4 and NAICS_EXPANSION.get(naics[:3]) else None
        industry = (industry_name(prefix) or f"{prefix}xx industry") if prefix else None

        def filters_for(naics_code, keep_business, zip_value):
            return {
                "naicsCode": naics_code,
                "businessType": business if keep_business else None,
                "veteranStatus": veteran if keep_business else None,
                "zipCode": zip_value,
            }

        out: List[AlternativeSearch] = []
        if zip_code:
            out.append(
                AlternativeSearch(
                    label="Expand to All Locations",
                    description=(
                        f"Remove location restriction ({zip_code}) but keep your NAICS code "
                        "and business type filters"
                    ),
                    filters=filters_for(naics, True, None),
                )
            )
        if prefix:
            out.append(
                AlternativeSearch(
                    label=f"Expand to {prefix}xx Industry ({industry})",
                    description=f"Search all codes in the {prefix}xx industry category instead of just {naics}",
                    filters=filters_for(prefix, True, zip_code),
                )
            )
        out.append(
            AlternativeSearch(
                label="Remove Business Type Filter",
                description="Search all business types but keep your NAICS code and location filters",
                filters=filters_for(naics, False, zip_code),
            )
        )
        if zip_code:
            out.append(
                AlternativeSearch(
                    label="Keep NAICS Only",
                    description=f"Remove location and business type filters, search only by NAICS code {naics}",
                    filters=filters_for(naics, False, None),
                )
            )
        if prefix and zip_code:
            out.append(
                AlternativeSearch(
                    label=f"Expand to {prefix}xx Industry, All Locations",
                    description=f"Search all codes in {prefix}xx industry across all locations",
                    filters=filters_for(prefix, True, None),
                )
            )
        if naics and zip_code:
            out.append(
                AlternativeSearch(
                    label="Keep Business Type Only",
                    description="Remove NAICS and location filters, search only by your business type",
                    filters=filters_for(None, True, None),
                )
            )
        out.append(
            AlternativeSearch(
                label="Remove All Filters",
                description="Perform the broadest search with no filters applied",
                filters=filters_for(None, False, None),
            )
        )
        return out

    def _alternative_filters(self, alt: AlternativeSearch) -> AwardFilters:
        values = alt.filters
        naics = build_naics_filter(values.get("naicsCode"))
        codes: List[str] = []
        if values.get("businessType"):
            veteran = values.get("veteranStatus")
            codes = set_aside_codes(BusinessType(values["businessType"]), VeteranStatus(veteran) if veteran else None)
        states: List[str] = []
        home = state_from_zip(values.get("zipCode"))
        if home:
            states = [home] + bordering_states(home)
        return AwardFilters(
            time_period=fiscal_year_window(FISCAL_YEARS_SEARCHED, self.today),
            naics_codes=list(naics.codes),
            set_aside_type_codes=codes,
            place_of_performance_states=states,
        )

    async def estimate_results(self, alt: AlternativeSearch) -> int:
        """Rough result count from one page: a full page reads as "500+"."""
        result = await self.fetcher.fetch(self._alternative_filters(alt), ["Award ID"], max_pages=1)
        found = len(result.records)
        if found >= self.fetcher.page_size:
            return 500
        return found * 5

    async def alternative_searches(self, inputs: CoreInputs) -> List[AlternativeSearch]:
        alternatives = self.suggest_alternatives(inputs)
        for alt in alternatives[:ESTIMATED_ALTERNATIVES]:
            alt.estimated_results = await self.estimate_results(alt)
        logger.info("agency_search_alternatives count=%d", len(alternatives))
        return alternatives
