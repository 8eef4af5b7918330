"""Hit list: recent small-to-mid awards in the user's market, scored and ranked."""

import logging
from datetime import date
from typing import Optional

from ..fetcher.awards import HIT_LIST_FIELDS, AwardFetcher, AwardFilters, trailing_window
from ..fetcher.base import UpstreamError
from ..joiners.datasets import AuxiliaryDatasets
from ..joiners.hit_list import CuratedHitList, to_opportunity
from ..models.core_inputs import CoreInputs
from ..models.opportunity import HitListResult
from ..taxonomy.naics import build_naics_filter
from ..taxonomy.set_aside import set_aside_codes
from .engine import DEFAULT_POLICY, ScoringPolicy, rank_opportunities, score_award

logger = logging.getLogger(__name__)

WINDOW_DAYS = 730
MIN_AMOUNT = 10_000
MAX_AMOUNT = 10_000_000
SECTOR_CODE_LIMIT = 20
MAX_SCORED = 50


class HitListFinder:
    def __init__(
        self,
        fetcher: AwardFetcher,
        datasets: AuxiliaryDatasets,
        policy: ScoringPolicy = DEFAULT_POLICY,
        today: Optional[date] = None,
    ):
        self.fetcher = fetcher
        self.curated = CuratedHitList(datasets)
        self.policy = policy
        self.today = today

    def build_filters(self, inputs: CoreInputs) -> AwardFilters:
        naics = build_naics_filter(inputs.naics_code, sector_limit=SECTOR_CODE_LIMIT)
        return AwardFilters(
            time_period=trailing_window(WINDOW_DAYS, self.today),
            min_amount=MIN_AMOUNT,
            max_amount=MAX_AMOUNT,
            naics_codes=list(naics.codes),
            set_aside_type_codes=set_aside_codes(inputs.business_type, inputs.veteran_status),
        )

    async def find(self, inputs: CoreInputs) -> HitListResult:
        """Curated matches first, then up to 50 scored awards from one page of results.

        Raises UpstreamError when the award search returns nothing at all.
        """
        naics = build_naics_filter(inputs.naics_code, sector_limit=SECTOR_CODE_LIMIT)
        filters = self.build_filters(inputs)
        result = await self.fetcher.fetch(filters, HIT_LIST_FIELDS, max_pages=1)
        if result.pages_fetched == 0 and not result.complete:
            raise UpstreamError(
                "hit list search unavailable: " + (result.errors[-1] if result.errors else "no response"),
                attempts=result.error_count,
            )

        scored = [
            score_award(record, index, inputs.naics_code or "", self.policy)
            for index, record in enumerate(result.records)
        ]
        ranked = rank_opportunities(scored, self.policy)[:MAX_SCORED]
        curated = [to_opportunity(entry) for entry in self.curated.for_inputs(inputs)]

        logger.info(
            "hit_list_complete scored=%d kept=%d curated=%d naics_dropped=%s",
            len(scored),
            len(ranked),
            len(curated),
            naics.naics_filter_dropped,
        )
        return HitListResult(
            opportunities=curated + ranked,
            metadata={
                "totalFound": len(scored),
                "curatedCount": len(curated),
                "naicsFilterDropped": naics.naics_filter_dropped,
                "naicsCorrectionMessage": naics.correction_message,
                "searchCriteria": {
                    "naicsCode": inputs.naics_code,
                    "businessType": inputs.business_type.value,
                    "setAsideTypes": filters.set_aside_type_codes,
                    "amountRange": "$10K - $10M",
                    "timePeriod": "Last 24 months",
                },
                "pagesFetched": result.pages_fetched,
                "fetchErrors": result.error_count,
            },
        )
