"""Assemble the combined nine-section report for a set of selected agencies."""

import logging
from datetime import date
from typing import Optional, Sequence

from ..fetcher.awards import AwardFetcher
from ..joiners.commands import CommandDirectory
from ..joiners.contractors import PrimeContractorDirectory
from ..joiners.datasets import AuxiliaryDatasets
from ..joiners.december_spend import DecemberSpendDirectory
from ..joiners.forecasts import ForecastDirectory
from ..joiners.pain_points import PainPointDirectory
from ..joiners.tribal import TribalDirectory
from ..models.agency import AgencyBucket
from ..models.core_inputs import CoreInputs
from ..models.report import ComprehensiveReport, ReportMetadata
from . import sections

logger = logging.getLogger(__name__)


class ReportAssembler:
    """Builds a ``ComprehensiveReport`` from one snapshot of the auxiliary datasets.

    ``idv_fetcher`` is optional; without it the IDV section is returned
    empty with an "unavailable" note, as it is when the award search fails.
    """

    def __init__(
        self,
        datasets: AuxiliaryDatasets,
        idv_fetcher: Optional[AwardFetcher] = None,
        today: Optional[date] = None,
    ):
        self.commands = CommandDirectory(datasets)
        self.pain_points = PainPointDirectory(datasets)
        self.primes = PrimeContractorDirectory(datasets)
        self.forecasts = ForecastDirectory(datasets)
        self.december = DecemberSpendDirectory(datasets)
        self.tribal = TribalDirectory(datasets)
        self.idv_fetcher = idv_fetcher
        self.today = today

    async def assemble(
        self,
        inputs: CoreInputs,
        selected_agencies: Sequence[str],
        agency_data: Optional[Sequence[AgencyBucket]] = None,
    ) -> ComprehensiveReport:
        profiles = sections.agency_profiles(self.pain_points, selected_agencies, agency_data)

        report = ComprehensiveReport(
            government_buyers=sections.government_buyers_section(self.commands, selected_agencies, agency_data),
            tier2_subcontracting=sections.tier2_section(self.primes, inputs),
            forecast_list=sections.forecast_section(
                self.forecasts, self.commands, inputs, selected_agencies, agency_data, self.today
            ),
            agency_needs=sections.agency_needs_section(self.pain_points, inputs, selected_agencies, agency_data),
            agency_pain_points=sections.pain_points_section(profiles, inputs),
            december_spend=sections.december_spend_section(self.december, inputs, selected_agencies, self.today),
            tribal_contracting=sections.tribal_section(self.tribal, inputs, selected_agencies, agency_data),
            prime_contractor=sections.prime_contractor_section(
                self.primes, self.pain_points, inputs, selected_agencies, profiles
            ),
            idv_contracts=await sections.idv_section(self.idv_fetcher, inputs),
            metadata=ReportMetadata(
                inputs=inputs,
                selected_agencies=list(selected_agencies),
                total_agencies=len(selected_agencies),
            ),
        )

        logger.info(
            "report_assembled agencies=%d buyers=%d needs=%d pain_points=%d forecasts=%d idv=%d",
            len(selected_agencies),
            len(report.government_buyers.agencies),
            report.agency_needs.summary.total_needs,
            report.agency_pain_points.summary.total_pain_points,
            report.forecast_list.summary.total_forecasts,
            report.idv_contracts.summary.total_contracts,
        )
        return report
