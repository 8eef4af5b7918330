"""Request dependencies.

Everything long-lived hangs off ``app.state``; tests swap any of it
through ``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from ..aggregator.agency_search import AgencyFinder
from ..config.config import Config
from ..fetcher.awards import AwardFetcher
from ..joiners.datasets import AuxiliaryDatasets, DatasetStore
from ..reports.assembler import ReportAssembler
from ..scoring.hit_list import HitListFinder


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_store(request: Request) -> DatasetStore:
    return request.app.state.store


def get_fetcher(request: Request) -> AwardFetcher:
    return request.app.state.fetcher


def get_datasets(store: DatasetStore = Depends(get_store)) -> AuxiliaryDatasets:
    """One snapshot per request, so a reload mid-request changes nothing."""
    return store.current


def get_agency_finder(
    config: Config = Depends(get_config),
    fetcher: AwardFetcher = Depends(get_fetcher),
    datasets: AuxiliaryDatasets = Depends(get_datasets),
) -> AgencyFinder:
    return AgencyFinder.from_config(config, fetcher, datasets)


def get_hit_list_finder(
    fetcher: AwardFetcher = Depends(get_fetcher),
    datasets: AuxiliaryDatasets = Depends(get_datasets),
) -> HitListFinder:
    return HitListFinder(fetcher, datasets)


def get_assembler(
    fetcher: AwardFetcher = Depends(get_fetcher),
    datasets: AuxiliaryDatasets = Depends(get_datasets),
) -> ReportAssembler:
    return ReportAssembler(datasets, idv_fetcher=fetcher)
