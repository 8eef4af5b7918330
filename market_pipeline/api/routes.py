"""HTTP routes. Bodies and responses use camelCase field names."""

import logging

from fastapi import APIRouter, Depends, Request

from ..aggregator.agency_search import AgencyFinder
from ..fetcher.awards import AwardFetcher
from ..fetcher.idv import IDVSearchOptions, search_idv_contracts
from ..joiners.contractors import ContractorDirectory, ContractorQuery
from ..joiners.datasets import AuxiliaryDatasets
from ..models.core_inputs import CoreInputs
from ..reports.assembler import ReportAssembler
from ..reports.validation import ReportRequest
from ..scoring.hit_list import HitListFinder
from .deps import get_agency_finder, get_assembler, get_datasets, get_fetcher, get_hit_list_finder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/usaspending/find-agencies")
async def find_agencies(inputs: CoreInputs, finder: AgencyFinder = Depends(get_agency_finder)):
    result = await finder.find(inputs)
    return result.to_wire()


@router.post("/usaspending/find-hit-list")
async def find_hit_list(inputs: CoreInputs, finder: HitListFinder = Depends(get_hit_list_finder)):
    result = await finder.find(inputs)
    return {"success": True, **result.to_wire()}


@router.post("/reports/generate-all")
async def generate_all(request: ReportRequest, assembler: ReportAssembler = Depends(get_assembler)):
    logger.info(
        "generate_all_request agencies=%d with_agency_data=%s",
        len(request.selected_agencies),
        request.selected_agency_data is not None,
    )
    report = await assembler.assemble(request.inputs, request.selected_agencies, request.selected_agency_data)
    return {"success": True, "report": report.to_wire()}


@router.get("/contractors")
async def search_contractors(request: Request, datasets: AuxiliaryDatasets = Depends(get_datasets)):
    query = ContractorQuery.model_validate(dict(request.query_params))
    page = ContractorDirectory(datasets).search(query)
    return {"success": True, **page.to_wire()}


@router.post("/idv-search")
async def idv_search(options: IDVSearchOptions, fetcher: AwardFetcher = Depends(get_fetcher)):
    result = await search_idv_contracts(fetcher, options)
    return {"success": True, **result.to_wire()}
