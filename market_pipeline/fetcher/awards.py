"""Paginated client for the USAspending spending_by_award search.

Public API, no key required.
Docs: https://api.usaspending.gov/docs/endpoints
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import AsyncIterator, List, Optional, Sequence, Tuple

import httpx

from ..config.config import USASPENDING_SEARCH_URL, Config
from ..models.award import AwardRecord, FetchResult
from .base import REQUEST_ERRORS, UpstreamError, build_timeout, check_status, search_retrying

logger = logging.getLogger(__name__)

CONTRACT_AWARD_TYPES = ["A", "B", "C", "D"]
IDV_AWARD_TYPES = ["IDV_A", "IDV_B", "IDV_B_A", "IDV_B_B", "IDV_B_C", "IDV_C", "IDV_D", "IDV_E"]

AGENCY_SEARCH_FIELDS = [
    "Award ID",
    "Recipient Name",
    "Award Amount",
    "Awarding Agency",
    "Awarding Sub Agency",
    "Awarding Agency Code",
    "Awarding Sub Agency Code",
    "Awarding Office",
    "NAICS Code",
    "NAICS Description",
    "Place of Performance State Code",
    "Place of Performance City Code",
    "Primary Place of Performance",
    "Set-Aside Type",
    "Number of Offers Received",
    "awarding_agency_id",
]

HIT_LIST_FIELDS = [
    "Award ID",
    "Recipient Name",
    "Award Amount",
    "Awarding Agency",
    "Awarding Sub Agency",
    "Awarding Office Name",
    "NAICS Code",
    "type_of_set_aside",
    "type_of_set_aside_description",
    "Description",
    "Award Base Action Date",
    "Start Date",
    "Place of Performance State Code",
    "generated_internal_id",
]


def fiscal_year_window(years: int, today: Optional[date] = None) -> Tuple[date, date]:
    """The last ``years`` completed federal fiscal years plus the current one to date.

    Fiscal years start on 1 October.
    """
    today = today or date.today()
    current_fy = today.year + 1 if today.month >= 10 else today.year
    return date(current_fy - years - 1, 10, 1), today


def trailing_window(days: int, today: Optional[date] = None) -> Tuple[date, date]:
    today = today or date.today()
    return today - timedelta(days=days), today


@dataclass
class AwardFilters:
    """The ``filters`` object of a spending_by_award request."""

    award_type_codes: List[str] = field(default_factory=lambda: list(CONTRACT_AWARD_TYPES))
    time_period: Optional[Tuple[date, date]] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    naics_codes: List[str] = field(default_factory=list)
    psc_codes: List[str] = field(default_factory=list)
    # IDV searches send NAICS/PSC as {"require": [...]}
    require_codes: bool = False
    set_aside_type_codes: List[str] = field(default_factory=list)
    agencies: List[dict] = field(default_factory=list)
    place_of_performance_states: List[str] = field(default_factory=list)
    recipient_states: List[str] = field(default_factory=list)

    def replace(self, **changes) -> "AwardFilters":
        return replace(self, **changes)

    @property
    def restrictiveness(self) -> int:
        """How many of NAICS/PSC, set-aside and location narrow this search."""
        return sum(
            bool(x)
            for x in (
                self.naics_codes or self.psc_codes,
                self.set_aside_type_codes,
                self.place_of_performance_states or self.recipient_states,
            )
        )

    def to_api(self) -> dict:
        filters: dict = {"award_type_codes": list(self.award_type_codes)}
        if self.time_period:
            start, end = self.time_period
            filters["time_period"] = [{"start_date": start.isoformat(), "end_date": end.isoformat()}]
        if self.min_amount is not None or self.max_amount is not None:
            bounds = {}
            if self.min_amount is not None:
                bounds["lower_bound"] = self.min_amount
            if self.max_amount is not None:
                bounds["upper_bound"] = self.max_amount
            filters["award_amounts"] = [bounds]
        if self.naics_codes:
            codes = list(self.naics_codes)
            filters["naics_codes"] = {"require": codes} if self.require_codes else codes
        if self.psc_codes:
            codes = list(self.psc_codes)
            filters["psc_codes"] = {"require": codes} if self.require_codes else codes
        if self.set_aside_type_codes:
            filters["set_aside_type_codes"] = list(self.set_aside_type_codes)
        if self.agencies:
            filters["agencies"] = list(self.agencies)
        if self.place_of_performance_states:
            filters["place_of_performance_locations"] = [
                {"country": "USA", "state": s} for s in self.place_of_performance_states
            ]
        if self.recipient_states:
            filters["recipient_locations"] = [{"country": "USA", "state": s} for s in self.recipient_states]
        return filters


class AwardFetcher:
    """Sequential, rate-limited, retrying pager over the award search.

    ``fetch`` never raises for upstream trouble: it returns what it has in a
    FetchResult. ``post_search`` is the single-request primitive and raises
    UpstreamError once its retries are spent.
    """

    source_name = "usaspending"

    def __init__(
        self,
        url: str = USASPENDING_SEARCH_URL,
        page_size: int = 100,
        timeout_seconds: float = 30.0,
        page_delay_ms: int = 100,
        max_consecutive_failures: int = 3,
        retry_wait=None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.page_size = page_size
        self.timeout = build_timeout(timeout_seconds)
        self.page_delay = page_delay_ms / 1000.0
        self.max_attempts = max_consecutive_failures
        self.retry_wait = retry_wait
        self._client = client

    @classmethod
    def from_config(cls, config: Config) -> "AwardFetcher":
        return cls(
            url=config.usaspending_url,
            page_size=config.page_size,
            timeout_seconds=config.request_timeout_seconds,
            page_delay_ms=config.page_delay_ms,
            max_consecutive_failures=config.max_consecutive_failures,
        )

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def _post_once(self, client: httpx.AsyncClient, body: dict) -> dict:
        response = await client.post(self.url, json=body, timeout=self.timeout)
        check_status(response)
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected response type {type(data).__name__}")
        return data

    async def _request(self, client: httpx.AsyncClient, body: dict, errors: Optional[List[str]] = None) -> dict:
        page = body.get("page", 1)
        attempts = 0
        try:
            async for attempt in search_retrying(self.max_attempts, self.retry_wait):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    try:
                        return await self._post_once(client, body)
                    except REQUEST_ERRORS as exc:
                        if errors is not None:
                            errors.append(f"page={page} attempt={attempts} error={type(exc).__name__}: {exc}")
                        raise
        except REQUEST_ERRORS as exc:
            raise UpstreamError(
                f"award search page {page} failed after {attempts} attempts: {exc}",
                attempts=attempts,
            ) from exc
        raise UpstreamError(f"award search page {page} returned no result")

    async def post_search(self, body: dict) -> dict:
        """One search request with retries. Raises UpstreamError when exhausted."""
        async with self._session() as client:
            return await self._request(client, body)

    async def fetch(
        self,
        filters: AwardFilters,
        fields: Sequence[str],
        max_pages: int,
        sort: str = "Award Amount",
        order: str = "desc",
    ) -> FetchResult:
        """Fetch pages 1..max_pages, stopping early on a short page or a failed page."""
        start = time.monotonic()
        result = FetchResult()
        api_filters = filters.to_api()

        async with self._session() as client:
            page = 1
            while True:
                body = {
                    "filters": api_filters,
                    "fields": list(fields),
                    "page": page,
                    "limit": self.page_size,
                    "sort": sort,
                    "order": order,
                }
                try:
                    data = await self._request(client, body, result.errors)
                except UpstreamError as exc:
                    result.stop_reason = "errors"
                    logger.error("fetch_page_failed source=%s page=%d error=%s", self.source_name, page, exc)
                    break

                rows = data.get("results") or []
                result.records.extend(AwardRecord.from_api(row) for row in rows)
                result.pages_fetched = page

                has_next = (data.get("page_metadata") or {}).get("hasNext")
                if len(rows) < self.page_size or has_next is False:
                    result.stop_reason = "last_page"
                    break
                if page >= max_pages:
                    result.stop_reason = "page_cap"
                    break
                page += 1
                if self.page_delay:
                    await asyncio.sleep(self.page_delay)

        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "fetch_complete source=%s result=%s pages=%d records=%d errors=%d duration_ms=%.0f",
            self.source_name,
            "success" if result.complete else "partial",
            result.pages_fetched,
            len(result.records),
            result.error_count,
            duration_ms,
        )
        return result
