"""Client for the FPDS (Federal Procurement Data System) ATOM feed.

USAspending rolls most DoD awards up to "Department of the Navy" and the
like; FPDS keeps the real contracting office on every award. Public feed,
no key required, ten entries per page with a ``<link rel="next">`` to the
following page.
"""

import asyncio
import logging
import math
import time
import xml.etree.ElementTree as ET
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Iterable, List, Optional

import httpx

from ..config.config import FPDS_FEED_URL, Config
from ..taxonomy.office_names import clean_fpds_office_name
from .base import REQUEST_ERRORS, UpstreamError, build_timeout, check_status, search_retrying

logger = logging.getLogger(__name__)

FPDS_PAGE_SIZE = 10
FPDS_MAX_NAICS_CODES = 3


@dataclass
class FpdsOffice:
    """One contracting office with the obligations seen for it."""

    office_id: str
    office_name: str
    agency_id: str = ""
    agency_name: str = ""
    department_name: str = ""
    obligated_amount: float = 0.0
    contract_count: int = 1

    @property
    def key(self) -> str:
        return f"{self.office_id}|{self.office_name}"

    def absorb(self, other: "FpdsOffice") -> None:
        self.obligated_amount += other.obligated_amount
        self.contract_count += other.contract_count


@dataclass
class FpdsPage:
    offices: List[FpdsOffice]
    entries: int
    next_url: Optional[str] = None


def _amount(text: Optional[str]) -> float:
    try:
        return float(text) if text else 0.0
    except ValueError:
        return 0.0


def parse_entry(entry: ET.Element) -> Optional[FpdsOffice]:
    """Office and obligated amount of one feed entry; None without purchaser data."""
    purchaser = entry.find(".//{*}purchaserInformation")
    if purchaser is None:
        return None
    agency = purchaser.find("{*}contractingOfficeAgencyID")
    office = purchaser.find("{*}contractingOfficeID")
    amount = entry.find(".//{*}dollarValues/{*}obligatedAmount")
    return FpdsOffice(
        office_id=(office.text or "").strip() if office is not None else "",
        office_name=clean_fpds_office_name(office.get("name", "") if office is not None else "") or "Unknown Office",
        agency_id=(agency.text or "").strip() if agency is not None else "",
        agency_name=agency.get("name", "Unknown") if agency is not None else "Unknown",
        department_name=agency.get("departmentName", "") if agency is not None else "",
        obligated_amount=_amount(amount.text if amount is not None else None),
    )


def parse_feed(xml_text: str) -> FpdsPage:
    """Parse one feed page. Raises ValueError on malformed XML."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise ValueError(f"malformed FPDS feed: {exc}") from exc

    entries = root.findall("{*}entry")
    offices = [office for office in (parse_entry(e) for e in entries) if office is not None]
    next_url = None
    for link in root.findall("{*}link"):
        if link.get("rel") == "next" and link.get("href"):
            next_url = link.get("href")
            break
    return FpdsPage(offices=offices, entries=len(entries), next_url=next_url)


def merge_offices(offices: Iterable[FpdsOffice], into: Optional[Dict[str, FpdsOffice]] = None) -> Dict[str, FpdsOffice]:
    """Fold offices by key, summing obligations and counts."""
    merged = into if into is not None else {}
    for office in offices:
        existing = merged.get(office.key)
        if existing is None:
            merged[office.key] = FpdsOffice(**vars(office))
        else:
            existing.absorb(office)
    return merged


def fpds_naics_codes(codes: Iterable[str]) -> List[str]:
    """FPDS only understands full 6-digit NAICS codes; at most three are queried."""
    six_digit = [c.strip() for c in codes if c and len(c.strip()) == 6 and c.strip().isdigit()]
    return list(dict.fromkeys(six_digit))[:FPDS_MAX_NAICS_CODES]


class FpdsFetcher:
    """Pager over the FPDS feed, summarizing awards per contracting office.

    Like AwardFetcher.fetch, the office queries never raise for upstream
    trouble: a failed page ends the query with what was already read.
    """

    source_name = "fpds"

    def __init__(
        self,
        url: str = FPDS_FEED_URL,
        max_records: int = 100,
        timeout_seconds: float = 30.0,
        page_delay_ms: int = 100,
        max_attempts: int = 3,
        retry_wait=None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.max_records = max_records
        self.timeout = build_timeout(timeout_seconds)
        self.page_delay = page_delay_ms / 1000.0
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait
        self._client = client

    @classmethod
    def from_config(cls, config: Config) -> "FpdsFetcher":
        return cls(
            url=config.fpds_url,
            max_records=config.fpds_max_records,
            timeout_seconds=config.request_timeout_seconds,
            page_delay_ms=config.page_delay_ms,
            max_attempts=config.max_consecutive_failures,
        )

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            yield client

    async def _get_once(self, client: httpx.AsyncClient, url: str, params: Optional[dict]) -> FpdsPage:
        response = await client.get(url, params=params, headers={"Accept": "application/xml"}, timeout=self.timeout)
        check_status(response)
        return parse_feed(response.text)

    async def _get_page(self, client: httpx.AsyncClient, url: str, params: Optional[dict]) -> FpdsPage:
        attempts = 0
        try:
            async for attempt in search_retrying(self.max_attempts, self.retry_wait):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    return await self._get_once(client, url, params)
        except REQUEST_ERRORS as exc:
            raise UpstreamError(f"FPDS feed failed after {attempts} attempts: {exc}", attempts=attempts) from exc
        raise UpstreamError("FPDS feed returned no result")

    async def offices_for_naics(self, naics_code: str) -> Dict[str, FpdsOffice]:
        """Offices behind the most recent awards for one NAICS code, keyed by office."""
        start = time.monotonic()
        offices: Dict[str, FpdsOffice] = {}
        max_pages = math.ceil(self.max_records / FPDS_PAGE_SIZE)
        url = self.url
        params: Optional[dict] = {"FEEDNAME": "PUBLIC", "q": f"PRINCIPAL_NAICS_CODE:{naics_code}"}
        fetched = 0
        pages = 0

        async with self._session() as client:
            while pages < max_pages and fetched < self.max_records:
                try:
                    page = await self._get_page(client, url, params)
                except UpstreamError as exc:
                    logger.warning("fpds_page_failed naics=%s page=%d error=%s", naics_code, pages + 1, exc)
                    break
                if page.entries == 0:
                    break
                pages += 1
                fetched += page.entries
                merge_offices(page.offices, offices)
                if not page.next_url:
                    break
                # The next link carries the whole query
                url, params = page.next_url, None
                if self.page_delay:
                    await asyncio.sleep(self.page_delay)

        logger.info(
            "fpds_fetch_complete naics=%s pages=%d entries=%d offices=%d duration_ms=%.0f",
            naics_code,
            pages,
            fetched,
            len(offices),
            (time.monotonic() - start) * 1000,
        )
        return offices

    async def offices_for_naics_codes(self, codes: Iterable[str]) -> List[FpdsOffice]:
        """Offices across up to three 6-digit codes, merged by office."""
        query_codes = fpds_naics_codes(codes)
        if not query_codes:
            logger.info("fpds_skipped reason=no_six_digit_naics")
            return []
        combined: Dict[str, FpdsOffice] = {}
        for code in query_codes:
            merge_offices((await self.offices_for_naics(code)).values(), combined)
        return list(combined.values())
