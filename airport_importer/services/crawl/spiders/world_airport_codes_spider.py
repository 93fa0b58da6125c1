from __future__ import annotations

import asyncio
import logging
import string
import time
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from airport_importer.config import CrawlSettings, get_settings
from airport_importer.models.airport import AirportRecord

from ..base import ResultAccumulator, Spider, canonical_json
from ..client import CrawlClient, PendingRequest
from ..mapper import RecordMapper
from ..normalize import clear_text, decode
from ..page import Page

logger = logging.getLogger(__name__)

SEED_URI_TEMPLATE = "/alphabetical/airport-code/{letter}.html"
INFO_MARKER_SEL = 'img[src="/images/info.gif"]'
DETAIL_SEL = ".airportdetails span.detail"
WEBSITE_LABEL = ": Visit Website (?)"


class CrawlState(str, Enum):
    IDLE = "idle"
    ENUMERATING = "enumerating"
    AWAITING_INDEX_BATCH = "awaiting_index_batch"
    COMPLETE = "complete"


class WorldAirportCodesSpider(Spider):
    """Imports every airport listed on World Airport Codes.

    The crawl has two levels: one index page per letter a..z, each linking
    (through an "info" icon) to the detail pages of its airports. Each index
    page schedules its detail pages as a nested batch and only completes once
    all of them are imported.

    Detail pages hold 16 ``span.detail`` nodes whose order defines the fields
    of the record (see ``mapper.AIRPORT_SCHEMA``).
    """

    name = "world_airport_codes"

    def __init__(
        self,
        *,
        settings: Optional[CrawlSettings] = None,
        client: Optional[CrawlClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        mapper: Optional[RecordMapper] = None,
        accumulator: Optional[ResultAccumulator] = None,
        verbose: bool = True,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client
        self.transport = transport
        self.mapper = mapper or RecordMapper()
        self.accumulator = accumulator if accumulator is not None else ResultAccumulator()
        self.verbose = verbose
        self.state = CrawlState.IDLE
        self.elapsed: Optional[float] = None

    # --- Public API ---
    def fetch(self) -> List[Dict[str, Any]]:
        """Run the whole import and return the airports as dicts."""
        return self.normalize_records(asyncio.run(self.run()))

    def get_json(self) -> str:
        """Run the whole import and return the airports as a JSON array."""
        return canonical_json(self.fetch())

    @property
    def records(self) -> List[AirportRecord]:
        return list(self.accumulator.snapshot())

    async def run(self) -> List[AirportRecord]:
        if self.state is not CrawlState.IDLE:
            raise RuntimeError(f"{self.name} spider already ran (state: {self.state.value})")

        start = time.monotonic()
        self._log("Starting import...")
        self.state = CrawlState.ENUMERATING
        async with self._build_client() as client:
            self.client = client
            batch = self.seed_requests()
            self.state = CrawlState.AWAITING_INDEX_BATCH
            await client.send(batch)

        self.elapsed = time.monotonic() - start
        records = self.accumulator.freeze()
        self.state = CrawlState.COMPLETE
        self._log(
            "Import finished. %d airports imported in %.2f minutes.",
            len(records),
            self.elapsed / 60,
        )
        return list(records)

    def seed_requests(self) -> List[PendingRequest]:
        return [
            self.client.get(SEED_URI_TEMPLATE.format(letter=letter), self.process_index_page)
            for letter in string.ascii_lowercase
        ]

    async def process_index_page(self, page: Page) -> int:
        self._log("Processing %s...", page.effective_url)
        uris = self.extract_detail_links(page)
        batch = [self.client.get(uri, self.process_airport_page) for uri in uris]
        await self.client.send(batch)
        return len(batch)

    def process_airport_page(self, page: Page) -> AirportRecord:
        self._log("Processing %s...", page.effective_url)
        record = self.parse_airport_page(page)
        self.accumulator.append(record)
        self._log("New airport: %s (%s).", record.airportName, record.airportCode)
        return record

    # --- Parsing ---
    @staticmethod
    def extract_detail_links(page: Page) -> List[str]:
        uris: List[str] = []
        for marker in page.css(INFO_MARKER_SEL):
            href = page.parent_link(marker)
            if not href:
                continue
            uris.append(decode(href))
        return uris

    @staticmethod
    def extract_detail_values(page: Page) -> List[Optional[str]]:
        values: List[Optional[str]] = []
        for node in page.css(DETAIL_SEL):
            text = page.text(node)
            if " ".join(text.split()) == WEBSITE_LABEL:
                # The label is not the value; the website is the link target
                href = page.attr(node.css_first("a"), "href")
                values.append(decode(href).strip() or None if href else None)
            else:
                values.append(clear_text(text))
        return values

    def parse_airport_page(self, page: Page) -> AirportRecord:
        values = self.extract_detail_values(page)
        return self.mapper.map(values, source_url=page.effective_url)

    # --- Internals ---
    def _build_client(self) -> CrawlClient:
        if self.client is not None:
            return self.client
        s = self.settings
        return CrawlClient(
            s.base_url,
            backoff_pattern=s.backoff_pattern,
            timeout=s.timeout,
            concurrency=s.concurrency,
            max_attempts=s.max_attempts,
            backoff_factor=s.backoff_factor,
            headers={"User-Agent": s.user_agent},
            transport=self.transport,
        )

    def _log(self, message: str, *args: Any) -> None:
        logger.log(logging.INFO if self.verbose else logging.DEBUG, message, *args)
