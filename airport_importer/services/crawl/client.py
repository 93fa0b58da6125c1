"""Batched async HTTP client used by the importer.

Requests are queued with ``get(uri, callback)`` and issued with
``await send(batch)``. ``send`` returns once every callback of the batch has
finished, including any batches those callbacks send in turn, so a callback
can fan out into child requests and join on them before returning.

Concurrency is bounded by a semaphore held only around the HTTP exchange;
callbacks run outside of it, which keeps nested batches from starving their
parents.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Pattern, Union

import httpx

from .base import TransportError
from .page import Page

logger = logging.getLogger(__name__)

Callback = Callable[[Page], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class PendingRequest:
    uri: str
    callback: Callback


class CrawlClient:
    def __init__(
        self,
        base_url: str,
        *,
        backoff_pattern: Optional[Union[str, Pattern[str]]] = None,
        timeout: float = 15.0,
        concurrency: int = 8,
        max_attempts: int = 5,
        backoff_factor: float = 1.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        if isinstance(backoff_pattern, str):
            backoff_pattern = re.compile(backoff_pattern)
        self.backoff_pattern = backoff_pattern
        self.timeout = float(timeout)
        self.max_attempts = max(1, int(max_attempts))
        self.backoff_factor = float(backoff_factor)
        self.headers = headers or {"User-Agent": "WAC-Importer/0.1"}
        self._transport = transport
        self._sleep = sleep
        self._sem = asyncio.Semaphore(max(1, int(concurrency)))
        self._client: Optional[httpx.AsyncClient] = None
        self.requests_sent = 0

    async def __aenter__(self) -> "CrawlClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.headers,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # --- Public API ---
    def get(self, uri: str, callback: Callback) -> PendingRequest:
        return PendingRequest(uri=uri, callback=callback)

    async def send(self, batch: Iterable[PendingRequest]) -> List[Any]:
        """Issue a batch and wait for all of its callbacks.

        The first failure propagates and cancels the rest of the batch.
        Returns the callback results in batch order.
        """
        requests = list(batch)
        if not requests:
            return []
        tasks = [asyncio.ensure_future(self._dispatch(r)) for r in requests]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def fetch(self, uri: str) -> Page:
        """GET ``uri`` relative to the base URL, retrying transient failures."""
        if self._client is None:
            raise RuntimeError("CrawlClient must be used as an async context manager")
        attempt = 0
        while True:
            attempt += 1
            status_code: Optional[int] = None
            async with self._sem:
                self.requests_sent += 1
                try:
                    resp = await self._client.get(uri)
                    status_code = resp.status_code
                    reason = self._retry_reason(uri, resp, attempt)
                except httpx.TransportError as exc:
                    resp = None
                    reason = repr(exc)
            if reason is None:
                return Page(resp.text, str(resp.url), status_code=resp.status_code)
            if attempt >= self.max_attempts:
                raise TransportError(f"Giving up: {reason}", uri=uri, attempts=attempt, status_code=status_code)
            wait = (2 ** (attempt - 1)) * self.backoff_factor
            logger.warning("Attempt %d failed for %s: %s. Retrying in %.1fs", attempt, uri, reason, wait)
            await self._sleep(wait)

    # --- Internals ---
    async def _dispatch(self, request: PendingRequest) -> Any:
        page = await self.fetch(request.uri)
        result = request.callback(page)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _retry_reason(self, uri: str, resp: httpx.Response, attempt: int) -> Optional[str]:
        if resp.status_code >= 500:
            return f"server error {resp.status_code}"
        if resp.status_code >= 400:
            raise TransportError(
                f"Client error {resp.status_code}", uri=uri, attempts=attempt, status_code=resp.status_code
            )
        if self.backoff_pattern is not None and self.backoff_pattern.search(resp.text):
            return f"backoff signature {self.backoff_pattern.pattern!r} in response"
        return None
