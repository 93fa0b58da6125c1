from __future__ import annotations

import json
import threading
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from airport_importer.models.airport import AirportRecord


def canonical_json(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


class CrawlError(Exception):
    """Base class for errors that abort an import run."""


class MappingError(CrawlError):
    """Raised when extracted values cannot be mapped onto the airport schema."""

    def __init__(self, message: str, *, source_url: Optional[str] = None) -> None:
        if source_url:
            message = f"{message} (page: {source_url})"
        super().__init__(message)
        self.source_url = source_url


class TransportError(CrawlError):
    """Raised when a page cannot be fetched, after retries where applicable."""

    def __init__(
        self,
        message: str,
        *,
        uri: str,
        attempts: int = 1,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(f"{message} [{uri}, attempts={attempts}]")
        self.uri = uri
        self.attempts = attempts
        self.status_code = status_code


class ResultAccumulator:
    """Append-only, ordered collection of imported airports.

    Appends are serialized with a lock so handlers running on worker threads
    can share one accumulator. Once frozen, further appends are rejected.
    """

    def __init__(self) -> None:
        self._items: List[AirportRecord] = []
        self._lock = threading.Lock()
        self._frozen = False

    def append(self, record: AirportRecord) -> None:
        with self._lock:
            if self._frozen:
                raise RuntimeError("Accumulator is frozen; no more records can be added")
            self._items.append(record)

    def freeze(self) -> Tuple[AirportRecord, ...]:
        with self._lock:
            self._frozen = True
            return tuple(self._items)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def snapshot(self) -> Tuple[AirportRecord, ...]:
        with self._lock:
            return tuple(self._items)

    def to_list(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.snapshot()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[AirportRecord]:
        return iter(self.snapshot())


class Spider:
    """Minimal spider contract.

    Subclasses should implement fetch() to return a list of normalized records
    (dicts or models with .to_dict()).
    """

    name: str = "base"

    def fetch(self, *args, **kwargs) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @staticmethod
    def normalize_records(items: Iterable[Any]) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for x in items:
            if hasattr(x, "to_dict"):
                out.append(x.to_dict())
            elif isinstance(x, dict):
                out.append(x)
            else:
                raise TypeError(f"Unsupported record type: {type(x)}")
        return out
