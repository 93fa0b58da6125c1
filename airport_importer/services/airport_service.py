"""Read access to the newest airport export written by the crawl runner."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from airport_importer.config import get_settings
from airport_importer.services.crawl.pipeline import latest_export, load_records

AirportItem = Dict[str, Any]


def load_latest_airports(out_dir: Optional[str] = None) -> Tuple[Optional[str], List[AirportItem]]:
    """Return (path, records) of the newest export, or (None, []) if there is none."""
    path = latest_export(out_dir or get_settings().output_dir)
    if path is None:
        return None, []
    return path, load_records(path)


def list_airports(
    *,
    country: Optional[str] = None,
    limit: Optional[int] = None,
    out_dir: Optional[str] = None,
) -> Tuple[Optional[str], List[AirportItem]]:
    path, items = load_latest_airports(out_dir)
    if country:
        wanted = country.strip().lower()
        items = [
            it for it in items
            if wanted in ((it.get("country") or "").lower(), (it.get("countryAbbr") or "").lower())
        ]
    if limit is not None:
        items = items[: max(0, int(limit))]
    return path, items


def get_airport(code: str, *, out_dir: Optional[str] = None) -> Optional[AirportItem]:
    _, items = load_latest_airports(out_dir)
    code = (code or "").strip().upper()
    return next((it for it in items if (it.get("airportCode") or "").upper() == code), None)
