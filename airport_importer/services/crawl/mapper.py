from __future__ import annotations

from typing import Callable, Optional, Sequence, Tuple

from pydantic import ValidationError

from airport_importer.models.airport import AirportRecord

from .base import MappingError
from .normalize import convert_dms, parse_float, parse_int

Coercion = Callable[[Optional[str]], object]


def _keep(value: Optional[str]) -> Optional[str]:
    return value


def _int(field: str) -> Coercion:
    return lambda value: parse_int(value, field)


def _float(field: str) -> Coercion:
    return lambda value: parse_float(value, field)


# Order of the ``.airportdetails span.detail`` nodes on a detail page.
AIRPORT_SCHEMA: Tuple[Tuple[str, Coercion], ...] = (
    ("airportCode", _keep),
    ("airportName", _keep),
    ("runwayLength", _float("runwayLength")),
    ("runwayElevation", _float("runwayElevation")),
    ("city", _keep),
    ("country", _keep),
    ("countryAbbr", _keep),
    ("airportGuide", _keep),
    ("longitude", convert_dms),
    ("latitude", convert_dms),
    ("worldAreaCode", _int("worldAreaCode")),
    ("gmtOffset", _int("gmtOffset")),
    ("telephone", _keep),
    ("fax", _keep),
    ("email", _keep),
    ("url", _keep),
)

AIRPORT_KEYS: Tuple[str, ...] = tuple(key for key, _ in AIRPORT_SCHEMA)


class RecordMapper:
    """Maps the positional values of a detail page onto an AirportRecord."""

    def __init__(self, schema: Sequence[Tuple[str, Coercion]] = AIRPORT_SCHEMA) -> None:
        self.schema = tuple(schema)

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(key for key, _ in self.schema)

    def map(self, raw_values: Sequence[Optional[str]], *, source_url: Optional[str] = None) -> AirportRecord:
        if len(raw_values) != len(self.schema):
            raise MappingError(
                f"Expected {len(self.schema)} airport values, got {len(raw_values)}",
                source_url=source_url,
            )
        data = {key: coerce(value) for (key, coerce), value in zip(self.schema, raw_values)}
        try:
            return AirportRecord(**data)
        except ValidationError as exc:
            raise MappingError(f"Invalid airport data: {exc.errors()}", source_url=source_url) from exc
