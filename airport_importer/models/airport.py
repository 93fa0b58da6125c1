from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class AirportRecord(BaseModel):
    """One airport as published by World Airport Codes.

    Field names and their order are those of the exported JSON, so they keep the
    site's camelCase keys. Coordinates are decimal degrees (south/west negative),
    runway figures are feet.
    """

    airportCode: str = Field(..., min_length=1, description="Airport code, stable key")
    airportName: str = Field(..., min_length=1, description="Airport name")
    runwayLength: Optional[float] = Field(default=None, description="Longest runway (ft)")
    runwayElevation: Optional[float] = Field(default=None, description="Runway elevation (ft)")
    city: Optional[str] = None
    country: Optional[str] = None
    countryAbbr: Optional[str] = None
    airportGuide: Optional[str] = Field(default=None, description="Free text guide")
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    worldAreaCode: Optional[int] = None
    gmtOffset: Optional[int] = None
    telephone: Optional[str] = None
    fax: Optional[str] = None
    email: Optional[str] = None
    url: Optional[str] = Field(default=None, description="Airport website (anchor href)")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class AirportList(BaseModel):
    source: Optional[str] = None
    count: int
    items: List[AirportRecord]
