from fastapi import APIRouter, HTTPException, Query
from typing import Optional

from airport_importer.models.airport import AirportList, AirportRecord
from airport_importer.services.airport_service import get_airport, list_airports

router = APIRouter(tags=["airports"])


@router.get("/health")
def api_health():
    return {"status": "ok"}


@router.get("/airports", response_model=AirportList)
def api_list_airports(
    country: Optional[str] = Query(None, description="Country name or abbreviation"),
    limit: Optional[int] = Query(None, ge=0, description="Max items to return"),
):
    source, items = list_airports(country=country, limit=limit)
    if source is None:
        raise HTTPException(status_code=404, detail="No airport export found; run the crawler first")
    return {"source": source, "count": len(items), "items": items}


@router.get("/airports/{code}", response_model=AirportRecord)
def api_get_airport(code: str):
    item = get_airport(code)
    if not item:
        raise HTTPException(status_code=404, detail="Airport not found")
    return item
