"""
Statistics endpoints computed over every stored record.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.deps import get_store
from core.errors import StoreError
from core.services import statistics
from core.store import RecordStore


router = APIRouter(prefix="/statistics")


def _load_records(store: RecordStore) -> list[dict]:
    try:
        return store.to_array("fishing_records")
    except StoreError as exc:
        raise HTTPException(status_code=500, detail={"code": "GET_RECORDS_FAILED", "message": str(exc)}) from exc


@router.get("")
async def statistics_report(store: RecordStore = Depends(get_store)):
    return statistics.build_statistics_report(_load_records(store))


@router.get("/overall")
async def overall(store: RecordStore = Depends(get_store)):
    return statistics.calculate_overall_stats(_load_records(store)).to_dict()


@router.get("/species")
async def species(store: RecordStore = Depends(get_store)):
    return [item.to_dict() for item in statistics.calculate_species_stats(_load_records(store))]


@router.get("/locations")
async def locations(store: RecordStore = Depends(get_store)):
    return [item.to_dict() for item in statistics.calculate_location_stats(_load_records(store))]


@router.get("/time")
async def time_analysis(store: RecordStore = Depends(get_store)):
    return statistics.calculate_time_analysis(_load_records(store)).to_dict()


@router.get("/sizes")
async def sizes(store: RecordStore = Depends(get_store)):
    return statistics.calculate_size_distribution(_load_records(store)).to_dict()


@router.get("/weather")
async def weather(store: RecordStore = Depends(get_store)):
    return [item.to_dict() for item in statistics.calculate_weather_stats(_load_records(store))]
