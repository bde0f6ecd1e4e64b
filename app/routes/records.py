"""
Record CRUD and validation endpoints.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from app.deps import get_store, unwrap
from core.services import records as record_service
from core.services.validation import validate_photo, validate_record
from core.store import RecordStore


router = APIRouter()


def _decode_photo(payload: dict[str, Any]) -> dict[str, Any]:
    candidate = {key: value for key, value in payload.items() if key != "blob_base64"}
    encoded = payload.get("blob_base64")
    if encoded is not None:
        try:
            candidate["blob"] = base64.b64decode(encoded, validate=True)
        except (binascii.Error, TypeError, ValueError):
            raise HTTPException(status_code=400, detail="blob_base64 is not valid base64") from None
    return candidate


@router.post("/records/validate")
async def validate_record_endpoint(
    payload: dict[str, Any] = Body(...),
    strict: bool = Query(False),
    check_references: bool = Query(True),
    store: RecordStore = Depends(get_store),
):
    """Validate a record without storing it."""
    result = validate_record(payload, check_references=check_references, strict=strict, store=store)
    return result.to_dict()


@router.post("/photos/validate")
async def validate_photo_endpoint(payload: dict[str, Any] = Body(...)):
    """Validate photo payload (``blob_base64``) and metadata."""
    return validate_photo(_decode_photo(payload)).to_dict()


@router.post("/records", status_code=201)
async def create_record(
    payload: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_store),
):
    return unwrap(record_service.create_record(payload, store=store))


@router.get("/records")
async def list_records(
    sort_by: str = Query("date"),
    sort_order: str = Query("asc"),
    limit: Optional[int] = Query(None, ge=0),
    offset: int = Query(0, ge=0),
    species: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    store: RecordStore = Depends(get_store),
):
    records = unwrap(record_service.list_records(
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
        species=species,
        location=location,
        store=store,
    ))
    return {"count": len(records), "records": records}


@router.get("/records/{record_id}")
async def get_record(record_id: str, store: RecordStore = Depends(get_store)):
    return unwrap(record_service.get_record(record_id, store=store))


@router.patch("/records/{record_id}")
async def update_record(
    record_id: str,
    payload: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_store),
):
    return unwrap(record_service.update_record(record_id, payload, store=store))


@router.delete("/records/{record_id}")
async def delete_record(record_id: str, store: RecordStore = Depends(get_store)):
    unwrap(record_service.delete_record(record_id, store=store))
    return {"status": "deleted", "id": record_id}
