"""
Record and photo CRUD with validation on every write.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import core.config as config
from core import error_codes
from core.errors import AppError, ErrorCategory, ErrorSeverity, StoreError
from core.models import new_id
from core.result import Err, Ok, Result
from core.services.validation import validate_photo, validate_record
from core.store import RecordStore
from core.timeutil import parse_datetime, utcnow

logger = config.logger

SORTABLE_FIELDS = {
    "date", "location", "fish_species", "size", "weight", "temperature",
    "created_at", "updated_at",
}
SORT_ORDERS = {"asc", "desc"}

# Fields a caller may never set directly
_PROTECTED_FIELDS = {"id", "created_at", "updated_at"}


def _store_failure(code: str, message: str, exc: BaseException, **context) -> Err:
    logger.error(message, extra={**context, "error": str(exc)})
    return Err(AppError(
        code=code,
        message=message,
        severity=ErrorSeverity.error,
        category=ErrorCategory.storage,
        cause=exc,
    ))


def _not_found(kind: str, entity_id: str) -> Err:
    return Err(AppError(
        code=error_codes.NOT_FOUND,
        message=f"{kind} with id {entity_id} not found",
        severity=ErrorSeverity.warning,
        category=ErrorCategory.storage,
    ))


def _invalid(message: str, details: Any = None) -> Err:
    return Err(AppError(
        code=error_codes.VALIDATION_ERROR,
        message=message,
        severity=ErrorSeverity.warning,
        category=ErrorCategory.validation,
        details=details,
    ))


def _writable(form: Mapping[str, Any]) -> dict:
    return {key: value for key, value in form.items() if key not in _PROTECTED_FIELDS}


def create_record(form: Mapping[str, Any], store: Optional[RecordStore] = None) -> Result[dict]:
    active_store = store or RecordStore()
    validation = validate_record(form, check_references=True, strict=False, store=active_store)
    if not validation.is_valid:
        logger.info("Record rejected", extra={"field_errors": len(validation.field_errors)})
        return _invalid("Record failed validation", validation.to_dict())

    now = utcnow()
    record = _writable(form)
    record.update({
        "id": new_id(),
        "date": parse_datetime(form["date"]),
        "created_at": now,
        "updated_at": now,
    })
    try:
        with active_store.transaction("fishing_records") as tx:
            tx.add("fishing_records", record)
            created = tx.get("fishing_records", record["id"])
    except StoreError as exc:
        return _store_failure(error_codes.CREATE_FAILED, "Failed to create record", exc)
    return Ok(created)


def get_record(record_id: str, store: Optional[RecordStore] = None) -> Result[dict]:
    active_store = store or RecordStore()
    try:
        record = active_store.get("fishing_records", record_id)
    except StoreError as exc:
        return _store_failure(error_codes.GET_FAILED, "Failed to get record", exc, record_id=record_id)
    if record is None:
        return _not_found("Record", record_id)
    return Ok(record)


def _sort_key(sort_by: str):
    def key(record: dict):
        value = record.get(sort_by)
        if isinstance(value, str):
            value = value.casefold()
        # records missing the field sort last in ascending order
        return (value is None, value if value is not None else 0)
    return key


def list_records(
    sort_by: str = "date",
    sort_order: str = "asc",
    limit: Optional[int] = None,
    offset: int = 0,
    species: Optional[str] = None,
    location: Optional[str] = None,
    store: Optional[RecordStore] = None,
) -> Result[list[dict]]:
    if sort_by not in SORTABLE_FIELDS:
        return _invalid(f"Cannot sort by '{sort_by}'", {"sortable": sorted(SORTABLE_FIELDS)})
    if sort_order not in SORT_ORDERS:
        return _invalid(f"sort_order must be one of {sorted(SORT_ORDERS)}")
    if offset < 0 or (limit is not None and limit < 0):
        return _invalid("limit and offset must not be negative")

    active_store = store or RecordStore()
    try:
        records = active_store.to_array("fishing_records")
    except StoreError as exc:
        return _store_failure(error_codes.GET_RECORDS_FAILED, "Failed to list records", exc)

    if species:
        wanted = species.strip().casefold()
        records = [r for r in records if (r.get("fish_species") or "").strip().casefold() == wanted]
    if location:
        needle = location.strip().casefold()
        records = [r for r in records if needle in (r.get("location") or "").casefold()]

    records.sort(key=_sort_key(sort_by), reverse=sort_order == "desc")
    end = offset + limit if limit is not None else None
    return Ok(records[offset:end])


def update_record(record_id: str, patch: Mapping[str, Any], store: Optional[RecordStore] = None) -> Result[dict]:
    active_store = store or RecordStore()
    try:
        existing = active_store.get("fishing_records", record_id)
    except StoreError as exc:
        return _store_failure(error_codes.UPDATE_FAILED, "Failed to update record", exc, record_id=record_id)
    if existing is None:
        return _not_found("Record", record_id)

    changes = _writable(patch)
    merged = {**existing, **changes}
    validation = validate_record(merged, check_references=True, strict=False, store=active_store)
    if not validation.is_valid:
        return _invalid("Record failed validation", validation.to_dict())

    if "date" in changes:
        changes["date"] = parse_datetime(changes["date"])
    changes["updated_at"] = utcnow()
    try:
        with active_store.transaction("fishing_records") as tx:
            if not tx.update("fishing_records", record_id, changes):
                return _not_found("Record", record_id)
            updated = tx.get("fishing_records", record_id)
    except StoreError as exc:
        return _store_failure(error_codes.UPDATE_FAILED, "Failed to update record", exc, record_id=record_id)
    return Ok(updated)


def delete_record(record_id: str, store: Optional[RecordStore] = None) -> Result[None]:
    active_store = store or RecordStore()
    try:
        deleted = active_store.delete("fishing_records", record_id)
    except StoreError as exc:
        return _store_failure(error_codes.DELETE_FAILED, "Failed to delete record", exc, record_id=record_id)
    if not deleted:
        return _not_found("Record", record_id)
    return Ok(None)


def save_photo(form: Mapping[str, Any], store: Optional[RecordStore] = None) -> Result[dict]:
    """Store a photo; ``file_size`` is always taken from the blob."""
    validation = validate_photo(form)
    if not validation.is_valid:
        return _invalid("Photo failed validation", validation.to_dict())

    photo = {key: value for key, value in form.items() if key not in {"id", "uploaded_at"}}
    photo.update({
        "id": new_id(),
        "blob": bytes(form["blob"]),
        "file_size": len(form["blob"]),
        "uploaded_at": utcnow(),
    })
    active_store = store or RecordStore()
    try:
        active_store.add("photos", photo)
    except StoreError as exc:
        return _store_failure(error_codes.CREATE_FAILED, "Failed to save photo", exc)
    return Ok(photo)


def get_photo(photo_id: str, store: Optional[RecordStore] = None) -> Result[dict]:
    active_store = store or RecordStore()
    try:
        photo = active_store.get("photos", photo_id)
    except StoreError as exc:
        return _store_failure(error_codes.GET_FAILED, "Failed to get photo", exc, photo_id=photo_id)
    if photo is None:
        return _not_found("Photo", photo_id)
    return Ok(photo)


def delete_photo(photo_id: str, store: Optional[RecordStore] = None) -> Result[None]:
    """Delete a photo. Records still pointing at it are left for the integrity check."""
    active_store = store or RecordStore()
    try:
        deleted = active_store.delete("photos", photo_id)
    except StoreError as exc:
        return _store_failure(error_codes.DELETE_FAILED, "Failed to delete photo", exc, photo_id=photo_id)
    if not deleted:
        return _not_found("Photo", photo_id)
    return Ok(None)


__all__ = [
    "create_record",
    "get_record",
    "list_records",
    "update_record",
    "delete_record",
    "save_photo",
    "get_photo",
    "delete_photo",
    "SORTABLE_FIELDS",
]
