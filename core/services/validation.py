"""
Record and photo validation, reference integrity and orphan detection.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

import core.config as config
from core import error_codes
from core.errors import AppError, ErrorCategory, ErrorSeverity, StoreError
from core.result import Err, Ok, Result
from core.store import RecordStore, StoreTransaction
from core.validators import (
    DataValidationResult,
    FieldValidationResult,
    validate_coordinates,
    validate_date,
    validate_mime_type,
    validate_numeric_field,
    validate_photo_blob_size,
    validate_required_field,
    validate_string_length,
    validate_temperature,
)

logger = config.logger

REQUIRED_RECORD_FIELDS = ("date", "location", "fish_species")

_STRING_LIMITS = (
    ("location", config.MAX_LOCATION_LENGTH),
    ("fish_species", config.MAX_SPECIES_LENGTH),
    ("weather", config.MAX_WEATHER_LENGTH),
    ("notes", config.MAX_NOTES_LENGTH),
)


def _present(candidate: Mapping[str, Any], key: str) -> bool:
    return candidate.get(key) is not None


def _collect(result: FieldValidationResult, fields: list, warnings: list) -> None:
    fields.append(result)
    if result.warning:
        warnings.append(result.warning)


def check_photo_reference(photo_id: str, store: RecordStore) -> bool:
    """True when the photo exists. Store failures propagate as ``StoreError``."""
    return store.get("photos", photo_id) is not None


def validate_record(
    candidate: Mapping[str, Any],
    *,
    check_references: bool = True,
    strict: bool = False,
    store: Optional[RecordStore] = None,
    now: Optional[datetime] = None,
) -> DataValidationResult:
    """
    Validate a (possibly partial) record.

    Every rule runs and contributes to the result. Reference problems only make
    the record invalid in strict mode.
    """
    fields: list[FieldValidationResult] = []
    reference_errors: list[str] = []
    warnings: list[str] = []
    unverified: list[str] = []

    for name in REQUIRED_RECORD_FIELDS:
        fields.append(validate_required_field(name, candidate.get(name)))

    if _present(candidate, "date"):
        _collect(validate_date("date", candidate["date"], now=now), fields, warnings)

    if _present(candidate, "size"):
        fields.append(
            validate_numeric_field("size", candidate["size"], config.SIZE_MIN, config.SIZE_MAX, unit="cm")
        )
    if _present(candidate, "weight"):
        fields.append(
            validate_numeric_field("weight", candidate["weight"], config.WEIGHT_MIN, config.WEIGHT_MAX, unit="g")
        )
    if _present(candidate, "temperature"):
        _collect(validate_temperature(candidate["temperature"]), fields, warnings)

    if _present(candidate, "coordinates"):
        _collect(validate_coordinates(candidate["coordinates"]), fields, warnings)

    for name, max_len in _STRING_LIMITS:
        if _present(candidate, name):
            fields.append(validate_string_length(name, candidate[name], max_len))

    photo_id = candidate.get("photo_id")
    if check_references and photo_id:
        active_store = store or RecordStore()
        try:
            if not check_photo_reference(photo_id, active_store):
                reference_errors.append(f'photo "{photo_id}" does not exist')
        except StoreError as exc:
            logger.error(
                "Photo reference check failed",
                extra={"photo_id": photo_id, "error": str(exc)},
            )
            unverified.append(photo_id)
            reference_errors.append(f'photo "{photo_id}" could not be verified: {exc}')

    has_field_errors = any(not item.is_valid for item in fields)
    is_valid = not has_field_errors and (not strict or not reference_errors)

    return DataValidationResult(
        is_valid=is_valid,
        fields=fields,
        reference_errors=reference_errors,
        warnings=warnings,
        unverified_references=unverified,
    )


def validate_photo(candidate: Mapping[str, Any]) -> DataValidationResult:
    """Validate photo payload and metadata (no storage access)."""
    fields: list[FieldValidationResult] = []
    warnings: list[str] = []

    blob = candidate.get("blob")
    fields.append(validate_required_field("blob", blob))

    if blob is not None:
        if isinstance(blob, (bytes, bytearray, memoryview)):
            _collect(validate_photo_blob_size(len(blob)), fields, warnings)
        else:
            fields.append(FieldValidationResult(field="blob", is_valid=False, error="blob must be binary data"))

    if _present(candidate, "mime_type"):
        fields.append(validate_mime_type(candidate["mime_type"]))

    return DataValidationResult(
        is_valid=all(item.is_valid for item in fields),
        fields=fields,
        reference_errors=[],
        warnings=warnings,
    )


def orphaned_photos_in(tx: StoreTransaction) -> list[dict]:
    """Orphan scan inside an open transaction spanning records and photos."""
    referenced = {
        record["photo_id"] for record in tx.to_array("fishing_records") if record.get("photo_id")
    }
    return [photo for photo in tx.to_array("photos") if photo["id"] not in referenced]


def find_orphaned_photos(store: Optional[RecordStore] = None) -> Result[list[dict]]:
    """Photos whose id is referenced by no record."""
    active_store = store or RecordStore()
    try:
        with active_store.transaction("fishing_records", "photos", mode="r") as tx:
            return Ok(orphaned_photos_in(tx))
    except StoreError as exc:
        logger.warning("Orphaned photo scan failed", extra={"error": str(exc)})
        return Err(AppError(
            code=error_codes.ORPHANED_PHOTOS_CHECK_FAILED,
            message="Failed to scan for orphaned photos",
            severity=ErrorSeverity.warning,
            category=ErrorCategory.storage,
            cause=exc,
        ))


__all__ = [
    "validate_record",
    "validate_photo",
    "check_photo_reference",
    "find_orphaned_photos",
    "orphaned_photos_in",
    "REQUIRED_RECORD_FIELDS",
]
