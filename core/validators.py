"""
Field-level validation rules for records and photos.

Every rule returns a ``FieldValidationResult`` instead of raising, so callers can
run all of them and accumulate the outcome.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field as dataclass_field
from datetime import datetime
from numbers import Real
from typing import Any, Mapping, Optional

import regex

import core.config as config
from core.timeutil import ensure_utc, parse_datetime, utcnow

_GRAPHEME = regex.compile(r"\X")


@dataclass(frozen=True)
class FieldValidationResult:
    field: str
    is_valid: bool
    error: Optional[str] = None
    warning: Optional[str] = None

    def to_dict(self) -> dict:
        payload = {"field": self.field, "is_valid": self.is_valid}
        if self.error is not None:
            payload["error"] = self.error
        if self.warning is not None:
            payload["warning"] = self.warning
        return payload


@dataclass
class DataValidationResult:
    is_valid: bool
    fields: list[FieldValidationResult] = dataclass_field(default_factory=list)
    reference_errors: list[str] = dataclass_field(default_factory=list)
    warnings: list[str] = dataclass_field(default_factory=list)
    unverified_references: list[str] = dataclass_field(default_factory=list)

    @property
    def field_errors(self) -> list[FieldValidationResult]:
        return [item for item in self.fields if not item.is_valid]

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "fields": [item.to_dict() for item in self.fields],
            "reference_errors": list(self.reference_errors),
            "warnings": list(self.warnings),
            "unverified_references": list(self.unverified_references),
        }


def grapheme_length(value: str) -> int:
    """Length in user-perceived characters (extended grapheme clusters)."""
    return len(_GRAPHEME.findall(value))


def is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # integers and fractions too large for a float
        return False


def _valid(field: str, warning: Optional[str] = None) -> FieldValidationResult:
    return FieldValidationResult(field=field, is_valid=True, warning=warning)


def _invalid(field: str, error: str) -> FieldValidationResult:
    return FieldValidationResult(field=field, is_valid=False, error=error)


def validate_required_field(field: str, value: Any) -> FieldValidationResult:
    # 0 and False are present values
    if value is None or (isinstance(value, str) and not value.strip()):
        return _invalid(field, f"{field} is required")
    return _valid(field)


def validate_date(field: str, value: Any, now: Optional[datetime] = None) -> FieldValidationResult:
    parsed = parse_datetime(value)
    if parsed is None:
        return _invalid(field, f"{field} is not a valid date")
    reference = ensure_utc(now) if now is not None else utcnow()
    if parsed > reference:
        return _valid(field, warning=f"{field} is in the future")
    return _valid(field)


def validate_numeric_field(
    field: str,
    value: Any,
    min_value: float = -math.inf,
    max_value: float = math.inf,
    unit: str = "",
) -> FieldValidationResult:
    if not is_finite_number(value):
        return _invalid(field, f"{field} must be a finite number")
    if value < min_value or value > max_value:
        return _invalid(field, f"{field} must be between {min_value}{unit} and {max_value}{unit}")
    return _valid(field)


def validate_temperature(value: Any) -> FieldValidationResult:
    result = validate_numeric_field(
        "temperature",
        value,
        config.TEMPERATURE_MIN,
        config.TEMPERATURE_MAX,
        unit="C",
    )
    if result.is_valid and (
        value < config.TEMPERATURE_TYPICAL_MIN or value > config.TEMPERATURE_TYPICAL_MAX
    ):
        return _valid(
            "temperature",
            warning=f"temperature {value}C is outside the typical range; check the value",
        )
    return result


def is_within_expected_region(latitude: float, longitude: float) -> bool:
    return (
        config.EXPECTED_REGION_LAT_MIN <= latitude <= config.EXPECTED_REGION_LAT_MAX
        and config.EXPECTED_REGION_LON_MIN <= longitude <= config.EXPECTED_REGION_LON_MAX
    )


def validate_coordinates(coordinates: Any) -> FieldValidationResult:
    if not isinstance(coordinates, Mapping):
        return _invalid("coordinates", "coordinates must be an object with latitude and longitude")
    latitude = coordinates.get("latitude")
    longitude = coordinates.get("longitude")
    accuracy = coordinates.get("accuracy")

    if not is_finite_number(latitude) or not is_finite_number(longitude):
        return _invalid("coordinates", "coordinates must be finite numbers")
    if latitude < -90 or latitude > 90 or longitude < -180 or longitude > 180:
        return _invalid(
            "coordinates",
            "coordinates out of range (latitude -90..90, longitude -180..180)",
        )
    if accuracy is not None and (not is_finite_number(accuracy) or accuracy < 0):
        return _invalid("coordinates.accuracy", "accuracy must be a number >= 0")

    if not is_within_expected_region(latitude, longitude):
        return _valid(
            "coordinates",
            warning="coordinates are outside the expected region; check the location",
        )
    return _valid("coordinates")


def validate_string_length(
    field: str,
    value: Any,
    max_len: int,
    min_len: int = 0,
) -> FieldValidationResult:
    if not isinstance(value, str):
        return _invalid(field, f"{field} must be a string")
    length = grapheme_length(value)
    if length < min_len or length > max_len:
        return _invalid(field, f"{field} must be between {min_len} and {max_len} characters")
    return _valid(field)


def validate_photo_blob_size(size: int) -> FieldValidationResult:
    if size > config.PHOTO_MAX_BYTES:
        limit_mb = config.PHOTO_MAX_BYTES / 1024 / 1024
        return _invalid("file_size", f"file size exceeds {limit_mb:g}MB")
    if size > config.PHOTO_WARN_BYTES:
        return _valid("file_size", warning=f"file size is large ({size / 1024 / 1024:.2f}MB)")
    return _valid("file_size")


def validate_mime_type(mime_type: Any) -> FieldValidationResult:
    if not isinstance(mime_type, str) or mime_type.strip().lower() not in config.PHOTO_ALLOWED_MIME_TYPES:
        return _invalid("mime_type", f"unsupported image type: {mime_type}")
    return _valid("mime_type")
