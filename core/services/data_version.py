"""
Persisted data version: schema version, applied migration ids and timestamps.

Stored as JSON under the ``dataVersion`` settings key.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

import core.config as config
from core import error_codes
from core.errors import AppError, ErrorCategory, ErrorSeverity, StoreError
from core.result import Err, Ok, Result
from core.store import RecordStore, StoreTransaction
from core.timeutil import isoformat, parse_datetime

logger = config.logger


@dataclass(frozen=True)
class DataVersion:
    version: str
    schema_version: int
    migrations_applied: tuple[str, ...] = field(default_factory=tuple)
    last_migration_date: Optional[datetime] = None

    @classmethod
    def default(cls) -> "DataVersion":
        return cls(version=config.APP_VERSION, schema_version=config.CURRENT_SCHEMA_VERSION)

    @classmethod
    def from_json(cls, raw: str) -> "DataVersion":
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("data version must be a JSON object")
        return cls(
            version=str(payload.get("version", config.APP_VERSION)),
            schema_version=int(payload.get("schemaVersion", config.CURRENT_SCHEMA_VERSION)),
            migrations_applied=tuple(payload.get("migrationsApplied") or ()),
            last_migration_date=parse_datetime(payload.get("lastMigrationDate")),
        )

    def to_json(self) -> str:
        payload = {
            "version": self.version,
            "schemaVersion": self.schema_version,
            "migrationsApplied": list(self.migrations_applied),
        }
        if self.last_migration_date is not None:
            payload["lastMigrationDate"] = isoformat(self.last_migration_date)
        return json.dumps(payload)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "schema_version": self.schema_version,
            "migrations_applied": list(self.migrations_applied),
            "last_migration_date": isoformat(self.last_migration_date),
        }

    def with_applied(self, ids, schema_version: int, when: datetime) -> "DataVersion":
        return replace(
            self,
            schema_version=max(self.schema_version, schema_version),
            migrations_applied=_dedupe(tuple(self.migrations_applied) + tuple(ids)),
            last_migration_date=when,
        )

    def without(self, migration_id: str, when: datetime) -> "DataVersion":
        return replace(
            self,
            migrations_applied=tuple(mid for mid in self.migrations_applied if mid != migration_id),
            last_migration_date=when,
        )


@dataclass(frozen=True)
class SchemaCompatibility:
    is_compatible: bool
    current_version: int
    required_version: int
    needs_migration: bool

    def to_dict(self) -> dict:
        return {
            "is_compatible": self.is_compatible,
            "current_version": self.current_version,
            "required_version": self.required_version,
            "needs_migration": self.needs_migration,
        }


def _dedupe(ids) -> tuple[str, ...]:
    seen = set()
    ordered = []
    for mid in ids:
        if mid not in seen:
            seen.add(mid)
            ordered.append(mid)
    return tuple(ordered)


def read_data_version(tx: StoreTransaction) -> DataVersion:
    """Read inside an open transaction; raises on store or decode failure."""
    raw = tx.get_setting(config.DATA_VERSION_SETTING_KEY)
    if raw is None:
        return DataVersion.default()
    return DataVersion.from_json(raw)


def write_data_version(tx: StoreTransaction, version: DataVersion) -> DataVersion:
    """Write inside an open transaction; refuses to lower the schema version."""
    raw = tx.get_setting(config.DATA_VERSION_SETTING_KEY)
    if raw is not None:
        stored = DataVersion.from_json(raw)
        if version.schema_version < stored.schema_version:
            raise ValueError(
                f"schema version cannot decrease ({stored.schema_version} -> {version.schema_version})"
            )
    normalized = replace(version, migrations_applied=_dedupe(version.migrations_applied))
    tx.put_setting(config.DATA_VERSION_SETTING_KEY, normalized.to_json(), "object")
    return normalized


def get_data_version(store: Optional[RecordStore] = None) -> Result[DataVersion]:
    active_store = store or RecordStore()
    try:
        with active_store.transaction("app_settings", mode="r") as tx:
            return Ok(read_data_version(tx))
    except (StoreError, ValueError, TypeError) as exc:
        logger.error("Failed to read data version", extra={"error": str(exc)})
        return Err(AppError(
            code=error_codes.VERSION_GET_FAILED,
            message="Failed to read data version",
            severity=ErrorSeverity.error,
            category=ErrorCategory.storage,
            cause=exc,
        ))


def update_data_version(version: DataVersion, store: Optional[RecordStore] = None) -> Result[None]:
    active_store = store or RecordStore()
    try:
        with active_store.transaction("app_settings") as tx:
            write_data_version(tx, version)
    except (StoreError, ValueError, TypeError) as exc:
        logger.error(
            "Failed to update data version",
            extra={"schema_version": version.schema_version, "error": str(exc)},
        )
        return Err(AppError(
            code=error_codes.VERSION_UPDATE_FAILED,
            message="Failed to update data version",
            severity=ErrorSeverity.error,
            category=ErrorCategory.storage,
            cause=exc,
        ))
    return Ok(None)


def check_schema_compatibility(
    store: Optional[RecordStore] = None,
    required_version: int = config.CURRENT_SCHEMA_VERSION,
) -> Result[SchemaCompatibility]:
    current = get_data_version(store)
    if not current.success:
        return Err(AppError(
            code=error_codes.SCHEMA_COMPATIBILITY_CHECK_FAILED,
            message="Could not determine the stored schema version",
            severity=ErrorSeverity.error,
            category=ErrorCategory.storage,
            details={"cause": current.error.to_dict()},
            cause=current.error.cause,
        ))
    stored = current.data.schema_version
    return Ok(SchemaCompatibility(
        is_compatible=stored <= required_version,
        current_version=stored,
        required_version=required_version,
        needs_migration=stored < required_version,
    ))


__all__ = [
    "DataVersion",
    "SchemaCompatibility",
    "read_data_version",
    "write_data_version",
    "get_data_version",
    "update_data_version",
    "check_schema_compatibility",
]
