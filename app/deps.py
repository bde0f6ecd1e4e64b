"""
Dependency helpers for the FastAPI app.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import Depends, HTTPException

from core import error_codes
from core.data_migrations import build_default_registry
from core.errors import ErrorSeverity
from core.result import Err, Result
from core.services.migrations import MigrationManager, MigrationRegistry
from core.store import RecordStore


@lru_cache(maxsize=1)
def get_registry() -> MigrationRegistry:
    return build_default_registry()


def get_store() -> RecordStore:
    return RecordStore()


_managers: dict[int, MigrationManager] = {}


def get_migration_manager(
    store: RecordStore = Depends(get_store),
    registry: MigrationRegistry = Depends(get_registry),
) -> MigrationManager:
    # One manager per registry so unrecorded migration ids survive across requests
    manager = _managers.get(id(registry))
    if manager is None:
        manager = MigrationManager(registry, store=store)
        _managers[id(registry)] = manager
    return manager


def status_for_error(result: Err) -> int:
    error = result.error
    if error.code in error_codes.NOT_FOUND_CODES:
        return 404
    if error.code == error_codes.VALIDATION_ERROR:
        return 422
    if error.severity == ErrorSeverity.warning:
        return 409
    return 500


def unwrap(result: Result) -> Any:
    """Return the payload of an ``Ok`` or raise the mapped ``HTTPException``."""
    if not result.success:
        raise HTTPException(status_code=status_for_error(result), detail=result.error.to_dict())
    data = result.data
    if hasattr(data, "to_dict"):
        return data.to_dict()
    return data
