"""
Schema, migration and integrity maintenance endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.deps import get_migration_manager, get_store, unwrap
from core.services.data_version import check_schema_compatibility, get_data_version
from core.services.migrations import MigrationManager
from core.store import RecordStore


router = APIRouter(prefix="/maintenance")


@router.get("/schema")
async def schema_status(store: RecordStore = Depends(get_store)):
    return {
        "data_version": unwrap(get_data_version(store)),
        "compatibility": unwrap(check_schema_compatibility(store)),
    }


@router.get("/migrations")
async def list_migrations(manager: MigrationManager = Depends(get_migration_manager)):
    pending = unwrap(manager.get_pending_migrations())
    return {
        "registered": [migration.to_dict() for migration in manager.registry],
        "pending": [migration.id for migration in pending],
        "unrecorded": manager.unrecorded_migrations,
    }


@router.post("/migrations/run")
async def run_migrations(
    dry_run: bool = Query(False),
    manager: MigrationManager = Depends(get_migration_manager),
):
    return unwrap(manager.run_migrations(dry_run=dry_run))


@router.post("/migrations/{migration_id}/rollback")
async def rollback_migration(
    migration_id: str,
    manager: MigrationManager = Depends(get_migration_manager),
):
    unwrap(manager.rollback_migration(migration_id))
    return {"status": "rolled_back", "id": migration_id}


@router.get("/integrity")
async def integrity(manager: MigrationManager = Depends(get_migration_manager)):
    return unwrap(manager.check_data_integrity())


@router.post("/photos/cleanup")
async def cleanup_photos(
    dry_run: bool = Query(False),
    manager: MigrationManager = Depends(get_migration_manager),
):
    return unwrap(manager.cleanup_orphaned_photos(dry_run=dry_run))
