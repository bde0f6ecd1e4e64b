"""
Root endpoint with service metadata.
"""

from __future__ import annotations

from fastapi import APIRouter

import core.config as config


router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "CatchLog",
        "version": config.APP_VERSION,
        "schema_version": config.CURRENT_SCHEMA_VERSION,
        "description": "Fishing record validation, migrations and catch statistics",
        "endpoints": {
            "health": "/health",
            "records": "/records",
            "validate_record": "/records/validate",
            "validate_photo": "/photos/validate",
            "statistics": "/statistics",
            "maintenance": {
                "schema": "/maintenance/schema",
                "migrations": "/maintenance/migrations",
                "run_migrations": "/maintenance/migrations/run",
                "integrity": "/maintenance/integrity",
                "cleanup_photos": "/maintenance/photos/cleanup",
            },
        },
    }
