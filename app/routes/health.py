"""
Health and dependency endpoints.
"""

from __future__ import annotations

import os

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

import core.config as config
from core.db import DB, _get_schema_revisions
from core.services.data_version import check_schema_compatibility


router = APIRouter()


def _check_db_health() -> dict:
    if DB.engine is None:
        return {"ok": False, "error": "db_not_initialized"}

    try:
        with DB.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:
        return {"ok": False, "error": str(exc)}

    current_rev, head_rev = _get_schema_revisions(DB.engine)
    schema_ok = head_rev is None or current_rev == head_rev
    return {
        "ok": schema_ok,
        "backend": config.DB_BACKEND,
        "schema_revision": current_rev,
        "schema_expected": head_rev,
        "schema_up_to_date": schema_ok,
    }


def _check_data_version() -> dict:
    result = check_schema_compatibility()
    if not result.success:
        return {"ok": False, "error": result.error.to_dict()}
    return {"ok": result.data.is_compatible, **result.data.to_dict()}


@router.get("/health")
async def health():
    """Health check endpoint."""
    db_health = _check_db_health()
    if not db_health.get("ok"):
        raise HTTPException(status_code=503, detail={"database": db_health})

    data_health = _check_data_version()
    if not data_health.get("ok"):
        raise HTTPException(status_code=503, detail={"database": db_health, "data_version": data_health})

    return {
        "status": "healthy",
        "service": "CatchLog",
        "version": config.APP_VERSION,
        "instance_id": os.environ.get("CATCHLOG_INSTANCE_ID", "catchlog-1"),
        "database": db_health,
        "data_version": data_health,
    }
