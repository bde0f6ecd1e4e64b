"""
Standalone FastAPI app wiring for CatchLog.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

import core.config as config
from core.db import DB, init_db
from app.deps import get_migration_manager, get_registry, get_store
from app.routes.health import router as health_router
from app.routes.maintenance import router as maintenance_router
from app.routes.records import router as records_router
from app.routes.root import router as root_router
from app.routes.statistics import router as statistics_router


integrity_task = None


def _startup_manager():
    return get_migration_manager(store=get_store(), registry=get_registry())


def run_startup_migrations() -> None:
    """Apply pending data migrations; refuse to serve if any fails."""
    result = _startup_manager().run_migrations()
    if not result.success:
        raise RuntimeError(f"Data migrations failed: {result.error.message}")
    if not result.data.success:
        raise RuntimeError(f"Data migrations applied but not recorded: {result.data.errors}")
    if result.data.applied_migrations:
        config.logger.info(
            "Startup data migrations applied",
            extra={"migration_ids": result.data.applied_migrations},
        )


async def _integrity_loop() -> None:
    if config.INTEGRITY_CHECK_INTERVAL_SECONDS <= 0:
        return
    manager = _startup_manager()
    while True:
        await asyncio.sleep(config.INTEGRITY_CHECK_INTERVAL_SECONDS)
        try:
            result = await asyncio.to_thread(manager.check_data_integrity)
        except Exception as exc:
            config.logger.warning(f"Integrity task error: {exc}")
            continue
        if not result.success:
            config.logger.error("Scheduled integrity check failed", extra={"code": result.error.code})
        elif not result.data.is_valid:
            config.logger.warning("Integrity issues found", extra={"issues": result.data.issues})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize on startup, cleanup on shutdown."""
    global integrity_task
    init_db()
    if config.RUN_DATA_MIGRATIONS_ON_STARTUP:
        run_startup_migrations()
    if config.INTEGRITY_CHECK_INTERVAL_SECONDS > 0:
        integrity_task = asyncio.create_task(_integrity_loop())
    try:
        yield
    finally:
        if integrity_task:
            integrity_task.cancel()
            try:
                await integrity_task
            except asyncio.CancelledError:
                pass
        if DB.engine:
            DB.engine.dispose()


app = FastAPI(title="CatchLog", redirect_slashes=False, lifespan=lifespan)

# Health and root endpoints
app.include_router(health_router)
app.include_router(root_router)

app.include_router(records_router)
app.include_router(statistics_router)
app.include_router(maintenance_router)
