"""
Data migration manager: ordered, atomic, id-tracked migrations plus
integrity checks and orphaned photo cleanup.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

import core.config as config
from core import error_codes
from core.errors import AppError, ErrorCategory, ErrorSeverity, MigrationRegistrationError, StoreError
from core.result import Err, Ok, Result
from core.services.data_version import get_data_version, read_data_version, write_data_version
from core.services.validation import find_orphaned_photos, orphaned_photos_in, validate_record
from core.store import RecordStore, StoreTransaction
from core.timeutil import utcnow

logger = config.logger

# Every migration runs inside one transaction spanning these tables
MIGRATION_TABLES = ("fishing_records", "photos", "app_settings")

MigrationStep = Callable[[StoreTransaction], None]


@dataclass(frozen=True)
class Migration:
    id: str
    version: str
    description: str
    up: MigrationStep
    down: Optional[MigrationStep] = None

    @property
    def supports_rollback(self) -> bool:
        return self.down is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "version": self.version,
            "description": self.description,
            "supports_rollback": self.supports_rollback,
        }


class MigrationRegistry:
    """Immutable, ordered set of migrations. Duplicate ids are rejected on construction."""

    def __init__(self, migrations: Iterable[Migration] = ()):
        ordered = tuple(migrations)
        seen = set()
        for migration in ordered:
            if migration.id in seen:
                raise MigrationRegistrationError(
                    f"Duplicate migration id '{migration.id}'", migration.id
                )
            seen.add(migration.id)
        self._migrations = ordered
        self._by_id = {migration.id: migration for migration in ordered}

    def __iter__(self):
        return iter(self._migrations)

    def __len__(self) -> int:
        return len(self._migrations)

    def __contains__(self, migration_id: str) -> bool:
        return migration_id in self._by_id

    def get(self, migration_id: str) -> Optional[Migration]:
        return self._by_id.get(migration_id)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(migration.id for migration in self._migrations)


@dataclass
class MigrationResult:
    success: bool
    applied_migrations: list[str] = field(default_factory=list)
    skipped_migrations: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    version_recorded: bool = True

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "applied_migrations": list(self.applied_migrations),
            "skipped_migrations": list(self.skipped_migrations),
            "errors": list(self.errors),
            "version_recorded": self.version_recorded,
        }


@dataclass
class IntegrityReport:
    is_valid: bool
    orphaned_photos: int = 0
    invalid_records: int = 0
    issues: list[str] = field(default_factory=list)
    orphaned_photo_ids: list[str] = field(default_factory=list)
    invalid_record_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "orphaned_photos": self.orphaned_photos,
            "invalid_records": self.invalid_records,
            "issues": list(self.issues),
            "orphaned_photo_ids": list(self.orphaned_photo_ids),
            "invalid_record_ids": list(self.invalid_record_ids),
        }


@dataclass
class CleanupReport:
    deleted_count: int
    deleted_ids: list[str] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> dict:
        return {
            "deleted_count": self.deleted_count,
            "deleted_ids": list(self.deleted_ids),
            "dry_run": self.dry_run,
        }


class MigrationManager:
    """
    Applies registered migrations against a record store.

    Applied state lives only in the persisted data version. Ids whose migration
    committed but whose version write failed are held in memory, excluded from
    pending, and recorded on the next run or via ``record_applied_migrations``.
    """

    def __init__(
        self,
        registry: MigrationRegistry,
        store: Optional[RecordStore] = None,
        target_schema_version: int = config.CURRENT_SCHEMA_VERSION,
    ):
        self.registry = registry
        self.store = store or RecordStore()
        self.target_schema_version = target_schema_version
        self._unrecorded: list[str] = []
        self._state_lock = threading.Lock()

    @property
    def unrecorded_migrations(self) -> list[str]:
        with self._state_lock:
            return list(self._unrecorded)

    def get_pending_migrations(self) -> Result[list[Migration]]:
        current = get_data_version(self.store)
        if not current.success:
            return Err(AppError(
                code=error_codes.PENDING_MIGRATIONS_GET_FAILED,
                message="Failed to determine pending migrations",
                severity=ErrorSeverity.error,
                category=ErrorCategory.storage,
                cause=current.error.cause,
            ))
        return Ok(self._pending(current.data.migrations_applied))

    def _pending(self, applied: Iterable[str]) -> list[Migration]:
        done = set(applied) | set(self.unrecorded_migrations)
        return [migration for migration in self.registry if migration.id not in done]

    def _write_applied(self, ids: list[str]) -> None:
        with self.store.transaction("app_settings") as tx:
            current = read_data_version(tx)
            write_data_version(
                tx,
                current.with_applied(ids, self.target_schema_version, utcnow()),
            )

    def record_applied_migrations(self) -> Result[list[str]]:
        """Retry the version write for migrations that committed without being recorded."""
        # store lock before state lock, the same order a run takes them
        with self.store.exclusive(), self._state_lock:
            ids = list(self._unrecorded)
            if not ids:
                return Ok([])
            try:
                self._write_applied(ids)
            except (StoreError, ValueError, TypeError) as exc:
                logger.critical(
                    "Applied migrations could not be recorded",
                    extra={"migration_ids": ids, "error": str(exc)},
                )
                return Err(AppError(
                    code=error_codes.VERSION_UPDATE_FAILED,
                    message="Migrations were applied but the data version could not be updated",
                    severity=ErrorSeverity.error,
                    category=ErrorCategory.storage,
                    details={"unrecordedMigrations": ids},
                    cause=exc,
                ))
            self._unrecorded.clear()
        logger.info("Recorded applied migrations", extra={"migration_ids": ids})
        return Ok(ids)

    def run_migrations(self, dry_run: bool = False) -> Result[MigrationResult]:
        if dry_run:
            pending_result = self.get_pending_migrations()
            if not pending_result.success:
                return self._pending_unavailable(pending_result.error.cause)
            pending_ids = [migration.id for migration in pending_result.data]
            if pending_ids:
                logger.info("Migration dry run", extra={"pending_migrations": pending_ids})
            return Ok(MigrationResult(success=True, skipped_migrations=pending_ids))

        # one run at a time per store; pending is read under the same lock
        with self.store.exclusive():
            return self._apply_pending()

    def _pending_unavailable(self, cause: Optional[BaseException]) -> Err:
        return Err(AppError(
            code=error_codes.MIGRATION_FAILED,
            message="Migration run aborted: pending migrations unavailable",
            severity=ErrorSeverity.error,
            category=ErrorCategory.storage,
            cause=cause,
        ))

    def _apply_pending(self) -> Result[MigrationResult]:
        if self.unrecorded_migrations:
            retried = self.record_applied_migrations()
            if not retried.success:
                return Ok(MigrationResult(
                    success=False,
                    errors=[retried.error.message],
                    version_recorded=False,
                ))

        pending: Optional[list[Migration]] = None
        running: Optional[Migration] = None
        try:
            with self.store.transaction(*MIGRATION_TABLES) as tx:
                pending = self._pending(read_data_version(tx).migrations_applied)
                for migration in pending:
                    running = migration
                    logger.info(
                        "Applying migration",
                        extra={"migration_id": migration.id, "description": migration.description},
                    )
                    migration.up(tx)
                running = None
        except Exception as exc:
            if pending is None:
                logger.error("Failed to determine pending migrations", extra={"error": str(exc)})
                return self._pending_unavailable(exc)
            pending_ids = [migration.id for migration in pending]
            failed_id = running.id if running is not None else "commit"
            logger.critical(
                "Migration run failed; all changes rolled back",
                extra={"migration_id": failed_id, "error": str(exc)},
            )
            return Err(AppError(
                code=error_codes.MIGRATION_EXECUTION_FAILED,
                message=f"Migration '{failed_id}' failed",
                severity=ErrorSeverity.critical,
                category=ErrorCategory.storage,
                details={
                    "pendingMigrations": pending_ids,
                    "appliedMigrations": [],
                    "skippedMigrations": [mid for mid in pending_ids if mid != failed_id],
                    "errors": [failed_id],
                    "messages": {failed_id: str(exc)},
                },
                cause=exc,
            ))

        pending_ids = [migration.id for migration in pending]
        if not pending_ids:
            return Ok(MigrationResult(success=True))

        with self._state_lock:
            self._unrecorded.extend(pending_ids)
        recorded = self.record_applied_migrations()
        if not recorded.success:
            return Ok(MigrationResult(
                success=False,
                applied_migrations=pending_ids,
                errors=[recorded.error.message],
                version_recorded=False,
            ))

        logger.info("Migrations applied", extra={"migration_ids": pending_ids})
        return Ok(MigrationResult(success=True, applied_migrations=pending_ids))

    def rollback_migration(self, migration_id: str) -> Result[None]:
        migration = self.registry.get(migration_id)
        if migration is None:
            return Err(AppError(
                code=error_codes.MIGRATION_NOT_FOUND,
                message=f"Migration '{migration_id}' is not registered",
                severity=ErrorSeverity.warning,
                category=ErrorCategory.system,
            ))
        if not migration.supports_rollback:
            return Err(AppError(
                code=error_codes.ROLLBACK_NOT_SUPPORTED,
                message=f"Migration '{migration_id}' does not support rollback",
                severity=ErrorSeverity.warning,
                category=ErrorCategory.system,
            ))

        with self.store.exclusive():
            return self._rollback(migration)

    def _rollback(self, migration: Migration) -> Result[None]:
        migration_id = migration.id
        applied: Optional[bool] = None
        try:
            with self.store.transaction(*MIGRATION_TABLES) as tx:
                stored = read_data_version(tx)
                applied = (
                    migration_id in stored.migrations_applied
                    or migration_id in self.unrecorded_migrations
                )
                if applied:
                    migration.down(tx)
        except Exception as exc:
            if applied is None:
                logger.error("Failed to read data version", extra={"error": str(exc)})
                return Err(AppError(
                    code=error_codes.VERSION_GET_FAILED,
                    message="Failed to read data version",
                    severity=ErrorSeverity.error,
                    category=ErrorCategory.storage,
                    cause=exc,
                ))
            logger.critical(
                "Migration rollback failed; changes rolled back",
                extra={"migration_id": migration_id, "error": str(exc)},
            )
            return Err(AppError(
                code=error_codes.ROLLBACK_FAILED,
                message=f"Rollback of migration '{migration_id}' failed",
                severity=ErrorSeverity.critical,
                category=ErrorCategory.storage,
                cause=exc,
            ))

        if not applied:
            return Err(AppError(
                code=error_codes.MIGRATION_NOT_APPLIED,
                message=f"Migration '{migration_id}' is not applied",
                severity=ErrorSeverity.warning,
                category=ErrorCategory.system,
            ))

        with self._state_lock:
            if migration_id in self._unrecorded:
                self._unrecorded.remove(migration_id)
        try:
            with self.store.transaction("app_settings") as tx:
                stored = read_data_version(tx)
                write_data_version(tx, stored.without(migration_id, utcnow()))
        except (StoreError, ValueError, TypeError) as exc:
            logger.error(
                "Rollback committed but data version could not be updated",
                extra={"migration_id": migration_id, "error": str(exc)},
            )
            return Err(AppError(
                code=error_codes.VERSION_UPDATE_FAILED,
                message=f"Migration '{migration_id}' was rolled back but the data version could not be updated",
                severity=ErrorSeverity.error,
                category=ErrorCategory.storage,
                cause=exc,
            ))

        logger.info("Migration rolled back", extra={"migration_id": migration_id})
        return Ok(None)

    def check_data_integrity(self) -> Result[IntegrityReport]:
        def failed(exc: Optional[BaseException], details=None) -> Err:
            logger.error("Integrity check failed", extra={"error": str(exc) if exc else None})
            return Err(AppError(
                code=error_codes.INTEGRITY_CHECK_FAILED,
                message="Data integrity check failed",
                severity=ErrorSeverity.error,
                category=ErrorCategory.storage,
                details=details,
                cause=exc,
            ))

        orphans = find_orphaned_photos(self.store)
        if not orphans.success:
            return failed(orphans.error.cause, {"cause": orphans.error.to_dict()})

        try:
            records = self.store.to_array("fishing_records")
        except StoreError as exc:
            return failed(exc)

        issues: list[str] = []
        orphan_ids = [photo["id"] for photo in orphans.data]
        if orphan_ids:
            issues.append(f"orphaned photos: {len(orphan_ids)}")

        invalid_ids: list[str] = []
        for record in records:
            result = validate_record(record, check_references=True, strict=True, store=self.store)
            if result.is_valid:
                continue
            invalid_ids.append(record["id"])
            problems = [item.error for item in result.field_errors] + list(result.reference_errors)
            issues.append(f"record {record['id']}: {', '.join(problems)}")

        report = IntegrityReport(
            is_valid=not issues,
            orphaned_photos=len(orphan_ids),
            invalid_records=len(invalid_ids),
            issues=issues,
            orphaned_photo_ids=orphan_ids,
            invalid_record_ids=invalid_ids,
        )
        log = logger.info if report.is_valid else logger.warning
        log(
            "Integrity check completed",
            extra={"orphaned_photos": report.orphaned_photos, "invalid_records": report.invalid_records},
        )
        return Ok(report)

    def cleanup_orphaned_photos(self, dry_run: bool = False) -> Result[CleanupReport]:
        # scan and delete share one transaction so a newly referenced photo is never removed
        deleted = 0
        try:
            with self.store.transaction("fishing_records", "photos", mode="r" if dry_run else "rw") as tx:
                orphan_ids = [photo["id"] for photo in orphaned_photos_in(tx)]
                if orphan_ids and not dry_run:
                    deleted = tx.bulk_delete("photos", orphan_ids)
        except StoreError as exc:
            logger.error("Orphaned photo cleanup failed", extra={"error": str(exc)})
            return Err(AppError(
                code=error_codes.CLEANUP_FAILED,
                message="Failed to delete orphaned photos",
                severity=ErrorSeverity.error,
                category=ErrorCategory.storage,
                cause=exc,
            ))

        if deleted:
            logger.info("Orphaned photos deleted", extra={"deleted_count": deleted})
        return Ok(CleanupReport(deleted_count=len(orphan_ids), deleted_ids=orphan_ids, dry_run=dry_run))


__all__ = [
    "Migration",
    "MigrationRegistry",
    "MigrationResult",
    "IntegrityReport",
    "CleanupReport",
    "MigrationManager",
    "MIGRATION_TABLES",
]
