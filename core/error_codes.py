"""
Canonical error code strings returned in ``Err`` results.
"""

VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
CREATE_FAILED = "CREATE_FAILED"
GET_FAILED = "GET_FAILED"
GET_RECORDS_FAILED = "GET_RECORDS_FAILED"
UPDATE_FAILED = "UPDATE_FAILED"
DELETE_FAILED = "DELETE_FAILED"

VERSION_GET_FAILED = "VERSION_GET_FAILED"
VERSION_UPDATE_FAILED = "VERSION_UPDATE_FAILED"
SCHEMA_COMPATIBILITY_CHECK_FAILED = "SCHEMA_COMPATIBILITY_CHECK_FAILED"

PENDING_MIGRATIONS_GET_FAILED = "PENDING_MIGRATIONS_GET_FAILED"
MIGRATION_FAILED = "MIGRATION_FAILED"
MIGRATION_EXECUTION_FAILED = "MIGRATION_EXECUTION_FAILED"
MIGRATION_NOT_FOUND = "MIGRATION_NOT_FOUND"
MIGRATION_NOT_APPLIED = "MIGRATION_NOT_APPLIED"
ROLLBACK_NOT_SUPPORTED = "ROLLBACK_NOT_SUPPORTED"
ROLLBACK_FAILED = "ROLLBACK_FAILED"

INTEGRITY_CHECK_FAILED = "INTEGRITY_CHECK_FAILED"
ORPHANED_PHOTOS_CHECK_FAILED = "ORPHANED_PHOTOS_CHECK_FAILED"
CLEANUP_FAILED = "CLEANUP_FAILED"

NOT_FOUND_CODES = {NOT_FOUND, MIGRATION_NOT_FOUND}

__all__ = [
    "VALIDATION_ERROR",
    "NOT_FOUND",
    "CREATE_FAILED",
    "GET_FAILED",
    "GET_RECORDS_FAILED",
    "UPDATE_FAILED",
    "DELETE_FAILED",
    "VERSION_GET_FAILED",
    "VERSION_UPDATE_FAILED",
    "SCHEMA_COMPATIBILITY_CHECK_FAILED",
    "PENDING_MIGRATIONS_GET_FAILED",
    "MIGRATION_FAILED",
    "MIGRATION_EXECUTION_FAILED",
    "MIGRATION_NOT_FOUND",
    "MIGRATION_NOT_APPLIED",
    "ROLLBACK_NOT_SUPPORTED",
    "ROLLBACK_FAILED",
    "INTEGRITY_CHECK_FAILED",
    "ORPHANED_PHOTOS_CHECK_FAILED",
    "CLEANUP_FAILED",
    "NOT_FOUND_CODES",
]
