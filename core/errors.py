"""
Shared error types for core services.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorSeverity(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"
    critical = "critical"


class ErrorCategory(str, Enum):
    storage = "storage"
    validation = "validation"
    system = "system"


class AppError:
    """Expected failure carried inside an ``Err`` result (never raised)."""

    def __init__(
        self,
        code: str,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.error,
        category: ErrorCategory = ErrorCategory.storage,
        details: Any = None,
        cause: Optional[BaseException] = None,
    ):
        self.code = code
        self.message = message
        self.severity = severity
        self.category = category
        self.details = details
        self.cause = cause

    def to_dict(self) -> dict:
        payload = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
        }
        if self.details is not None:
            payload["details"] = self.details
        if self.cause is not None:
            payload["cause"] = str(self.cause)
        return payload

    def __repr__(self) -> str:
        return f"AppError(code={self.code!r}, severity={self.severity.value!r}, message={self.message!r})"


class StoreError(RuntimeError):
    """Raised when the record store cannot complete an operation."""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.table = table


class MigrationRegistrationError(ValueError):
    """Raised when the migration registry is misconfigured (e.g. duplicate ids)."""

    def __init__(self, message: str, migration_id: str):
        super().__init__(message)
        self.migration_id = migration_id
