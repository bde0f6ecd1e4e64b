"""
Tagged success/failure values returned by every public service operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from core.errors import AppError

T = TypeVar("T")


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value


@dataclass(frozen=True)
class Ok(Generic[T]):
    data: T = None

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> dict:
        return {"success": True, "data": _serialize(self.data)}


@dataclass(frozen=True)
class Err:
    error: AppError

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> dict:
        return {"success": False, "error": self.error.to_dict()}


Result = Union[Ok[T], Err]

__all__ = ["Ok", "Err", "Result"]
