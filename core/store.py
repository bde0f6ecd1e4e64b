"""
Record store: key-value style CRUD and multi-table transactions over SQLAlchemy.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager, nullcontext
from typing import Iterator, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

import core.config as config
from core.db import DB
from core.errors import StoreError
from core.models import STORE_TABLES
from core.timeutil import utcnow

logger = config.logger

TRANSACTION_MODES = {"r", "rw"}


def _resolve_table(table: str):
    try:
        return STORE_TABLES[table]
    except KeyError:
        raise StoreError(f"Unknown table '{table}'", table=table) from None


class StoreTransaction:
    """Operations bound to one open session; nothing is committed until the
    enclosing ``RecordStore.transaction`` block exits cleanly."""

    def __init__(self, session, tables: Sequence[str], read_only: bool = False):
        self._session = session
        self._tables = frozenset(tables)
        self._read_only = read_only

    @property
    def tables(self) -> frozenset:
        return self._tables

    def _model(self, table: str, write: bool = False):
        model, pk = _resolve_table(table)
        if table not in self._tables:
            raise StoreError(f"Table '{table}' is not part of this transaction", table=table)
        if write and self._read_only:
            raise StoreError(f"Cannot write to '{table}' in a read-only transaction", table=table)
        return model, pk

    def get(self, table: str, entity_id) -> Optional[dict]:
        model, _ = self._model(table)
        row = self._session.get(model, entity_id)
        return row.to_dict() if row is not None else None

    def add(self, table: str, entity: dict):
        model, pk = self._model(table, write=True)
        values = model.columns_from_dict(entity)
        if values.get(pk) is not None and self._session.get(model, values[pk]) is not None:
            raise StoreError(f"{table} entry '{values[pk]}' already exists", table=table)
        row = model(**values)
        self._session.add(row)
        self._session.flush()
        return getattr(row, pk)

    def put(self, table: str, entity: dict):
        model, pk = self._model(table, write=True)
        values = model.columns_from_dict(entity)
        row = self._session.get(model, values[pk]) if values.get(pk) is not None else None
        if row is None:
            row = model(**values)
            self._session.add(row)
        else:
            for key, value in values.items():
                if key != pk:
                    setattr(row, key, value)
        self._session.flush()
        return getattr(row, pk)

    def update(self, table: str, entity_id, patch: dict) -> bool:
        model, pk = self._model(table, write=True)
        row = self._session.get(model, entity_id)
        if row is None:
            return False
        for key, value in model.columns_from_dict(patch).items():
            if key != pk:
                setattr(row, key, value)
        self._session.flush()
        return True

    def delete(self, table: str, entity_id) -> bool:
        model, _ = self._model(table, write=True)
        row = self._session.get(model, entity_id)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True

    def bulk_delete(self, table: str, entity_ids: Sequence) -> int:
        model, pk = self._model(table, write=True)
        ids = list(entity_ids)
        if not ids:
            return 0
        deleted = (
            self._session.query(model)
            .filter(getattr(model, pk).in_(ids))
            .delete(synchronize_session=False)
        )
        self._session.flush()
        return deleted

    def to_array(self, table: str) -> list[dict]:
        model, pk = self._model(table)
        rows = self._session.query(model).order_by(getattr(model, pk)).all()
        return [row.to_dict() for row in rows]

    def count(self, table: str) -> int:
        model, pk = self._model(table)
        return self._session.query(func.count(getattr(model, pk))).scalar() or 0

    def get_setting(self, key: str) -> Optional[str]:
        entry = self.get("app_settings", key)
        return entry["value"] if entry else None

    def put_setting(self, key: str, value: str, value_type: str = "string") -> None:
        self.put(
            "app_settings",
            {"key": key, "value": value, "type": value_type, "updated_at": utcnow()},
        )


class RecordStore:
    """Record store over the configured database.

    Read-write transactions are serialized process-wide, so a migration run
    queues concurrent writers instead of interleaving with them.
    """

    _write_lock = threading.RLock()

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    def _new_session(self):
        factory = self._session_factory or DB.SessionLocal
        if factory is None:
            raise StoreError("Database not initialized - SessionLocal is None")
        return factory()

    @contextmanager
    def transaction(self, *tables: str, mode: str = "rw") -> Iterator[StoreTransaction]:
        if mode not in TRANSACTION_MODES:
            raise ValueError(f"mode must be one of {sorted(TRANSACTION_MODES)}")
        for table in tables:
            _resolve_table(table)
        scope = tables or tuple(STORE_TABLES.keys())
        read_only = mode == "r"
        lock = nullcontext() if read_only else self._write_lock
        with lock:
            session = self._new_session()
            try:
                yield StoreTransaction(session, scope, read_only=read_only)
                if not read_only:
                    session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Store transaction failed", extra={"tables": list(scope), "error": str(exc)})
                raise StoreError(f"Store transaction failed: {exc}") from exc
            except BaseException:
                session.rollback()
                raise
            finally:
                session.close()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the write lock across several read-write transactions."""
        with self._write_lock:
            yield

    def get(self, table: str, entity_id) -> Optional[dict]:
        with self.transaction(table, mode="r") as tx:
            return tx.get(table, entity_id)

    def add(self, table: str, entity: dict):
        with self.transaction(table) as tx:
            return tx.add(table, entity)

    def put(self, table: str, entity: dict):
        with self.transaction(table) as tx:
            return tx.put(table, entity)

    def update(self, table: str, entity_id, patch: dict) -> bool:
        with self.transaction(table) as tx:
            return tx.update(table, entity_id, patch)

    def delete(self, table: str, entity_id) -> bool:
        with self.transaction(table) as tx:
            return tx.delete(table, entity_id)

    def bulk_delete(self, table: str, entity_ids: Sequence) -> int:
        with self.transaction(table) as tx:
            return tx.bulk_delete(table, entity_ids)

    def to_array(self, table: str) -> list[dict]:
        with self.transaction(table, mode="r") as tx:
            return tx.to_array(table)

    def count(self, table: str) -> int:
        with self.transaction(table, mode="r") as tx:
            return tx.count(table)

    def get_setting(self, key: str) -> Optional[str]:
        with self.transaction("app_settings", mode="r") as tx:
            return tx.get_setting(key)

    def put_setting(self, key: str, value: str, value_type: str = "string") -> None:
        with self.transaction("app_settings") as tx:
            tx.put_setting(key, value, value_type)


__all__ = ["RecordStore", "StoreTransaction", "TRANSACTION_MODES"]
