import os

os.environ.setdefault("DB_BACKEND", "sqlite")
os.environ.setdefault("CATCHLOG_INTEGRITY_CHECK_INTERVAL_SECONDS", "0")

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core.db import DB
from core.models import Base, new_id
from core.store import RecordStore


@pytest.fixture
def server_db(tmp_path):
    """Fresh SQLite database swapped into ``DB`` for the duration of a test."""
    db_path = tmp_path / "catchlog-test.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    previous_engine = DB.engine
    previous_session = DB.SessionLocal
    DB.engine = engine
    DB.SessionLocal = SessionLocal
    try:
        yield engine
    finally:
        DB.engine = previous_engine
        DB.SessionLocal = previous_session
        engine.dispose()


@pytest.fixture
def store(server_db):
    return RecordStore()


@pytest.fixture
def db_session(server_db):
    session = DB.SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_record(**overrides) -> dict:
    record = {
        "id": new_id(),
        "date": datetime(2024, 5, 10, 6, 30, tzinfo=timezone.utc),
        "location": "Tokyo Bay",
        "fish_species": "Seabass",
        "size": 45.0,
        "weight": 1200.0,
        "weather": "sunny",
        "temperature": 18.0,
        "coordinates": {"latitude": 35.5, "longitude": 139.8, "accuracy": 10.0},
        "notes": "caught at dawn",
        "photo_id": None,
        "created_at": datetime(2024, 5, 10, 7, 0, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 5, 10, 7, 0, tzinfo=timezone.utc),
    }
    record.update(overrides)
    return record


def make_photo(photo_id: str = "photo-1", blob: bytes = b"\xff\xd8jpegdata", **overrides) -> dict:
    photo = {
        "id": photo_id,
        "blob": blob,
        "filename": f"{photo_id}.jpg",
        "mime_type": "image/jpeg",
        "file_size": len(blob),
        "uploaded_at": datetime(2024, 5, 10, 7, 0, tzinfo=timezone.utc),
    }
    photo.update(overrides)
    return photo


class FailingStore(RecordStore):
    """Store whose reads and writes can be made to fail per table/operation."""

    def __init__(self, fail_get: bool = False, fail_settings_write: bool = False):
        super().__init__()
        self.fail_get = fail_get
        self.fail_settings_write = fail_settings_write

    def get(self, table, entity_id):
        from core.errors import StoreError

        if self.fail_get:
            raise StoreError("simulated read failure", table=table)
        return super().get(table, entity_id)

    def transaction(self, *tables, mode="rw"):
        from core.errors import StoreError

        if self.fail_settings_write and mode == "rw" and tables == ("app_settings",):
            raise StoreError("simulated settings write failure", table="app_settings")
        return super().transaction(*tables, mode=mode)
