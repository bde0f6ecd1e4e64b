import os

os.environ.setdefault("DB_BACKEND", "sqlite")
os.environ.setdefault("CATCHLOG_INTEGRITY_CHECK_INTERVAL_SECONDS", "0")

import base64

import pytest
from fastapi.testclient import TestClient

import app.deps as deps
import app.main as main
import core.config as config
from core.db import DB
from core.services.migrations import Migration, MigrationRegistry


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", f"sqlite:///{tmp_path / 'api.sqlite'}")
    monkeypatch.setattr(deps, "_managers", {})
    previous_engine = DB.engine
    previous_session = DB.SessionLocal
    try:
        yield monkeypatch
    finally:
        DB.engine = previous_engine
        DB.SessionLocal = previous_session


@pytest.fixture
def client(app_env):
    with TestClient(main.app) as test_client:
        yield test_client


RECORD = {
    "date": "2024-05-10T06:30:00Z",
    "location": "Tokyo Bay",
    "fish_species": "Seabass",
    "size": 45,
    "weight": 1200,
}


def test_root_and_health(client):
    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["service"] == "CatchLog"

    health = client.get("/health")
    assert health.status_code == 200
    body = health.json()
    assert body["database"]["schema_up_to_date"] is True
    assert body["data_version"]["is_compatible"] is True


def test_startup_applies_data_migrations(client):
    status = client.get("/maintenance/migrations").json()
    assert status["pending"] == []
    assert [m["id"] for m in status["registered"]] == [
        "0001_trim_text_fields",
        "0002_backfill_photo_file_size",
    ]
    schema = client.get("/maintenance/schema").json()
    assert schema["data_version"]["migrations_applied"] == [
        "0001_trim_text_fields",
        "0002_backfill_photo_file_size",
    ]


def test_record_crud(client):
    created = client.post("/records", json=RECORD)
    assert created.status_code == 201
    record_id = created.json()["id"]
    assert created.json()["date"].startswith("2024-05-10T06:30:00")

    assert client.get(f"/records/{record_id}").status_code == 200

    patched = client.patch(f"/records/{record_id}", json={"size": 50})
    assert patched.status_code == 200
    assert patched.json()["size"] == 50

    listing = client.get("/records", params={"sort_by": "size", "sort_order": "desc"})
    assert listing.json()["count"] == 1

    assert client.delete(f"/records/{record_id}").status_code == 200
    missing = client.get(f"/records/{record_id}")
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "NOT_FOUND"


def test_invalid_record_is_422(client):
    response = client.post("/records", json={**RECORD, "size": 5000})
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "VALIDATION_ERROR"
    assert detail["details"]["is_valid"] is False


def test_validate_endpoints(client):
    lenient = client.post("/records/validate", json={**RECORD, "photo_id": "missing"}).json()
    assert lenient["is_valid"] is True
    assert lenient["reference_errors"]

    strict = client.post("/records/validate", params={"strict": True}, json={**RECORD, "photo_id": "missing"})
    assert strict.json()["is_valid"] is False

    photo = {"blob_base64": base64.b64encode(b"jpegbytes").decode(), "mime_type": "image/jpeg"}
    assert client.post("/photos/validate", json=photo).json()["is_valid"] is True
    assert client.post("/photos/validate", json={"blob_base64": "%%%"}).status_code == 400


def test_statistics_endpoints(client):
    client.post("/records", json=RECORD)
    client.post("/records", json={**RECORD, "size": 55, "fish_species": "Bream"})

    report = client.get("/statistics").json()
    assert report["overall"]["total_records"] == 2
    assert report["overall"]["average_size"] == 50.0

    for view in ("overall", "species", "locations", "time", "sizes", "weather"):
        assert client.get(f"/statistics/{view}").status_code == 200


def test_maintenance_endpoints(client):
    dry = client.post("/maintenance/migrations/run", params={"dry_run": True}).json()
    assert dry["success"] is True
    assert dry["skipped_migrations"] == []

    assert client.post("/maintenance/migrations/unknown/rollback").status_code == 404
    unsupported = client.post("/maintenance/migrations/0002_backfill_photo_file_size/rollback")
    assert unsupported.status_code == 409
    assert unsupported.json()["detail"]["code"] == "ROLLBACK_NOT_SUPPORTED"

    integrity = client.get("/maintenance/integrity").json()
    assert integrity["is_valid"] is True

    cleanup = client.post("/maintenance/photos/cleanup", params={"dry_run": True}).json()
    assert cleanup["deleted_count"] == 0


def test_startup_fails_when_a_migration_fails(app_env):
    def fail(tx):
        raise RuntimeError("broken migration")

    registry = MigrationRegistry([Migration("broken", "9.9.9", "always fails", fail)])
    app_env.setattr(main, "get_registry", lambda: registry)

    with pytest.raises(RuntimeError):
        with TestClient(main.app):
            pass
