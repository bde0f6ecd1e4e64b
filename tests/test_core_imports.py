import os

os.environ.setdefault("DB_BACKEND", "sqlite")


def test_core_imports():
    import core.data_migrations  # noqa: F401
    import core.models  # noqa: F401
    import core.services.migrations  # noqa: F401
    import core.services.records  # noqa: F401
    import core.services.statistics  # noqa: F401


def test_alembic_upgrade_creates_tables(tmp_path, monkeypatch):
    from sqlalchemy import create_engine, inspect

    import core.config as config
    from core.db import _ensure_schema_up_to_date, _get_schema_revisions

    url = f"sqlite:///{tmp_path / 'alembic.sqlite'}"
    monkeypatch.setattr(config, "DATABASE_URL", url)
    monkeypatch.setattr(config, "AUTO_MIGRATE_ON_STARTUP", True)
    engine = create_engine(url)
    try:
        _ensure_schema_up_to_date(engine)
        tables = set(inspect(engine).get_table_names())
        assert {"fishing_records", "photos", "app_settings"} <= tables
        current, head = _get_schema_revisions(engine)
        assert current == head == "0001_initial_schema"
    finally:
        engine.dispose()


def test_stale_schema_refused_without_auto_migrate(tmp_path, monkeypatch):
    import pytest
    from sqlalchemy import create_engine

    import core.config as config
    from core.db import _ensure_schema_up_to_date

    url = f"sqlite:///{tmp_path / 'stale.sqlite'}"
    monkeypatch.setattr(config, "DATABASE_URL", url)
    monkeypatch.setattr(config, "AUTO_MIGRATE_ON_STARTUP", False)
    engine = create_engine(url)
    try:
        with pytest.raises(RuntimeError):
            _ensure_schema_up_to_date(engine)
    finally:
        engine.dispose()
