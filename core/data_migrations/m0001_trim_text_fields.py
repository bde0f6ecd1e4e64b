"""
Trim surrounding whitespace from record text fields.

Original values are kept in a backup setting so the migration can be reversed.
"""

from __future__ import annotations

import json

from core.services.migrations import Migration
from core.store import StoreTransaction

MIGRATION_ID = "0001_trim_text_fields"
BACKUP_SETTING_KEY = f"migration.{MIGRATION_ID}.backup"
TRIMMED_FIELDS = ("location", "fish_species", "weather")


def up(tx: StoreTransaction) -> None:
    backup: dict[str, dict[str, str]] = {}
    for record in tx.to_array("fishing_records"):
        patch = {}
        for name in TRIMMED_FIELDS:
            value = record.get(name)
            if not isinstance(value, str):
                continue
            trimmed = value.strip()
            # blank values are left for the integrity check to report
            if trimmed and trimmed != value:
                patch[name] = trimmed
        if patch:
            backup[record["id"]] = {name: record[name] for name in patch}
            tx.update("fishing_records", record["id"], patch)
    tx.put_setting(BACKUP_SETTING_KEY, json.dumps(backup), "object")


def down(tx: StoreTransaction) -> None:
    raw = tx.get_setting(BACKUP_SETTING_KEY)
    if raw is None:
        return
    for record_id, originals in json.loads(raw).items():
        tx.update("fishing_records", record_id, originals)
    tx.delete("app_settings", BACKUP_SETTING_KEY)


MIGRATION = Migration(
    id=MIGRATION_ID,
    version="1.3.0",
    description="Trim whitespace around location, species and weather",
    up=up,
    down=down,
)
