"""
Backfill ``photos.file_size`` from the stored blob where it is missing or wrong.
"""

from __future__ import annotations

from core.services.migrations import Migration
from core.store import StoreTransaction


def up(tx: StoreTransaction) -> None:
    for photo in tx.to_array("photos"):
        blob = photo.get("blob") or b""
        if photo.get("file_size") != len(blob):
            tx.update("photos", photo["id"], {"file_size": len(blob)})


MIGRATION = Migration(
    id="0002_backfill_photo_file_size",
    version="1.4.0",
    description="Set photo file_size from the stored blob length",
    up=up,
)
