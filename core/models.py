"""
CatchLog Database Models
SQLite / PostgreSQL schema for records, photos and settings
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
import uuid

from sqlalchemy import (
    Column, Integer, String, Text, Float, DateTime, LargeBinary, Index,
)
from sqlalchemy.orm import declarative_base

from core.timeutil import ensure_utc, parse_datetime, utcnow

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def _read_dt(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive values; everything is stored as UTC
    if value is None:
        return None
    return ensure_utc(value)


def _write_dt(value: Any) -> Optional[datetime]:
    parsed = parse_datetime(value)
    if parsed is None:
        return value if isinstance(value, datetime) else None
    return ensure_utc(parsed)


# =============================================================================
# Fishing records
# =============================================================================

class FishingRecord(Base):
    __tablename__ = "fishing_records"

    id = Column(String(36), primary_key=True, default=new_id)
    date = Column(DateTime(timezone=True), nullable=False)
    location = Column(Text, nullable=False)
    fish_species = Column(Text, nullable=False)
    size = Column(Float)  # cm
    weight = Column(Float)  # g
    weather = Column(Text)
    temperature = Column(Float)  # water temperature, C
    latitude = Column(Float)
    longitude = Column(Float)
    accuracy = Column(Float)  # meters
    notes = Column(Text)
    photo_id = Column(String(36))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_fishing_records_date", "date"),
        Index("ix_fishing_records_fish_species", "fish_species"),
        Index("ix_fishing_records_location", "location"),
        Index("ix_fishing_records_photo_id", "photo_id"),
    )

    def to_dict(self) -> dict:
        coordinates = None
        if self.latitude is not None and self.longitude is not None:
            coordinates = {"latitude": self.latitude, "longitude": self.longitude}
            if self.accuracy is not None:
                coordinates["accuracy"] = self.accuracy
        return {
            "id": self.id,
            "date": _read_dt(self.date),
            "location": self.location,
            "fish_species": self.fish_species,
            "size": self.size,
            "weight": self.weight,
            "weather": self.weather,
            "temperature": self.temperature,
            "coordinates": coordinates,
            "notes": self.notes,
            "photo_id": self.photo_id,
            "created_at": _read_dt(self.created_at),
            "updated_at": _read_dt(self.updated_at),
        }

    @staticmethod
    def columns_from_dict(entity: dict) -> dict:
        """Map the record dict shape onto column values (only keys present are mapped)."""
        values = {}
        for key in ("id", "location", "fish_species", "size", "weight", "weather",
                    "temperature", "notes", "photo_id"):
            if key in entity:
                values[key] = entity[key]
        for key in ("date", "created_at", "updated_at"):
            if key in entity:
                values[key] = _write_dt(entity[key])
        if "coordinates" in entity:
            coordinates = entity["coordinates"] or {}
            values["latitude"] = coordinates.get("latitude")
            values["longitude"] = coordinates.get("longitude")
            values["accuracy"] = coordinates.get("accuracy")
        return values


# =============================================================================
# Photos
# =============================================================================

class Photo(Base):
    __tablename__ = "photos"

    id = Column(String(36), primary_key=True, default=new_id)
    blob = Column(LargeBinary, nullable=False)
    thumbnail_blob = Column(LargeBinary)
    filename = Column(String(255))
    mime_type = Column(String(100))
    file_size = Column(Integer)  # bytes
    width = Column(Integer)
    height = Column(Integer)
    compression_quality = Column(Float)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_photos_uploaded_at", "uploaded_at"),
        Index("ix_photos_mime_type", "mime_type"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "blob": self.blob,
            "thumbnail_blob": self.thumbnail_blob,
            "filename": self.filename,
            "mime_type": self.mime_type,
            "file_size": self.file_size,
            "width": self.width,
            "height": self.height,
            "compression_quality": self.compression_quality,
            "uploaded_at": _read_dt(self.uploaded_at),
        }

    @staticmethod
    def columns_from_dict(entity: dict) -> dict:
        values = {}
        for key in ("id", "blob", "thumbnail_blob", "filename", "mime_type", "file_size",
                    "width", "height", "compression_quality"):
            if key in entity:
                values[key] = entity[key]
        if "uploaded_at" in entity:
            values["uploaded_at"] = _write_dt(entity["uploaded_at"])
        return values


# =============================================================================
# Application settings (key/value)
# =============================================================================

class AppSetting(Base):
    __tablename__ = "app_settings"

    key = Column("setting_key", String(100), primary_key=True)
    value = Column("setting_value", Text, nullable=False)
    value_type = Column(String(20), nullable=False, default="string")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value,
            "type": self.value_type,
            "updated_at": _read_dt(self.updated_at),
        }

    @staticmethod
    def columns_from_dict(entity: dict) -> dict:
        values = {}
        if "key" in entity:
            values["key"] = entity["key"]
        if "value" in entity:
            values["value"] = entity["value"]
        if "type" in entity:
            values["value_type"] = entity["type"]
        if "updated_at" in entity:
            values["updated_at"] = _write_dt(entity["updated_at"])
        return values


# Table name -> (model, primary key attribute)
STORE_TABLES = {
    "fishing_records": (FishingRecord, "id"),
    "photos": (Photo, "id"),
    "app_settings": (AppSetting, "key"),
}

__all__ = [
    "Base",
    "FishingRecord",
    "Photo",
    "AppSetting",
    "STORE_TABLES",
    "new_id",
]
