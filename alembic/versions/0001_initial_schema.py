"""Create records, photos and settings tables.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "fishing_records",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("fish_species", sa.Text(), nullable=False),
        sa.Column("size", sa.Float()),
        sa.Column("weight", sa.Float()),
        sa.Column("weather", sa.Text()),
        sa.Column("temperature", sa.Float()),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("accuracy", sa.Float()),
        sa.Column("notes", sa.Text()),
        sa.Column("photo_id", sa.String(length=36)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_fishing_records_date", "fishing_records", ["date"])
    op.create_index("ix_fishing_records_fish_species", "fishing_records", ["fish_species"])
    op.create_index("ix_fishing_records_location", "fishing_records", ["location"])
    op.create_index("ix_fishing_records_photo_id", "fishing_records", ["photo_id"])

    op.create_table(
        "photos",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("blob", sa.LargeBinary(), nullable=False),
        sa.Column("thumbnail_blob", sa.LargeBinary()),
        sa.Column("filename", sa.String(length=255)),
        sa.Column("mime_type", sa.String(length=100)),
        sa.Column("file_size", sa.Integer()),
        sa.Column("width", sa.Integer()),
        sa.Column("height", sa.Integer()),
        sa.Column("compression_quality", sa.Float()),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_photos_uploaded_at", "photos", ["uploaded_at"])
    op.create_index("ix_photos_mime_type", "photos", ["mime_type"])

    op.create_table(
        "app_settings",
        sa.Column("setting_key", sa.String(length=100), primary_key=True),
        sa.Column("setting_value", sa.Text(), nullable=False),
        sa.Column("value_type", sa.String(length=20), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    op.drop_index("ix_photos_mime_type", table_name="photos")
    op.drop_index("ix_photos_uploaded_at", table_name="photos")
    op.drop_table("photos")
    op.drop_index("ix_fishing_records_photo_id", table_name="fishing_records")
    op.drop_index("ix_fishing_records_location", table_name="fishing_records")
    op.drop_index("ix_fishing_records_fish_species", table_name="fishing_records")
    op.drop_index("ix_fishing_records_date", table_name="fishing_records")
    op.drop_table("fishing_records")
