from core.data_migrations import m0001_trim_text_fields, m0002_backfill_photo_file_size
from core.services.migrations import MigrationRegistry

# Registration order is execution order
DEFAULT_MIGRATIONS = (
    m0001_trim_text_fields.MIGRATION,
    m0002_backfill_photo_file_size.MIGRATION,
)


def build_default_registry() -> MigrationRegistry:
    return MigrationRegistry(DEFAULT_MIGRATIONS)


__all__ = ["DEFAULT_MIGRATIONS", "build_default_registry"]
