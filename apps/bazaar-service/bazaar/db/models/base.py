"""
Shared SQLAlchemy base and helpers.
"""
from datetime import datetime, UTC

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import JSON


def now_utc():
    """Return an aware UTC datetime for default/updated timestamps."""
    return datetime.now(UTC)


# JSONB on Postgres, plain JSON (TEXT) on SQLite test runs.
JSONType = JSON().with_variant(JSONB(), "postgresql")


Base = declarative_base()


def ensure_aware(value):
    """Attach UTC to naive datetimes loaded from SQLite."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
