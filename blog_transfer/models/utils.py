"""Shared ID and clock helpers for domain and ORM models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime


def generate_id() -> str:
    """Return a new random UUID string (v4).

    Task ids and generated media keys all come from this single
    factory so the generation strategy can be changed in one place.
    """
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_iso(value: datetime) -> str:
    """Format *value* as a UTC ISO-8601 string with millisecond precision.

    Naive datetimes are taken to be UTC.  The output is stable, so
    formatting an already-formatted timestamp is a no-op.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
