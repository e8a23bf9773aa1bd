from __future__ import annotations

from datetime import datetime, timezone

from flask import current_app


def utcnow() -> datetime:
    """Naive UTC, matching how the DateTime columns store values."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now() -> datetime:
    clock = current_app.extensions.get("clock", utcnow)
    return clock()


def to_timestamp(value: datetime) -> int:
    return int(value.replace(tzinfo=timezone.utc).timestamp())
