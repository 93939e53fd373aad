from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Annotated
from uuid import uuid4

from pydantic import AfterValidator


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]


def generate_id(prefix: str) -> str:
    """Opaque id: ``<prefix>_<epoch-ms>_<random>``, roughly time ordered."""

    return f"{prefix}_{int(time.time() * 1000)}_{uuid4().hex[:9]}"
