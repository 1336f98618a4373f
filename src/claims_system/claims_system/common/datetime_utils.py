from __future__ import annotations

from datetime import date, datetime
from typing import Iterable


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_date_list(value: str | Iterable[str] | None) -> frozenset[date]:
    """Parse a comma-separated (or iterable) list of ISO dates, skipping blanks."""
    if not value:
        return frozenset()
    items = value.split(",") if isinstance(value, str) else list(value)
    return frozenset(parse_iso_date(v.strip()) for v in items if v and v.strip())


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
