"""Identifier, slug, colour and due-date helpers shared by the services."""

from __future__ import annotations

import datetime as dt
import re
import secrets
from dataclasses import dataclass
from typing import Iterable, Optional

__all__ = [
    "COLOURS",
    "DUE_DATE_FILTER_KEYS",
    "DueDateRange",
    "PUBLIC_ID_LENGTH",
    "SLUG_PATTERN",
    "as_utc",
    "colour_for_index",
    "convert_due_date_filters_to_ranges",
    "generate_slug",
    "generate_uid",
    "matches_due_date_ranges",
    "utcnow",
]

PUBLIC_ID_LENGTH = 12
_UID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

# Letters, digits and dashes with at least one letter or digit. No look-arounds:
# pydantic validates `pattern=` with the Rust regex engine.
SLUG_PATTERN = r"^[a-zA-Z0-9-]*[a-zA-Z0-9][a-zA-Z0-9-]*$"

COLOURS: tuple[tuple[str, str], ...] = (
    ("Teal", "#0d9488"),
    ("Green", "#65a30d"),
    ("Blue", "#0284c7"),
    ("Purple", "#4f46e5"),
    ("Yellow", "#ca8a04"),
    ("Orange", "#ea580c"),
    ("Red", "#dc2626"),
    ("Pink", "#db2777"),
)

DUE_DATE_FILTER_KEYS = (
    "overdue",
    "today",
    "tomorrow",
    "next-week",
    "next-month",
    "no-due-date",
)


def generate_uid(length: int = PUBLIC_ID_LENGTH) -> str:
    """Return a random public identifier."""

    return "".join(secrets.choice(_UID_ALPHABET) for _ in range(length))


def generate_slug(value: str) -> str:
    """Lower-case ``value`` and collapse anything but letters/digits into dashes."""

    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower())
    return slug.strip("-")


def colour_for_index(index: int) -> str:
    return COLOURS[index % len(COLOURS)][1]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime) -> dt.datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


@dataclass(frozen=True)
class DueDateRange:
    start: Optional[dt.datetime] = None
    end: Optional[dt.datetime] = None
    has_no_due_date: bool = False

    def matches(self, due_date: Optional[dt.datetime]) -> bool:
        if self.has_no_due_date:
            return due_date is None
        if due_date is None:
            return False
        due = as_utc(due_date)
        if self.start is not None and due < self.start:
            return False
        if self.end is not None and due > self.end:
            return False
        return self.start is not None or self.end is not None


def _start_of_day(value: dt.datetime) -> dt.datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(value: dt.datetime) -> dt.datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999999)


def convert_due_date_filters_to_ranges(
    filters: Iterable[str], now: Optional[dt.datetime] = None
) -> list[DueDateRange]:
    """Translate due-date filter keys into concrete ranges.

    ``next-week`` covers the coming seven days (up to the start of day eight);
    ``next-month`` continues from there up to day thirty-one. Unknown keys
    produce an empty range that matches nothing.
    """

    keys = list(filters)
    if not keys:
        return []

    today = _start_of_day(as_utc(now or utcnow()))
    tomorrow = today + dt.timedelta(days=1)
    next_week_end = today + dt.timedelta(days=8)
    next_month_end = today + dt.timedelta(days=31)

    ranges: list[DueDateRange] = []
    for key in keys:
        if key == "overdue":
            ranges.append(DueDateRange(end=today))
        elif key == "today":
            ranges.append(DueDateRange(start=today, end=_end_of_day(today)))
        elif key == "tomorrow":
            ranges.append(DueDateRange(start=tomorrow, end=_end_of_day(tomorrow)))
        elif key == "next-week":
            ranges.append(DueDateRange(start=today, end=next_week_end))
        elif key == "next-month":
            ranges.append(DueDateRange(start=next_week_end, end=next_month_end))
        elif key == "no-due-date":
            ranges.append(DueDateRange(has_no_due_date=True))
        else:
            ranges.append(DueDateRange())
    return ranges


def matches_due_date_ranges(
    due_date: Optional[dt.datetime], ranges: Iterable[DueDateRange]
) -> bool:
    return any(item.matches(due_date) for item in ranges)
