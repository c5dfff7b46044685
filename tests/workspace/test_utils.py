import datetime as dt
import re

import pytest
from pydantic import ValidationError

from kan.workspace import schemas
from kan.workspace.utils import (
    COLOURS,
    PUBLIC_ID_LENGTH,
    SLUG_PATTERN,
    DueDateRange,
    as_utc,
    colour_for_index,
    convert_due_date_filters_to_ranges,
    generate_slug,
    generate_uid,
    matches_due_date_ranges,
)

NOW = dt.datetime(2024, 5, 15, 10, 30, tzinfo=dt.timezone.utc)


def _at(days: int, hour: int = 12) -> dt.datetime:
    return (NOW + dt.timedelta(days=days)).replace(hour=hour, minute=0)


def test_generate_uid():
    uid = generate_uid()
    assert len(uid) == PUBLIC_ID_LENGTH
    assert re.fullmatch(r"[0-9a-z]+", uid)
    assert generate_uid() != uid


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("Acme Corp", "acme-corp"),
        ("  Q3 / Roadmap!  ", "q3-roadmap"),
        ("---", ""),
    ],
)
def test_generate_slug(value, expected):
    assert generate_slug(value) == expected


def test_slug_pattern_rejects_only_dashes():
    assert re.match(SLUG_PATTERN, "my-board")
    assert re.match(SLUG_PATTERN, "---") is None
    assert re.match(SLUG_PATTERN, "with space") is None


def test_slug_fields_reject_only_dashes():
    with pytest.raises(ValidationError):
        schemas.BoardUpdateRequest(slug="---")
    with pytest.raises(ValidationError):
        schemas.WorkspaceCreateRequest(name="Acme", email="owner@example.com", slug="---")
    with pytest.raises(ValidationError):
        schemas.PageUpdateRequest(slug="a b c")

    assert schemas.BoardUpdateRequest(slug="q3-roadmap").slug == "q3-roadmap"
    workspace = schemas.WorkspaceCreateRequest(
        name="Acme", email="owner@example.com", slug="-acme-"
    )
    assert workspace.slug == "-acme-"


def test_colours_cycle():
    assert colour_for_index(0) == COLOURS[0][1]
    assert colour_for_index(len(COLOURS)) == COLOURS[0][1]
    assert colour_for_index(len(COLOURS) + 2) == COLOURS[2][1]


def test_as_utc_treats_naive_values_as_utc():
    naive = dt.datetime(2024, 1, 1, 8, 0)
    assert as_utc(naive) == dt.datetime(2024, 1, 1, 8, 0, tzinfo=dt.timezone.utc)

    plus_two = dt.timezone(dt.timedelta(hours=2))
    assert as_utc(dt.datetime(2024, 1, 1, 10, 0, tzinfo=plus_two)).hour == 8


def test_no_filters_produce_no_ranges():
    assert convert_due_date_filters_to_ranges([], now=NOW) == []


@pytest.mark.parametrize(
    ("key", "inside", "outside"),
    [
        ("overdue", _at(-1), _at(1)),
        ("today", _at(0, hour=23), _at(1, hour=0)),
        ("tomorrow", _at(1), _at(2)),
        ("next-week", _at(6), _at(9)),
        ("next-month", _at(20), _at(3)),
    ],
)
def test_due_date_ranges(key, inside, outside):
    ranges = convert_due_date_filters_to_ranges([key], now=NOW)

    assert matches_due_date_ranges(inside, ranges)
    assert not matches_due_date_ranges(outside, ranges)
    assert not matches_due_date_ranges(None, ranges)


def test_no_due_date_range_only_matches_missing_dates():
    ranges = convert_due_date_filters_to_ranges(["no-due-date"], now=NOW)

    assert matches_due_date_ranges(None, ranges)
    assert not matches_due_date_ranges(NOW, ranges)


def test_ranges_are_or_combined():
    ranges = convert_due_date_filters_to_ranges(["overdue", "no-due-date"], now=NOW)

    assert matches_due_date_ranges(None, ranges)
    assert matches_due_date_ranges(_at(-3), ranges)
    assert not matches_due_date_ranges(_at(3), ranges)


def test_unknown_filter_matches_nothing():
    [empty] = convert_due_date_filters_to_ranges(["someday"], now=NOW)

    assert empty == DueDateRange()
    assert not empty.matches(NOW)
    assert not empty.matches(None)


def test_naive_due_dates_compare_as_utc():
    ranges = convert_due_date_filters_to_ranges(["today"], now=NOW)
    assert matches_due_date_ranges(dt.datetime(2024, 5, 15, 18, 0), ranges)
