from __future__ import annotations

from datetime import date, datetime

import pytest

from budget_monitoring.normalizers import (
    parse_count,
    parse_currency,
    parse_date,
    parse_optional_date,
    parse_yes,
    resolve_campus_id,
    resolve_college_id,
)

NOW = datetime(2025, 6, 15, 9, 30)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("₱4,000.00", 4000.0),
        ("4,000.00", 4000.0),
        (" ₱ 1,234.567 ", 1234.57),
        ("", 0.0),
        ("garbage", 0.0),
        (None, 0.0),
        ("-50", 0.0),
        ("nan", 0.0),
        (250, 250.0),
        (12.3456, 12.35),
        ("1,500/pax", 1500.0),
        ("₱4,000.00 (est)", 4000.0),
        ("(1,000)", 0.0),
    ],
)
def test_parse_currency(raw, expected):
    assert parse_currency(raw) == expected


def test_parse_currency_is_stable_under_reapplication():
    once = parse_currency("₱12,345.678")
    assert parse_currency(once) == once
    assert parse_currency(str(once)) == once


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("12", 12), ("1,200", 1200), ("12.0", 12), ("", 0), ("n/a", 0), ("-3", 0), (7, 7), (None, 0)],
)
def test_parse_count(raw, expected):
    assert parse_count(raw) == expected


def test_parse_date_slash_format():
    d = parse_date("3/1/2025", now=NOW)
    assert (d.year, d.month, d.day) == (2025, 3, 1)


def test_parse_date_iso_first():
    assert parse_date("2025-01-31", now=NOW) == datetime(2025, 1, 31)


def test_parse_date_slash_with_time_suffix():
    d = parse_date("12/5/2024 10:00", now=NOW)
    assert (d.year, d.month, d.day) == (2024, 12, 5)


@pytest.mark.parametrize(
    "raw",
    ["March 1, 2025", "Mar 1, 2025", "March 1 2025", "1 March 2025", "1 Mar 2025", "2025/03/01"],
)
def test_parse_date_long_month_and_year_first(raw):
    assert parse_date(raw, now=NOW) == datetime(2025, 3, 1)


@pytest.mark.parametrize("raw", ["not a date", "", None, "31/31/2025"])
def test_parse_date_falls_back_to_now(raw):
    assert parse_date(raw, now=NOW) == NOW


def test_parse_date_without_now_uses_current_time():
    before = datetime.now()
    got = parse_date("???")
    assert before <= got <= datetime.now()


def test_parse_date_is_stable_under_reapplication():
    d = parse_date("3/1/2025", now=NOW)
    assert parse_date(d, now=NOW) == d
    assert parse_date(d.isoformat(), now=NOW) == d


def test_parse_optional_date_accepts_date_objects():
    assert parse_optional_date(date(2025, 2, 3)) == datetime(2025, 2, 3)
    assert parse_optional_date("  ") is None
    assert parse_optional_date("junk") is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Pablo Borbon Campus", "pb"),
        ("LEMERY", "lemery"),
        ("Rosario - CAS", "rosario"),
        ("San Juan", "san-juan"),
        ("Unknown campus", "pb"),
        ("", "pb"),
        (None, "pb"),
    ],
)
def test_resolve_campus_id(text, expected):
    assert resolve_campus_id(text) == expected


@pytest.mark.parametrize("campus_id", ["pb", "lemery", "rosario", "san-juan"])
def test_resolve_campus_id_is_stable_on_canonical_ids(campus_id):
    assert resolve_campus_id(campus_id) == campus_id


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("CABEIHM", "cabeihm"),
        ("College of CABMHM", "cabmhm"),
        ("cabm", "cabm"),
        ("CTE - Pablo Borbon", "cte"),
        ("Engineering", None),
        (None, None),
    ],
)
def test_resolve_college_id(text, expected):
    assert resolve_college_id(text) == expected


@pytest.mark.parametrize(
    ("raw", "expected"), [("Yes", True), ("y", True), ("TRUE", True), ("no", False), ("", False), (None, False)]
)
def test_parse_yes(raw, expected):
    assert parse_yes(raw) is expected
