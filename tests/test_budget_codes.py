from __future__ import annotations

import pytest

from budget_monitoring.budget_codes import (
    campus_code,
    generate_budget_code,
    next_budget_code,
    program_code,
)
from db.client import session_scope
from tests.helpers.db import seed_records
from tests.helpers.records import make_record


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("CES - Community Extension Services", "CES"),
        ("Extension Services", "Extension"),
        ("gad", "GAD"),
        ("", "EXT"),
        (None, "EXT"),
        ("--None--", "EXT"),
    ],
)
def test_program_code(name, expected):
    assert program_code(name) == expected


def test_campus_code_defaults_to_main_campus():
    assert campus_code("lemery") == "LEM"
    assert campus_code("san-juan") == "SJ"
    assert campus_code("atlantis") == "PB"


def test_next_code_is_highest_suffix_plus_one():
    existing = ["PB-EXT-001", "PB-EXT-010", "PB-EXT-007", "LEM-EXT-050", "PB-EXT-draft", ""]
    assert next_budget_code("pb", "EXT", existing) == "PB-EXT-011"


def test_first_code_for_a_pair():
    assert next_budget_code("rosario", "CES - Community", []) == "ROS-CES-001"


def test_suffix_grows_past_three_digits():
    assert next_budget_code("pb", "EXT", ["PB-EXT-999"]) == "PB-EXT-1000"


def test_generate_budget_code_reads_stored_codes(database_url: str):
    seed_records(
        database_url,
        [
            make_record(budget_code="LEM-EXT-002", campus_id="lemery"),
            make_record(budget_code="LEM-EXT-004", campus_id="lemery"),
            make_record(budget_code="PB-EXT-009"),
        ],
    )
    with session_scope(database_url=database_url) as session:
        assert generate_budget_code(session, "lemery", "EXT - Extension") == "LEM-EXT-005"
        assert generate_budget_code(session, "rosario", "EXT") == "ROS-EXT-001"


def test_generate_budget_code_treats_wildcards_literally(database_url: str):
    seed_records(database_url, [make_record(budget_code="PB-AxB-005")])
    with session_scope(database_url=database_url) as session:
        assert generate_budget_code(session, "pb", "A_B") == "PB-A_B-001"
