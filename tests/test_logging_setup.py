from __future__ import annotations

import io
import logging

import pytest

from budget_monitoring.logging_setup import (
    configure_logging,
    get_logger,
    reset_logging,
    resolve_level,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (logging.DEBUG, logging.DEBUG),
        ("warning", logging.WARNING),
        (" Error ", logging.ERROR),
        ("15", 15),
        ("chatty", logging.INFO),
        ("", logging.INFO),
    ],
)
def test_resolve_level(value, expected):
    assert resolve_level(value) == expected


def test_resolve_level_from_environment(monkeypatch: pytest.MonkeyPatch):
    assert resolve_level() == logging.INFO
    monkeypatch.setenv("BUDGET_MONITORING_LOG_LEVEL", "DEBUG")
    assert resolve_level() == logging.DEBUG


def test_configure_logging_writes_package_records_once():
    stream = io.StringIO()
    configure_logging("INFO", fmt="%(name)s %(message)s", stream=stream)
    configure_logging("DEBUG", stream=io.StringIO())  # no-op

    log = get_logger("budget_monitoring.test")
    log.debug("hidden")
    log.info("shown")

    assert stream.getvalue() == "budget_monitoring.test shown\n"


def test_reset_logging_detaches_handler():
    stream = io.StringIO()
    configure_logging("INFO", stream=stream)
    reset_logging()
    get_logger("budget_monitoring.test").warning("after reset")
    assert "after reset" not in stream.getvalue()
    assert logging.getLogger("budget_monitoring").propagate is True
