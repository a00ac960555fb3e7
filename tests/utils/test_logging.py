"""
Tests for logging setup.
"""

import logging

import pytest

from dropwatch.utils import logging as log_setup
from dropwatch.utils.logging import LocalFormatter, setup_logging


def test_formatter_appends_json_fields():
    formatter = LocalFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "Boot", None, None)
    record.json_fields = {"port": 3000}

    output = formatter.format(record)

    assert output.startswith("INFO Boot\n")
    assert '"port": 3000' in output


def test_formatter_plain_message():
    formatter = LocalFormatter("%(message)s")
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "hello", None, None)

    assert formatter.format(record) == "hello"


@pytest.fixture
def fresh_logging(monkeypatch):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(log_setup, "_logging_configured", False)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_once(fresh_logging):
    root = logging.getLogger()
    before = len(root.handlers)

    setup_logging("dropwatch")
    setup_logging("dropwatch")

    assert len(root.handlers) == before + 1
    assert root.level == logging.INFO
    assert logging.getLogger("discord").level == logging.WARNING


def test_setup_logging_debug(fresh_logging):
    setup_logging("dropwatch", debug=True)

    assert logging.getLogger().level == logging.DEBUG
