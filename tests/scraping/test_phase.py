"""
Tests for status headline classification.
"""

import pytest

from dropwatch.models.job import Phase
from dropwatch.scraping.phase import classify_phase, resolve_phase


@pytest.mark.parametrize(
    "status_line, expected",
    [
        ("Preparing your order", Phase.PREPARING),
        ("Your order is being prepared", Phase.PREPARING),
        ("Order received", Phase.PREPARING),
        ("Waiting for the store to confirm", Phase.PREPARING),
        ("Heading your way", Phase.HEADING),
        ("Heading Alex's way", Phase.HEADING),
        ("Your driver is on the way", Phase.HEADING),
        ("Almost there", Phase.ALMOST_HERE),
        ("Your courier is nearby", Phase.ALMOST_HERE),
        ("Arriving now", Phase.ALMOST_HERE),
        ("Order delivered", Phase.DELIVERED),
        ("Your order has been delivered", Phase.DELIVERED),
        ("Your order arrived", Phase.DELIVERED),
    ],
)
def test_classify_phase(status_line, expected):
    assert classify_phase(status_line) == expected


def test_classify_is_case_insensitive():
    assert classify_phase("HEADING YOUR WAY") == Phase.HEADING


def test_first_rule_wins():
    """A headline matching several rules takes the earliest one."""
    assert classify_phase("Order confirmed, almost there") == Phase.PREPARING


@pytest.mark.parametrize("status_line", [None, "", "Thanks for waiting", "Hello"])
def test_unrecognised_headline(status_line):
    assert classify_phase(status_line) is None


def test_resolve_keeps_previous_phase():
    assert resolve_phase("Hello", Phase.HEADING) == Phase.HEADING
    assert resolve_phase(None, Phase.PREPARING) == Phase.PREPARING


def test_resolve_prefers_new_classification():
    assert resolve_phase("Almost there", Phase.HEADING) == Phase.ALMOST_HERE


def test_resolve_without_history():
    assert resolve_phase("Hello", None) is None
