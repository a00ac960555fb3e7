"""
Tests for the bot entry point helpers.
"""

import pytest

from dropwatch.bot.main import is_order_url, order_slug


@pytest.mark.parametrize(
    "url",
    [
        "https://www.ubereats.com/orders/7f3c2a10-5b1e-4c8e-9d7a-1a2b3c4d5e6f",
        "https://ubereats.com/orders/abc",
        "http://www.ubereats.com/orders/abc?ref=share",
        "HTTPS://WWW.UBEREATS.COM/orders/abc",
    ],
)
def test_order_urls_accepted(url):
    assert is_order_url(url)


@pytest.mark.parametrize(
    "url",
    [
        "https://www.ubereats.com/store/joes-pizza",
        "https://www.ubereats.com/",
        "https://evil.example.com/?u=https://www.ubereats.com/orders/abc",
        "ubereats.com/orders/abc",
        "",
    ],
)
def test_other_urls_rejected(url):
    assert not is_order_url(url)


def test_order_slug():
    assert order_slug("https://www.ubereats.com/orders/abc-123/") == "abc-123"
    assert order_slug("https://www.ubereats.com/orders/abc-123") == "abc-123"
