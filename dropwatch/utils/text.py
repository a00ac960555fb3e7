"""
Text cleanup helpers shared by the extractor and the message builders.
"""

import re

_WHITESPACE_RX = re.compile(r"\s+")
_COOKIE_NOTICE_RX = re.compile(
    r"This website uses third party advertising cookies[\s\S]*$", re.IGNORECASE
)

ELLIPSIS = "…"


def flatten_text(value: str | None) -> str | None:
    """Collapse runs of whitespace and trim. Empty results become None."""
    if not value:
        return None
    text = _WHITESPACE_RX.sub(" ", value).strip()
    return text or None


def sanitize(value: object, max_len: int = 1024) -> str | None:
    """
    Normalize a scraped or user-facing string.

    Collapses whitespace, drops the trailing cookie-notice boilerplate the
    order page appends to its body text, and truncates to ``max_len``
    characters (the last one being an ellipsis).

    Args:
        value: Anything with a string form; falsy values give None
        max_len: Maximum length of the returned string

    Returns:
        Cleaned string, or None when nothing is left
    """
    if not value:
        return None
    text = _WHITESPACE_RX.sub(" ", str(value))
    text = _COOKIE_NOTICE_RX.sub("", text).strip()
    if not text:
        return None
    if len(text) > max_len:
        text = text[: max_len - 1] + ELLIPSIS
    return text


def sanitize_name(value: object) -> str | None:
    return sanitize(value, 256)


def sanitize_value(value: object) -> str | None:
    return sanitize(value, 1024)
