"""
Status headline to delivery phase.

Rules are tried in order and the first match wins. The classifier has no
notion of phase order; a headline it does not recognise gives None and the
caller keeps whatever phase it knew before.
"""

import re

from dropwatch.models.job import Phase

PHASE_RULES: list[tuple[re.Pattern[str], Phase]] = [
    (
        re.compile(
            r"received|prepar(ing|ed)|confirm(ed|ing)?|waiting for the store"
            r"|getting (the )?order ready"
        ),
        Phase.PREPARING,
    ),
    (re.compile(r"heading .* way|on the way|head(ing)? your way"), Phase.HEADING),
    (re.compile(r"almost there|nearby|here|arriving"), Phase.ALMOST_HERE),
    (re.compile(r"delivered|order arrived"), Phase.DELIVERED),
]


def classify_phase(status_line: str | None) -> Phase | None:
    """
    Classify a status headline.

    Args:
        status_line: Headline text from the order page, may be None

    Returns:
        Matching Phase, or None when no rule applies
    """
    text = (status_line or "").lower()
    if not text:
        return None
    for pattern, phase in PHASE_RULES:
        if pattern.search(text):
            return phase
    return None


def resolve_phase(status_line: str | None, previous: Phase | None) -> Phase | None:
    """Classified phase, falling back to ``previous`` when unrecognised."""
    return classify_phase(status_line) or previous
