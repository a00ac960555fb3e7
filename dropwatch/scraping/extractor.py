"""
Order page extraction.

Turns the rendered markup of a public order page into a ``ScrapeSnapshot``.
The page is a client-rendered app with generated class names, so the
extraction leans on its ``data-testid`` hooks and on text patterns. Anything
that cannot be found is left as None; nothing here raises on odd markup.
"""

import re

from bs4 import BeautifulSoup, Tag

from dropwatch.models.snapshot import MAX_CART_ITEMS, ScrapeSnapshot
from dropwatch.utils.text import flatten_text, sanitize, sanitize_name, sanitize_value

# Page hooks
STATUS_WIDGET = '[data-testid="active-order-sticky-eta"]'
ADDRESS_CONTAINER = '[data-testid="delivery-text-container-0"]'
DETAILS_CONTAINER = '[data-testid="delivery-text-container-1"]'
OPTIONS_CONTAINER = '[data-testid="delivery-text-container-2"]'
CART_ITEM = '[data-testid*="order-summary-card-item"]'
CART_ITEM_NAME = "div.bo.bp.bq.br"
CART_ITEM_DETAIL = "div.bo.cn.bq.dq.g6, div.bo.cn.bq.dq.g7"
BACK_TO_RESTAURANTS = '[data-testid="back-to-restaurants-primary-action"]'

MAX_STORE_LINE = 80
MAX_CART_LINE = 110
MAX_ADDRESS = 1000

ETA_RX = re.compile(r"estimated", re.IGNORECASE)
STORE_RX = re.compile(r"^From\s+")
STORE_PREFIX_RX = re.compile(r"^From\s+", re.IGNORECASE)
NAME_RX = re.compile(
    r"(?:preparing|picking up|heading)\s+(.+?)['’]s\s+(?:order|way)", re.IGNORECASE
)
ADDRESS_RX = re.compile(
    r"\d{2,6}[^,\n]+,\s*[A-Za-z .'-]+,\s*[A-Z]{2}\s+\d{5}(?:-\d{4})?(?:,\s*(US|USA))?",
    re.IGNORECASE,
)
UNIT_LINE_RX = re.compile(
    r"^(#|(?:apt|apartment|suite|ste|floor|fl|unit)\b)\s*[:\-]?\s*([A-Za-z0-9\- .#]+)$",
    re.IGNORECASE,
)
UNIT_HINT_RX = re.compile(r"^(apt|apartment|suite|ste|floor|fl|unit|#)\b", re.IGNORECASE)
DROP_OFF_RX = re.compile(
    r"(leave (?:it )?at (?:my )?door|hand it to me|meet (?:at )?(?:the |my )?door"
    r"|meet outside|deliver (?:to|at) (?:my )?door)",
    re.IGNORECASE,
)
SPEED_RX = re.compile(
    r"\b(standard|priority|rush|asap|express|economy|saver)\b", re.IGNORECASE
)
LABEL_RX = re.compile(r"^(address|delivery option|delivery options)$", re.IGNORECASE)
DELIVERED_RX = re.compile(r"\b(delivered|order arrived)\b", re.IGNORECASE)
ENJOY_RX = re.compile(r"Enjoy your order!", re.IGNORECASE)
THANKS_RX = re.compile(r"Thanks for using Uber Eats\.", re.IGNORECASE)

DELIVERY_TYPE_SEPARATOR = " • "


def _text(el: Tag | None) -> str | None:
    if el is None:
        return None
    return flatten_text(el.get_text())


def _leaf_divs(container: Tag) -> list[Tag]:
    return [d for d in container.find_all("div") if d.find(True) is None]


def _extract_status(soup: BeautifulSoup) -> tuple[str | None, str | None, str | None]:
    """Return (status_line, eta_line, status_text) from the sticky ETA widget."""
    widget = soup.select_one(STATUS_WIDGET)
    if widget is None:
        return None, None, None

    lines = [t for t in (_text(d) for d in widget.find_all("div")) if t]
    status_line = lines[0] if lines else None
    eta_line = next((t for t in lines if ETA_RX.search(t)), None)
    status_text = " ".join(t for t in (status_line, eta_line) if t) or None
    return status_line, eta_line, status_text


def _extract_store(soup: BeautifulSoup) -> str | None:
    for el in soup.find_all(["div", "span", "p"]):
        text = _text(el)
        if text and STORE_RX.match(text) and len(text) <= MAX_STORE_LINE:
            return STORE_PREFIX_RX.sub("", text).strip() or None
    return None


def _extract_name(status: str | None) -> str | None:
    match = NAME_RX.search(status or "")
    return match.group(1) if match else None


def _extract_address(container: Tag | None) -> str | None:
    """Prefer a leaf holding a full postal address, else search the flattened text."""
    if container is None:
        return None

    for leaf in _leaf_divs(container):
        text = _text(leaf)
        if text and ADDRESS_RX.search(text):
            return text

    raw = _text(container)
    match = ADDRESS_RX.search(raw) if raw else None
    return match.group(0) if match else None


def _extract_unit(container: Tag | None) -> str | None:
    if container is None:
        return None

    leaves = [t for t in (_text(d) for d in _leaf_divs(container)) if t]
    lines = leaves or [t for t in (_text(container),) if t]

    for line in lines:
        match = UNIT_LINE_RX.match(line)
        if match and match.group(2).strip():
            label, value = match.group(1), match.group(2).strip()
            return f"{label[0].upper()}{label[1:]}: {value}"

    for line in lines:
        if UNIT_HINT_RX.match(line):
            return line
    return None


def _extract_note(container: Tag | None) -> str | None:
    """
    Last leaf of the details container that is none of the known labels.

    Whatever is left after skipping labels, drop-off phrases, speed options,
    addresses and unit hints is the note the customer typed.
    """
    if container is None:
        return None

    for leaf in reversed(_leaf_divs(container)):
        text = _text(leaf)
        if not text:
            continue
        if (
            LABEL_RX.search(text)
            or DROP_OFF_RX.search(text)
            or SPEED_RX.search(text)
            or ADDRESS_RX.search(text)
            or UNIT_HINT_RX.search(text)
        ):
            continue
        return text
    return None


def _scan_delivery_options(container: Tag | None) -> tuple[str | None, str | None]:
    """Return the first (drop-off phrase, speed keyword) found in a container."""
    if container is None:
        return None, None

    drop_off = speed = None
    for div in container.find_all("div"):
        text = _text(div)
        if not text:
            continue
        if drop_off is None:
            match = DROP_OFF_RX.search(text)
            if match:
                drop_off = match.group(0)
                continue
        if speed is None:
            match = SPEED_RX.search(text)
            if match:
                speed = match.group(1).capitalize()
    return drop_off, speed


def _extract_delivery_type(
    details: Tag | None, options: Tag | None, page_text: str
) -> str | None:
    details_drop_off, details_speed = _scan_delivery_options(details)
    options_drop_off, options_speed = _scan_delivery_options(options)

    drop_off = details_drop_off or options_drop_off
    speed = details_speed or options_speed
    delivery_type = DELIVERY_TYPE_SEPARATOR.join(p for p in (drop_off, speed) if p)
    if delivery_type:
        return delivery_type

    match = DROP_OFF_RX.search(page_text)
    return match.group(0) if match else None


def _extract_cart(soup: BeautifulSoup) -> list[str]:
    cart: list[str] = []
    for item in soup.select(CART_ITEM):
        name = _text(item.select_one(CART_ITEM_NAME) or item)
        detail = _text(item.select_one(CART_ITEM_DETAIL))
        line = f"{name} — {detail}" if name and detail else name
        line = sanitize(line, MAX_CART_LINE)
        if line:
            cart.append(line)
        if len(cart) == MAX_CART_ITEMS:
            break
    return cart


def _is_delivered(soup: BeautifulSoup, status_text: str | None, page_text: str) -> bool:
    if status_text and DELIVERED_RX.search(status_text):
        return True
    if ENJOY_RX.search(page_text) and THANKS_RX.search(page_text):
        return True
    return soup.select_one(BACK_TO_RESTAURANTS) is not None


def extract(html: str) -> ScrapeSnapshot:
    """
    Extract a snapshot from order page markup.

    Deterministic for identical input. ``requires_login`` is never set here;
    the session pool decides that from the page location.

    Args:
        html: Rendered page markup

    Returns:
        ScrapeSnapshot with every field either sanitized or None
    """
    soup = BeautifulSoup(html or "", "html.parser")
    page_text = flatten_text(soup.get_text()) or ""

    status_line, eta_line, status_text = _extract_status(soup)
    details = soup.select_one(DETAILS_CONTAINER)
    options = soup.select_one(OPTIONS_CONTAINER)

    return ScrapeSnapshot(
        status_text=sanitize_value(status_text),
        status_line=sanitize_value(status_line),
        eta_line=sanitize_value(eta_line),
        store=sanitize_name(_extract_store(soup)),
        name=sanitize_name(_extract_name(status_line or status_text)),
        address=sanitize(_extract_address(soup.select_one(ADDRESS_CONTAINER)), MAX_ADDRESS),
        unit=sanitize_value(_extract_unit(details)),
        delivery_type=sanitize_value(_extract_delivery_type(details, options, page_text)),
        delivery_note=sanitize_value(_extract_note(details)),
        cart=_extract_cart(soup),
        delivered=_is_delivered(soup, status_text, page_text),
    )
