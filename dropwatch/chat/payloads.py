"""
Message builders for the tracker.

Everything the bot posts is built here from a snapshot and the branding
settings, as platform-neutral ``MessagePayload`` objects.
"""

from typing import Literal, Optional

from pydantic import BaseModel

from dropwatch.config import DEFAULT_BRAND, DEFAULT_STORE_EMOJI, Settings
from dropwatch.models.job import Phase
from dropwatch.models.message import Embed, EmbedField, LinkButton, MessagePayload
from dropwatch.models.snapshot import ScrapeSnapshot
from dropwatch.utils.text import sanitize, sanitize_value

ACTIVE_COLOR = 0x2ECC71
DELIVERED_COLOR = 0x22AA66
ORDER_HOME_URL = "https://www.ubereats.com/"
UNKNOWN_STATUS = "Unknown status"

STARTING_STATUS = "Starting…"
RESUMING_STATUS = "Resuming…"

LOGIN_NOTICE = (
    "⚠️ This link appears to require login on Uber. "
    "Please provide a **public** tracking link."
)
LOGIN_DIRECT_MESSAGE = (
    "⚠️ Your Uber Eats link appears to require login. "
    "Please provide a **public** tracking link."
)


class Branding(BaseModel):
    """Server-specific text and look of the tracker messages."""

    brand: str = DEFAULT_BRAND
    store_emoji: str = DEFAULT_STORE_EMOJI
    vouch_channel_id: Optional[str] = None
    theme: Literal["classic", "modern"] = "modern"

    @classmethod
    def from_settings(cls, settings: Settings) -> "Branding":
        return cls(
            brand=settings.brand,
            store_emoji=settings.store_emoji,
            vouch_channel_id=settings.vouch_channel_id,
            theme=settings.theme,
        )

    @property
    def footer(self) -> str:
        return f"Updated by {self.brand}"


def link_button(url: str | None, delivered: bool = False) -> LinkButton:
    return LinkButton(
        label="Order Link" if delivered else "Track Order",
        url=url or ORDER_HOME_URL,
    )


def build_active_payload(
    snapshot: ScrapeSnapshot,
    url: str,
    branding: Branding,
    icon_url: str | None = None,
) -> MessagePayload:
    """
    Build the live tracking message.

    Fields that the snapshot does not have are left out rather than shown
    empty.
    """
    fields: list[EmbedField] = []

    top = sanitize_value(snapshot.status_line or snapshot.status_text or UNKNOWN_STATUS)
    eta = f"\n*{sanitize_value(snapshot.eta_line)}*" if snapshot.eta_line else ""
    fields.append(EmbedField(name="⏳ Order Status", value=f"{top}{eta}".strip()))

    store = sanitize_value(snapshot.store)
    if store:
        fields.append(
            EmbedField(name=f"{branding.store_emoji} Store", value=store, inline=True)
        )

    name = sanitize_value(snapshot.name)
    if name:
        fields.append(EmbedField(name="👤 Name", value=name, inline=True))

    delivery_type = sanitize_value(snapshot.delivery_type)
    if delivery_type:
        fields.append(
            EmbedField(name="ℹ️ Delivery Type", value=delivery_type, inline=True)
        )

    note = sanitize_value(snapshot.delivery_note)
    if note:
        fields.append(EmbedField(name="📝 Delivery Note", value=note, inline=True))

    if snapshot.address:
        block = f"{snapshot.address}\n{snapshot.unit}" if snapshot.unit else snapshot.address
        # sanitize() would collapse the newline between address and unit
        value = block if len(block) <= 1000 else sanitize(block, 1000)
        if value:
            fields.append(EmbedField(name="📍 Delivery Address", value=f"```{value}```"))

    items = [sanitize(line, 110) for line in snapshot.cart]
    cart = "\n".join(f"• {item}" for item in items if item)
    if cart:
        label = "🛒 Order Summary" if branding.theme == "classic" else "🛒 Cart"
        fields.append(EmbedField(name=label, value=cart))

    embed = Embed(
        title="✅ Tracking Information",
        color=ACTIVE_COLOR,
        url=url or None,
        fields=fields,
        footer=branding.footer,
        thumbnail_url=icon_url,
    )
    return MessagePayload(embed=embed, button=link_button(url))


def build_placeholder_payload(
    status_line: str,
    url: str,
    branding: Branding,
    icon_url: str | None = None,
) -> MessagePayload:
    """Active message showing only a status line ("Starting…", "Resuming…")."""
    return build_active_payload(
        ScrapeSnapshot(status_line=status_line), url, branding, icon_url
    )


def build_delivered_payload(
    url: str,
    branding: Branding,
    icon_url: str | None = None,
) -> MessagePayload:
    """Final message shown once the order arrived."""
    fields = [
        EmbedField(name="📦 Order Status", value="Enjoy your order!"),
        EmbedField(
            name="🙏 Thank You!",
            value=(
                f"Thanks for ordering with **{branding.brand}**! "
                "Hope you enjoyed your food and the experience."
            ),
        ),
    ]
    if branding.vouch_channel_id:
        fields.append(
            EmbedField(
                name="📝 Leave a Vouch",
                value=(
                    "If you’re satisfied with your order, drop a vouch in "
                    f"<#{branding.vouch_channel_id}> for points towards a reward!"
                ),
            )
        )

    embed = Embed(
        title="✅ Order Arrived!",
        color=DELIVERED_COLOR,
        url=url or None,
        fields=fields,
        footer=branding.footer,
        thumbnail_url=icon_url,
    )
    return MessagePayload(embed=embed, button=link_button(url, delivered=True))


def build_login_payload(url: str) -> MessagePayload:
    """Replaces the tracker message when the order page needs a login."""
    return MessagePayload(content=LOGIN_NOTICE, button=link_button(url))


def _with_eta(text: str, eta_line: str | None) -> str:
    return f"{text} — *{eta_line}*" if eta_line else text


def started_tracking_message(user_id: str, phase: Phase, eta_line: str | None) -> str:
    return _with_eta(f"<@{user_id}> **Started tracking: {phase.label}**", eta_line)


def status_update_message(user_id: str, phase: Phase, eta_line: str | None) -> str:
    return _with_eta(f"<@{user_id}> **Status Update:** {phase.label}", eta_line)


def order_arrived_message(user_id: str) -> str:
    return f"<@{user_id}> ✅ **Order Arrived!** Enjoy your order!"


def scrape_error_message(error: str) -> str:
    return f"⚠️ Tracker had a scrape error for your order:\n`{error}`"
