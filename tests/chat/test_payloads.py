"""
Tests for tracker message builders.
"""

import pytest

from dropwatch.chat.payloads import (
    ACTIVE_COLOR,
    DELIVERED_COLOR,
    LOGIN_NOTICE,
    ORDER_HOME_URL,
    Branding,
    build_active_payload,
    build_delivered_payload,
    build_login_payload,
    build_placeholder_payload,
    order_arrived_message,
    scrape_error_message,
    started_tracking_message,
    status_update_message,
)
from dropwatch.config import Settings
from dropwatch.models.job import Phase
from dropwatch.models.snapshot import ScrapeSnapshot

ORDER_URL = "https://www.ubereats.com/orders/abc-123"

FULL_SNAPSHOT = ScrapeSnapshot(
    status_line="Heading Alex's way",
    eta_line="Estimated arrival 7:45 PM",
    store="Joe's Pizza",
    name="Alex",
    address="742 Evergreen Terrace, Springfield, IL 62704, US",
    unit="Apt: 4B",
    delivery_type="Meet at door • Priority",
    delivery_note="Please ring the bell twice",
    cart=["2x Pepperoni Pizza — Large, extra cheese", "Garlic Knots"],
)


@pytest.fixture
def branding() -> Branding:
    return Branding(brand="Night Owl Eats", store_emoji="🍕", vouch_channel_id="444")


def _fields(payload) -> dict[str, str]:
    return {f.name: f.value for f in payload.embed.fields}


class TestActivePayload:
    def test_all_fields(self, branding):
        payload = build_active_payload(
            FULL_SNAPSHOT, ORDER_URL, branding, "https://cdn.example.com/icon.png"
        )
        fields = _fields(payload)

        assert payload.embed.title == "✅ Tracking Information"
        assert payload.embed.color == ACTIVE_COLOR
        assert payload.embed.url == ORDER_URL
        assert payload.embed.footer == "Updated by Night Owl Eats"
        assert payload.embed.thumbnail_url == "https://cdn.example.com/icon.png"
        assert fields["⏳ Order Status"] == "Heading Alex's way\n*Estimated arrival 7:45 PM*"
        assert fields["🍕 Store"] == "Joe's Pizza"
        assert fields["👤 Name"] == "Alex"
        assert fields["ℹ️ Delivery Type"] == "Meet at door • Priority"
        assert fields["📝 Delivery Note"] == "Please ring the bell twice"
        assert fields["📍 Delivery Address"] == (
            "```742 Evergreen Terrace, Springfield, IL 62704, US\nApt: 4B```"
        )
        assert fields["🛒 Cart"] == (
            "• 2x Pepperoni Pizza — Large, extra cheese\n• Garlic Knots"
        )
        assert payload.button.label == "Track Order"
        assert payload.button.url == ORDER_URL

    def test_status_is_first_field(self, branding):
        payload = build_active_payload(FULL_SNAPSHOT, ORDER_URL, branding)
        assert payload.embed.fields[0].name == "⏳ Order Status"

    def test_absent_fields_are_omitted(self, branding):
        payload = build_active_payload(ScrapeSnapshot(), ORDER_URL, branding)

        assert _fields(payload) == {"⏳ Order Status": "Unknown status"}
        assert payload.embed.thumbnail_url is None

    def test_status_text_used_without_headline(self, branding):
        snapshot = ScrapeSnapshot(status_text="Order received")
        fields = _fields(build_active_payload(snapshot, ORDER_URL, branding))

        assert fields["⏳ Order Status"] == "Order received"

    def test_unit_without_address_is_not_shown(self, branding):
        snapshot = ScrapeSnapshot(unit="Apt: 4B")
        assert "📍 Delivery Address" not in _fields(
            build_active_payload(snapshot, ORDER_URL, branding)
        )

    def test_classic_theme_cart_label(self):
        branding = Branding(theme="classic")
        snapshot = ScrapeSnapshot(cart=["Garlic Knots"])
        fields = _fields(build_active_payload(snapshot, ORDER_URL, branding))

        assert fields["🛒 Order Summary"] == "• Garlic Knots"

    def test_missing_url_links_home(self, branding):
        payload = build_active_payload(ScrapeSnapshot(), "", branding)

        assert payload.button.url == ORDER_HOME_URL
        assert payload.embed.url is None

    def test_same_input_same_fingerprint(self, branding):
        first = build_active_payload(FULL_SNAPSHOT, ORDER_URL, branding)
        second = build_active_payload(FULL_SNAPSHOT, ORDER_URL, branding)

        assert first.fingerprint() == second.fingerprint()

    def test_any_change_changes_fingerprint(self, branding):
        first = build_active_payload(FULL_SNAPSHOT, ORDER_URL, branding)
        changed = FULL_SNAPSHOT.model_copy(update={"eta_line": "Estimated arrival 7:50 PM"})
        second = build_active_payload(changed, ORDER_URL, branding)

        assert first.fingerprint() != second.fingerprint()


def test_placeholder_payload(branding):
    payload = build_placeholder_payload("Resuming…", ORDER_URL, branding)

    assert _fields(payload) == {"⏳ Order Status": "Resuming…"}
    assert payload.button.label == "Track Order"


class TestDeliveredPayload:
    def test_with_vouch_channel(self, branding):
        payload = build_delivered_payload(ORDER_URL, branding)
        fields = _fields(payload)

        assert payload.embed.title == "✅ Order Arrived!"
        assert payload.embed.color == DELIVERED_COLOR
        assert fields["📦 Order Status"] == "Enjoy your order!"
        assert "**Night Owl Eats**" in fields["🙏 Thank You!"]
        assert "<#444>" in fields["📝 Leave a Vouch"]
        assert payload.button.label == "Order Link"

    def test_without_vouch_channel(self):
        fields = _fields(build_delivered_payload(ORDER_URL, Branding()))

        assert "📝 Leave a Vouch" not in fields
        assert "**116 GAMER**" in fields["🙏 Thank You!"]


def test_login_payload():
    payload = build_login_payload(ORDER_URL)

    assert payload.content == LOGIN_NOTICE
    assert payload.embed is None
    assert payload.button.url == ORDER_URL


class TestNotifierMessages:
    def test_started_tracking(self):
        assert started_tracking_message("7", Phase.PREPARING, None) == (
            "<@7> **Started tracking: Preparing**"
        )

    def test_started_tracking_with_eta(self):
        assert started_tracking_message("7", Phase.HEADING, "Estimated arrival 7:45 PM") == (
            "<@7> **Started tracking: Heading your way** — *Estimated arrival 7:45 PM*"
        )

    def test_status_update(self):
        assert status_update_message("7", Phase.ALMOST_HERE, None) == (
            "<@7> **Status Update:** Almost here"
        )

    def test_order_arrived(self):
        assert order_arrived_message("7") == "<@7> ✅ **Order Arrived!** Enjoy your order!"

    def test_scrape_error(self):
        assert scrape_error_message("boom") == (
            "⚠️ Tracker had a scrape error for your order:\n`boom`"
        )


def test_branding_from_settings():
    settings = Settings(
        db_path=":memory:",
        brand="Night Owl Eats",
        store_emoji="🍕",
        vouch_channel_id="444",
        theme="classic",
    )
    branding = Branding.from_settings(settings)

    assert branding.brand == "Night Owl Eats"
    assert branding.store_emoji == "🍕"
    assert branding.vouch_channel_id == "444"
    assert branding.theme == "classic"
