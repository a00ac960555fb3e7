"""
Process configuration.

All settings come from environment variables (optionally loaded from a
``.env`` file). ``Settings.from_env()`` is called once at startup and the
resulting object is passed to the components that need it.
"""

import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_BRAND = "116 GAMER"
DEFAULT_STORE_EMOJI = "🏬"
DEFAULT_POLL_INTERVAL_MS = 60_000
DEFAULT_SCRAPE_DELAY_MS = 2_500
DEFAULT_PORT = 3000

# Public order pages accepted by the /track command
ORDER_URL_PATTERN = r"^https?://(www\.)?ubereats\.com/orders/"

# Hostname the order page redirects to when it requires a login
LOGIN_HOST_PATTERN = r"auth\.uber\.com"


class Settings(BaseModel):
    """Runtime settings for the tracker bot."""

    # Discord
    discord_token: Optional[str] = Field(default=None, description="Bot token")
    discord_app_id: Optional[str] = Field(
        default=None, description="Application id used to register commands"
    )
    guild_id: Optional[str] = Field(
        default=None, description="Register commands in this guild only"
    )
    notify_role_id: Optional[str] = Field(
        default=None, description="Role whose single visible member gets pings"
    )

    # Branding
    brand: str = Field(default=DEFAULT_BRAND, description="Footer / thank-you text")
    vouch_channel_id: Optional[str] = Field(
        default=None, description="Channel mentioned in the delivered message"
    )
    store_emoji: str = Field(default=DEFAULT_STORE_EMOJI)
    theme: Literal["classic", "modern"] = Field(default="modern")

    # Storage / HTTP
    db_path: str = Field(description="SQLite database file")
    port: int = Field(default=DEFAULT_PORT, description="Health server port, 0 disables")

    # Scraping cadence
    poll_interval_ms: int = Field(default=DEFAULT_POLL_INTERVAL_MS, gt=0)
    scrape_delay_ms: int = Field(default=DEFAULT_SCRAPE_DELAY_MS, ge=0)
    chrome_path: Optional[str] = Field(
        default=None, description="System Chromium executable (containers)"
    )

    # Ops alerts
    owner_user_id: Optional[str] = Field(default=None)
    log_channel_id: Optional[str] = Field(default=None)

    debug: bool = Field(default=False)

    @property
    def poll_interval(self) -> float:
        """Polling interval in seconds."""
        return self.poll_interval_ms / 1000

    @property
    def scrape_delay(self) -> float:
        """Post-navigation settle delay in seconds."""
        return self.scrape_delay_ms / 1000

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the process environment.

        Raises:
            ValueError: If DB_PATH is not set
        """
        load_dotenv()

        db_path = os.getenv("DB_PATH")
        if not db_path:
            raise ValueError(
                "DB_PATH environment variable is required "
                "(use a path on a persistent volume, e.g. /data/tracker.db)."
            )

        theme = (os.getenv("THEME") or "modern").lower()
        if theme not in ("classic", "modern"):
            theme = "modern"

        return cls(
            discord_token=os.getenv("DISCORD_TOKEN"),
            discord_app_id=os.getenv("DISCORD_APP_ID"),
            guild_id=os.getenv("GUILD_ID") or None,
            notify_role_id=os.getenv("NOTIFY_ROLE_ID") or None,
            brand=os.getenv("THANK_BRAND") or DEFAULT_BRAND,
            vouch_channel_id=os.getenv("VOUCH_CHANNEL_ID") or None,
            store_emoji=os.getenv("STORE_EMOJI") or DEFAULT_STORE_EMOJI,
            theme=theme,
            db_path=db_path,
            port=int(os.getenv("PORT", DEFAULT_PORT)),
            poll_interval_ms=int(os.getenv("POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL_MS)),
            scrape_delay_ms=int(os.getenv("SCRAPE_DELAY_MS", DEFAULT_SCRAPE_DELAY_MS)),
            chrome_path=os.getenv("CHROME_PATH") or None,
            owner_user_id=os.getenv("OWNER_USER_ID") or None,
            log_channel_id=os.getenv("DISCORD_LOG_CHANNEL_ID") or None,
            debug=os.getenv("DEBUG") == "1",
        )
