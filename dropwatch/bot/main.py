"""
Dropwatch bot - process entry point.

Starts the Discord client, registers the /track command, resumes stored
trackers once the client is ready and serves the health API alongside.
"""

import asyncio
import contextlib
import logging
import re
import signal
import sys

import discord
import uvicorn
from discord import app_commands

from dropwatch.api.main import app as health_app
from dropwatch.chat.discord_gateway import DiscordGateway
from dropwatch.config import ORDER_URL_PATTERN, Settings
from dropwatch.db import DatabaseConnection
from dropwatch.scraping.session_pool import SessionPool
from dropwatch.tracker.service import TrackerService
from dropwatch.utils.logging import setup_logging

logger = logging.getLogger(__name__)

_ORDER_URL_RX = re.compile(ORDER_URL_PATTERN, re.IGNORECASE)


def is_order_url(url: str) -> bool:
    """True for a public order page link."""
    return bool(_ORDER_URL_RX.match(url))


def order_slug(url: str) -> str:
    """Last path segment of an order URL, shown in confirmations."""
    return url.rstrip("/").split("/")[-1]


async def _ephemeral(interaction: discord.Interaction, content: str) -> None:
    """Reply privately, following up if the interaction was already answered."""
    try:
        if not interaction.response.is_done():
            await interaction.response.send_message(content, ephemeral=True)
        else:
            await interaction.followup.send(content, ephemeral=True)
    except discord.HTTPException as e:
        # Interaction tokens expire after 15 minutes
        logger.debug("Ephemeral reply failed: %s", e)


@app_commands.command(
    name="track", description="Track an Uber Eats PUBLIC order page in this channel."
)
@app_commands.describe(url="Public Uber Eats order URL")
async def track_command(interaction: discord.Interaction, url: str):
    bot = interaction.client
    assert isinstance(bot, TrackerBot)

    url = url.strip()
    if not is_order_url(url):
        await _ephemeral(
            interaction,
            "❌ Please provide a **public Uber Eats order link** like "
            "`https://www.ubereats.com/orders/...`",
        )
        return

    await _ephemeral(interaction, "Starting tracker…")
    try:
        await bot.tracker.start_job(
            str(interaction.channel_id), url, str(interaction.user.id)
        )
    except Exception as e:
        logger.exception("Could not start tracker for %s", url)
        await _ephemeral(interaction, f"❌ Could not start tracker: `{e}`")
        return

    await _ephemeral(interaction, f"✅ Started tracking: `{order_slug(url)}`")


class TrackerBot(discord.Client):
    """Discord client owning the tracker service."""

    def __init__(self, settings: Settings):
        intents = discord.Intents.default()
        intents.members = True
        super().__init__(
            intents=intents,
            application_id=int(settings.discord_app_id) if settings.discord_app_id else None,
        )
        self.settings = settings
        self.tree = app_commands.CommandTree(self)
        self.tree.add_command(track_command)

        self.pool = SessionPool(
            settle_delay=settings.scrape_delay, executable_path=settings.chrome_path
        )
        self.gateway = DiscordGateway(
            self,
            owner_user_id=settings.owner_user_id,
            log_channel_id=settings.log_channel_id,
        )
        self.tracker = TrackerService(self.pool, self.gateway, settings)
        self._resumed = False

    async def setup_hook(self) -> None:
        try:
            if self.settings.guild_id:
                guild = discord.Object(id=int(self.settings.guild_id))
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                logger.info("Slash commands registered (guild)")
            else:
                await self.tree.sync()
                logger.info("Slash commands registered (global)")
        except discord.HTTPException as e:
            logger.error("Command registration failed: %s", e)
            await self.gateway.notify_operator(f"❌ Command registration failed: {e}")

    async def on_ready(self) -> None:
        logger.info("Discord ready as %s", self.user)
        # on_ready fires again after reconnects
        if self._resumed:
            return
        self._resumed = True
        await self.tracker.resume_all()


class HealthServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the bot."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield

    def install_signal_handlers(self) -> None:
        pass


def _make_exception_handler(gateway: DiscordGateway):
    def handle(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        error = context.get("exception")
        message = f"UNHANDLED: {error!r}" if error else context.get("message", "unknown")
        logger.error(message, exc_info=error)
        loop.create_task(gateway.notify_operator(f"⚠️ {message}"))

    return handle


async def main(settings: Settings) -> int:
    DatabaseConnection.initialize(settings.db_path)
    logger.info(
        "Boot",
        extra={
            "json_fields": {
                "python": sys.version.split()[0],
                "guild_id": settings.guild_id,
                "port": settings.port,
                "poll_interval_ms": settings.poll_interval_ms,
                "scrape_delay_ms": settings.scrape_delay_ms,
                "db_path": settings.db_path,
                "theme": settings.theme,
                "debug": settings.debug,
            }
        },
    )

    bot = TrackerBot(settings)
    loop = asyncio.get_running_loop()
    loop.set_exception_handler(_make_exception_handler(bot.gateway))

    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    health = None
    health_task = None
    if settings.port:
        health = HealthServer(
            uvicorn.Config(health_app, host="0.0.0.0", port=settings.port, log_level="warning")
        )
        health_task = asyncio.create_task(health.serve(), name="health")
        logger.info("HTTP on :%d", settings.port)

    bot_task = asyncio.create_task(bot.start(settings.discord_token), name="discord")
    stop_task = asyncio.create_task(stop.wait(), name="stop")
    await asyncio.wait({bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

    exit_code = 0
    if bot_task.done() and bot_task.exception() is not None:
        logger.error("Discord client stopped: %s", bot_task.exception())
        exit_code = 1

    logger.info("Shutting down…")
    stop_task.cancel()
    try:
        await bot.tracker.shutdown()
    finally:
        await bot.close()
        if not bot_task.done():
            await asyncio.wait({bot_task}, timeout=10)
        if health is not None and health_task is not None:
            health.should_exit = True
            await health_task
        DatabaseConnection.close()
    return exit_code


def run() -> None:
    """Console entry point."""
    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging("dropwatch", debug=settings.debug)
    if not settings.discord_token:
        logger.error("DISCORD_TOKEN is required")
        sys.exit(1)

    sys.exit(asyncio.run(main(settings)))


if __name__ == "__main__":
    run()
