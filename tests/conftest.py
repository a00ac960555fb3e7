"""
pytest configuration and fixtures.

Loads environment variables from .env file for all tests and provides an
in-memory job store plus fake chat and browser collaborators for the
tracker tests.
"""

from collections import deque
from pathlib import Path

import pytest
import pytest_asyncio
from dotenv import load_dotenv

from dropwatch.chat.gateway import (
    ChannelInfo,
    ChannelUnavailableError,
    ChatGateway,
    MessageNotFoundError,
)
from dropwatch.config import Settings
from dropwatch.db import DatabaseConnection
from dropwatch.models.message import MessagePayload
from dropwatch.models.snapshot import ScrapeSnapshot
from dropwatch.tracker.service import TrackerService

ORDER_URL = "https://www.ubereats.com/orders/7f3c2a10-5b1e-4c8e-9d7a-1a2b3c4d5e6f"
CHANNEL_ID = "111"
GUILD_ID = "222"


def pytest_configure(config):
    """Load .env file before running tests"""
    project_root = Path(__file__).parent.parent
    env_file = project_root / ".env"

    if env_file.exists():
        load_dotenv(env_file)


class FakeGateway(ChatGateway):
    """Chat gateway keeping messages in memory and recording every call."""

    def __init__(self):
        self.channels = {
            CHANNEL_ID: ChannelInfo(
                id=CHANNEL_ID,
                guild_id=GUILD_ID,
                icon_url="https://cdn.example.com/icon.png",
            )
        }
        self.messages: dict[str, MessagePayload] = {}
        self.sent: list[tuple[str, str, MessagePayload]] = []
        self.edits: list[tuple[str, MessagePayload]] = []
        self.deleted: list[str] = []
        self.mentions: list[tuple[str, str, str]] = []
        self.direct_messages: list[tuple[str, str]] = []
        self.operator_alerts: list[str] = []
        self.notifier: str | None = None
        self._next_id = 1000

    async def fetch_channel(self, channel_id):
        return self.channels.get(channel_id)

    async def message_exists(self, channel_id, message_id):
        return message_id in self.messages

    async def delete_message(self, channel_id, message_id):
        if self.messages.pop(message_id, None) is not None:
            self.deleted.append(message_id)

    async def send_message(self, channel_id, payload):
        if channel_id not in self.channels:
            raise ChannelUnavailableError(channel_id)
        message_id = str(self._next_id)
        self._next_id += 1
        self.messages[message_id] = payload
        self.sent.append((channel_id, message_id, payload))
        return message_id

    async def edit_message(self, channel_id, message_id, payload):
        if message_id not in self.messages:
            raise MessageNotFoundError(message_id)
        self.messages[message_id] = payload
        self.edits.append((message_id, payload))

    async def send_mention(self, channel_id, user_id, text):
        self.mentions.append((channel_id, user_id, text))

    async def send_direct_message(self, user_id, text):
        self.direct_messages.append((user_id, text))

    async def resolve_notifier(self, channel_id, role_id):
        return self.notifier

    async def notify_operator(self, text):
        self.operator_alerts.append(text)


class FakePool:
    """
    Session pool handing out string pages and queued snapshots.

    Queued items are returned in order; an exception instance is raised
    instead. Once the queue is empty ``default`` is returned.
    """

    def __init__(self):
        self.queue: deque = deque()
        self.default = ScrapeSnapshot(status_line="Preparing your order")
        self.opened: list[str] = []
        self.closed_pages: list[str] = []
        self.fetches: list[tuple[str, str]] = []
        self.closed = False

    def push(self, *items) -> None:
        self.queue.extend(items)

    async def new_page(self):
        page = f"page-{len(self.opened) + 1}"
        self.opened.append(page)
        return page

    async def close_page(self, page):
        self.closed_pages.append(page)

    async def fetch_snapshot(self, page, url):
        self.fetches.append((page, url))
        item = self.queue.popleft() if self.queue else self.default
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


@pytest.fixture
def db():
    """Fresh in-memory job store for one test."""
    DatabaseConnection.close()
    DatabaseConnection.initialize(":memory:")
    yield
    DatabaseConnection.close()


@pytest.fixture
def settings() -> Settings:
    # Long interval: tests drive cycles by hand
    return Settings(
        db_path=":memory:",
        poll_interval_ms=3_600_000,
        scrape_delay_ms=0,
        notify_role_id="333",
        vouch_channel_id="444",
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest_asyncio.fixture
async def service(db, pool, gateway, settings):
    """Tracker service over the fakes; stopped after the test."""
    tracker = TrackerService(pool, gateway, settings)
    yield tracker
    await tracker.shutdown()
