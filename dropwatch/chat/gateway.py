"""
Chat platform boundary.

The tracker only talks to the chat platform through ``ChatGateway``. The
Discord implementation lives in ``dropwatch.chat.discord_gateway``; tests
use an in-memory fake.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field

from dropwatch.models.message import MessagePayload


class MessageNotFoundError(Exception):
    """The message to edit no longer exists (it was deleted)."""


class ChannelUnavailableError(Exception):
    """The channel is gone or the bot can no longer post in it."""


class ChannelInfo(BaseModel):
    """What the tracker needs to know about a channel."""

    id: str = Field(description="Channel id")
    guild_id: Optional[str] = Field(default=None, description="Owning guild id")
    icon_url: Optional[str] = Field(
        default=None, description="Guild icon used as the embed thumbnail"
    )


class ChatGateway(ABC):
    """
    Operations the tracker needs from the chat platform.

    Sends of pings, direct messages and operator alerts are best-effort:
    implementations log failures instead of raising.
    """

    @abstractmethod
    async def fetch_channel(self, channel_id: str) -> ChannelInfo | None:
        """Return channel info, or None if the channel is gone or not postable."""

    @abstractmethod
    async def message_exists(self, channel_id: str, message_id: str) -> bool:
        """
        Check whether a published message is still there.

        Only a definite "gone" answers False; when the platform cannot be
        asked the message is assumed to exist.
        """

    @abstractmethod
    async def delete_message(self, channel_id: str, message_id: str) -> None:
        """Delete a message if it is still there. Best-effort."""

    @abstractmethod
    async def send_message(self, channel_id: str, payload: MessagePayload) -> str:
        """
        Post a new message.

        Returns:
            The new message id

        Raises:
            ChannelUnavailableError: If the channel cannot be used
        """

    @abstractmethod
    async def edit_message(
        self, channel_id: str, message_id: str, payload: MessagePayload
    ) -> None:
        """
        Replace a message's content.

        Raises:
            MessageNotFoundError: If the message was deleted
            ChannelUnavailableError: If the channel cannot be used
        """

    @abstractmethod
    async def send_mention(self, channel_id: str, user_id: str, text: str) -> None:
        """Post ``text`` in the channel, allowing a ping of ``user_id`` only."""

    @abstractmethod
    async def send_direct_message(self, user_id: str, text: str) -> None:
        """Send a direct message to a user."""

    @abstractmethod
    async def resolve_notifier(self, channel_id: str, role_id: str) -> str | None:
        """
        Find the member to ping for a channel.

        Returns:
            The id of the only member holding ``role_id`` who can see the
            channel; None when there is no such member or more than one
        """

    @abstractmethod
    async def notify_operator(self, text: str) -> None:
        """Report a fault to the operator log channel or owner, if configured."""
