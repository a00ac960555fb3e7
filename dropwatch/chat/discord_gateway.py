"""
Discord implementation of the chat gateway (discord.py).
"""

import logging

import discord

from dropwatch.chat.gateway import (
    ChannelInfo,
    ChannelUnavailableError,
    ChatGateway,
    MessageNotFoundError,
)
from dropwatch.models.message import MessagePayload

logger = logging.getLogger(__name__)

# Discord JSON error code for "Unknown Message"
UNKNOWN_MESSAGE = 10008
MAX_MESSAGE_LENGTH = 2000
GUILD_ICON_SIZE = 128


def render_embed(payload: MessagePayload) -> discord.Embed | None:
    """Build the discord.py embed for a payload, stamped with the send time."""
    if payload.embed is None:
        return None

    source = payload.embed
    embed = discord.Embed(
        title=source.title,
        colour=discord.Colour(source.color),
        url=source.url,
        timestamp=discord.utils.utcnow(),
    )
    for field in source.fields:
        embed.add_field(name=field.name, value=field.value, inline=field.inline)
    if source.footer:
        embed.set_footer(text=source.footer)
    if source.thumbnail_url:
        embed.set_thumbnail(url=source.thumbnail_url)
    return embed


def render_view(payload: MessagePayload) -> discord.ui.View | None:
    """Link button row for a payload."""
    if payload.button is None:
        return None

    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Button(
            style=discord.ButtonStyle.link,
            label=payload.button.label,
            url=payload.button.url,
        )
    )
    return view


class DiscordGateway(ChatGateway):
    """
    Gateway over a logged-in ``discord.Client``.

    Args:
        client: The bot client (needs the guilds and members intents)
        owner_user_id: Operator to DM when no log channel is configured
        log_channel_id: Channel receiving operator alerts
    """

    def __init__(
        self,
        client: discord.Client,
        owner_user_id: str | None = None,
        log_channel_id: str | None = None,
    ):
        self.client = client
        self.owner_user_id = owner_user_id
        self.log_channel_id = log_channel_id

    async def _get_channel(self, channel_id: str) -> discord.abc.Messageable | None:
        channel = self.client.get_channel(int(channel_id))
        if channel is None:
            try:
                channel = await self.client.fetch_channel(int(channel_id))
            except (discord.NotFound, discord.Forbidden):
                return None
        if not isinstance(channel, discord.abc.Messageable):
            return None
        return channel

    async def _require_channel(self, channel_id: str) -> discord.abc.Messageable:
        channel = await self._get_channel(channel_id)
        if channel is None:
            raise ChannelUnavailableError(f"Cannot access channel {channel_id}")
        return channel

    async def _get_user(self, user_id: str) -> discord.User | None:
        user = self.client.get_user(int(user_id))
        if user is not None:
            return user
        try:
            return await self.client.fetch_user(int(user_id))
        except discord.HTTPException:
            return None

    async def fetch_channel(self, channel_id: str) -> ChannelInfo | None:
        channel = await self._get_channel(channel_id)
        if channel is None:
            return None

        guild = getattr(channel, "guild", None)
        icon_url = None
        if guild is not None and guild.icon is not None:
            icon_url = guild.icon.replace(size=GUILD_ICON_SIZE, format="png").url

        return ChannelInfo(
            id=str(channel.id),
            guild_id=str(guild.id) if guild is not None else None,
            icon_url=icon_url,
        )

    async def message_exists(self, channel_id: str, message_id: str) -> bool:
        channel = await self._get_channel(channel_id)
        if channel is None:
            return False
        try:
            await channel.fetch_message(int(message_id))
        except (discord.NotFound, discord.Forbidden):
            return False
        except discord.HTTPException as e:
            logger.warning("Could not check message %s: %s", message_id, e)
        return True

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        channel = await self._get_channel(channel_id)
        if channel is None:
            return
        try:
            message = await channel.fetch_message(int(message_id))
            await message.delete()
        except discord.HTTPException as e:
            logger.warning("Deleting message %s failed: %s", message_id, e)

    async def send_message(self, channel_id: str, payload: MessagePayload) -> str:
        channel = await self._require_channel(channel_id)
        kwargs = {"content": payload.content or None, "embed": render_embed(payload)}
        view = render_view(payload)
        if view is not None:
            kwargs["view"] = view
        try:
            message = await channel.send(**kwargs)
        except discord.Forbidden as e:
            raise ChannelUnavailableError(str(e)) from e
        return str(message.id)

    async def edit_message(
        self, channel_id: str, message_id: str, payload: MessagePayload
    ) -> None:
        channel = await self._require_channel(channel_id)
        embed = render_embed(payload)
        try:
            message = await channel.fetch_message(int(message_id))
            await message.edit(
                content=payload.content or None,
                embeds=[embed] if embed is not None else [],
                view=render_view(payload),
            )
        except discord.NotFound as e:
            if e.code == UNKNOWN_MESSAGE:
                raise MessageNotFoundError(message_id) from e
            raise ChannelUnavailableError(str(e)) from e

    async def send_mention(self, channel_id: str, user_id: str, text: str) -> None:
        channel = await self._get_channel(channel_id)
        if channel is None:
            logger.warning("Cannot ping %s: channel %s unavailable", user_id, channel_id)
            return
        try:
            await channel.send(
                content=text,
                allowed_mentions=discord.AllowedMentions(
                    everyone=False,
                    roles=False,
                    users=[discord.Object(id=int(user_id))],
                ),
            )
        except discord.HTTPException as e:
            logger.warning("Ping to %s in %s failed: %s", user_id, channel_id, e)

    async def send_direct_message(self, user_id: str, text: str) -> None:
        user = await self._get_user(user_id)
        if user is None:
            return
        try:
            await user.send(text[:MAX_MESSAGE_LENGTH])
        except discord.HTTPException as e:
            logger.warning("Direct message to %s failed: %s", user_id, e)

    async def resolve_notifier(self, channel_id: str, role_id: str) -> str | None:
        channel = await self._get_channel(channel_id)
        guild = getattr(channel, "guild", None)
        if channel is None or guild is None:
            return None

        try:
            if not guild.chunked:
                await guild.chunk()
        except (discord.ClientException, discord.HTTPException) as e:
            logger.warning("Could not load members of guild %s: %s", guild.id, e)

        role = guild.get_role(int(role_id))
        if role is None:
            return None

        candidates = list(role.members)
        if isinstance(channel, discord.Thread):
            try:
                thread_members = await channel.fetch_members()
            except discord.HTTPException:
                thread_members = []
            allowed = {m.id for m in thread_members}
            candidates = [m for m in candidates if m.id in allowed]
        else:
            candidates = [m for m in candidates if channel.permissions_for(m).view_channel]

        if len(candidates) == 1:
            return str(candidates[0].id)
        return None

    async def notify_operator(self, text: str) -> None:
        text = text[:MAX_MESSAGE_LENGTH]
        try:
            if self.log_channel_id:
                channel = await self._get_channel(self.log_channel_id)
                if channel is not None:
                    await channel.send(text)
                    return
            if self.owner_user_id:
                user = await self._get_user(self.owner_user_id)
                if user is not None:
                    await user.send(text)
        except discord.HTTPException as e:
            logger.warning("Operator alert failed: %s", e)
