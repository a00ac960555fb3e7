"""
Chat platform integration: message builders, the gateway interface and
its Discord implementation.
"""

from dropwatch.chat.gateway import (
    ChannelInfo,
    ChannelUnavailableError,
    ChatGateway,
    MessageNotFoundError,
)

__all__ = [
    "ChannelInfo",
    "ChannelUnavailableError",
    "ChatGateway",
    "MessageNotFoundError",
]
