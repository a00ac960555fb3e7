"""
Platform-neutral description of a published tracker message.

The chat gateway turns a ``MessagePayload`` into whatever the platform
needs. Send-time values (embed timestamps) are added by the gateway, so a
payload only depends on what was scraped and its fingerprint is stable.
"""

import hashlib
from typing import Optional

from pydantic import BaseModel, Field


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class Embed(BaseModel):
    title: str
    color: int
    url: Optional[str] = None
    fields: list[EmbedField] = Field(default_factory=list)
    footer: Optional[str] = None
    thumbnail_url: Optional[str] = None


class LinkButton(BaseModel):
    label: str
    url: str


class MessagePayload(BaseModel):
    """Content, optional embed and optional link button of one message."""

    content: str = ""
    embed: Optional[Embed] = None
    button: Optional[LinkButton] = None

    def fingerprint(self) -> str:
        """SHA-256 of the canonical JSON form, used to skip no-op edits."""
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()
