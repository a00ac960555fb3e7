from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Phase(StrEnum):
    """Coarse delivery stage shown to the notified member"""

    PREPARING = "preparing"  # Store received / is preparing the order
    HEADING = "heading"  # Courier is on the way
    ALMOST_HERE = "almost_here"  # Courier is nearby
    DELIVERED = "delivered"  # Order arrived

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]


_PHASE_LABELS = {
    Phase.PREPARING: "Preparing",
    Phase.HEADING: "Heading your way",
    Phase.ALMOST_HERE: "Almost here",
    Phase.DELIVERED: "Delivered",
}


class TrackingJob(BaseModel):
    """
    Durable record of one tracked order.

    One row exists per live tracker. The row is the source of truth across
    restarts; in-memory state is rebuilt from it on resume. ``id`` never
    changes, ``message_id`` changes when the published message had to be
    recreated.
    """

    # Identity
    id: str = Field(description="Internal job identifier (UUID)")
    url: str = Field(description="Public order page being scraped")

    # Where the tracker message lives
    guild_id: str = Field(description="Discord guild id")
    channel_id: str = Field(description="Discord channel id")
    message_id: str = Field(description="Published tracker message id")

    # People
    assignee_user_id: Optional[str] = Field(
        default=None, description="Member pinged on phase changes"
    )
    requester_user_id: Optional[str] = Field(
        default=None, description="Member who started tracking"
    )

    # Carried-over scrape state
    static_name: Optional[str] = Field(
        default=None, description="First customer name ever seen (latched)"
    )
    last_phase: Optional[Phase] = Field(default=None, description="Last known phase")
    last_hash: Optional[str] = Field(
        default=None, description="Fingerprint of the last published payload"
    )
    last_error_at: Optional[datetime] = Field(
        default=None, description="When a scrape error was last reported"
    )

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Record creation time",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update time",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "6f1c1e0e-2a4b-4c39-9d6e-0f8a9b3c2d11",
                "url": "https://www.ubereats.com/orders/8f2a0c7e-...",
                "guild_id": "1405973995399942214",
                "channel_id": "1405983244096372839",
                "message_id": "1423195408041119829",
                "assignee_user_id": "123456789012345678",
                "requester_user_id": "876543210987654321",
                "static_name": "Alex",
                "last_phase": "heading",
            }
        }
    )
