"""
Dropwatch data models.

Pydantic models shared by the scraper, the store and the tracker service.
"""

# Job models
from dropwatch.models.job import Phase, TrackingJob

# Message models
from dropwatch.models.message import Embed, EmbedField, LinkButton, MessagePayload

# Snapshot models
from dropwatch.models.snapshot import MAX_CART_ITEMS, ScrapeSnapshot

__all__ = [
    # Job
    "Phase",
    "TrackingJob",
    # Message
    "Embed",
    "EmbedField",
    "LinkButton",
    "MessagePayload",
    # Snapshot
    "MAX_CART_ITEMS",
    "ScrapeSnapshot",
]
