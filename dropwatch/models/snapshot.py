from typing import Optional

from pydantic import BaseModel, Field

MAX_CART_ITEMS = 12


class ScrapeSnapshot(BaseModel):
    """
    Structured result of one pass over the order page.

    Every text field is optional: anything the page did not show is None,
    never a guessed value. Snapshots are not persisted.
    """

    status_text: Optional[str] = Field(
        default=None, description="Headline and ETA joined"
    )
    status_line: Optional[str] = Field(default=None, description="Status headline")
    eta_line: Optional[str] = Field(default=None, description="'Estimated ...' line")
    store: Optional[str] = Field(default=None, description="Store name")
    name: Optional[str] = Field(default=None, description="Customer first name")
    address: Optional[str] = Field(default=None, description="Street address")
    unit: Optional[str] = Field(default=None, description="Apt / suite / floor")
    delivery_type: Optional[str] = Field(
        default=None, description="Drop-off manner and speed, e.g. 'Meet at door • Priority'"
    )
    delivery_note: Optional[str] = Field(
        default=None, description="Free-text note typed by the customer"
    )
    cart: list[str] = Field(
        default_factory=list,
        max_length=MAX_CART_ITEMS,
        description="Order lines as 'name — detail'",
    )
    delivered: bool = Field(default=False, description="Page shows the order arrived")
    requires_login: bool = Field(
        default=False, description="Page redirected to the login domain"
    )

    @classmethod
    def login_wall(cls) -> "ScrapeSnapshot":
        """Snapshot for a page that bounced to the login domain."""
        return cls(requires_login=True)
