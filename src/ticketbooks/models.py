"""Records returned by the pretix API and its order-data export."""

from datetime import datetime
from decimal import Decimal
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field

# Identifiers that are only ever passed around as text.
OrganizerId = NewType("OrganizerId", str)
EventId = NewType("EventId", str)
GLAccountCode = NewType("GLAccountCode", str)
CostCenterCode = NewType("CostCenterCode", str)
RegexPattern = NewType("RegexPattern", str)


class Organizer(BaseModel):
    """An organizer account the access token has been granted."""

    slug: OrganizerId
    name: str


class Event(BaseModel):
    """A pretix event."""

    slug: EventId
    # Language code -> localized name
    name: dict[str, str] = Field(default_factory=dict)
    live: bool = False
    date_from: datetime | None = None
    date_to: datetime | None = None

    def display_name(self, language: str = "en") -> str:
        """Name of the event in `language`, or the slug if it has none."""
        return self.name.get(language, self.slug)


class OrderFee(BaseModel):
    value: Decimal


class OrderPosition(BaseModel):
    """One ticket or product within an order."""

    item: int
    price: Decimal


class Order(BaseModel):
    """An order as it appears in the JSON order-data export."""

    model_config = ConfigDict(populate_by_name=True)

    placed_at: datetime = Field(alias="datetime")
    total: Decimal
    fees: list[OrderFee] = Field(default_factory=list)
    positions: list[OrderPosition] = Field(default_factory=list)


class SaleItem(BaseModel):
    """A product that can be bought in an event."""

    id: int
    name: str
    tax_rate: Decimal


class OrderExport(BaseModel):
    """Body of a finished `json` export, i.e. the `event` key of the payload."""

    orders: list[Order] = Field(default_factory=list)
    items: list[SaleItem] = Field(default_factory=list)
