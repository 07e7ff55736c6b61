"""Cart line item models.

All prices are stored in cents (integer) to avoid floating point issues.
10.00 = 1000 cents. Line items are snapshots of catalog entries taken at
selection time and never change once they are in a cart.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class ServiceLineItem(BaseModel):
    """A salon service (haircut, facial, ...) priced per visit."""

    kind: Literal["service"] = "service"
    id: str
    name: str
    unit_price_cents: int
    duration_minutes: int = 0
    category: str | None = None

    model_config = {"frozen": True}

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents


class ProductLineItem(BaseModel):
    """A retail product sold alongside the booking."""

    kind: Literal["product"] = "product"
    id: str
    name: str
    unit_price_cents: int
    quantity: int = 1
    category: str | None = None

    model_config = {"frozen": True}

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


LineItem = Annotated[Union[ServiceLineItem, ProductLineItem], Field(discriminator="kind")]
