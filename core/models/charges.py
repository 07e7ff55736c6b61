"""Charge modifiers applied on top of a cart, and the derived price breakdown.

Fixed amounts are cents. Percentages (discount, tax) are Decimal 0-100 so
rates like 8.25% survive intact.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class DiscountKind(str, Enum):
    """How a discount amount is interpreted."""

    FIXED = "fixed"
    PERCENTAGE = "percentage"


class Discount(BaseModel):
    """Fixed amount in cents, or a percentage of the pre-discount subtotal."""

    amount: Decimal = Decimal("0")
    kind: DiscountKind = DiscountKind.FIXED

    model_config = {"frozen": True}


class AssigneeTip(BaseModel):
    """Tip earmarked for one staff member."""

    assignee_id: str
    tip_cents: int

    model_config = {"frozen": True}


class ChargeModifiers(BaseModel):
    """Everything besides line items that shapes the grand total."""

    service_charges_cents: int = 0
    discount: Discount = Field(default_factory=Discount)
    tax_rate_percent: Decimal = Decimal("0")
    service_tip_cents: int = 0
    assignee_tips: list[AssigneeTip] = Field(default_factory=list)

    model_config = {"frozen": True}


class PriceBreakdown(BaseModel):
    """
    Result of pricing a cart. Persisted only as part of a booking snapshot.

    grand_total_cents == subtotal_after_discount_cents + tax_amount_cents + tips_total_cents
    """

    subtotal_before_discount_cents: int
    discount_amount_cents: int
    subtotal_after_discount_cents: int
    tax_amount_cents: int
    tips_total_cents: int
    grand_total_cents: int

    model_config = {"frozen": True}
