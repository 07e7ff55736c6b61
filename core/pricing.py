"""
Price computation for a checkout cart.

Pure and deterministic: the same cart and modifiers always produce the
same breakdown. Intermediate values stay in Decimal and are rounded
half-up to whole cents only where they are persisted, so a percentage
discount followed by a percentage tax does not compound rounding error.

Ordering: discount applies to the pre-discount subtotal (services +
products + service charges), tax applies to the post-discount subtotal,
and tips are added after tax, untaxed.
"""

from decimal import Decimal
from typing import Sequence

from core.exceptions import InvalidInputError
from core.models import (
    ChargeModifiers, DiscountKind, LineItem, PriceBreakdown,
    ProductLineItem, ServiceLineItem, POINTS_PER_CURRENCY_UNIT,
)
from utils.money import CENTS_PER_UNIT, round_cents

_HUNDRED = Decimal("100")


def _validate(line_items: Sequence[LineItem], modifiers: ChargeModifiers) -> None:
    for item in line_items:
        if item.unit_price_cents < 0:
            raise InvalidInputError(f"Price of '{item.name}' cannot be negative")
        if isinstance(item, ProductLineItem) and item.quantity < 1:
            raise InvalidInputError(f"Quantity of '{item.name}' must be at least 1")

    if modifiers.service_charges_cents < 0:
        raise InvalidInputError("Service charges cannot be negative")
    if modifiers.service_tip_cents < 0:
        raise InvalidInputError("Service tip cannot be negative")
    for tip in modifiers.assignee_tips:
        if tip.tip_cents < 0:
            raise InvalidInputError(f"Tip for {tip.assignee_id} cannot be negative")

    if not (0 <= modifiers.tax_rate_percent <= _HUNDRED):
        raise InvalidInputError("Tax rate must be between 0 and 100 percent")

    discount = modifiers.discount
    if discount.amount < 0:
        raise InvalidInputError("Discount cannot be negative")
    if discount.kind == DiscountKind.PERCENTAGE and discount.amount > _HUNDRED:
        raise InvalidInputError("Percentage discount cannot exceed 100")


def compute_price(line_items: Sequence[LineItem], modifiers: ChargeModifiers) -> PriceBreakdown:
    """
    Price a cart.

    Args:
        line_items: Service and product snapshots
        modifiers: Service charges, discount, tax rate and tips

    Returns:
        PriceBreakdown in cents

    Raises:
        InvalidInputError: Negative amounts, quantity below 1, rates out of range
    """
    _validate(line_items, modifiers)

    services_total = sum(
        item.unit_price_cents for item in line_items if isinstance(item, ServiceLineItem)
    )
    products_total = sum(
        item.unit_price_cents * item.quantity
        for item in line_items if isinstance(item, ProductLineItem)
    )

    subtotal_before = services_total + products_total + modifiers.service_charges_cents

    discount = modifiers.discount
    if discount.kind == DiscountKind.PERCENTAGE:
        discount_exact = Decimal(subtotal_before) * discount.amount / _HUNDRED
    else:
        # Fixed discounts never drive the subtotal below zero
        discount_exact = min(discount.amount, Decimal(subtotal_before))

    subtotal_after_exact = Decimal(subtotal_before) - discount_exact
    tax_exact = subtotal_after_exact * modifiers.tax_rate_percent / _HUNDRED

    tips_total = modifiers.service_tip_cents + sum(t.tip_cents for t in modifiers.assignee_tips)

    discount_cents = round_cents(discount_exact)
    subtotal_after = subtotal_before - discount_cents
    tax_cents = round_cents(tax_exact)

    return PriceBreakdown(
        subtotal_before_discount_cents=subtotal_before,
        discount_amount_cents=discount_cents,
        subtotal_after_discount_cents=subtotal_after,
        tax_amount_cents=tax_cents,
        tips_total_cents=tips_total,
        grand_total_cents=subtotal_after + tax_cents + tips_total,
    )


def reward_cents_for(grand_total_cents: int, points_per_unit: int) -> int:
    """Wallet credit worth `points_per_unit` points per currency unit spent, rounded down."""
    points = grand_total_cents * points_per_unit // CENTS_PER_UNIT
    return points * CENTS_PER_UNIT // POINTS_PER_CURRENCY_UNIT
