"""
Checkout helpers used before a booking is submitted.

POST /api/checkout/quote              - price a cart
POST /api/checkout/allocation/enter   - default mixed split for a customer
POST /api/checkout/allocation/edit    - apply a wallet or cash edit to a split
"""

from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from api.base import success_response
from core.allocation import enter_mixed, on_cash_edited, on_wallet_edited
from core.models import AllocationState, ChargeModifiers, LineItem
from core.pricing import compute_price


class QuoteRequest(BaseModel):
    line_items: list[LineItem] = Field(default_factory=list)
    modifiers: ChargeModifiers = Field(default_factory=ChargeModifiers)


class EnterMixedRequest(BaseModel):
    customer_id: str
    grand_total_cents: int = Field(..., ge=0)


class EditAllocationRequest(BaseModel):
    state: AllocationState
    field: Literal["wallet", "cash"]
    amount_cents: int


def create_checkout_router(services: dict) -> APIRouter:
    router = APIRouter()
    ledger = services["ledger"]

    @router.post("/checkout/quote")
    async def quote(request: Request, body: QuoteRequest):
        breakdown = compute_price(body.line_items, body.modifiers)
        return success_response(breakdown.model_dump(mode="json")).model_dump(mode="json")

    @router.post("/checkout/allocation/enter")
    async def enter_allocation(request: Request, body: EnterMixedRequest):
        account = ledger.get_account(body.customer_id)
        state = enter_mixed(body.grand_total_cents, account.balance_cents)
        return success_response(state.model_dump(mode="json")).model_dump(mode="json")

    @router.post("/checkout/allocation/edit")
    async def edit_allocation(request: Request, body: EditAllocationRequest):
        if body.field == "wallet":
            state = on_wallet_edited(body.state, body.amount_cents)
        else:
            state = on_cash_edited(body.state, body.amount_cents)
        return success_response(state.model_dump(mode="json")).model_dump(mode="json")

    return router
