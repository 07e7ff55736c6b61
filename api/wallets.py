"""Wallet endpoints: balance, statement, staff top-up."""

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.models import WalletCreditRequest


def create_wallets_router(services: dict) -> APIRouter:
    router = APIRouter()
    ledger = services["ledger"]

    @router.get("/wallets/{customer_id}")
    async def get_wallet(request: Request, customer_id: str):
        account = ledger.get_account(customer_id)
        return success_response(account.model_dump(mode="json")).model_dump(mode="json")

    @router.get("/wallets/{customer_id}/transactions")
    async def list_transactions(
        request: Request,
        customer_id: str,
        limit: int = Query(100, ge=1, le=500),
    ):
        transactions = ledger.list_transactions(customer_id, limit=limit)
        return success_response(
            [t.model_dump(mode="json") for t in transactions]
        ).model_dump(mode="json")

    @router.post("/wallets/{customer_id}/credit")
    async def credit_wallet(request: Request, customer_id: str, body: WalletCreditRequest):
        txn = ledger.credit(
            customer_id,
            body.amount_cents,
            reference=body.reference,
            description=body.description or "Wallet top-up",
        )
        return success_response(txn.model_dump(mode="json")).model_dump(mode="json")

    return router
