"""Back-office endpoints for outbox entries (wallet payments, refunds, rewards) that need attention."""

from uuid import UUID

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from api.base import success_response


class ResolveRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=1000)


def create_reconciliation_router(services: dict) -> APIRouter:
    router = APIRouter()
    reconciliation_svc = services["reconciliation"]

    @router.get("/reconciliation/review")
    async def list_needing_review(request: Request, limit: int = Query(100, ge=1, le=500)):
        entries = reconciliation_svc.list_needing_review(limit=limit)
        return success_response(
            [e.model_dump(mode="json") for e in entries]
        ).model_dump(mode="json")

    @router.post("/reconciliation/run")
    async def run_pass(request: Request):
        counts = reconciliation_svc.process_pending()
        return success_response(counts).model_dump(mode="json")

    @router.post("/reconciliation/{entry_id}/retry")
    async def retry_entry(request: Request, entry_id: UUID):
        entry = reconciliation_svc.retry(entry_id)
        return success_response(entry.model_dump(mode="json")).model_dump(mode="json")

    @router.post("/reconciliation/{entry_id}/resolve")
    async def resolve_entry(request: Request, entry_id: UUID, body: ResolveRequest):
        entry = reconciliation_svc.resolve(entry_id, body.note)
        return success_response(entry.model_dump(mode="json")).model_dump(mode="json")

    return router
