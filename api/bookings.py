"""Booking endpoints: checkout submission and lifecycle."""

from uuid import UUID

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from api.base import success_response
from core.models import BookingRequest, BookingStatus


class StatusChangeRequest(BaseModel):
    status: BookingStatus


class NotesUpdateRequest(BaseModel):
    notes: str | None = Field(None, max_length=2000)


def create_bookings_router(services: dict) -> APIRouter:
    router = APIRouter()
    booking_svc = services["booking"]

    @router.post("/bookings")
    async def create_booking(request: Request, body: BookingRequest):
        result = booking_svc.create_booking(body)
        if result.error is not None:
            raise result.error

        return success_response({
            "booking": result.booking.model_dump(mode="json"),
            "warnings": [w.model_dump(mode="json") for w in result.warnings],
        }).model_dump(mode="json")

    @router.get("/bookings/by-reference/{booking_reference}")
    async def get_booking_by_reference(request: Request, booking_reference: str):
        booking = booking_svc.get_by_reference(booking_reference)
        if booking is None:
            raise ValueError(f"Booking {booking_reference} not found")
        return success_response(booking.model_dump(mode="json")).model_dump(mode="json")

    @router.get("/bookings/{booking_id}")
    async def get_booking(request: Request, booking_id: UUID):
        booking = booking_svc.get_by_id(booking_id)
        if booking is None:
            raise ValueError(f"Booking {booking_id} not found")
        return success_response(booking.model_dump(mode="json")).model_dump(mode="json")

    @router.get("/customers/{customer_id}/bookings")
    async def list_customer_bookings(
        request: Request,
        customer_id: str,
        limit: int = Query(50, ge=1, le=200),
    ):
        bookings = booking_svc.list_for_customer(customer_id, limit=limit)
        return success_response(
            [b.model_dump(mode="json") for b in bookings]
        ).model_dump(mode="json")

    @router.post("/bookings/{booking_id}/status")
    async def change_status(request: Request, booking_id: UUID, body: StatusChangeRequest):
        booking = booking_svc.change_status(booking_id, body.status)
        return success_response(booking.model_dump(mode="json")).model_dump(mode="json")

    @router.patch("/bookings/{booking_id}/notes")
    async def update_notes(request: Request, booking_id: UUID, body: NotesUpdateRequest):
        booking = booking_svc.update_notes(booking_id, body.notes)
        return success_response(booking.model_dump(mode="json")).model_dump(mode="json")

    return router
