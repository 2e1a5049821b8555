"""
Booking endpoints
=================

POST   /api/v1/bookings                        -- create a booking (customer)
GET    /api/v1/bookings/my                     -- own / assigned bookings
GET    /api/v1/bookings/{id}                   -- one booking, scoped to the caller
PUT    /api/v1/bookings/{id}                   -- edit route while pending (customer)
DELETE /api/v1/bookings/{id}                   -- soft-delete (customer)
PUT    /api/v1/bookings/{id}/status/{status}   -- lifecycle transition
PUT    /api/v1/bookings/{id}/revenue           -- owner sets the fare
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_lifecycle, require_roles
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    BookingActionResponse,
    BookingCreateRequest,
    BookingResponse,
    BookingUpdateRequest,
    MessageResponse,
    RevenueRequest,
)
from src.domain.entities import Actor
from src.domain.enums import UserRole
from src.services.lifecycle import BookingDraft, BookingLifecycle, RouteChange

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _coords(value):
    return value.to_domain() if value is not None else None


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Create a booking",
    description=(
        "The driver is taken from the vehicle's current assignment. "
        "Distance is computed from the coordinates when both are given; "
        "it never affects the fare."
    ),
)
@limiter.limit(RATE_LIMIT)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    actor: Actor = Depends(require_roles(UserRole.CUSTOMER)),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    draft = BookingDraft(
        vehicle_id=body.vehicle_id,
        source=body.source,
        destination=body.destination,
        source_coords=_coords(body.source_coords),
        destination_coords=_coords(body.destination_coords),
        fare=body.fare,
        booking_date=body.booking_date,
    )
    return await lifecycle.create_booking(actor, draft)


@router.get(
    "/my",
    response_model=list[BookingResponse],
    summary="List the caller's bookings",
)
@limiter.limit(RATE_LIMIT)
async def my_bookings(
    request: Request,
    actor: Actor = Depends(require_roles(UserRole.CUSTOMER, UserRole.DRIVER)),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.list_bookings(actor)


@router.get("/{booking_id}", response_model=BookingResponse, summary="Get a booking")
@limiter.limit(RATE_LIMIT)
async def get_booking(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(require_roles()),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.get_booking(booking_id, actor)


@router.put(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Edit a pending booking's route",
)
@limiter.limit(RATE_LIMIT)
async def update_booking(
    request: Request,
    booking_id: int,
    body: BookingUpdateRequest,
    actor: Actor = Depends(require_roles(UserRole.CUSTOMER)),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    change = RouteChange(
        source=body.source,
        destination=body.destination,
        source_coords=_coords(body.source_coords),
        destination_coords=_coords(body.destination_coords),
        booking_date=body.booking_date,
    )
    return await lifecycle.update_route(booking_id, change, actor)


@router.delete(
    "/{booking_id}",
    response_model=MessageResponse,
    summary="Soft-delete a booking",
)
@limiter.limit(RATE_LIMIT)
async def delete_booking(
    request: Request,
    booking_id: int,
    actor: Actor = Depends(require_roles(UserRole.CUSTOMER)),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    await lifecycle.delete_booking(booking_id, actor)
    return MessageResponse(message="Booking deleted")


@router.put(
    "/{booking_id}/status/{status}",
    response_model=BookingActionResponse,
    summary="Move a booking through its lifecycle",
    description=(
        "Drivers accept, start (ongoing) and complete bookings; customers "
        "and the assigned driver may cancel.  Completed bookings cannot be "
        "cancelled.  Bookings outside the caller's scope answer 404."
    ),
)
@limiter.limit(RATE_LIMIT)
async def update_booking_status(
    request: Request,
    booking_id: int,
    status: str,
    actor: Actor = Depends(require_roles(UserRole.CUSTOMER, UserRole.DRIVER)),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    booking = await lifecycle.transition(booking_id, status, actor)
    return BookingActionResponse(
        message=f"Booking {booking.status.value}",
        booking=BookingResponse.model_validate(booking),
    )


@router.put(
    "/{booking_id}/revenue",
    response_model=BookingActionResponse,
    summary="Set the fare of a booking on an owned vehicle",
)
@limiter.limit(RATE_LIMIT)
async def set_booking_revenue(
    request: Request,
    booking_id: int,
    body: RevenueRequest,
    actor: Actor = Depends(require_roles(UserRole.OWNER)),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    booking = await lifecycle.set_fare(booking_id, body.amount, actor)
    return BookingActionResponse(
        message="Revenue set", booking=BookingResponse.model_validate(booking)
    )
