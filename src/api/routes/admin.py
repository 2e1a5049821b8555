"""
Admin / observability endpoints
===============================

GET    /api/v1/admin/analytics        -- fleet-wide counters and revenue
GET    /api/v1/admin/vehicles         -- paginated active vehicles
PATCH  /api/v1/admin/vehicles/{id}    -- edit any vehicle
DELETE /api/v1/admin/vehicles/{id}    -- soft-delete with booking cascade
GET    /api/v1/admin/drivers          -- paginated active drivers
PATCH  /api/v1/admin/drivers/{id}     -- edit a driver
DELETE /api/v1/admin/drivers/{id}     -- soft-delete, unassign, cascade
GET    /api/v1/admin/bookings         -- paginated active bookings
PATCH  /api/v1/admin/bookings/{id}    -- edit route details
DELETE /api/v1/admin/bookings/{id}    -- soft-delete a booking
POST   /api/v1/admin/reconcile        -- settle completed, unsettled bookings
GET    /api/v1/admin/health           -- simple health check
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_fleet, require_roles
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    AnalyticsResponse,
    BookingResponse,
    BookingUpdateRequest,
    DriverUpdateRequest,
    HealthResponse,
    MessageResponse,
    Page,
    ReconcileResponse,
    UserResponse,
    VehicleResponse,
    VehicleUpdateRequest,
)
from src.config import settings
from src.domain.authorization import BookingScope
from src.domain.enums import BookingStatus, UserRole
from src.domain.errors import NotFoundOrForbidden
from src.infrastructure.repositories import (
    BookingRepository,
    UserRepository,
    VehicleRepository,
)
from src.services.fleet import FleetService
from src.services.settlement import RevenueSettlement

router = APIRouter(prefix="/admin", tags=["admin"])

admin_only = require_roles(UserRole.ADMIN)


def _paging(page: int, limit: int) -> int:
    return (page - 1) * limit


@router.get("/analytics", response_model=AnalyticsResponse, summary="Fleet analytics")
@limiter.limit(RATE_LIMIT)
async def analytics(
    request: Request,
    _=Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    bookings = BookingRepository(db)
    return AnalyticsResponse(
        total_vehicles=await VehicleRepository(db).count_active(),
        total_drivers=await UserRepository(db).count_active(UserRole.DRIVER),
        total_bookings=await bookings.count_active(),
        cancelled_bookings=await bookings.count_active(BookingStatus.CANCELLED),
        revenue_generated=await bookings.revenue_generated(),
    )


# ── Vehicles ──────────────────────────────────────────────────────────


@router.get("/vehicles", response_model=Page[VehicleResponse], summary="List vehicles")
@limiter.limit(RATE_LIMIT)
async def list_vehicles(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _=Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    repo = VehicleRepository(db)
    items = await repo.list_active(skip=_paging(page, limit), limit=limit)
    return Page[VehicleResponse](
        items=[VehicleResponse.model_validate(v) for v in items],
        total=await repo.count_active(),
        page=page,
        limit=limit,
    )


@router.patch("/vehicles/{vehicle_id}", response_model=VehicleResponse)
@limiter.limit(RATE_LIMIT)
async def update_vehicle(
    request: Request,
    vehicle_id: int,
    body: VehicleUpdateRequest,
    _=Depends(admin_only),
    fleet: FleetService = Depends(get_fleet),
):
    return await fleet.update_vehicle(vehicle_id, body.model_dump(exclude_none=True))


@router.delete("/vehicles/{vehicle_id}", response_model=MessageResponse)
@limiter.limit(RATE_LIMIT)
async def delete_vehicle(
    request: Request,
    vehicle_id: int,
    _=Depends(admin_only),
    fleet: FleetService = Depends(get_fleet),
):
    await fleet.delete_vehicle(vehicle_id)
    return MessageResponse(message="Vehicle soft-deleted with cascade")


# ── Drivers ───────────────────────────────────────────────────────────


@router.get("/drivers", response_model=Page[UserResponse], summary="List drivers")
@limiter.limit(RATE_LIMIT)
async def list_drivers(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _=Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    repo = UserRepository(db)
    items = await repo.list_drivers(skip=_paging(page, limit), limit=limit)
    return Page[UserResponse](
        items=[UserResponse.model_validate(u) for u in items],
        total=await repo.count_active(UserRole.DRIVER),
        page=page,
        limit=limit,
    )


@router.patch("/drivers/{driver_id}", response_model=UserResponse)
@limiter.limit(RATE_LIMIT)
async def update_driver(
    request: Request,
    driver_id: int,
    body: DriverUpdateRequest,
    _=Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    repo = UserRepository(db)
    values = body.model_dump(exclude_none=True)
    if values:
        driver = await repo.update_active(driver_id, values, role=UserRole.DRIVER)
    else:
        driver = await repo.get_active_driver(driver_id)
    if driver is None:
        raise NotFoundOrForbidden("Driver not found")
    return driver


@router.delete("/drivers/{driver_id}", response_model=MessageResponse)
@limiter.limit(RATE_LIMIT)
async def delete_driver(
    request: Request,
    driver_id: int,
    _=Depends(admin_only),
    fleet: FleetService = Depends(get_fleet),
):
    await fleet.delete_driver(driver_id)
    return MessageResponse(message="Driver soft-deleted and cascaded")


# ── Bookings ──────────────────────────────────────────────────────────


@router.get("/bookings", response_model=Page[BookingResponse], summary="List bookings")
@limiter.limit(RATE_LIMIT)
async def list_bookings(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _=Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    repo = BookingRepository(db)
    items = await repo.list_scoped(
        BookingScope(), skip=_paging(page, limit), limit=limit
    )
    return Page[BookingResponse](
        items=[BookingResponse.model_validate(b) for b in items],
        total=await repo.count_active(),
        page=page,
        limit=limit,
    )


@router.patch(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    description="Route details only; status and fare follow the lifecycle rules.",
)
@limiter.limit(RATE_LIMIT)
async def update_booking(
    request: Request,
    booking_id: int,
    body: BookingUpdateRequest,
    _=Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    repo = BookingRepository(db)
    values = body.model_dump(
        include={"source", "destination", "booking_date"}, exclude_none=True
    )
    if values:
        booking = await repo.update_scoped(booking_id, BookingScope(), values)
    else:
        booking = await repo.find_scoped(booking_id, BookingScope())
    if booking is None:
        raise NotFoundOrForbidden("Booking not found")
    return booking


@router.delete("/bookings/{booking_id}", response_model=MessageResponse)
@limiter.limit(RATE_LIMIT)
async def delete_booking(
    request: Request,
    booking_id: int,
    _=Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingRepository(db).update_scoped(
        booking_id, BookingScope(), {"is_deleted": True}
    )
    if booking is None:
        raise NotFoundOrForbidden("Booking not found")
    return MessageResponse(message="Booking soft-deleted")


# ── Settlement & health ───────────────────────────────────────────────


@router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    summary="Settle completed bookings whose revenue was not yet applied",
)
@limiter.limit(RATE_LIMIT)
async def reconcile(
    request: Request,
    _=Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    settled = await RevenueSettlement(db).settle_pending(settings.reconcile_batch_size)
    return ReconcileResponse(settled=settled)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
