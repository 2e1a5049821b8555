"""
Vehicle endpoints
=================

POST   /api/v1/vehicles                    -- register a vehicle (owner)
GET    /api/v1/vehicles/my                 -- the owner's active vehicles
PUT    /api/v1/vehicles/{id}               -- edit an owned vehicle
DELETE /api/v1/vehicles/{id}               -- soft-delete (cascades bookings)
POST   /api/v1/vehicles/{id}/assign-driver -- owner assigns / driver self-assigns
GET    /api/v1/vehicles                    -- all active vehicles
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_actor, get_db, get_fleet, require_roles
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    AssignDriverRequest,
    MessageResponse,
    VehicleCreateRequest,
    VehicleResponse,
    VehicleUpdateRequest,
)
from src.domain.entities import Actor
from src.domain.enums import UserRole
from src.infrastructure.repositories import VehicleRepository
from src.services.fleet import FleetService

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.post(
    "",
    status_code=201,
    response_model=VehicleResponse,
    summary="Register a vehicle",
)
@limiter.limit(RATE_LIMIT)
async def create_vehicle(
    request: Request,
    body: VehicleCreateRequest,
    actor: Actor = Depends(require_roles(UserRole.OWNER)),
    fleet: FleetService = Depends(get_fleet),
):
    return await fleet.create_vehicle(actor, body.model_dump())


@router.get(
    "/my",
    response_model=list[VehicleResponse],
    summary="List the owner's vehicles",
)
@limiter.limit(RATE_LIMIT)
async def my_vehicles(
    request: Request,
    actor: Actor = Depends(require_roles(UserRole.OWNER)),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleRepository(db).list_for_owner(actor.id)


@router.put("/{vehicle_id}", response_model=VehicleResponse, summary="Edit a vehicle")
@limiter.limit(RATE_LIMIT)
async def update_vehicle(
    request: Request,
    vehicle_id: int,
    body: VehicleUpdateRequest,
    actor: Actor = Depends(require_roles(UserRole.OWNER)),
    fleet: FleetService = Depends(get_fleet),
):
    return await fleet.update_vehicle(
        vehicle_id, body.model_dump(exclude_none=True), owner_id=actor.id
    )


@router.delete(
    "/{vehicle_id}",
    response_model=MessageResponse,
    summary="Soft-delete a vehicle",
    description="Also soft-deletes every active booking on the vehicle.",
)
@limiter.limit(RATE_LIMIT)
async def delete_vehicle(
    request: Request,
    vehicle_id: int,
    actor: Actor = Depends(require_roles(UserRole.OWNER)),
    fleet: FleetService = Depends(get_fleet),
):
    await fleet.delete_vehicle(vehicle_id, owner_id=actor.id)
    return MessageResponse(message="Vehicle deleted")


@router.post(
    "/{vehicle_id}/assign-driver",
    response_model=VehicleResponse,
    summary="Assign a driver to a vehicle",
    description=(
        "Owners may assign any driver to a vehicle they own. "
        "Drivers can only assign themselves; a supplied driver_id is ignored."
    ),
)
@limiter.limit(RATE_LIMIT)
async def assign_driver(
    request: Request,
    vehicle_id: int,
    body: Optional[AssignDriverRequest] = None,
    actor: Actor = Depends(require_roles(UserRole.OWNER, UserRole.DRIVER)),
    fleet: FleetService = Depends(get_fleet),
):
    driver_id = body.driver_id if body else None
    return await fleet.assign_driver(vehicle_id, driver_id, actor)


@router.get("", response_model=list[VehicleResponse], summary="List all vehicles")
@limiter.limit(RATE_LIMIT)
async def list_vehicles(
    request: Request,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleRepository(db).list_active()
