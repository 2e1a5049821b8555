"""
Vehicle and driver management.

Driver model
------------
``vehicles.driver_id`` is the active driver and the only field booking
creation reads first.  ``vehicle_drivers`` records every driver ever
assigned (the legacy set); assignment always writes both, so the active
driver is always a member of the set.

Soft-deletes cascade: a deleted vehicle takes its bookings with it; a
deleted driver is unassigned from vehicles and loses their bookings.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.authorization import resolve_assignment
from src.domain.entities import Actor
from src.domain.enums import UserRole
from src.domain.errors import DuplicateResource, InvalidInput, NotFoundOrForbidden
from src.infrastructure.models import UserModel, VehicleModel
from src.infrastructure.repositories import (
    BookingRepository,
    UserRepository,
    VehicleRepository,
)

logger = logging.getLogger(__name__)


class FleetService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.vehicles = VehicleRepository(session)
        self.users = UserRepository(session)
        self.bookings = BookingRepository(session)

    async def create_vehicle(self, actor: Actor, fields: dict[str, Any]) -> VehicleModel:
        if await self.vehicles.get_by_registration(fields["registration_number"]):
            raise DuplicateResource("Registration number already registered")
        vehicle = await self.vehicles.create(owner_id=actor.id, **fields)
        await self.session.commit()
        logger.info("Vehicle %d registered by owner %d", vehicle.id, actor.id)
        return vehicle

    async def update_vehicle(
        self, vehicle_id: int, fields: dict[str, Any], owner_id: Optional[int] = None
    ) -> VehicleModel:
        """Edit descriptive fields.  Ownership and driver are never editable here."""
        if not fields:
            vehicle = await self.vehicles.get_active(vehicle_id)
        else:
            vehicle = await self.vehicles.update_active(
                vehicle_id, fields, owner_id=owner_id
            )
        if vehicle is None or (owner_id is not None and vehicle.owner_id != owner_id):
            raise NotFoundOrForbidden("Vehicle not found")
        await self.session.commit()
        return vehicle

    async def delete_vehicle(
        self, vehicle_id: int, owner_id: Optional[int] = None
    ) -> VehicleModel:
        vehicle = await self.vehicles.soft_delete(vehicle_id, owner_id=owner_id)
        if vehicle is None:
            raise NotFoundOrForbidden("Vehicle not found")
        cascaded = await self.bookings.soft_delete_for_vehicles([vehicle.id])
        await self.session.commit()
        logger.info(
            "Vehicle %d soft-deleted, %d bookings cascaded", vehicle.id, cascaded
        )
        return vehicle

    async def assign_driver(
        self, vehicle_id: int, requested_driver_id: Optional[int], actor: Actor
    ) -> VehicleModel:
        driver_id, owner_scope = resolve_assignment(actor, requested_driver_id)
        if await self.users.get_active_driver(driver_id) is None:
            raise InvalidInput("Driver not found")

        vehicle = await self.vehicles.update_active(
            vehicle_id, {"driver_id": driver_id}, owner_id=owner_scope
        )
        if vehicle is None:
            raise NotFoundOrForbidden("Vehicle not found")
        await self.vehicles.add_legacy_driver(vehicle.id, driver_id)
        await self.session.commit()
        logger.info("Driver %d assigned to vehicle %d", driver_id, vehicle.id)
        return vehicle

    async def delete_driver(self, driver_id: int) -> UserModel:
        driver = await self.users.soft_delete(driver_id, role=UserRole.DRIVER)
        if driver is None:
            raise NotFoundOrForbidden("Driver not found")
        await self.vehicles.unassign_driver(driver.id)
        cascaded = await self.bookings.soft_delete_for_user(driver.id)
        await self.session.commit()
        logger.info("Driver %d soft-deleted, %d bookings cascaded", driver.id, cascaded)
        return driver
