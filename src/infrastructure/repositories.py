"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.

Every mutation is a single conditional ``UPDATE ... WHERE ... RETURNING``:
the precondition and the write happen in one statement, so a concurrent
request that invalidates the precondition makes the update match zero
rows instead of overwriting.  Updates return primary keys only and the
row is re-read with ``populate_existing`` so callers never see a stale
identity-map copy.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from sqlalchemy import and_, exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, UserModel, VehicleDriverModel, VehicleModel
from src.domain.authorization import BookingScope
from src.domain.enums import BookingStatus, UserRole

_NO_SYNC = {"synchronize_session": False}


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, *, name: str, email: str, password_hash: str, role: UserRole
    ) -> UserModel:
        user = UserModel(
            name=name, email=email, password_hash=password_hash, role=role
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id, populate_existing=True)

    async def get_active(self, user_id: int) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(
                UserModel.id == user_id, UserModel.is_deleted.is_(False)
            )
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def get_active_driver(self, user_id: int) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(
                UserModel.id == user_id,
                UserModel.role == UserRole.DRIVER,
                UserModel.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def increment_revenue(self, user_id: int, amount: float) -> bool:
        """Atomically add *amount* to ``total_revenue``.  False if no such user."""
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(total_revenue=UserModel.total_revenue + amount)
            .returning(UserModel.id)
            .execution_options(**_NO_SYNC)
        )
        return result.scalar_one_or_none() is not None

    async def list_drivers(self, *, skip: int, limit: int) -> list[UserModel]:
        result = await self.session.execute(
            select(UserModel)
            .where(
                UserModel.role == UserRole.DRIVER, UserModel.is_deleted.is_(False)
            )
            .order_by(UserModel.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_active(self, role: Optional[UserRole] = None) -> int:
        query = (
            select(func.count())
            .select_from(UserModel)
            .where(UserModel.is_deleted.is_(False))
        )
        if role is not None:
            query = query.where(UserModel.role == role)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def update_active(
        self, user_id: int, values: dict[str, Any], role: Optional[UserRole] = None
    ) -> Optional[UserModel]:
        conditions = [UserModel.id == user_id, UserModel.is_deleted.is_(False)]
        if role is not None:
            conditions.append(UserModel.role == role)
        result = await self.session.execute(
            update(UserModel)
            .where(*conditions)
            .values(**values)
            .returning(UserModel.id)
            .execution_options(**_NO_SYNC)
        )
        updated_id = result.scalar_one_or_none()
        if updated_id is None:
            return None
        return await self.get_by_id(updated_id)

    async def soft_delete(
        self, user_id: int, role: Optional[UserRole] = None
    ) -> Optional[UserModel]:
        return await self.update_active(user_id, {"is_deleted": True}, role=role)


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **fields: Any) -> VehicleModel:
        vehicle = VehicleModel(**fields)
        self.session.add(vehicle)
        await self.session.flush()
        await self.session.refresh(vehicle)
        return vehicle

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(
            VehicleModel, vehicle_id, populate_existing=True
        )

    async def get_active(self, vehicle_id: int) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).where(
                VehicleModel.id == vehicle_id, VehicleModel.is_deleted.is_(False)
            )
        )
        return result.scalar_one_or_none()

    async def get_by_registration(self, registration: str) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).where(
                VehicleModel.registration_number == registration
            )
        )
        return result.scalar_one_or_none()

    async def list_for_owner(self, owner_id: int) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(
                VehicleModel.owner_id == owner_id,
                VehicleModel.is_deleted.is_(False),
            )
            .order_by(VehicleModel.id)
        )
        return list(result.scalars().all())

    async def list_active(
        self, *, skip: int = 0, limit: Optional[int] = None
    ) -> list[VehicleModel]:
        query = (
            select(VehicleModel)
            .where(VehicleModel.is_deleted.is_(False))
            .order_by(VehicleModel.id)
            .offset(skip)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_active(self) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(VehicleModel)
            .where(VehicleModel.is_deleted.is_(False))
        )
        return result.scalar() or 0

    async def update_active(
        self,
        vehicle_id: int,
        values: dict[str, Any],
        owner_id: Optional[int] = None,
    ) -> Optional[VehicleModel]:
        """Conditional update of an active vehicle, optionally owner-scoped."""
        conditions = [
            VehicleModel.id == vehicle_id,
            VehicleModel.is_deleted.is_(False),
        ]
        if owner_id is not None:
            conditions.append(VehicleModel.owner_id == owner_id)
        result = await self.session.execute(
            update(VehicleModel)
            .where(*conditions)
            .values(**values)
            .returning(VehicleModel.id)
            .execution_options(**_NO_SYNC)
        )
        updated_id = result.scalar_one_or_none()
        if updated_id is None:
            return None
        return await self.get_by_id(updated_id)

    async def soft_delete(
        self, vehicle_id: int, owner_id: Optional[int] = None
    ) -> Optional[VehicleModel]:
        return await self.update_active(
            vehicle_id, {"is_deleted": True}, owner_id=owner_id
        )

    async def add_legacy_driver(self, vehicle_id: int, driver_id: int) -> None:
        """Set semantics: adding an already-present driver is a no-op."""
        result = await self.session.execute(
            select(VehicleDriverModel.id).where(
                VehicleDriverModel.vehicle_id == vehicle_id,
                VehicleDriverModel.driver_id == driver_id,
            )
        )
        if result.scalar_one_or_none() is None:
            self.session.add(
                VehicleDriverModel(vehicle_id=vehicle_id, driver_id=driver_id)
            )
            await self.session.flush()

    async def legacy_driver_ids(self, vehicle_id: int) -> list[int]:
        """Active drivers in the legacy set, in assignment order."""
        result = await self.session.execute(
            select(VehicleDriverModel.driver_id)
            .join(UserModel, UserModel.id == VehicleDriverModel.driver_id)
            .where(
                VehicleDriverModel.vehicle_id == vehicle_id,
                UserModel.is_deleted.is_(False),
            )
            .order_by(VehicleDriverModel.id)
        )
        return list(result.scalars().all())

    async def unassign_driver(self, driver_id: int) -> None:
        await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.driver_id == driver_id)
            .values(driver_id=None)
            .execution_options(**_NO_SYNC)
        )


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Scope translation ─────────────────────────────────────────

    @staticmethod
    def _scope_conditions(scope: BookingScope) -> list:
        conditions = [BookingModel.is_deleted.is_(False)]
        if scope.customer_id is not None:
            conditions.append(BookingModel.customer_id == scope.customer_id)
        if scope.driver_id is not None:
            if scope.allow_unassigned:
                conditions.append(
                    or_(
                        BookingModel.driver_id.is_(None),
                        BookingModel.driver_id == scope.driver_id,
                    )
                )
            else:
                conditions.append(BookingModel.driver_id == scope.driver_id)
        if scope.owner_id is not None:
            conditions.append(
                BookingModel.vehicle_id.in_(
                    select(VehicleModel.id).where(
                        VehicleModel.owner_id == scope.owner_id
                    )
                )
            )
        return conditions

    # ── Reads ─────────────────────────────────────────────────────

    async def create(self, **fields: Any) -> BookingModel:
        booking = BookingModel(**fields)
        self.session.add(booking)
        await self.session.flush()
        return await self.get_by_id(booking.id)

    async def get_by_id(self, booking_id: int) -> Optional[BookingModel]:
        return await self.session.get(
            BookingModel, booking_id, populate_existing=True
        )

    async def find_scoped(
        self, booking_id: int, scope: BookingScope
    ) -> Optional[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.id == booking_id, *self._scope_conditions(scope))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_scoped(
        self,
        scope: BookingScope,
        *,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[BookingModel]:
        query = (
            select(BookingModel)
            .where(*self._scope_conditions(scope))
            .order_by(BookingModel.id)
            .offset(skip)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_active(self, status: Optional[BookingStatus] = None) -> int:
        query = (
            select(func.count())
            .select_from(BookingModel)
            .where(BookingModel.is_deleted.is_(False))
        )
        if status is not None:
            query = query.where(BookingModel.status == status)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def revenue_generated(self) -> float:
        """Sum of fares over all completed, active bookings."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(BookingModel.fare), 0.0)).where(
                BookingModel.status == BookingStatus.COMPLETED,
                BookingModel.is_deleted.is_(False),
                BookingModel.fare > 0,
            )
        )
        return float(result.scalar() or 0.0)

    # ── Conditional updates ───────────────────────────────────────

    async def update_scoped(
        self,
        booking_id: int,
        scope: BookingScope,
        values: dict[str, Any],
        *,
        from_statuses: Optional[Iterable[BookingStatus]] = None,
        unsettled_only: bool = False,
    ) -> Optional[BookingModel]:
        """
        Find-and-update in one statement.

        Returns the updated booking, or ``None`` when the scope, the status
        precondition or the settlement guard no longer holds at execution
        time.
        """
        conditions = [BookingModel.id == booking_id, *self._scope_conditions(scope)]
        if from_statuses is not None:
            conditions.append(BookingModel.status.in_(list(from_statuses)))
        if unsettled_only:
            conditions.append(BookingModel.revenue_applied.is_(False))
        result = await self.session.execute(
            update(BookingModel)
            .where(*conditions)
            .values(**values)
            .returning(BookingModel.id)
            .execution_options(**_NO_SYNC)
        )
        updated_id = result.scalar_one_or_none()
        if updated_id is None:
            return None
        return await self.get_by_id(updated_id)

    async def soft_delete_where(self, *conditions) -> int:
        result = await self.session.execute(
            update(BookingModel)
            .where(BookingModel.is_deleted.is_(False), *conditions)
            .values(is_deleted=True)
            .returning(BookingModel.id)
            .execution_options(**_NO_SYNC)
        )
        return len(result.scalars().all())

    async def soft_delete_for_vehicles(self, vehicle_ids: list[int]) -> int:
        if not vehicle_ids:
            return 0
        return await self.soft_delete_where(BookingModel.vehicle_id.in_(vehicle_ids))

    async def soft_delete_for_user(self, user_id: int) -> int:
        return await self.soft_delete_where(
            or_(BookingModel.customer_id == user_id, BookingModel.driver_id == user_id)
        )

    # ── Settlement ────────────────────────────────────────────────

    @staticmethod
    def _settleable_conditions() -> list:
        owner_present = exists().where(
            VehicleModel.id == BookingModel.vehicle_id,
            UserModel.id == VehicleModel.owner_id,
        )
        return [
            BookingModel.is_deleted.is_(False),
            BookingModel.status == BookingStatus.COMPLETED,
            BookingModel.revenue_applied.is_(False),
            BookingModel.fare > 0,
            owner_present,
        ]

    async def claim_for_settlement(self, booking_id: int) -> Optional[BookingModel]:
        """
        Flip ``revenue_applied`` if and only if the booking is settleable.

        Only one caller can ever win the claim for a given booking.
        """
        result = await self.session.execute(
            update(BookingModel)
            .where(BookingModel.id == booking_id, *self._settleable_conditions())
            .values(revenue_applied=True)
            .returning(BookingModel.id)
            .execution_options(**_NO_SYNC)
        )
        claimed_id = result.scalar_one_or_none()
        if claimed_id is None:
            return None
        return await self.get_by_id(claimed_id)

    async def vehicle_owner_id(self, vehicle_id: int) -> Optional[int]:
        result = await self.session.execute(
            select(VehicleModel.owner_id).where(VehicleModel.id == vehicle_id)
        )
        return result.scalar_one_or_none()

    async def unsettled_ids(self, limit: int) -> list[int]:
        result = await self.session.execute(
            select(BookingModel.id)
            .where(*self._settleable_conditions())
            .order_by(BookingModel.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def owed_revenue(self, owner_id: int) -> float:
        """Fares of the owner's completed bookings not yet credited."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(BookingModel.fare), 0.0))
            .join(VehicleModel, VehicleModel.id == BookingModel.vehicle_id)
            .where(
                and_(
                    VehicleModel.owner_id == owner_id,
                    *self._settleable_conditions(),
                )
            )
        )
        return float(result.scalar() or 0.0)
