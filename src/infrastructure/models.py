"""
SQLAlchemy ORM models.

Tables
------
* ``users``            -- owners, drivers, customers and admins
* ``vehicles``         -- owned by one user, with an active driver
* ``vehicle_drivers``  -- legacy set of drivers ever assigned to a vehicle
* ``bookings``         -- customer bookings moving through the lifecycle

Every table carries an ``is_deleted`` flag; nothing is hard-deleted.

Indexes
-------
* **B-Tree** on the foreign keys, ``status`` and ``is_deleted`` used by
  the scoped lookups of the lifecycle engine and the settlement sweep.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)

from .database import Base
from src.domain.enums import BookingStatus, UserRole


def _values(enum_cls):
    return [member.value for member in enum_cls]


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="userrole", values_callable=_values), nullable=False
    )
    # Accumulated owner revenue; only ever incremented by settlement.
    total_revenue = Column(Float, default=0.0, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("idx_users_role", "role", "is_deleted"),)


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    make = Column(String(80), nullable=False)
    model = Column(String(80), nullable=False)
    year = Column(Integer, nullable=False)
    registration_number = Column(String(32), unique=True, nullable=False)
    revenue = Column(Float, default=0.0, nullable=False)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_vehicles_owner", "owner_id"),
        Index("idx_vehicles_driver", "driver_id"),
    )


class VehicleDriverModel(Base):
    __tablename__ = "vehicle_drivers"

    # Surrogate key keeps insertion order for the "first legacy driver" lookup
    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("vehicle_id", "driver_id", name="uq_vehicle_driver"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)

    status = Column(
        Enum(BookingStatus, name="bookingstatus", values_callable=_values),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    booking_date = Column(DateTime(timezone=True), server_default=func.now())

    source = Column(String(255), nullable=True)
    destination = Column(String(255), nullable=True)
    source_lat = Column(Float, nullable=True)
    source_lng = Column(Float, nullable=True)
    destination_lat = Column(Float, nullable=True)
    destination_lng = Column(Float, nullable=True)
    distance_km = Column(Float, nullable=True)

    fare = Column(Float, nullable=True)
    # Guard against crediting the owner twice for the same booking
    revenue_applied = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_bookings_customer", "customer_id"),
        Index("idx_bookings_driver", "driver_id"),
        Index("idx_bookings_vehicle", "vehicle_id"),
        Index("idx_bookings_status", "status", "revenue_applied"),
    )
