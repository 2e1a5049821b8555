"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin, 2 owners, 3 drivers and 3 customers (password: "password")
  - 4 vehicles, three of them with an assigned driver
  - 6 bookings (mix of pending, accepted, completed and cancelled)

Completed bookings are left unsettled; the reconciliation worker credits
their owners on its first cycle.
"""

import asyncio

from sqlalchemy import text

from src.domain.distance import route_distance_km
from src.domain.entities import Coordinates
from src.domain.enums import BookingStatus, UserRole
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import (
    BookingModel,
    UserModel,
    VehicleDriverModel,
    VehicleModel,
)
from src.infrastructure.security import hash_password

PASSWORD = "password"

USERS = [
    {"name": "Ada Admin", "email": "admin@example.com", "role": UserRole.ADMIN},
    {"name": "Olivia Owner", "email": "olivia@example.com", "role": UserRole.OWNER},
    {"name": "Omar Owner", "email": "omar@example.com", "role": UserRole.OWNER},
    {"name": "Dana Driver", "email": "dana@example.com", "role": UserRole.DRIVER},
    {"name": "Diego Driver", "email": "diego@example.com", "role": UserRole.DRIVER},
    {"name": "Dev Driver", "email": "dev@example.com", "role": UserRole.DRIVER},
    {"name": "Cara Customer", "email": "cara@example.com", "role": UserRole.CUSTOMER},
    {"name": "Chen Customer", "email": "chen@example.com", "role": UserRole.CUSTOMER},
    {"name": "Cleo Customer", "email": "cleo@example.com", "role": UserRole.CUSTOMER},
]

# owner / driver are indexes into USERS
VEHICLES = [
    {"owner": 1, "driver": 3, "make": "Toyota", "model": "Prius", "year": 2021, "reg": "KA-01-AB-1234"},
    {"owner": 1, "driver": 4, "make": "Honda", "model": "City", "year": 2019, "reg": "KA-01-CD-5678"},
    {"owner": 2, "driver": 5, "make": "Hyundai", "model": "Creta", "year": 2022, "reg": "MH-02-EF-9012"},
    {"owner": 2, "driver": None, "make": "Maruti", "model": "Ertiga", "year": 2020, "reg": "MH-02-GH-3456"},
]

PLACES = {
    "Airport": Coordinates(lat=12.9499, lng=77.6683),
    "MG Road": Coordinates(lat=12.9757, lng=77.6011),
    "Whitefield": Coordinates(lat=12.9698, lng=77.7500),
    "Koramangala": Coordinates(lat=12.9352, lng=77.6245),
}

# customer is an index into USERS, vehicle an index into VEHICLES
BOOKINGS = [
    {"customer": 6, "vehicle": 0, "from": "Airport", "to": "MG Road", "status": BookingStatus.PENDING, "fare": 450.0},
    {"customer": 7, "vehicle": 1, "from": "Whitefield", "to": "Airport", "status": BookingStatus.ACCEPTED, "fare": 620.0},
    {"customer": 8, "vehicle": 2, "from": "Koramangala", "to": "Whitefield", "status": BookingStatus.COMPLETED, "fare": 380.0},
    {"customer": 6, "vehicle": 0, "from": "MG Road", "to": "Koramangala", "status": BookingStatus.COMPLETED, "fare": 210.0},
    {"customer": 7, "vehicle": 2, "from": "Airport", "to": "Koramangala", "status": BookingStatus.CANCELLED, "fare": None},
    {"customer": 8, "vehicle": 3, "from": "Whitefield", "to": "MG Road", "status": BookingStatus.PENDING, "fare": None},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        password_hash = hash_password(PASSWORD)
        user_models = []
        for u in USERS:
            m = UserModel(
                name=u["name"],
                email=u["email"],
                role=u["role"],
                password_hash=password_hash,
            )
            session.add(m)
            user_models.append(m)
        await session.flush()
        print(f"  Created {len(user_models)} users")

        # ── Vehicles ──────────────────────────────────────────────────
        vehicle_models = []
        for v in VEHICLES:
            driver = user_models[v["driver"]] if v["driver"] is not None else None
            m = VehicleModel(
                owner_id=user_models[v["owner"]].id,
                driver_id=driver.id if driver else None,
                make=v["make"],
                model=v["model"],
                year=v["year"],
                registration_number=v["reg"],
            )
            session.add(m)
            vehicle_models.append(m)
        await session.flush()
        for m in vehicle_models:
            if m.driver_id is not None:
                session.add(VehicleDriverModel(vehicle_id=m.id, driver_id=m.driver_id))
        await session.flush()
        print(f"  Created {len(vehicle_models)} vehicles")

        # ── Bookings ──────────────────────────────────────────────────
        for b in BOOKINGS:
            vehicle = vehicle_models[b["vehicle"]]
            source, destination = PLACES[b["from"]], PLACES[b["to"]]
            session.add(
                BookingModel(
                    customer_id=user_models[b["customer"]].id,
                    driver_id=vehicle.driver_id,
                    vehicle_id=vehicle.id,
                    status=b["status"],
                    source=b["from"],
                    destination=b["to"],
                    source_lat=source.lat,
                    source_lng=source.lng,
                    destination_lat=destination.lat,
                    destination_lng=destination.lng,
                    distance_km=route_distance_km(source, destination),
                    fare=b["fare"],
                )
            )
        await session.flush()
        print(f"  Created {len(BOOKINGS)} bookings")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
