"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, EmailStr, Field

from src.domain.entities import Coordinates
from src.domain.enums import BookingStatus, UserRole

T = TypeVar("T")


# ── Requests ──────────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class CoordinatesIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


class BookingCreateRequest(BaseModel):
    vehicle_id: int
    source: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, max_length=255)
    source_coords: Optional[CoordinatesIn] = None
    destination_coords: Optional[CoordinatesIn] = None
    # Coerced by the lifecycle engine: negative / non-finite values are dropped.
    fare: Any = None
    booking_date: Optional[datetime] = None


class BookingUpdateRequest(BaseModel):
    source: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, max_length=255)
    source_coords: Optional[CoordinatesIn] = None
    destination_coords: Optional[CoordinatesIn] = None
    booking_date: Optional[datetime] = None


class RevenueRequest(BaseModel):
    # Checked by the lifecycle engine: a finite number >= 0, no strings.
    amount: Any


class VehicleCreateRequest(BaseModel):
    make: str = Field(..., min_length=1, max_length=80)
    model: str = Field(..., min_length=1, max_length=80)
    year: int = Field(..., ge=1900, le=2100)
    registration_number: str = Field(..., min_length=1, max_length=32)
    revenue: float = Field(0.0, ge=0)


class VehicleUpdateRequest(BaseModel):
    make: Optional[str] = Field(None, min_length=1, max_length=80)
    model: Optional[str] = Field(None, min_length=1, max_length=80)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    revenue: Optional[float] = Field(None, ge=0)


class AssignDriverRequest(BaseModel):
    driver_id: Optional[int] = None


class DriverUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    email: Optional[EmailStr] = None


class EmailTestRequest(BaseModel):
    to: EmailStr
    subject: str = "Test Email"
    text: str = "Hello from Fleet Admin"


# ── Responses ─────────────────────────────────────────────────────────


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    total_revenue: float = 0.0

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class VehicleResponse(BaseModel):
    id: int
    owner_id: int
    make: str
    model: str
    year: int
    registration_number: str
    revenue: float
    driver_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    customer_id: int
    driver_id: Optional[int] = None
    vehicle_id: int
    status: BookingStatus
    booking_date: Optional[datetime] = None
    source: Optional[str] = None
    destination: Optional[str] = None
    source_lat: Optional[float] = None
    source_lng: Optional[float] = None
    destination_lat: Optional[float] = None
    destination_lng: Optional[float] = None
    distance_km: Optional[float] = None
    fare: Optional[float] = None
    revenue_applied: bool = False
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingActionResponse(BaseModel):
    message: str
    booking: BookingResponse


class MessageResponse(BaseModel):
    message: str


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int


class AnalyticsResponse(BaseModel):
    total_vehicles: int
    total_drivers: int
    total_bookings: int
    cancelled_bookings: int
    revenue_generated: float


class ReconcileResponse(BaseModel):
    settled: int


class HealthResponse(BaseModel):
    status: str = "ok"
