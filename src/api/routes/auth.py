"""
Auth endpoints
==============

POST /api/v1/auth/register -- create an account
POST /api/v1/auth/login    -- exchange credentials for a bearer token
GET  /api/v1/auth/me       -- current user, including accrued owner revenue
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_current_user, get_db
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from src.domain.errors import AuthenticationFailed, DuplicateResource
from src.infrastructure.models import UserModel
from src.infrastructure.repositories import UserRepository
from src.infrastructure.security import (
    create_access_token,
    hash_password,
    verify_password,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=MessageResponse,
    summary="Register a user",
)
@limiter.limit(RATE_LIMIT)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    repo = UserRepository(db)
    if await repo.get_by_email(body.email):
        raise DuplicateResource("Email already registered")
    await repo.create(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
        role=body.role,
    )
    await db.commit()
    return MessageResponse(message="User registered successfully")


@router.post("/login", response_model=TokenResponse, summary="Log in")
@limiter.limit(RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await UserRepository(db).get_by_email(body.email)
    if user is None or user.is_deleted:
        raise AuthenticationFailed()
    if not verify_password(body.password, user.password_hash):
        raise AuthenticationFailed()
    return TokenResponse(
        access_token=create_access_token(user.id, user.role.value),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse, summary="Current user")
@limiter.limit(RATE_LIMIT)
async def me(
    request: Request,
    user: UserModel = Depends(get_current_user),
):
    return user
