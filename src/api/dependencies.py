"""FastAPI dependency injection helpers."""

from typing import Callable, Optional

from fastapi import BackgroundTasks, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domain.entities import Actor
from src.domain.enums import UserRole
from src.domain.errors import AuthenticationFailed, Forbidden
from src.infrastructure.database import async_session_factory
from src.infrastructure.mailer import Mailer, get_mailer
from src.infrastructure.models import UserModel
from src.infrastructure.repositories import UserRepository
from src.infrastructure.security import decode_access_token
from src.services.fleet import FleetService
from src.services.lifecycle import BookingLifecycle
from src.services.notifications import BookingNotifier

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker:
    """Session factory for work that outlives the request session."""
    return async_session_factory


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> UserModel:
    if credentials is None:
        raise AuthenticationFailed("Missing bearer token")
    payload = decode_access_token(credentials.credentials)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthenticationFailed("Invalid token payload") from None

    user = await UserRepository(db).get_active(user_id)
    if user is None:
        raise AuthenticationFailed("User not found")
    return user


async def get_actor(user: UserModel = Depends(get_current_user)) -> Actor:
    return Actor(id=user.id, role=UserRole(user.role))


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory: the authenticated actor must hold one of *roles*."""

    async def _checker(actor: Actor = Depends(get_actor)) -> Actor:
        if roles and actor.role not in roles:
            raise Forbidden("Not permitted for this role")
        return actor

    return _checker


def get_lifecycle(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> BookingLifecycle:
    notifier = BookingNotifier(
        session_factory, mailer=mailer, background=background_tasks
    )
    return BookingLifecycle(db, notifier=notifier)


def get_fleet(db: AsyncSession = Depends(get_db)) -> FleetService:
    return FleetService(db)
