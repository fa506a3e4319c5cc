"""FastAPI dependency injection providers."""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from stacks.context import AppContext
from stacks.core.exceptions import AuthenticationError
from stacks.models.user import User
from stacks.services.auth_service import AuthService
from stacks.services.deal_service import DealService
from stacks.services.merchant_service import MerchantService
from stacks.services.user_service import UserService

_bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    """The AppContext that create_app attached to the application."""
    return request.app.state.context


async def get_db(context: AppContext = Depends(get_context)) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is committed on success or rolled back on error, and always
    closed after the request completes.
    """
    async with context.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user.

    Raises AuthenticationError (401) if the token is missing, invalid,
    expired, or names a user that no longer exists.
    """
    if not credentials:
        raise AuthenticationError("Not authenticated")

    user_id = context.credentials.resolve_token(credentials.credentials)
    if user_id is None:
        raise AuthenticationError("Invalid or expired token")

    user = await AuthService(db, context.credentials).get_user_by_id(user_id)
    if user is None:
        raise AuthenticationError("Invalid or expired token")

    return user


def get_auth_service(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> AuthService:
    return AuthService(db, context.credentials)


def get_deal_service(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> DealService:
    return DealService(db, cache=context.cache, cache_ttl=context.settings.DEAL_CACHE_TTL_SECONDS)


def get_merchant_service(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
) -> MerchantService:
    return MerchantService(db, context.credentials, cache=context.cache)


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)
