"""Authentication service: JWT tokens, password hashing, user management."""

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stacks.config import Settings
from stacks.core.exceptions import AuthenticationError, ValidationError
from stacks.models.user import User

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class CredentialService:
    """Verifies passwords and issues/resolves bearer tokens."""

    def __init__(self, settings: Settings):
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_minutes = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a plaintext password with bcrypt."""
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a plaintext password against a bcrypt hash."""
        return pwd_context.verify(plain_password, hashed_password)

    def issue_token(self, user: User) -> str:
        """Create a JWT access token carrying the user's id."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "merchant": user.is_merchant,
            "exp": now + timedelta(minutes=self.expire_minutes),
            "iat": now,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def resolve_token(self, token: str) -> Optional[uuid.UUID]:
        """Decode a JWT token and return the user ID, or None if invalid."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

        try:
            return uuid.UUID(payload.get("sub") or "")
        except ValueError:
            return None


async def email_taken(
    db: AsyncSession,
    email: str,
    exclude_user_id: Optional[uuid.UUID] = None,
) -> bool:
    """Whether another account already uses ``email``.

    ``exclude_user_id`` skips the caller's own account when changing email.
    """
    stmt = select(func.count(User.id)).where(User.email == email)
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    result = await db.execute(stmt)
    return (result.scalar() or 0) > 0


class AuthService:
    """Handles user registration, login, and lookup."""

    def __init__(self, db: AsyncSession, credentials: CredentialService):
        self.db = db
        self.credentials = credentials
        self.logger = logger.bind(service="auth_service")

    async def email_taken(self, email: str, exclude_user_id: Optional[uuid.UUID] = None) -> bool:
        return await email_taken(self.db, email, exclude_user_id)

    async def register(
        self,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        dob: Optional[date] = None,
        is_merchant: bool = False,
    ) -> User:
        """Register a new user. Raises ValidationError if the email is taken."""
        if await self.email_taken(email):
            raise ValidationError("email already taken", field="email")

        user = User(
            email=email,
            hashed_password=self.credentials.hash_password(password),
            first_name=first_name,
            last_name=last_name,
            dob=dob,
            is_merchant=is_merchant,
            deal_links=[],
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError("email already taken", field="email")

        self.logger.info("user_registered", user_id=str(user.id), is_merchant=is_merchant)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Verify credentials and return the user.

        Unknown email and wrong password raise the same AuthenticationError.
        """
        stmt = select(User).options(selectinload(User.deal_links)).where(User.email == email)
        result = await self.db.execute(stmt)
        user = result.scalar_one_or_none()

        if not user or not self.credentials.verify_password(password, user.hashed_password):
            self.logger.info("login_rejected")
            raise AuthenticationError()

        self.logger.info("login_succeeded", user_id=str(user.id))
        return user

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Fetch user by ID with the deal relationship sets loaded."""
        stmt = (
            select(User)
            .options(selectinload(User.deal_links))
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_user(self, user_id: uuid.UUID) -> bool:
        """Remove a user outright. Used to undo a partially provisioned sign-up."""
        result = await self.db.execute(
            delete(User)
            .where(User.id == user_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount > 0
