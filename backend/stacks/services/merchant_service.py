"""Merchant service: sign-up provisioning and owner-scoped profile updates."""

import uuid
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stacks.core.exceptions import (
    AuthorizationDenied,
    NotFoundError,
    StacksException,
    StoreFailure,
    ValidationError,
)
from stacks.models.deal import Deal
from stacks.models.merchant import Merchant
from stacks.models.user import User
from stacks.schemas.merchant import MERCHANT_UPDATE_FIELDS, MerchantChanges, MerchantSignupRequest
from stacks.services.auth_service import AuthService, CredentialService, email_taken
from stacks.services.authorization import ResourceKind, authorize_mutation, parse_changes
from stacks.services.cache_service import CacheService, cache_key_for_deal

logger = structlog.get_logger(__name__)


class MerchantService:
    """Handles merchant profiles.

    Sign-up is a two-step provisioning routine: create the owning user,
    then the merchant. If the second step fails, the user from the first
    step is deleted again.
    """

    def __init__(
        self,
        db: AsyncSession,
        credentials: CredentialService,
        cache: Optional[CacheService] = None,
    ):
        self.db = db
        self.credentials = credentials
        self.cache = cache
        self.logger = logger.bind(service="merchant_service")

    async def sign_up(self, request: MerchantSignupRequest) -> Merchant:
        """Create a merchant account and its profile.

        Raises:
            ValidationError: Email already taken
            StoreFailure: The profile could not be stored (the new user has
                been removed again)
        """
        auth = AuthService(self.db, self.credentials)

        # Step 1: owning user
        user = await auth.register(
            email=request.email,
            password=request.password,
            is_merchant=True,
        )
        await self.db.commit()
        user_id = user.id

        # Step 2: merchant profile, compensated on failure
        try:
            merchant = await self._create_merchant(user_id, request)
        except Exception as e:
            await self._discard_failed_step()
            self.logger.error(
                "merchant_provisioning_failed",
                user_id=str(user_id),
                error=str(e),
                exc_info=True,
            )
            await self._remove_provisioned_user(auth, user_id)
            if isinstance(e, StacksException):
                raise
            raise StoreFailure() from e

        self.logger.info("merchant_signed_up", merchant_id=str(merchant.id), user_id=str(user_id))
        return merchant

    async def _create_merchant(self, user_id: uuid.UUID, request: MerchantSignupRequest) -> Merchant:
        existing = await self.get_for_owner(user_id)
        if existing is not None:
            raise ValidationError("merchant already exists for this account", field="email")

        merchant = Merchant(
            user_id=user_id,
            name=request.name,
            category=request.category,
            logo_url=request.logo_url,
            address=request.address,
            phone=request.phone,
            lat=request.lat,
            lng=request.lng,
        )
        self.db.add(merchant)
        await self.db.commit()
        return merchant

    async def _discard_failed_step(self) -> None:
        """Roll back step two. A failed rollback must not skip the compensation."""
        try:
            await self.db.rollback()
        except SQLAlchemyError as e:
            self.logger.error("merchant_step_rollback_failed", error=str(e), exc_info=True)

    async def _remove_provisioned_user(self, auth: AuthService, user_id: uuid.UUID) -> None:
        """Compensating action for a failed sign-up. Failures are logged only."""
        try:
            removed = await auth.delete_user(user_id)
            self.logger.info("provisioned_user_removed", user_id=str(user_id), removed=removed)
        except SQLAlchemyError as e:
            self.logger.error(
                "provisioned_user_removal_failed",
                user_id=str(user_id),
                error=str(e),
                exc_info=True,
            )

    async def get_for_owner(self, user_id: uuid.UUID) -> Optional[Merchant]:
        """The merchant owned by ``user_id``, if any."""
        result = await self.db.execute(
            select(Merchant).where(Merchant.user_id == user_id).order_by(Merchant.created_at).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_merchant(self, merchant_id: uuid.UUID) -> Merchant:
        """Fetch merchant by ID.

        Raises:
            NotFoundError: No such merchant
        """
        result = await self.db.execute(
            select(Merchant)
            .where(Merchant.id == merchant_id)
            .execution_options(populate_existing=True)
        )
        merchant = result.scalar_one_or_none()
        if merchant is None:
            raise NotFoundError("Merchant", str(merchant_id))
        return merchant

    async def update_merchant(
        self,
        requester: User,
        merchant_id: uuid.UUID,
        changes: Dict[str, Any],
    ) -> Merchant:
        """Apply an allow-listed update to the requester's merchant.

        ``email`` is applied to the owning user; every other field to the
        merchant.

        Raises:
            DisallowedFieldError: A field outside the allow-list
            ValidationError: Bad value, or email already taken
            AuthorizationDenied: Merchant missing or not owned
        """
        values = parse_changes(changes, MERCHANT_UPDATE_FIELDS, MerchantChanges)

        decision = await authorize_mutation(
            self.db, requester.id, ResourceKind.MERCHANT, merchant_id
        )
        if not decision:
            raise AuthorizationDenied("Cannot update merchant")

        email = values.pop("email", None)
        if email is not None and await email_taken(self.db, email, exclude_user_id=requester.id):
            raise ValidationError("email already taken", field="email")

        if values:
            result = await self.db.execute(
                update(Merchant)
                .where(Merchant.id == merchant_id, Merchant.user_id == requester.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                raise AuthorizationDenied("Cannot update merchant")

        if email is not None:
            await self.db.execute(
                update(User)
                .where(User.id == requester.id)
                .values(email=email)
                .execution_options(synchronize_session=False)
            )

        await self.db.commit()
        if values:
            await self._invalidate_deal_views(merchant_id)

        self.logger.info(
            "merchant_updated",
            merchant_id=str(merchant_id),
            fields=list(values) + (["email"] if email is not None else []),
        )
        return await self.get_merchant(merchant_id)

    async def _invalidate_deal_views(self, merchant_id: uuid.UUID) -> None:
        """Populated deal views embed merchant fields, so drop them all."""
        if self.cache is None:
            return
        result = await self.db.execute(select(Deal.id).where(Deal.merchant_id == merchant_id))
        keys = [cache_key_for_deal(deal_id) for deal_id in result.scalars().all()]
        await self.cache.delete(*keys)
