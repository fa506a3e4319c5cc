"""User service: profile updates and the held/redeemed/dismissed deal sets."""

import uuid
from typing import Any, Dict, List

import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from stacks.core.exceptions import AuthorizationDenied, NotFoundError, StoreFailure, ValidationError
from stacks.models.base import utcnow
from stacks.models.deal import Deal
from stacks.models.user import User
from stacks.models.user_deal import UserDeal, HELD, REDEEMED, DISMISSED
from stacks.schemas.user import USER_UPDATE_FIELDS, UserChanges
from stacks.services.auth_service import email_taken
from stacks.services.authorization import ResourceKind, authorize_mutation, parse_changes

logger = structlog.get_logger(__name__)

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class UserService:
    """Handles a user's own profile and deal relationship transitions.

    Transitions per (user, deal) pair:
    add -> held, redeem -> redeemed, dismiss -> dismissed. Each one is a
    single upsert on the pair, so concurrent sessions of the same user
    resolve last-writer-wins and the three sets never overlap.

    Redeemed is terminal: once a pair is redeemed, further add, redeem or
    dismiss calls leave it unchanged.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="user_service")

    async def _reload(self, user_id: uuid.UUID) -> User:
        stmt = (
            select(User)
            .options(selectinload(User.deal_links))
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def update_profile(self, user: User, changes: Dict[str, Any]) -> User:
        """Update the caller's email, first name or last name.

        Raises:
            DisallowedFieldError: Any other field is present
            ValidationError: Bad value, or email already taken
        """
        values = parse_changes(changes, USER_UPDATE_FIELDS, UserChanges)

        decision = await authorize_mutation(self.db, user.id, ResourceKind.USER, user.id)
        if not decision:
            raise AuthorizationDenied("Cannot update user")

        if "email" in values and await email_taken(self.db, values["email"], exclude_user_id=user.id):
            raise ValidationError("email already taken", field="email")

        if values:
            await self.db.execute(
                update(User)
                .where(User.id == user.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()

        self.logger.info("profile_updated", user_id=str(user.id), fields=list(values))
        return await self._reload(user.id)

    async def _set_status(self, user: User, deal_id: uuid.UUID, status: str) -> User:
        deal_exists = await self.db.execute(select(Deal.id).where(Deal.id == deal_id))
        if deal_exists.scalar_one_or_none() is None:
            raise NotFoundError("Deal", str(deal_id))

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            self.logger.error("upsert_unsupported", dialect=dialect)
            raise StoreFailure()

        now = utcnow()
        stmt = insert(UserDeal).values(
            id=uuid.uuid4(),
            user_id=user.id,
            deal_id=deal_id,
            status=status,
            linked_at=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "deal_id"],
            set_={"status": status, "linked_at": now, "updated_at": now},
            where=UserDeal.status != REDEEMED,
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        if result.rowcount == 0:
            self.logger.info(
                "deal_already_redeemed",
                user_id=str(user.id),
                deal_id=str(deal_id),
                requested=status,
            )
        else:
            self.logger.info(
                "deal_status_set", user_id=str(user.id), deal_id=str(deal_id), status=status
            )
        return await self._reload(user.id)

    async def add_held_deal(self, user: User, deal_id: uuid.UUID) -> User:
        """Add a deal to the user's held set. Re-adding, or adding a redeemed deal, is a no-op."""
        return await self._set_status(user, deal_id, HELD)

    async def redeem_deal(self, user: User, deal_id: uuid.UUID) -> User:
        """Move a deal to the user's redeemed set."""
        return await self._set_status(user, deal_id, REDEEMED)

    async def dismiss_deal(self, user: User, deal_id: uuid.UUID) -> User:
        """Move a deal to the user's dismissed set. Redeemed deals stay redeemed."""
        return await self._set_status(user, deal_id, DISMISSED)

    async def list_held_deals(self, user: User) -> List[Deal]:
        """The user's held deals with merchants loaded, oldest first."""
        stmt = (
            select(Deal)
            .join(UserDeal, UserDeal.deal_id == Deal.id)
            .options(selectinload(Deal.merchant))
            .where(UserDeal.user_id == user.id, UserDeal.status == HELD)
            .order_by(UserDeal.linked_at)
        )
        result = await self.db.execute(stmt)
        return [deal for deal in result.scalars().all() if deal.merchant is not None]
