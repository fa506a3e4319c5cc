"""Deal service: visibility listing and ownership-scoped deal lifecycle.

Every mutation goes through the ownership guard first and then through a
store write whose WHERE clause repeats the ownership scope, so a deal that
changed hands between the two steps is still never touched by a non-owner.
"""

import uuid
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, selectinload

from stacks.core.exceptions import AuthorizationDenied, NotFoundError, StoreFailure
from stacks.models.deal import Deal
from stacks.models.merchant import Merchant
from stacks.models.user import User
from stacks.models.user_deal import UserDeal, HELD, REDEEMED
from stacks.schemas.deal import (
    DEAL_UPDATE_FIELDS,
    Coordinate,
    DealChanges,
    PopulatedDealResponse,
)
from stacks.services.authorization import (
    ResourceKind,
    authorize_mutation,
    owned_merchant_ids,
    parse_changes,
)
from stacks.services.cache_service import CacheService, cache_key_for_deal
from stacks.services.visibility import rank_visible_deals

logger = structlog.get_logger(__name__)

# Stable load order for listings
LOAD_ORDER = (Deal.published_at, Deal.created_at, Deal.id)


class DealService:
    """Service for listing and managing deals.

    Handles the per-user visible listing, the public populated view, and
    creation, update and deletion scoped to the owning merchant.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: Optional[CacheService] = None,
        cache_ttl: int = 60,
    ):
        """Initialize deal service.

        Args:
            db: Async database session
            cache: Optional cache for populated deal views
            cache_ttl: Seconds a cached deal view stays valid
        """
        self.db = db
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.logger = logger.bind(service="deal_service")

    async def _excluded_deal_ids(self, user_id: uuid.UUID) -> set:
        """Ids of deals the user holds or has redeemed."""
        result = await self.db.execute(
            select(UserDeal.deal_id).where(
                UserDeal.user_id == user_id,
                UserDeal.status.in_((HELD, REDEEMED)),
            )
        )
        return set(result.scalars().all())

    async def list_visible_deals(
        self,
        user: User,
        categories: List[str],
        origin: Optional[Coordinate] = None,
    ) -> List[Deal]:
        """List the deals ``user`` may see, nearest first when ``origin`` is given.

        Args:
            user: Requesting user
            categories: Non-empty list of merchant categories to include
            origin: Optional coordinate to sort by Manhattan distance

        Returns:
            Deals with their merchant loaded, in display order

        Raises:
            StoreFailure: The database could not be read
        """
        self.logger.info(
            "listing_visible_deals",
            user_id=str(user.id),
            categories=categories,
            has_origin=origin is not None,
        )

        # Inner join drops orphans; active/category are narrowed here and
        # enforced again by rank_visible_deals.
        query = (
            select(Deal)
            .join(Deal.merchant)
            .options(contains_eager(Deal.merchant))
            .where(
                Deal.is_active == True,
                Merchant.category.in_(categories),
            )
            .order_by(*LOAD_ORDER)
        )

        try:
            excluded = await self._excluded_deal_ids(user.id)
            result = await self.db.execute(query)
            deals = list(result.scalars().unique().all())
        except SQLAlchemyError as e:
            self.logger.error("deal_listing_failed", error=str(e), exc_info=True)
            raise StoreFailure() from e

        visible = rank_visible_deals(deals, excluded, set(categories), origin)

        self.logger.info(
            "visible_deals_listed",
            loaded=len(deals),
            visible=len(visible),
        )
        return visible

    async def get_deal(self, deal_id: uuid.UUID) -> Optional[Deal]:
        """Get single deal with its merchant loaded."""
        query = (
            select(Deal)
            .options(selectinload(Deal.merchant))
            .where(Deal.id == deal_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_populated_deal(self, deal_id: uuid.UUID) -> PopulatedDealResponse:
        """Public populated view of one deal, served from cache when possible.

        Raises:
            NotFoundError: No such deal, or its merchant is gone
        """
        key = cache_key_for_deal(deal_id)
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached:
                return PopulatedDealResponse.model_validate_json(cached)

        deal = await self.get_deal(deal_id)
        if deal is None or deal.merchant is None:
            raise NotFoundError("Deal", str(deal_id))

        view = PopulatedDealResponse.from_deal(deal)
        if self.cache is not None:
            await self.cache.set(key, view.model_dump_json(), ttl=self.cache_ttl)
        return view

    async def list_merchant_deals(self, user_id: uuid.UUID) -> List[Deal]:
        """Deals published by the merchant(s) ``user_id`` owns."""
        query = (
            select(Deal)
            .where(Deal.merchant_id.in_(owned_merchant_ids(user_id)))
            .order_by(*LOAD_ORDER)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_deal(
        self,
        requester_id: uuid.UUID,
        merchant_id: uuid.UUID,
        name: str,
        description: str,
        barcode: Optional[str] = None,
    ) -> Deal:
        """Publish a deal for a merchant the requester owns.

        Raises:
            AuthorizationDenied: The merchant is missing or not the requester's
        """
        decision = await authorize_mutation(
            self.db, requester_id, ResourceKind.MERCHANT, merchant_id
        )
        if not decision:
            raise AuthorizationDenied("Cannot create deal")

        deal = Deal(
            merchant_id=merchant_id,
            name=name,
            description=description,
            barcode=barcode,
        )
        self.db.add(deal)
        await self.db.commit()

        self.logger.info("deal_created", deal_id=str(deal.id), merchant_id=str(merchant_id))
        return deal

    async def update_deal(
        self,
        requester_id: uuid.UUID,
        deal_id: uuid.UUID,
        merchant_id: uuid.UUID,
        changes: Dict[str, Any],
    ) -> Deal:
        """Apply an allow-listed update to a deal the requester owns.

        Args:
            requester_id: Authenticated user id
            deal_id: Deal to update
            merchant_id: Merchant the caller claims owns the deal
            changes: Field map; any field outside name/description/barcode
                rejects the whole update

        Raises:
            DisallowedFieldError: A field outside the allow-list
            ValidationError: A badly typed value
            AuthorizationDenied: Deal missing or not owned
        """
        values = parse_changes(changes, DEAL_UPDATE_FIELDS, DealChanges)

        decision = await authorize_mutation(
            self.db, requester_id, ResourceKind.DEAL, deal_id, merchant_id
        )
        if not decision:
            raise AuthorizationDenied("Cannot update deal")

        if values:
            result = await self.db.execute(
                update(Deal)
                .where(
                    Deal.id == deal_id,
                    Deal.merchant_id == merchant_id,
                    Deal.merchant_id.in_(owned_merchant_ids(requester_id)),
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                raise AuthorizationDenied("Cannot update deal")
            await self.db.commit()
            await self._invalidate(deal_id)

        deal = await self.get_deal(deal_id)
        self.logger.info("deal_updated", deal_id=str(deal_id), fields=list(values))
        return deal

    async def delete_deal(
        self,
        requester_id: uuid.UUID,
        deal_id: uuid.UUID,
        merchant_id: uuid.UUID,
    ) -> None:
        """Delete a deal the requester owns, along with every user's link to it.

        Raises:
            AuthorizationDenied: Deal missing or not owned
        """
        decision = await authorize_mutation(
            self.db, requester_id, ResourceKind.DEAL, deal_id, merchant_id
        )
        if not decision:
            raise AuthorizationDenied("Cannot delete deal")

        result = await self.db.execute(
            delete(Deal)
            .where(
                Deal.id == deal_id,
                Deal.merchant_id == merchant_id,
                Deal.merchant_id.in_(owned_merchant_ids(requester_id)),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise AuthorizationDenied("Cannot delete deal")

        await self.db.execute(delete(UserDeal).where(UserDeal.deal_id == deal_id))
        await self.db.commit()
        await self._invalidate(deal_id)

        self.logger.info("deal_deleted", deal_id=str(deal_id), merchant_id=str(merchant_id))

    async def _invalidate(self, *deal_ids: uuid.UUID) -> None:
        if self.cache is not None and deal_ids:
            await self.cache.delete(*(cache_key_for_deal(deal_id) for deal_id in deal_ids))
