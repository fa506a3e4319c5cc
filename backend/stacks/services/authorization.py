"""Ownership checks for deal, merchant and user mutations.

Callers run ``check_allowed_fields`` first, then ``authorize_mutation``,
then a store write that repeats the ownership scope in its WHERE clause.
A missing resource and a resource owned by someone else yield the same
denial, so a non-owner learns nothing about what exists.
"""

import enum
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Type

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stacks.core.exceptions import DisallowedFieldError, ValidationError
from stacks.models.deal import Deal
from stacks.models.merchant import Merchant

logger = structlog.get_logger(__name__)


class ResourceKind(str, enum.Enum):
    DEAL = "deal"
    MERCHANT = "merchant"
    USER = "user"


@dataclass(frozen=True)
class Decision:
    """Outcome of an ownership check."""

    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


def check_allowed_fields(changes: Mapping[str, object], allowed: Iterable[str]) -> None:
    """Reject the whole update on the first field outside ``allowed``.

    Fields are checked in the mapping's iteration order.

    Raises:
        DisallowedFieldError: naming the first offending field
    """
    allowed = set(allowed)
    for field in changes:
        if field not in allowed:
            raise DisallowedFieldError(field)


def owned_merchant_ids(requester_id: uuid.UUID):
    """Subquery of merchant ids owned by ``requester_id``."""
    return select(Merchant.id).where(Merchant.user_id == requester_id)


async def authorize_mutation(
    db: AsyncSession,
    requester_id: uuid.UUID,
    kind: ResourceKind,
    resource_id: uuid.UUID,
    claimed_owner_id: Optional[uuid.UUID] = None,
) -> Decision:
    """Decide whether ``requester_id`` may mutate the given resource.

    Args:
        db: Async database session
        requester_id: Authenticated user id
        kind: Resource kind
        resource_id: Deal, merchant or user id
        claimed_owner_id: For deals, the merchant id the caller claims owns
            the deal

    Returns:
        ALLOW, or a denial whose reason is for logs only
    """
    if kind is ResourceKind.USER:
        # There is no cross-user mutation path
        if resource_id != requester_id:
            return deny("user mutations target the requester only")
        return ALLOW

    if kind is ResourceKind.MERCHANT:
        stmt = select(Merchant.id).where(
            Merchant.id == resource_id,
            Merchant.user_id == requester_id,
        )
    elif kind is ResourceKind.DEAL:
        if claimed_owner_id is None:
            return deny("no owning merchant supplied")
        stmt = select(Deal.id).where(
            Deal.id == resource_id,
            Deal.merchant_id == claimed_owner_id,
            Deal.merchant_id.in_(owned_merchant_ids(requester_id)),
        )
    else:
        return deny(f"unknown resource kind {kind!r}")

    result = await db.execute(stmt)
    if result.scalar_one_or_none() is None:
        logger.info(
            "mutation_denied",
            kind=kind.value,
            resource_id=str(resource_id),
            requester_id=str(requester_id),
        )
        return deny("not found or not owned")

    return ALLOW


def parse_changes(
    changes: Mapping[str, object],
    allowed: Iterable[str],
    model: Type[BaseModel],
) -> Dict[str, object]:
    """Allow-list then type-check an update field map.

    Returns:
        Only the fields the caller supplied, validated by ``model``

    Raises:
        DisallowedFieldError: A field outside ``allowed``
        ValidationError: A value of the wrong type or shape
    """
    check_allowed_fields(changes, allowed)
    try:
        parsed = model.model_validate(dict(changes))
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or None
        raise ValidationError(error["msg"], field=field)
    return parsed.model_dump(exclude_unset=True)
