"""SQLAlchemy models for Stacks.

All models are imported here so Base.metadata knows every table.
"""

from stacks.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from stacks.models.user import User
from stacks.models.merchant import Merchant
from stacks.models.deal import Deal
from stacks.models.user_deal import UserDeal, HELD, REDEEMED, DISMISSED, DEAL_STATUSES

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "User",
    "Merchant",
    "Deal",
    "UserDeal",
    "HELD",
    "REDEEMED",
    "DISMISSED",
    "DEAL_STATUSES",
]
