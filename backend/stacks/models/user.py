"""User model for consumer and merchant accounts."""

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Boolean, Date, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stacks.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from stacks.models.user_deal import HELD, REDEEMED, DISMISSED

if TYPE_CHECKING:
    from stacks.models.user_deal import UserDeal


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A registered account, either a consumer or a merchant owner.

    Supports email/password authentication with bcrypt hashing. The held,
    redeemed and dismissed deal sets live in ``user_deals``.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True,
        comment="User email address (unique)"
    )
    hashed_password: Mapped[str] = mapped_column(
        String(128), nullable=False,
        comment="bcrypt hashed password"
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="Date of birth")
    is_merchant: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="Whether the account owns a merchant profile"
    )
    joined_on: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    deal_links: Mapped[List["UserDeal"]] = relationship(
        back_populates="user", cascade="all, delete-orphan",
        order_by="UserDeal.linked_at",
    )

    def _deal_ids(self, status: str) -> List[uuid.UUID]:
        return [link.deal_id for link in self.deal_links if link.status == status]

    @property
    def held_deals(self) -> List[uuid.UUID]:
        return self._deal_ids(HELD)

    @property
    def redeemed_deals(self) -> List[uuid.UUID]:
        return self._deal_ids(REDEEMED)

    @property
    def dismissed_deals(self) -> List[uuid.UUID]:
        return self._deal_ids(DISMISSED)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', is_merchant={self.is_merchant})>"
