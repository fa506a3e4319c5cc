"""UserDeal model tracking one user's relationship to one deal."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stacks.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from stacks.models.user import User

HELD = "held"
REDEEMED = "redeemed"
DISMISSED = "dismissed"
DEAL_STATUSES = (HELD, REDEEMED, DISMISSED)


class UserDeal(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Held, redeemed or dismissed marker for a (user, deal) pair.

    A single row per pair keeps the user's held, redeemed and dismissed sets
    pairwise disjoint: a transition rewrites the status in place.
    """

    __tablename__ = "user_deals"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    deal_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("deals.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(10), nullable=False,
        comment="'held', 'redeemed' or 'dismissed'"
    )
    linked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
        comment="When the status last changed"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "deal_id", name="uq_user_deal"),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="deal_links")

    def __repr__(self) -> str:
        return f"<UserDeal(user={self.user_id}, deal={self.deal_id}, status={self.status})>"
