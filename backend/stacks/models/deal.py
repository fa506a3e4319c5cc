"""Deal model representing an offer published by a merchant."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Text, ForeignKey, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stacks.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from stacks.models.merchant import Merchant


class Deal(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """An offer published by a merchant.

    Listings join each deal with its merchant; a deal whose merchant no
    longer exists is treated as an orphan and never listed.
    """

    __tablename__ = "deals"

    merchant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("merchants.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, comment="Deal title")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    barcode: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Whether deal is currently offered"
    )
    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the merchant published the deal"
    )

    __table_args__ = (
        Index("idx_deals_active_published", "is_active", "published_at"),
    )

    # Relationships
    merchant: Mapped[Optional["Merchant"]] = relationship(back_populates="deals")

    def __repr__(self) -> str:
        return f"<Deal(id={self.id}, name='{self.name[:50]}', merchant_id={self.merchant_id}, active={self.is_active})>"
