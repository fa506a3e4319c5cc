"""Merchant model representing a business that publishes deals."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Float, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stacks.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from stacks.models.deal import Deal


class Merchant(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Business profile owned by exactly one user.

    One merchant per owner is enforced by MerchantService, not by a
    database constraint.
    """

    __tablename__ = "merchants"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning user"
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True,
        comment="Merchant type used by the deal category filter (e.g. 'food')"
    )
    logo_url: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=utcnow
    )

    # Relationships
    deals: Mapped[List["Deal"]] = relationship(back_populates="merchant")

    def __repr__(self) -> str:
        return f"<Merchant(id={self.id}, name='{self.name}', category='{self.category}')>"
