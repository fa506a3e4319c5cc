"""Deal Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stacks.schemas.common import reject_null

DEAL_UPDATE_FIELDS = ("name", "description", "barcode")


class Coordinate(BaseModel):
    """A latitude/longitude pair in degrees."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class DealSearchParams(BaseModel):
    """Validated deal listing query."""

    categories: List[str]
    origin: Optional[Coordinate] = None


class DealCreateRequest(BaseModel):
    """Request to publish a new deal."""

    merchant_id: UUID
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    barcode: Optional[str] = Field(max_length=100)


class DealChanges(BaseModel):
    """Typed view of an allow-listed deal update."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    barcode: Optional[str] = Field(default=None, max_length=100)

    @field_validator("name", "description")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


class DealUpdateRequest(BaseModel):
    """Deal update scoped to the merchant the caller claims to own.

    ``changes`` keeps the caller's field order so the allow-list reports
    the first offending field deterministically.
    """

    merchant_id: UUID
    changes: Dict[str, Any]


class DealResponse(BaseModel):
    """Bare deal record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    merchant_id: UUID
    name: str
    description: str
    barcode: Optional[str] = None
    is_active: bool
    published_at: datetime


class PopulatedDealResponse(BaseModel):
    """Deal merged with its merchant's display fields."""

    id: UUID
    merchant_id: UUID
    name: str
    description: str
    barcode: Optional[str] = None
    is_active: bool
    published_at: datetime
    merchant: str
    category: str
    logo_url: str
    address: str
    phone: Optional[str] = None
    lat: float
    lng: float

    @classmethod
    def from_deal(cls, deal) -> "PopulatedDealResponse":
        """Build the populated view from a deal with its merchant loaded."""
        merchant = deal.merchant
        return cls(
            id=deal.id,
            merchant_id=deal.merchant_id,
            name=deal.name,
            description=deal.description,
            barcode=deal.barcode,
            is_active=deal.is_active,
            published_at=deal.published_at,
            merchant=merchant.name,
            category=merchant.category,
            logo_url=merchant.logo_url,
            address=merchant.address,
            phone=merchant.phone,
            lat=merchant.lat,
            lng=merchant.lng,
        )
