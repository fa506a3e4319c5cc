"""Merchant Pydantic schemas for request/response validation."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from stacks.schemas.auth import CredentialsMixin
from stacks.schemas.common import reject_null

MERCHANT_UPDATE_FIELDS = (
    "name", "category", "email", "logo_url", "address", "phone", "lat", "lng",
)


class MerchantSignupRequest(CredentialsMixin):
    """Merchant sign-up: owner credentials plus the business profile."""

    name: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1, max_length=50)
    address: str = Field(min_length=1, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    logo_url: str = Field(default="", max_length=1000)
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class MerchantChanges(BaseModel):
    """Typed view of an allow-listed merchant update."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    logo_url: Optional[str] = Field(default=None, max_length=1000)
    address: Optional[str] = Field(default=None, min_length=1, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)

    @field_validator("name", "category", "email", "logo_url", "address", "lat", "lng")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


class MerchantResponse(BaseModel):
    """Merchant profile response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    category: str
    logo_url: str
    address: str
    phone: Optional[str] = None
    lat: float
    lng: float


class SignedUploadResponse(BaseModel):
    """Presigned S3 upload target for a merchant logo."""

    signed_request: str
    url: str
