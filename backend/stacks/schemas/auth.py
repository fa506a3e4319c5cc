"""Auth Pydantic schemas for request/response validation."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator


def reject_untrimmed(v: str) -> str:
    """Credentials are compared verbatim, so surrounding whitespace is refused."""
    if v.strip() != v:
        raise ValueError("Cannot start or end with whitespace")
    return v


class CredentialsMixin(BaseModel):
    """Email/password pair shared by the sign-up requests."""

    email: EmailStr
    # bcrypt truncates after 72 bytes
    password: str = Field(min_length=8, max_length=72)

    @field_validator("email", "password", mode="before")
    @classmethod
    def credentials_trimmed(cls, v):
        if isinstance(v, str):
            return reject_untrimmed(v)
        return v


class RegisterRequest(CredentialsMixin):
    """Consumer registration request."""

    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    dob: Optional[date] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        return v.strip()


class LoginRequest(BaseModel):
    """User login request."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """User info including the held/redeemed/dismissed deal sets."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    is_merchant: bool
    joined_on: datetime
    held_deals: List[UUID] = []
    redeemed_deals: List[UUID] = []
    dismissed_deals: List[UUID] = []
