"""User profile update schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from stacks.schemas.common import reject_null

USER_UPDATE_FIELDS = ("email", "first_name", "last_name")


class UserChanges(BaseModel):
    """Typed view of an allow-listed user profile update."""
    model_config = ConfigDict(extra="forbid")

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("email", "first_name", "last_name")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)
