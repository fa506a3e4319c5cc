"""Pydantic schemas for the Stacks API.

All request/response models are defined here for easy import.
"""

from stacks.schemas.common import ApiResponse, ErrorDetail, ErrorResponse, HealthCheckResponse
from stacks.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from stacks.schemas.user import USER_UPDATE_FIELDS, UserChanges
from stacks.schemas.merchant import (
    MERCHANT_UPDATE_FIELDS,
    MerchantChanges,
    MerchantResponse,
    MerchantSignupRequest,
    SignedUploadResponse,
)
from stacks.schemas.deal import (
    DEAL_UPDATE_FIELDS,
    Coordinate,
    DealChanges,
    DealCreateRequest,
    DealResponse,
    DealSearchParams,
    DealUpdateRequest,
    PopulatedDealResponse,
)

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthCheckResponse",
    # Auth
    "LoginRequest",
    "RegisterRequest",
    "TokenResponse",
    "UserResponse",
    # User
    "USER_UPDATE_FIELDS",
    "UserChanges",
    # Merchant
    "MERCHANT_UPDATE_FIELDS",
    "MerchantChanges",
    "MerchantResponse",
    "MerchantSignupRequest",
    "SignedUploadResponse",
    # Deal
    "DEAL_UPDATE_FIELDS",
    "Coordinate",
    "DealChanges",
    "DealCreateRequest",
    "DealResponse",
    "DealSearchParams",
    "DealUpdateRequest",
    "PopulatedDealResponse",
]
