"""Services module for business logic and data operations.

Services own the session they are given: they run queries, apply the
ownership guard to writes, and commit. Routers only translate HTTP.
"""

from stacks.services.auth_service import AuthService, CredentialService
from stacks.services.cache_service import CacheService
from stacks.services.deal_service import DealService
from stacks.services.merchant_service import MerchantService
from stacks.services.upload_service import UploadSigner
from stacks.services.user_service import UserService

__all__ = [
    "AuthService",
    "CredentialService",
    "CacheService",
    "DealService",
    "MerchantService",
    "UploadSigner",
    "UserService",
]
