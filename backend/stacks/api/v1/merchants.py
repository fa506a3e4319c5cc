"""Merchant API endpoints."""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from stacks.context import AppContext
from stacks.core.exceptions import NotFoundError
from stacks.dependencies import get_context, get_current_user, get_merchant_service
from stacks.models.user import User
from stacks.schemas import ApiResponse, MerchantResponse, MerchantSignupRequest, SignedUploadResponse
from stacks.services.merchant_service import MerchantService

router = APIRouter()


@router.post("", response_model=ApiResponse, status_code=201)
async def sign_up(
    body: MerchantSignupRequest,
    service: MerchantService = Depends(get_merchant_service),
):
    """Create a merchant account together with its business profile."""
    merchant = await service.sign_up(body)
    return ApiResponse(
        status="success",
        data=MerchantResponse.model_validate(merchant).model_dump(mode="json"),
    )


@router.get("/me", response_model=ApiResponse)
async def get_my_merchant(
    current_user: User = Depends(get_current_user),
    service: MerchantService = Depends(get_merchant_service),
):
    """Get the caller's merchant profile."""
    merchant = await service.get_for_owner(current_user.id)
    if merchant is None:
        raise NotFoundError("Merchant", f"owner:{current_user.id}")

    return ApiResponse(
        status="success",
        data=MerchantResponse.model_validate(merchant).model_dump(mode="json"),
    )


@router.get("/sign-s3", response_model=ApiResponse)
async def sign_logo_upload(
    file_name: str = Query(..., alias="file-name", min_length=1, max_length=500),
    file_type: str = Query(..., alias="file-type", min_length=1, max_length=100),
    current_user: User = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Presign an S3 upload for a merchant logo."""
    signed = context.uploads.sign_upload(file_name, file_type)
    return ApiResponse(status="success", data=SignedUploadResponse(**signed).model_dump())


@router.put("/{merchant_id}", response_model=ApiResponse)
async def update_merchant(
    merchant_id: UUID,
    changes: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    service: MerchantService = Depends(get_merchant_service),
):
    """Update the caller's merchant. Fields outside the allow-list fail the request."""
    merchant = await service.update_merchant(current_user, merchant_id, changes)
    return ApiResponse(
        status="success",
        data=MerchantResponse.model_validate(merchant).model_dump(mode="json"),
    )
