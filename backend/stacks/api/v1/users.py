"""User API endpoints: registration, profile, and the user's deal lists."""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Body, Depends

from stacks.dependencies import get_auth_service, get_current_user, get_user_service
from stacks.models.user import User
from stacks.schemas import ApiResponse, PopulatedDealResponse, RegisterRequest, UserResponse
from stacks.services.auth_service import AuthService
from stacks.services.user_service import UserService

router = APIRouter()


def _user_data(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


@router.post("", response_model=ApiResponse, status_code=201)
async def register(body: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Register a new consumer account."""
    user = await service.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        dob=body.dob,
    )
    return ApiResponse(status="success", data=_user_data(user))


@router.get("/me", response_model=ApiResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Get the caller's profile and deal sets."""
    return ApiResponse(status="success", data=_user_data(current_user))


@router.put("/me", response_model=ApiResponse)
async def update_profile(
    changes: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Update email, first_name or last_name. Any other field fails the request."""
    user = await service.update_profile(current_user, changes)
    return ApiResponse(status="success", data=_user_data(user))


@router.get("/deals", response_model=ApiResponse)
async def list_held_deals(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """The caller's held deals, populated with merchant details."""
    deals = await service.list_held_deals(current_user)
    return ApiResponse(
        status="success",
        data=[PopulatedDealResponse.from_deal(d).model_dump(mode="json") for d in deals],
    )


@router.put("/add/{deal_id}", response_model=ApiResponse)
async def add_deal(
    deal_id: UUID,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Add a deal to the caller's held deals."""
    user = await service.add_held_deal(current_user, deal_id)
    return ApiResponse(status="success", data=_user_data(user))


@router.put("/redeem/{deal_id}", response_model=ApiResponse)
async def redeem_deal(
    deal_id: UUID,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Mark a deal as redeemed by the caller."""
    user = await service.redeem_deal(current_user, deal_id)
    return ApiResponse(status="success", data=_user_data(user))


@router.delete("/delete/{deal_id}", response_model=ApiResponse)
async def dismiss_deal(
    deal_id: UUID,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Dismiss a deal from the caller's held deals."""
    user = await service.dismiss_deal(current_user, deal_id)
    return ApiResponse(status="success", data=_user_data(user))
