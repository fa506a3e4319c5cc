"""Authentication API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from stacks.context import AppContext
from stacks.core.exceptions import AuthenticationError
from stacks.dependencies import get_auth_service, get_context, get_current_user
from stacks.models.user import User
from stacks.schemas import ApiResponse, LoginRequest, TokenResponse, UserResponse
from stacks.services.auth_service import AuthService

router = APIRouter()

_basic_scheme = HTTPBasic(auto_error=False)


def _token_payload(context: AppContext, user: User) -> dict:
    token = context.credentials.issue_token(user)
    return {
        "user": UserResponse.model_validate(user).model_dump(mode="json"),
        "token": TokenResponse(access_token=token).model_dump(),
    }


@router.post("/token", response_model=ApiResponse)
async def issue_token(
    credentials: Optional[HTTPBasicCredentials] = Depends(_basic_scheme),
    service: AuthService = Depends(get_auth_service),
    context: AppContext = Depends(get_context),
):
    """Exchange HTTP Basic email/password for a bearer token."""
    if not credentials:
        raise AuthenticationError()

    user = await service.authenticate(email=credentials.username, password=credentials.password)
    return ApiResponse(status="success", data=_token_payload(context, user))


@router.post("/login", response_model=ApiResponse)
async def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    context: AppContext = Depends(get_context),
):
    """Login with a JSON email and password."""
    user = await service.authenticate(email=body.email, password=body.password)
    return ApiResponse(status="success", data=_token_payload(context, user))


@router.get("/me", response_model=ApiResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user info."""
    return ApiResponse(
        status="success",
        data=UserResponse.model_validate(current_user).model_dump(mode="json"),
    )
