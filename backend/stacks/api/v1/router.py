"""API v1 router -- aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from stacks.api.v1 import auth, deals, health, merchants, users

api_v1_router = APIRouter()

api_v1_router.include_router(health.router, tags=["health"])
api_v1_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_v1_router.include_router(users.router, prefix="/users", tags=["users"])
api_v1_router.include_router(merchants.router, prefix="/merchants", tags=["merchants"])
api_v1_router.include_router(deals.router, prefix="/deals", tags=["deals"])
