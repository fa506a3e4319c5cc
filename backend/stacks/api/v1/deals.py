"""Deals API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response

from stacks.dependencies import get_current_user, get_deal_service
from stacks.models.user import User
from stacks.schemas import (
    ApiResponse,
    DealCreateRequest,
    DealResponse,
    DealUpdateRequest,
    PopulatedDealResponse,
)
from stacks.services.deal_service import DealService
from stacks.services.visibility import parse_search_params

router = APIRouter()


@router.get("", response_model=ApiResponse)
async def list_deals(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: DealService = Depends(get_deal_service),
):
    """List the deals visible to the caller.

    Query parameters:
    - category: merchant category, repeatable; at least one is required
    - lat, lng: optional origin; when given, nearest merchants come first

    Deals the caller holds or has redeemed are left out.
    """
    query = request.query_params
    params = parse_search_params(
        keys=list(query.keys()),
        categories=query.getlist("category"),
        lat=query.get("lat"),
        lng=query.get("lng"),
    )

    deals = await service.list_visible_deals(current_user, params.categories, params.origin)
    return ApiResponse(
        status="success",
        data=[PopulatedDealResponse.from_deal(d).model_dump(mode="json") for d in deals],
    )


@router.get("/merchant", response_model=ApiResponse)
async def list_merchant_deals(
    current_user: User = Depends(get_current_user),
    service: DealService = Depends(get_deal_service),
):
    """List the deals published by the caller's merchant."""
    deals = await service.list_merchant_deals(current_user.id)
    return ApiResponse(
        status="success",
        data=[DealResponse.model_validate(d).model_dump(mode="json") for d in deals],
    )


@router.get("/{deal_id}", response_model=ApiResponse)
async def get_deal(deal_id: UUID, service: DealService = Depends(get_deal_service)):
    """Get one deal with its merchant details. Public."""
    view = await service.get_populated_deal(deal_id)
    return ApiResponse(status="success", data=view.model_dump(mode="json"))


@router.post("", response_model=ApiResponse, status_code=201)
async def create_deal(
    body: DealCreateRequest,
    current_user: User = Depends(get_current_user),
    service: DealService = Depends(get_deal_service),
):
    """Publish a deal for a merchant the caller owns."""
    deal = await service.create_deal(
        requester_id=current_user.id,
        merchant_id=body.merchant_id,
        name=body.name,
        description=body.description,
        barcode=body.barcode,
    )
    return ApiResponse(
        status="success",
        data=DealResponse.model_validate(deal).model_dump(mode="json"),
    )


@router.put("/{deal_id}", response_model=ApiResponse)
async def update_deal(
    deal_id: UUID,
    body: DealUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: DealService = Depends(get_deal_service),
):
    """Update name, description or barcode of a deal the caller owns.

    ``merchant_id`` must be the deal's merchant and belong to the caller.
    A missing deal and someone else's deal are both answered with 401.
    """
    deal = await service.update_deal(
        requester_id=current_user.id,
        deal_id=deal_id,
        merchant_id=body.merchant_id,
        changes=body.changes,
    )
    return ApiResponse(
        status="success",
        data=DealResponse.model_validate(deal).model_dump(mode="json"),
    )


@router.delete("/{deal_id}", status_code=204)
async def delete_deal(
    deal_id: UUID,
    merchant_id: UUID = Query(..., description="Merchant that owns the deal"),
    current_user: User = Depends(get_current_user),
    service: DealService = Depends(get_deal_service),
):
    """Delete a deal the caller owns."""
    await service.delete_deal(
        requester_id=current_user.id,
        deal_id=deal_id,
        merchant_id=merchant_id,
    )
    return Response(status_code=204)
