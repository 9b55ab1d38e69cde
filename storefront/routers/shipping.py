"""Shipping address lookup router."""
from typing import List

from fastapi import APIRouter, Depends, Query

from storefront.dependencies import get_external_service
from storefront.services.external_service import ExternalServiceClient

router = APIRouter(prefix="/shipping", tags=["shipping"])


@router.get("/cities", response_model=List[str])
async def search_cities(
    region: str = Query(..., min_length=1, description="Beginning of the city name"),
    external_service: ExternalServiceClient = Depends(get_external_service)
):
    """Cities for the delivery form autocomplete."""
    return await external_service.search_cities(region)


@router.get("/branches", response_model=List[str])
async def search_branches(
    branch: str = Query(..., min_length=1, description="City name"),
    type: str = Query(..., description="Відділення or Поштомат"),
    external_service: ExternalServiceClient = Depends(get_external_service)
):
    """Post offices or parcel lockers in a city."""
    return await external_service.search_branches(branch, type)
