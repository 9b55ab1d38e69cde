"""Dependency injection for services."""
from typing import Any

from fastapi import Depends, Request

from storefront.currency import CurrencyService
from storefront.services.account_service import AccountService
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.external_service import ExternalServiceClient
from storefront.services.order_service import OrderService


def get_http_client(request: Request) -> Any:
    """Get HTTP client from app state."""
    return request.app.state.http_client


def get_currency_service(request: Request) -> CurrencyService:
    """Get the process-wide currency service from app state."""
    return request.app.state.currency_service


def get_catalog_service() -> CatalogService:
    """Get catalog service instance."""
    return CatalogService()


def get_cart_service() -> CartService:
    """Get cart service instance."""
    return CartService(get_catalog_service())


def get_account_service() -> AccountService:
    """Get account service instance."""
    return AccountService()


def get_external_service(request: Request) -> ExternalServiceClient:
    """Get external service client."""
    return ExternalServiceClient(get_http_client(request))


def get_order_service(
    external_service: ExternalServiceClient = Depends(get_external_service)
) -> OrderService:
    """Get order service instance."""
    return OrderService(get_catalog_service(), external_service)
