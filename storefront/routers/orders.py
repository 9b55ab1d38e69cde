"""Orders API router."""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, Request, Response
from sqlalchemy.orm import Session

from storefront.auth import get_current_user_id, require_admin
from storefront.currency import CurrencyService
from storefront.database import get_db
from storefront.dependencies import get_cart_service, get_currency_service, get_order_service
from storefront.pricing import format_price
from storefront.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    InvoiceResponse,
    MessageResponse,
    OrderProductsUpdate,
    OrderResponse,
    OrdersListResponse,
    OrderStatusUpdate,
)
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService

router = APIRouter(tags=["orders"])


@router.post("/orders/checkout", response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest,
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user_id: Optional[int] = Depends(get_current_user_id),
    cart_service: CartService = Depends(get_cart_service),
    order_service: OrderService = Depends(get_order_service)
):
    """Place an order. Guests may order too."""
    cart = cart_service.load(request, response)
    order_id = order_service.place_order(db, body, cart, user_id=user_id)

    cart_service.clear(response)
    background_tasks.add_task(order_service.notify_order_placed, order_id)

    return {"message": "Order placed", "order_id": order_id}


@router.get("/account/orders", response_model=OrdersListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Orders, newest first, 20 per page - admin only."""
    coefficient = currency.coefficient
    orders = order_service.list_orders(db, page, coefficient)
    return {"orders": orders, "page": page, "euro": format_price(coefficient)}


@router.get("/account/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """One order - admin only."""
    return order_service.get_order(db, order_id, currency.coefficient)


@router.post("/account/orders/{order_id}", response_model=MessageResponse)
async def update_order_products(
    body: OrderProductsUpdate,
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service)
):
    """Replace the products of an order - admin only."""
    order_service.update_products(db, order_id, body.products)
    return {"message": "Order updated"}


@router.post("/account/orders/{order_id}/status", response_model=MessageResponse)
async def update_order_status(
    body: OrderStatusUpdate,
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service)
):
    """Change the status of an order - admin only."""
    order_service.update_status(db, order_id, body.status)
    return {"message": "Order status updated"}


@router.get("/account/orders/{order_id}/invoice", response_model=InvoiceResponse)
async def order_invoice(
    order_id: int = Path(..., description="Order ID"),
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Invoice data for printing - admin only."""
    return order_service.get_invoice(db, order_id, currency.coefficient)
