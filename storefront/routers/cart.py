"""Cart API router."""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from storefront import cart as cart_store
from storefront.currency import CurrencyService
from storefront.database import get_db
from storefront.dependencies import get_cart_service, get_currency_service
from storefront.schemas import (
    AddToCartRequest,
    CartMutationResponse,
    CartResponse,
    RemoveFromCartRequest,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartResponse)
async def get_cart(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    cart_service: CartService = Depends(get_cart_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Cart contents priced with the current catalog."""
    cart = cart_service.load(request, response)
    return cart_service.get_cart_view(db, cart, currency.coefficient)


@router.post("/add", response_model=CartMutationResponse)
async def add_to_cart(
    body: AddToCartRequest,
    request: Request,
    response: Response,
    cart_service: CartService = Depends(get_cart_service)
):
    """Add item to cart. Adding a product already in the cart raises its quantity."""
    cart = cart_service.load(request, response)
    updated, is_new = cart_service.add(response, cart, body.product_id, body.quantity)

    if is_new:
        return {"message": "Item added to cart", "status": "added", "cart": cart_store.size(updated)}
    return {"message": "Item already in cart, quantity increased", "status": "duplicate", "cart": cart_store.size(updated)}


@router.post("/remove", response_model=CartMutationResponse)
async def remove_from_cart(
    body: RemoveFromCartRequest,
    request: Request,
    response: Response,
    cart_service: CartService = Depends(get_cart_service)
):
    """Remove an item, or decrease its quantity."""
    cart = cart_service.load(request, response)
    updated = cart_service.remove(response, cart, body.product_id, body.quantity)
    return {"message": "Cart updated", "status": "removed", "cart": cart_store.size(updated)}
