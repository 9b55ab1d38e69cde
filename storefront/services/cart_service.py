"""Cart management service."""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from fastapi import Request, Response
from sqlalchemy.orm import Session
from opentelemetry import trace

from storefront import cart as cart_store
from storefront.cart import CART_COOKIE_NAME, Cart
from storefront.errors import CartTokenError
from storefront.monitoring import (
    cart_additions_counter,
    cart_removals_counter,
    cart_token_rejections_counter,
)
from storefront.pricing import convert_price, format_price
from storefront.services.catalog_service import CatalogService, present_product

logger = logging.getLogger(__name__)


class CartService:
    """Service for the cookie-held shopping cart."""

    def __init__(self, catalog_service: CatalogService):
        """
        Initialize cart service.

        Args:
            catalog_service: Catalog used to price cart entries
        """
        self.catalog_service = catalog_service
        self.tracer = trace.get_tracer(__name__)

    def load(self, request: Request, response: Optional[Response] = None) -> Cart:
        """
        Read the cart from the request cookie.

        A malformed cookie counts as an empty cart and is cleared on
        ``response`` when one is given. The request is marked so an error
        response clears it too.
        """
        token = request.cookies.get(CART_COOKIE_NAME)
        try:
            return cart_store.decode_cart(token)
        except CartTokenError:
            cart_token_rejections_counter.add(1)
            logger.warning("Clearing malformed cart cookie")
            request.state.clear_cart_cookie = True
            if response is not None:
                self.clear(response)
            return Cart()

    def save(self, response: Response, cart: Cart) -> None:
        """Write the cart cookie."""
        response.set_cookie(CART_COOKIE_NAME, cart_store.encode_cart(cart), path="/", samesite="lax")

    def clear(self, response: Response) -> None:
        response.delete_cookie(CART_COOKIE_NAME, path="/")

    def add(self, response: Response, cart: Cart, product_id: int, quantity: int) -> Tuple[Cart, bool]:
        """
        Add a product and store the cart.

        Returns:
            Tuple of (updated cart, True if the product was new to the cart)
        """
        span = trace.get_current_span()
        span.set_attribute("product.id", product_id)
        span.set_attribute("quantity", quantity)

        updated, is_new = cart_store.add_item(cart, product_id, quantity)
        self.save(response, updated)

        cart_additions_counter.add(1, {"result": "added" if is_new else "duplicate"})
        logger.info("Added product to cart", extra={
            "product_id": product_id,
            "quantity": quantity,
            "new_entry": is_new,
            "cart_size": cart_store.size(updated)
        })
        return updated, is_new

    def remove(self, response: Response, cart: Cart, product_id: int, quantity: Optional[int] = None) -> Cart:
        """Remove a product (or some of it) and store the cart."""
        updated = cart_store.remove_item(cart, product_id, quantity)
        self.save(response, updated)

        cart_removals_counter.add(1, {"mode": "all" if quantity is None else "partial"})
        logger.info("Removed product from cart", extra={
            "product_id": product_id,
            "quantity": quantity,
            "cart_size": cart_store.size(updated)
        })
        return updated

    def get_cart_view(self, db: Session, cart: Cart, coefficient: Decimal) -> Dict[str, Any]:
        """
        Price the cart against the live catalog.

        Args:
            db: Database session
            cart: Cart to show
            coefficient: Display currency coefficient

        Returns:
            Priced lines and the cart total
        """
        with self.tracer.start_as_current_span("cart.reconcile") as span:
            lines = cart_store.reconcile(
                cart,
                lambda ids: self.catalog_service.find_by_ids(db, ids)
            )
            span.set_attribute("cart.size", cart_store.size(cart))
            span.set_attribute("cart.lines", len(lines))

        items = []
        total = Decimal("0")
        for line in lines:
            unit_price = convert_price(line.product.price_total, coefficient)
            subtotal = unit_price * line.quantity
            total += subtotal
            items.append({
                "product": present_product(line.product, coefficient),
                "quantity": line.quantity,
                "price": format_price(unit_price),
                "subtotal": format_price(subtotal)
            })

        return {
            "items": items,
            "total": format_price(total),
            "euro": format_price(coefficient)
        }
