"""Cart value type and cookie codec.

The basket lives entirely on the client as the ``cart`` cookie; the server
keeps no copy. A cart token is the compact JSON document
``{"items": {"<product id>": <quantity>}}`` with sorted keys, percent-encoded
so that only cookie-safe characters remain. Tokens are not signed.
"""
import json
import logging
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple, Union
from urllib.parse import quote, unquote

from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError, field_validator

from storefront.errors import CartTokenError, ValidationError

logger = logging.getLogger(__name__)

CART_COOKIE_NAME = "cart"
MAX_TOKEN_BYTES = 4000
# Product IDs are BIGINT-sized
MAX_PRODUCT_ID = 2 ** 63 - 1

ProductId = Union[int, str]


def _parse_id(product_id: str) -> Optional[int]:
    if len(product_id) > len(str(MAX_PRODUCT_ID)) or not (product_id.isascii() and product_id.isdigit()):
        return None
    value = int(product_id)
    if value > MAX_PRODUCT_ID:
        return None
    return value


class Cart(BaseModel):
    """Mapping of product ID (string form of an int) to a positive quantity."""
    model_config = ConfigDict(frozen=True)

    items: Dict[str, int] = {}

    @field_validator("items")
    @classmethod
    def _check_items(cls, items: Dict[str, int]) -> Dict[str, int]:
        merged: Dict[str, int] = {}
        for product_id, qty in items.items():
            value = _parse_id(product_id)
            if value is None:
                raise ValueError(f"invalid product id {product_id!r}")
            # Legacy tokens may carry zero or negative quantities
            if qty <= 0:
                continue
            # "007" and "7" are the same product
            key = str(value)
            merged[key] = merged.get(key, 0) + qty
        return merged


class CartLine(NamedTuple):
    """A cart entry joined with its live catalog product."""
    product: object
    quantity: int


def _normalize_id(product_id: ProductId) -> str:
    value = _parse_id(str(product_id).strip())
    if value is None:
        raise ValidationError(f"Invalid product id: {product_id!r}")
    return str(value)


def _check_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(f"Quantity must be a positive integer, got {quantity!r}")
    return quantity


def add_item(cart: Cart, product_id: ProductId, quantity: int = 1) -> Tuple[Cart, bool]:
    """
    Add a product to the cart.

    Args:
        cart: Current cart
        product_id: Product identifier
        quantity: Quantity to add

    Returns:
        Tuple of (updated cart, True if the product was not in the cart before)
    """
    key = _normalize_id(product_id)
    quantity = _check_quantity(quantity)

    items = dict(cart.items)
    is_new = key not in items
    items[key] = items.get(key, 0) + quantity
    return Cart(items=items), is_new


def remove_item(cart: Cart, product_id: ProductId, quantity: Optional[int] = None) -> Cart:
    """
    Remove a product, or decrease its quantity.

    Without ``quantity`` the entry is deleted. With ``quantity`` it is
    subtracted, and the entry is deleted once it reaches zero or below.
    Removing a product that is not in the cart leaves the cart unchanged.
    """
    key = _normalize_id(product_id)
    items = dict(cart.items)

    if quantity is None:
        items.pop(key, None)
        return Cart(items=items)

    quantity = _check_quantity(quantity)
    if key not in items:
        return cart

    remaining = items[key] - quantity
    if remaining > 0:
        items[key] = remaining
    else:
        del items[key]
    return Cart(items=items)


def size(cart: Cart) -> int:
    """Number of distinct products in the cart (the cart badge count)."""
    return len(cart.items)


def product_ids(cart: Cart) -> List[int]:
    return [int(product_id) for product_id in cart.items]


def reconcile(cart: Cart, lookup: Callable[[List[int]], Iterable]) -> List[CartLine]:
    """
    Join cart entries with authoritative catalog products.

    Entries whose product no longer exists are dropped from the result but
    stay in the cart itself.

    Args:
        cart: Cart to reconcile
        lookup: Callable returning products (objects with an ``id``) for IDs

    Returns:
        Cart lines in cart order
    """
    if not cart.items:
        return []

    products = {product.id: product for product in lookup(product_ids(cart))}

    lines = []
    for product_id, quantity in cart.items.items():
        product = products.get(int(product_id))
        if product is None:
            logger.debug("Dropping stale cart entry", extra={"product_id": product_id})
            continue
        lines.append(CartLine(product=product, quantity=quantity))
    return lines


def encode_cart(cart: Cart) -> str:
    """
    Serialize a cart into a cookie-safe token.

    Raises:
        CartTokenError: If the token would exceed the cookie size budget
    """
    document = json.dumps({"items": cart.items}, sort_keys=True, separators=(",", ":"))
    token = quote(document, safe="")
    if len(token.encode("ascii")) > MAX_TOKEN_BYTES:
        raise CartTokenError("Cart is too large to store")
    return token


def decode_cart(token: Optional[str]) -> Cart:
    """
    Parse a cart token. A missing or empty token is an empty cart.

    Both percent-encoded tokens and raw JSON (older cookies) are accepted.

    Raises:
        CartTokenError: If the token is malformed
    """
    if not token:
        return Cart()

    if len(token) > MAX_TOKEN_BYTES * 3:
        raise CartTokenError("Cart token is too large")

    try:
        return Cart.model_validate_json(unquote(token))
    except PydanticValidationError as e:
        logger.warning("Rejected malformed cart token", extra={"error_count": e.error_count()})
        raise CartTokenError("Cart token is malformed")
