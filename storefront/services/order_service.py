"""Order management service."""
import logging
import re
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session
from opentelemetry import trace

from storefront import cart as cart_store
from storefront.cart import Cart
from storefront.constants import ORDERS_PAGE_SIZE
from storefront.database import unit_of_work
from storefront.errors import NotFoundError, PersistenceError, ValidationError
from storefront.models import Order
from storefront.monitoring import orders_placed_counter
from storefront.pricing import convert_price, format_price
from storefront.schemas import CheckoutRequest, OrderItem
from storefront.services.catalog_service import CatalogService
from storefront.services.external_service import ExternalServiceClient

logger = logging.getLogger(__name__)

NON_WORD = re.compile(r"[^\w]")


def clean_phone_number(phone_number: str) -> str:
    """Drop spaces, dashes, brackets and the plus sign."""
    return NON_WORD.sub("", phone_number)


class OrderService:
    """Service for placing and administering orders."""

    def __init__(
        self,
        catalog_service: CatalogService,
        external_service: ExternalServiceClient
    ):
        """
        Initialize order service.

        Args:
            catalog_service: Catalog used to enrich order lines
            external_service: External service client
        """
        self.catalog_service = catalog_service
        self.external_service = external_service
        self.tracer = trace.get_tracer(__name__)

    def place_order(
        self,
        db: Session,
        request: CheckoutRequest,
        cart: Cart,
        user_id: Optional[int] = None
    ) -> int:
        """
        Store a new order.

        Lines come from ``request.items``, or from the cart when the request
        carries none. The order is a single insert; the caller clears the
        cart and sends the notification afterwards.

        Args:
            db: Database session
            request: Checkout form
            cart: Cart from the cookie
            user_id: Logged-in customer, if any

        Returns:
            New order ID

        Raises:
            ValidationError: If there is nothing to order
            PersistenceError: If the insert fails
        """
        if request.items:
            lines = [{"id": item.id, "amount": item.amount} for item in request.items]
        else:
            lines = [{"id": int(pid), "amount": qty} for pid, qty in cart.items.items()]

        if not lines:
            raise ValidationError("Cart is empty")

        phone_number = clean_phone_number(request.phone_number)
        if not phone_number:
            raise ValidationError("Phone number is required")

        span = trace.get_current_span()
        span.set_attribute("order.lines", len(lines))

        with self.tracer.start_as_current_span("db.transaction.create_order") as db_span:
            db_span.set_attribute("db.operation", "INSERT")
            db_span.set_attribute("db.table", "orders")

            order = Order(
                user=user_id,
                first_name=request.first_name,
                last_name=request.last_name,
                phone_number=phone_number,
                products=lines,
                region=request.region,
                address=request.address,
                comment=request.comment or None,
                status=0
            )
            try:
                with unit_of_work(db):
                    db.add(order)
                    db.flush()
                    order_id = order.id
            except PersistenceError:
                logger.error("Failed to create order", extra={
                    "user_id": user_id,
                    "line_count": len(lines)
                })
                raise

            db_span.set_attribute("order.id", order_id)

        orders_placed_counter.add(1, {"authenticated": str(user_id is not None).lower()})
        logger.info("Order placed", extra={
            "order_id": order_id,
            "user_id": user_id,
            "line_count": len(lines),
            "cart_size": cart_store.size(cart)
        })
        return order_id

    async def notify_order_placed(self, order_id: int) -> None:
        """Post-commit notification; never raises."""
        await self.external_service.notify_order_placed(order_id)

    def _get_order(self, db: Session, order_id: int) -> Order:
        order = db.query(Order).filter(Order.id == order_id).first()
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def _enrich_lines(self, db: Session, order: Order, coefficient: Decimal) -> List[Tuple[Dict[str, Any], Decimal]]:
        # Lines show the product as it is now, not as it was when ordered
        lines = list(order.products or [])
        products = {
            product.id: product
            for product in self.catalog_service.find_by_ids(db, [int(line["id"]) for line in lines])
        }

        enriched = []
        for line in lines:
            product = products.get(int(line["id"]))
            if product is None:
                continue
            unit_price = convert_price(product.price_total, coefficient)
            enriched.append(({
                "id": product.id,
                "amount": int(line["amount"]),
                "brand_original": product.brand_original,
                "title_original": product.title_original,
                "brand_translation": product.brand_translation,
                "title_translation": product.title_translation,
                "pictures": list(product.pictures or []),
                "volume": product.volume,
                "price": format_price(unit_price)
            }, unit_price))
        return enriched

    def _present_order(self, order: Order, lines: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "id": order.id,
            "user": order.user,
            "first_name": order.first_name,
            "last_name": order.last_name,
            "phone_number": order.phone_number,
            "region": order.region,
            "address": order.address,
            "comment": order.comment,
            "status": order.status,
            "date": order.date,
            "products": lines
        }

    def _present(self, db: Session, order: Order, coefficient: Decimal) -> Dict[str, Any]:
        return self._present_order(order, [line for line, _ in self._enrich_lines(db, order, coefficient)])

    def list_orders(self, db: Session, page: int, coefficient: Decimal) -> List[Dict[str, Any]]:
        """
        One page of orders, newest first.

        Args:
            db: Database session
            page: 1-based page number
            coefficient: Display currency coefficient

        Returns:
            Orders with enriched lines
        """
        if page < 1:
            raise ValidationError("Page must be >= 1")

        with self.tracer.start_as_current_span("db.query.list_orders") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("page", page)

            orders = (
                db.query(Order)
                .order_by(Order.id.desc())
                .offset((page - 1) * ORDERS_PAGE_SIZE)
                .limit(ORDERS_PAGE_SIZE)
                .all()
            )
            db_span.set_attribute("db.rows_returned", len(orders))

        return [self._present(db, order, coefficient) for order in orders]

    def get_order(self, db: Session, order_id: int, coefficient: Decimal) -> Dict[str, Any]:
        """
        One order with enriched lines.

        Raises:
            NotFoundError: If the order does not exist
        """
        return self._present(db, self._get_order(db, order_id), coefficient)

    def update_products(self, db: Session, order_id: int, items: List[OrderItem]) -> None:
        """Replace the line list of an order."""
        order = self._get_order(db, order_id)
        with unit_of_work(db):
            order.products = [{"id": item.id, "amount": item.amount} for item in items]

        logger.info("Order lines replaced", extra={
            "order_id": order_id,
            "line_count": len(items)
        })

    def update_status(self, db: Session, order_id: int, status: int) -> None:
        """Set the status code of an order."""
        order = self._get_order(db, order_id)
        previous = order.status
        with unit_of_work(db):
            order.status = status

        logger.info("Order status changed", extra={
            "order_id": order_id,
            "previous": previous,
            "status": status
        })

    def get_invoice(self, db: Session, order_id: int, coefficient: Decimal) -> Dict[str, Any]:
        """
        Invoice data for an order.

        Raises:
            NotFoundError: If the order does not exist
        """
        order = self._get_order(db, order_id)
        enriched = self._enrich_lines(db, order, coefficient)
        total = sum((unit_price * line["amount"] for line, unit_price in enriched), Decimal("0"))

        return {
            "order": self._present_order(order, [line for line, _ in enriched]),
            "total": format_price(total)
        }
