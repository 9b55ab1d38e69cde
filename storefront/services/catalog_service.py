"""Catalog query and editing service."""
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import case, or_
from sqlalchemy.orm import Query, Session
from opentelemetry import trace

from storefront.constants import BRAND_TRANSLATIONS, FEATURED_BRAND_NAMES, NEWEST_LIMIT
from storefront.database import unit_of_work
from storefront.errors import NotFoundError, ValidationError
from storefront.models import Product, StockStatus
from storefront.pricing import convert_price, format_price, parse_amount
from storefront.schemas import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

# In stock first, then limited, then out of stock
STOCK_PRIORITY = case(
    (Product.stock_status == StockStatus.IN_STOCK, 1),
    (Product.stock_status == StockStatus.LIMITED, 2),
    (Product.stock_status == StockStatus.OUT_OF_STOCK, 3),
    else_=4
)


def normalize_search(search_text: Optional[str]) -> Optional[str]:
    """Lowercase a search query and drop its first slash."""
    if search_text is None:
        return None
    normalized = search_text.lower().replace("/", "", 1).strip()
    return normalized or None


def split_picture_urls(raw: str) -> List[str]:
    """
    Split a comma-joined list of picture URLs.

    Only ``,https`` separates entries, so commas inside a URL survive.
    """
    if not raw:
        return []
    parts = raw.split(",https")
    return [parts[0]] + ["https" + part for part in parts[1:]]


def present_product(product: Product, coefficient: Decimal) -> Dict[str, Any]:
    """Product fields for a response, with the display price."""
    return {
        "id": product.id,
        "brand_original": product.brand_original,
        "brand_translation": product.brand_translation,
        "type": product.type,
        "title_original": product.title_original,
        "title_translation": product.title_translation,
        "description": product.description,
        "pictures": list(product.pictures or []),
        "volume": product.volume,
        "stock_status": product.stock_status,
        "visibility": bool(product.visibility),
        "price_total": format_price(convert_price(product.price_total, coefficient)),
    }


def present_editor_row(product: Product, coefficient: Decimal) -> Dict[str, Any]:
    row = present_product(product, coefficient)
    row.update({
        "price": format_price(product.price or 0),
        "price_factor": format_price(product.price_factor or 0),
        "amount": product.amount or 0,
        "box": product.box,
        "dm": bool(product.dm),
    })
    return row


class CatalogService:
    """Service for reading and editing the product catalog."""

    def __init__(self):
        """Initialize catalog service."""
        self.tracer = trace.get_tracer(__name__)

    def _search(self, query: Query, search_text: Optional[str]) -> Query:
        needle = normalize_search(search_text)
        if needle is None:
            return query
        pattern = f"%{needle}%"
        return query.filter(or_(
            Product.title_original.ilike(pattern),
            Product.title_translation.ilike(pattern)
        ))

    def find_by_id(self, db: Session, product_id: int) -> Optional[Product]:
        """
        Get one product.

        Args:
            db: Database session
            product_id: Product identifier

        Returns:
            Product, or None if it does not exist
        """
        with self.tracer.start_as_current_span("db.query.get_product") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")
            db_span.set_attribute("product.id", product_id)

            product = db.query(Product).filter(Product.id == product_id).first()
            db_span.set_attribute("db.rows_returned", 1 if product else 0)
            return product

    def find_by_ids(self, db: Session, product_ids: Iterable[int]) -> List[Product]:
        """Get the products that exist among the given IDs."""
        ids = list(product_ids)
        if not ids:
            return []

        with self.tracer.start_as_current_span("db.query.get_products") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")
            db_span.set_attribute("product.requested", len(ids))

            products = db.query(Product).filter(Product.id.in_(ids)).all()
            db_span.set_attribute("db.rows_returned", len(products))
            return products

    def find_by_filter(
        self,
        db: Session,
        brand: Optional[str] = None,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
        visible_only: bool = True,
        limit: Optional[int] = None
    ) -> List[Product]:
        """
        Catalog listing.

        Args:
            db: Database session
            brand: Brand name prefix ("Balea" also matches "Balea MEN")
            category: Exact product type
            search_text: Case-insensitive title search
            visible_only: Skip hidden products
            limit: Maximum number of products

        Returns:
            Products in stock-status order: in stock, limited, out of stock
        """
        with self.tracer.start_as_current_span("db.query.list_products") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")

            query = db.query(Product)
            if visible_only:
                query = query.filter(Product.visibility.is_(True))
            if brand:
                query = query.filter(Product.brand_original.like(f"{brand}%"))
            if category:
                query = query.filter(Product.type == category)
            query = self._search(query, search_text)
            query = query.order_by(STOCK_PRIORITY, Product.id)
            if limit:
                query = query.limit(limit)

            products = query.all()
            db_span.set_attribute("db.rows_returned", len(products))
            return products

    def find_newest(self, db: Session, limit: int = NEWEST_LIMIT) -> List[Product]:
        """Most recently added visible products."""
        with self.tracer.start_as_current_span("db.query.list_newest_products") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")

            products = (
                db.query(Product)
                .filter(Product.visibility.is_(True))
                .order_by(Product.id.desc())
                .limit(limit)
                .all()
            )
            db_span.set_attribute("db.rows_returned", len(products))
            return products

    def find_other_brands(self, db: Session) -> List[Product]:
        """Visible products of brands without their own catalog page."""
        with self.tracer.start_as_current_span("db.query.list_other_brand_products") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")

            products = (
                db.query(Product)
                .filter(Product.visibility.is_(True))
                .filter(Product.brand_original.notin_(FEATURED_BRAND_NAMES))
                .order_by(Product.id.desc())
                .all()
            )
            db_span.set_attribute("db.rows_returned", len(products))
            return products

    def find_all(self, db: Session, search_text: Optional[str] = None) -> List[Product]:
        """Back office listing: every product, hidden ones included."""
        with self.tracer.start_as_current_span("db.query.list_all_products") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")

            query = self._search(db.query(Product), search_text)
            products = query.order_by(Product.id).all()
            db_span.set_attribute("db.rows_returned", len(products))
            return products

    def create_product(self, db: Session, payload: ProductCreate) -> Product:
        """
        Add a product from the back office form.

        Raises:
            ValidationError: If the brand is unknown or a price is malformed
        """
        brand_translation = BRAND_TRANSLATIONS.get(payload.brand)
        if brand_translation is None:
            raise ValidationError(f"Unknown brand: {payload.brand}")

        product = Product(
            brand_original=payload.brand,
            brand_translation=brand_translation,
            type=payload.type,
            title_original=payload.title_original,
            title_translation=payload.title_translation,
            description=payload.description,
            pictures=[url for url in payload.pictures.split("|") if url],
            volume=payload.volume,
            weight=payload.weight,
            price=parse_amount(payload.price, "price"),
            price_factor=parse_amount(payload.price_factor, "price factor"),
            amount=payload.amount,
            stock_status=StockStatus.IN_STOCK,
            box=payload.box,
            dm=payload.dm,
            discount=0,
            visibility=True
        )

        with unit_of_work(db):
            db.add(product)
            db.flush()
            product_id = product.id

        logger.info("Product created", extra={
            "product_id": product_id,
            "brand": payload.brand
        })
        return product

    def update_product(self, db: Session, payload: ProductUpdate) -> Product:
        """
        Apply a back office edit. All supplied fields change together or
        not at all.

        Raises:
            NotFoundError: If the product does not exist
            ValidationError: If a value is malformed
        """
        if (payload.price is None) != (payload.price_factor is None):
            raise ValidationError("price and price_factor must be changed together")
        if payload.stock_status is not None and payload.stock_status not in StockStatus.ALL:
            raise ValidationError(f"Unknown stock status: {payload.stock_status}")

        # Validate before touching the row
        price = parse_amount(payload.price, "price") if payload.price is not None else None
        price_factor = parse_amount(payload.price_factor, "price factor") if payload.price_factor is not None else None

        product = self.find_by_id(db, payload.id)
        if product is None:
            raise NotFoundError(f"Product {payload.id} not found")

        changed = []
        with unit_of_work(db):
            if price is not None:
                product.price = price
                product.price_factor = price_factor
                changed += ["price", "price_factor"]
            if payload.amount is not None:
                product.amount = payload.amount
                changed.append("amount")
            if payload.stock_status is not None:
                product.stock_status = payload.stock_status
                changed.append("stock_status")
            if payload.box is not None:
                product.box = payload.box
                changed.append("box")
            if payload.description is not None:
                product.description = payload.description
                changed.append("description")
            if payload.visibility is not None:
                product.visibility = payload.visibility
                changed.append("visibility")
            if payload.pictures is not None:
                product.pictures = split_picture_urls(payload.pictures)
                changed.append("pictures")

        logger.info("Product updated", extra={
            "product_id": payload.id,
            "fields": changed
        })
        return product
