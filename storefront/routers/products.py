"""Catalog API router."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from opentelemetry import trace

from storefront import cart as cart_store
from storefront.constants import CATALOG_PAGE_LIMIT, FEATURED_BRANDS
from storefront.currency import CurrencyService
from storefront.database import get_db
from storefront.dependencies import get_cart_service, get_catalog_service, get_currency_service
from storefront.errors import NotFoundError
from storefront.models import Product
from storefront.monitoring import catalog_views_counter, product_detail_views_counter
from storefront.schemas import CatalogResponse, ProductDetailResponse
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService, present_product

router = APIRouter(tags=["catalog"])


def _listing(
    kind: str,
    products: List[Product],
    currency: CurrencyService,
    cart_size: int,
    search: Optional[str] = None
) -> dict:
    coefficient = currency.coefficient

    span = trace.get_current_span()
    span.set_attribute("catalog.kind", kind)
    span.set_attribute("product.count", len(products))
    catalog_views_counter.add(1, {"kind": kind})

    return {
        "products": [present_product(product, coefficient) for product in products],
        "cart": cart_size,
        "search": search
    }


def _echo_search(search: Optional[str]) -> Optional[str]:
    return search.replace("/", "", 1) if search else None


def _cart_size(request: Request, response: Response, cart_service: CartService) -> int:
    return cart_store.size(cart_service.load(request, response))


@router.get("/", response_model=CatalogResponse)
async def home(
    request: Request,
    response: Response,
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    cart_service: CartService = Depends(get_cart_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Front page; a search query is forwarded to the catalog."""
    if search:
        return RedirectResponse(url=f"/catalog?{request.url.query}", status_code=302)

    products = catalog.find_by_filter(db, limit=CATALOG_PAGE_LIMIT)
    return _listing("home", products, currency, _cart_size(request, response, cart_service))


@router.get("/catalog", response_model=CatalogResponse)
async def catalog_listing(
    request: Request,
    response: Response,
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    cart_service: CartService = Depends(get_cart_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Whole catalog, optionally filtered by a title search."""
    products = catalog.find_by_filter(db, search_text=search, limit=CATALOG_PAGE_LIMIT)
    return _listing(
        "search" if search else "catalog",
        products,
        currency,
        _cart_size(request, response, cart_service),
        search=_echo_search(search)
    )


@router.get("/catalog/newest", response_model=CatalogResponse)
async def newest(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    cart_service: CartService = Depends(get_cart_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Latest additions to the catalog."""
    products = catalog.find_newest(db)
    return _listing("newest", products, currency, _cart_size(request, response, cart_service))


@router.get("/catalog/other", response_model=CatalogResponse)
async def other_brands(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    cart_service: CartService = Depends(get_cart_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Products of brands without their own page."""
    products = catalog.find_other_brands(db)
    return _listing("other", products, currency, _cart_size(request, response, cart_service))


@router.get("/catalog/product/{product_id}", response_model=ProductDetailResponse)
async def product_detail(
    request: Request,
    response: Response,
    product_id: int = Path(..., description="Product ID"),
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    cart_service: CartService = Depends(get_cart_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Product page."""
    product = catalog.find_by_id(db, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    span = trace.get_current_span()
    span.set_attribute("product.id", product_id)
    product_detail_views_counter.add(1, {"brand": product.brand_original or "", "type": product.type or ""})

    cart = cart_service.load(request, response)
    return {
        "product": present_product(product, currency.coefficient),
        "cart": cart_store.size(cart),
        "in_cart": cart.items.get(str(product_id), 0)
    }


def _resolve_brand(slug: str, category: Optional[str] = None) -> str:
    entry = FEATURED_BRANDS.get(slug.lower())
    if entry is None:
        raise HTTPException(status_code=404, detail="Brand not found")
    brand, categories = entry
    if category is not None and category not in categories:
        raise HTTPException(status_code=404, detail="Category not found")
    return brand


@router.get("/catalog/{brand}", response_model=CatalogResponse)
async def brand_listing(
    request: Request,
    response: Response,
    brand: str = Path(..., description="Brand slug, e.g. denkmit"),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    cart_service: CartService = Depends(get_cart_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """All products of one brand."""
    brand_name = _resolve_brand(brand)
    products = catalog.find_by_filter(db, brand=brand_name, search_text=search)
    return _listing(
        "brand",
        products,
        currency,
        _cart_size(request, response, cart_service),
        search=_echo_search(search)
    )


@router.get("/catalog/{brand}/{category}", response_model=CatalogResponse)
async def category_listing(
    request: Request,
    response: Response,
    brand: str = Path(..., description="Brand slug, e.g. balea"),
    category: str = Path(..., description="Category slug, e.g. hair"),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    catalog: CatalogService = Depends(get_catalog_service),
    cart_service: CartService = Depends(get_cart_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Products of one brand category."""
    brand_name = _resolve_brand(brand, category)
    products = catalog.find_by_filter(db, brand=brand_name, category=category, search_text=search)
    return _listing(
        "category",
        products,
        currency,
        _cart_size(request, response, cart_service),
        search=_echo_search(search)
    )
