"""Account and back office API router."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.orm import Session

from storefront.auth import require_admin, require_user
from storefront.currency import CurrencyService
from storefront.database import get_db
from storefront.dependencies import get_account_service, get_catalog_service, get_currency_service
from storefront.models import User
from storefront.monitoring import currency_updates_counter
from storefront.pricing import format_price
from storefront.schemas import (
    AccountResponse,
    CurrencyUpdate,
    EditorProductResponse,
    MessageResponse,
    ProductCreate,
    ProductCreateResponse,
    ProductResponse,
    ProductUpdate,
    ReviewRequest,
)
from storefront.services.account_service import AccountService
from storefront.services.catalog_service import CatalogService, present_editor_row, present_product

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account", tags=["account"])


@router.get("", response_model=AccountResponse)
async def account(
    db: Session = Depends(get_db),
    user_id: int = Depends(require_user),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Account page. Administrators also see the currency coefficient."""
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=401, detail="Session expired, please log in")

    if user.admin:
        return {"admin": True, "euro": format_price(currency.coefficient)}
    return {"admin": False, "message": f"Вітаємо, {user.first_name or user.email}!"}


@router.post("/euro", response_model=AccountResponse)
async def update_euro(
    body: CurrencyUpdate,
    admin_id: int = Depends(require_admin),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Set the display currency coefficient - admin only."""
    coefficient = currency.update(body.euro)
    currency_updates_counter.add(1)

    logger.info("Currency coefficient changed by admin", extra={
        "user_id": admin_id,
        "coefficient": str(coefficient)
    })
    return {"admin": True, "message": "Currency coefficient updated", "euro": format_price(coefficient)}


@router.get("/favorites", response_model=List[ProductResponse])
async def list_favorites(
    db: Session = Depends(get_db),
    user_id: int = Depends(require_user),
    account_service: AccountService = Depends(get_account_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Products the user bookmarked."""
    coefficient = currency.coefficient
    return [present_product(product, coefficient) for product in account_service.list_favorites(db, user_id)]


@router.post("/favorites/{product_id}", response_model=MessageResponse)
async def add_favorite(
    product_id: int = Path(..., description="Product ID"),
    db: Session = Depends(get_db),
    user_id: int = Depends(require_user),
    account_service: AccountService = Depends(get_account_service)
):
    """Bookmark a product."""
    account_service.add_favorite(db, user_id, product_id)
    return {"message": "Added to favorites"}


@router.delete("/favorites/{product_id}", response_model=MessageResponse)
async def remove_favorite(
    product_id: int = Path(..., description="Product ID"),
    db: Session = Depends(get_db),
    user_id: int = Depends(require_user),
    account_service: AccountService = Depends(get_account_service)
):
    """Remove a bookmark. Removing a missing bookmark is a no-op."""
    account_service.remove_favorite(db, user_id, product_id)
    return {"message": "Removed from favorites"}


@router.post("/review", response_model=MessageResponse)
async def review(
    body: ReviewRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(require_user),
    account_service: AccountService = Depends(get_account_service)
):
    """Rate the store."""
    account_service.save_review(db, user_id, body.grade)
    return {"message": "Thank you for your review"}


@router.get("/editor", response_model=List[EditorProductResponse])
async def editor(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service),
    currency: CurrencyService = Depends(get_currency_service)
):
    """Every product, hidden ones included - admin only."""
    coefficient = currency.coefficient
    return [present_editor_row(product, coefficient) for product in catalog.find_all(db, search)]


@router.post("/editor/save", response_model=MessageResponse)
async def save_product(
    body: ProductUpdate,
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Apply a product edit - admin only."""
    catalog.update_product(db, body)
    return {"message": "Product saved"}


@router.post("/product/add", response_model=ProductCreateResponse)
async def add_product(
    body: ProductCreate,
    db: Session = Depends(get_db),
    admin_id: int = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Add a product - admin only."""
    product = catalog.create_product(db, body)
    return {"message": "Product added", "product_id": product.id}
