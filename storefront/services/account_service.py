"""Favorites and store reviews."""
import logging
from typing import List

from sqlalchemy.orm import Session

from storefront.database import unit_of_work
from storefront.errors import NotFoundError, ValidationError
from storefront.models import Favorite, Product, Review

logger = logging.getLogger(__name__)


class AccountService:
    """Service for per-user account features."""

    def list_favorites(self, db: Session, user_id: int) -> List[Product]:
        return (
            db.query(Product)
            .join(Favorite, Favorite.product == Product.id)
            .filter(Favorite.user == user_id)
            .order_by(Favorite.id)
            .all()
        )

    def add_favorite(self, db: Session, user_id: int, product_id: int) -> None:
        """
        Bookmark a product.

        Raises:
            NotFoundError: If the product does not exist
            ValidationError: If it is already a favorite
        """
        if db.query(Product).filter(Product.id == product_id).first() is None:
            raise NotFoundError(f"Product {product_id} not found")

        exists = db.query(Favorite).filter(
            Favorite.user == user_id,
            Favorite.product == product_id
        ).first()
        if exists:
            raise ValidationError("duplicate")

        with unit_of_work(db):
            db.add(Favorite(user=user_id, product=product_id))

        logger.info("Favorite added", extra={"user_id": user_id, "product_id": product_id})

    def remove_favorite(self, db: Session, user_id: int, product_id: int) -> None:
        with unit_of_work(db):
            db.query(Favorite).filter(
                Favorite.user == user_id,
                Favorite.product == product_id
            ).delete()

    def save_review(self, db: Session, user_id: int, grade: int) -> None:
        """Create or replace the user's store rating (1 to 5)."""
        if not 1 <= grade <= 5:
            raise ValidationError("Grade must be between 1 and 5")

        review = db.query(Review).filter(Review.user == user_id).first()
        with unit_of_work(db):
            if review:
                review.grade = grade
            else:
                db.add(Review(user=user_id, grade=grade))

        logger.info("Review saved", extra={"user_id": user_id, "grade": grade})
