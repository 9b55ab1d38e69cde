"""Database connection and session management."""
from contextlib import contextmanager
from decimal import Decimal
from typing import Generator, Iterator
import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from storefront.config import DATABASE_URL, SEED_SAMPLE_DATA
from storefront.errors import PersistenceError
from storefront.models import Base, Product, StockStatus

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_timeout": 30,
    }


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Commit everything done inside the block, or nothing.

    Raises:
        PersistenceError: If any statement or the commit fails
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Transaction rolled back", extra={"error": str(e)})
        raise PersistenceError("Database operation failed")
    except Exception:
        db.rollback()
        raise


SAMPLE_PRODUCTS = [
    dict(brand_original="Denkmit", brand_translation="Денкміт", type="kitchen",
         title_original="Spülmittel Ultra Sensitive", title_translation="Засіб для миття посуду",
         volume="500 ml", price=Decimal("1.45"), price_factor=Decimal("35"),
         stock_status=StockStatus.IN_STOCK),
    dict(brand_original="Denkmit", brand_translation="Денкміт", type="washing",
         title_original="Vollwaschmittel Pulver", title_translation="Пральний порошок",
         volume="1.35 kg", price=Decimal("3.95"), price_factor=Decimal("30"),
         stock_status=StockStatus.LIMITED),
    dict(brand_original="Balea", brand_translation="Балеа", type="skin",
         title_original="Hautcreme Q10", title_translation="Крем для шкіри Q10",
         volume="50 ml", price=Decimal("2.95"), price_factor=Decimal("40"),
         stock_status=StockStatus.IN_STOCK),
    dict(brand_original="Balea", brand_translation="Балеа", type="hair",
         title_original="Shampoo Feuchtigkeit", title_translation="Шампунь зволожуючий",
         volume="300 ml", price=Decimal("0.95"), price_factor=Decimal("50"),
         stock_status=StockStatus.OUT_OF_STOCK),
    dict(brand_original="Frosch", brand_translation="Фрош", type="cleaning",
         title_original="Essig Reiniger", title_translation="Оцтовий очисник",
         volume="500 ml", price=Decimal("2.25"), price_factor=Decimal("30"),
         stock_status=StockStatus.IN_STOCK),
]


def init_db() -> None:
    """Initialize database tables and seed data."""
    Base.metadata.create_all(bind=engine)

    if not SEED_SAMPLE_DATA:
        return

    db = SessionLocal()
    try:
        if db.query(Product).count() == 0:
            db.add_all([Product(pictures=[], **fields) for fields in SAMPLE_PRODUCTS])
            db.commit()
            logger.info("Seeded database with sample products")
    finally:
        db.close()
