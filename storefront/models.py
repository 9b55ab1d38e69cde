"""Database models for the storefront service."""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from storefront.pricing import compute_total_price

Base = declarative_base()


class StockStatus:
    """Values of ``Product.stock_status``."""
    OUT_OF_STOCK = 0
    IN_STOCK = 1
    LIMITED = 2

    ALL = (OUT_OF_STOCK, IN_STOCK, LIMITED)


class Product(Base):
    """Catalog product."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    brand_original = Column(String, index=True)
    brand_translation = Column(String)
    type = Column("type", String, index=True)
    title_original = Column(String)
    title_translation = Column(String)
    description = Column(Text)
    pictures = Column(JSON, default=list)
    volume = Column(String)
    weight = Column(String)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    price_factor = Column(Numeric(8, 2), nullable=False, default=0)
    amount = Column(Integer, default=0)
    stock_status = Column("exists", Integer, default=StockStatus.IN_STOCK)
    box = Column("case", String)
    dm = Column(Boolean, default=False)
    discount = Column(Integer, default=0)
    visibility = Column(Boolean, default=True)

    @property
    def price_total(self) -> Decimal:
        """Price with markup, before currency conversion."""
        return compute_total_price(self.price or 0, self.price_factor or 0)


class User(Base):
    """Registered customer or administrator."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String)
    last_name = Column(String)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    reg_date = Column(DateTime, default=datetime.utcnow)
    log_date = Column(DateTime, default=datetime.utcnow)
    admin = Column(Boolean, default=False)


class Order(Base):
    """Placed order. ``products`` is a list of ``{"id": int, "amount": int}``."""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user = Column("user", Integer, ForeignKey("users.id"), nullable=True, index=True)
    first_name = Column(String)
    last_name = Column(String)
    phone_number = Column(String)
    products = Column(JSON, nullable=False, default=list)
    region = Column(String)
    address = Column(String)
    comment = Column(Text, nullable=True)
    status = Column(Integer, default=0)
    date = Column(DateTime, default=datetime.utcnow)


class Favorite(Base):
    """Product bookmarked by a user."""
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user", "product"),)

    id = Column(Integer, primary_key=True, index=True)
    user = Column("user", Integer, ForeignKey("users.id"), index=True)
    product = Column(Integer, ForeignKey("products.id"))


class Review(Base):
    """Store rating, one per user."""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    user = Column("user", Integer, ForeignKey("users.id"), unique=True)
    grade = Column(Integer)
