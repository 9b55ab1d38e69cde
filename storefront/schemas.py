"""Pydantic schemas for request/response validation."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ProductResponse(BaseModel):
    """Schema for product response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    brand_original: Optional[str] = None
    brand_translation: Optional[str] = None
    type: Optional[str] = None
    title_original: Optional[str] = None
    title_translation: Optional[str] = None
    description: Optional[str] = None
    pictures: List[str] = []
    volume: Optional[str] = None
    stock_status: int
    visibility: bool
    price_total: str


class EditorProductResponse(ProductResponse):
    """Product row of the back office editor, with raw pricing fields."""
    price: str
    price_factor: str
    amount: int
    box: Optional[str] = None
    dm: bool = False


class CatalogResponse(BaseModel):
    """Schema for a catalog listing."""
    products: List[ProductResponse]
    cart: int
    search: Optional[str] = None


class ProductDetailResponse(BaseModel):
    """Schema for a product page."""
    product: ProductResponse
    cart: int
    in_cart: int


class AddToCartRequest(BaseModel):
    """Schema for add to cart request."""
    product_id: int = Field(gt=0)
    quantity: int = Field(default=1, gt=0)


class RemoveFromCartRequest(BaseModel):
    """Schema for remove from cart request. Omit quantity to drop the item."""
    product_id: int = Field(gt=0)
    quantity: Optional[int] = Field(default=None, gt=0)


class CartMutationResponse(BaseModel):
    """Schema for cart add/remove response."""
    message: str
    status: str
    cart: int


class CartLineResponse(BaseModel):
    """Schema for cart line in response."""
    product: ProductResponse
    quantity: int
    price: str
    subtotal: str


class CartResponse(BaseModel):
    """Schema for cart response."""
    items: List[CartLineResponse]
    total: str
    euro: str


class OrderItem(BaseModel):
    """Product line of an order."""
    id: int = Field(gt=0)
    amount: int = Field(gt=0)


class CheckoutRequest(BaseModel):
    """Schema for checkout request. Empty ``items`` means the cart cookie."""
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)
    region: str
    address: str
    comment: Optional[str] = None
    items: List[OrderItem] = []


class CheckoutResponse(BaseModel):
    """Schema for checkout response."""
    message: str
    order_id: int


class OrderLineResponse(BaseModel):
    """Order line enriched with the current product data."""
    id: int
    amount: int
    brand_original: Optional[str] = None
    title_original: Optional[str] = None
    brand_translation: Optional[str] = None
    title_translation: Optional[str] = None
    pictures: List[str] = []
    volume: Optional[str] = None
    price: str


class OrderResponse(BaseModel):
    """Schema for order response."""
    id: int
    user: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    region: Optional[str] = None
    address: Optional[str] = None
    comment: Optional[str] = None
    status: int
    date: Optional[datetime] = None
    products: List[OrderLineResponse]


class OrdersListResponse(BaseModel):
    """Schema for orders list response."""
    orders: List[OrderResponse]
    page: int
    euro: str


class OrderProductsUpdate(BaseModel):
    """Replacement line list for an order."""
    products: List[OrderItem] = Field(min_length=1)


class OrderStatusUpdate(BaseModel):
    """New status code for an order."""
    status: int = Field(ge=0)


class InvoiceResponse(BaseModel):
    """Schema for an order invoice."""
    order: OrderResponse
    total: str


class RegistrationRequest(BaseModel):
    """Schema for user registration."""
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    """Login request model."""
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    """Login response model."""
    token: str
    token_type: str = "bearer"
    user_id: int


class AccountResponse(BaseModel):
    """Schema for the account page."""
    admin: bool
    message: Optional[str] = None
    euro: Optional[str] = None


class CurrencyUpdate(BaseModel):
    """New currency coefficient; strings may use a comma separator."""
    euro: Union[str, Decimal]


class ReviewRequest(BaseModel):
    """Store rating."""
    grade: int = Field(ge=1, le=5)


class ProductUpdate(BaseModel):
    """Admin product edit. Only supplied fields are changed."""
    id: int = Field(gt=0)
    price: Optional[str] = None
    price_factor: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=0)
    stock_status: Optional[int] = None
    box: Optional[str] = None
    description: Optional[str] = None
    visibility: Optional[bool] = None
    pictures: Optional[str] = None


class ProductCreate(BaseModel):
    """Admin product creation form."""
    brand: str
    title_original: str = Field(min_length=1)
    title_translation: str = Field(min_length=1)
    type: str
    pictures: str = ""
    description: Optional[str] = None
    volume: Optional[str] = None
    weight: Optional[str] = None
    price: str
    price_factor: str
    amount: int = Field(default=0, ge=0)
    box: Optional[str] = None
    dm: bool = False


class ProductCreateResponse(BaseModel):
    """Schema for product creation response."""
    message: str
    product_id: int


class MessageResponse(BaseModel):
    """Plain message response."""
    message: str
