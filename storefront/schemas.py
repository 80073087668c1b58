# storefront/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


# 📦 Позиция заказа в событии OrderCreated (camelCase, как шлёт платформа)
class LineItem(BaseModel):
    product_id: str = Field(alias="productId", min_length=1)
    variant_id: str = Field(alias="variantId", min_length=1)
    quantity: int = Field(gt=0)
    price_at_purchase: Decimal = Field(alias="priceAtPurchase", ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    class Config:
        populate_by_name = True


class OrderCreatedEvent(BaseModel):
    """Decoded OrderCreated payload; malformed events never reach the calculator."""

    order_id: str = Field(alias="orderId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
    items: List[LineItem] = Field(min_length=1)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        populate_by_name = True


class SettlementOut(BaseModel):
    order_id: str
    user_id: str
    status: str
    award: int
    balance: Optional[int] = None


# 👤 Auth hook
class UserCreatedEvent(BaseModel):
    uid: str = Field(min_length=1)
    email: Optional[EmailStr] = None


class UserCreatedOut(BaseModel):
    user_id: str
    subscribed: bool
    welcome_email_queued: bool


# 🏷️ Изменение остатков товара
class VariantSnapshot(BaseModel):
    id: str
    color: Optional[str] = None
    size: Optional[str] = None
    inventory: int = Field(ge=0)


class ProductUpdatedEvent(BaseModel):
    product_id: str = Field(alias="productId")
    name: str
    before: List[VariantSnapshot]
    after: List[VariantSnapshot]

    class Config:
        populate_by_name = True


class StockAlertsOut(BaseModel):
    product_id: str
    alerts: List[str]
    delivered: bool


class JobOut(BaseModel):
    job: str
    updated: int


# 🛒 Оформление заказа
class CheckoutItem(BaseModel):
    product_id: str
    variant_id: str
    quantity: int = Field(gt=0)


class CheckoutPayload(BaseModel):
    order_id: Optional[str] = None
    user_id: str
    items: List[CheckoutItem] = Field(min_length=1)
    currency: str = Field(default="USD", min_length=3, max_length=3)


class OrderItemOut(BaseModel):
    product_id: str
    variant_id: str
    quantity: int
    price_at_purchase: Decimal
    currency: str

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: str
    user_id: str
    status: str
    created_at: Optional[datetime] = None
    risk_assessment: Optional[float] = None
    items: List[OrderItemOut] = []
    settlement: Optional[SettlementOut] = None


class OrderSummary(BaseModel):
    id: str
    status: str
    created_at: Optional[datetime] = None
    items_count: int


class LoyaltyOut(BaseModel):
    user_id: str
    loyalty_points: int


# 🛍️ Товар
class VariantOut(BaseModel):
    id: str
    color: Optional[str] = None
    size: Optional[str] = None
    inventory: int

    class Config:
        from_attributes = True


class ProductOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    category: Optional[str] = None
    variants: List[VariantOut] = []

    class Config:
        from_attributes = True


# 🤖 AI
class ProductDescriptionRequest(BaseModel):
    product_name: str = Field(alias="productName", min_length=1)
    product_category: str = Field(alias="productCategory", min_length=1)
    key_features: str = Field(alias="keyFeatures", min_length=1)
    target_audience: str = Field(alias="targetAudience", min_length=1)

    class Config:
        populate_by_name = True


class ProductDescriptionOut(BaseModel):
    description: str


class SupportChatRequest(BaseModel):
    query: str = Field(min_length=1)
    order_history: Optional[str] = Field(default=None, alias="orderHistory")
    product_details: Optional[str] = Field(default=None, alias="productDetails")

    class Config:
        populate_by_name = True


class SupportChatOut(BaseModel):
    response: str


class VariantCreate(BaseModel):
    id: str = Field(min_length=1)
    color: Optional[str] = None
    size: Optional[str] = None
    inventory: int = Field(default=0, ge=0)


class ProductCreate(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    image_url: Optional[str] = None
    category: Optional[str] = None
    variants: List[VariantCreate] = []


class InventoryUpdate(BaseModel):
    inventory: int = Field(ge=0)
