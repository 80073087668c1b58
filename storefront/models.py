from sqlalchemy import (
    Column, Integer, String, Text, Float, ForeignKey, DateTime, func,
    Numeric, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from .database import Base

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
USER_ROLES = ("admin", "staff", "customer")


# 👤 Пользователь и его баланс баллов лояльности
class User(Base):
    __tablename__ = "users"

    id = Column(String(128), primary_key=True)  # uid из auth-провайдера
    email = Column(String(255), nullable=True, index=True)
    role = Column(String(20), nullable=False, default="customer")
    loyalty_points = Column(Integer, nullable=False, default=0)
    # оптимистическая блокировка: UPDATE ... WHERE version = :old
    version = Column(Integer, nullable=False)

    orders = relationship("Order", back_populates="user", passive_deletes=True)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("loyalty_points >= 0", name="ck_users_loyalty_points_nonneg"),
    )


class Product(Base):
    __tablename__ = "products"

    id = Column(String(128), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)         # 💰 точные деньги
    image_url = Column(String(255), nullable=True)
    category = Column(String(100), nullable=True)

    variants = relationship(
        "ProductVariant", back_populates="product",
        cascade="all, delete-orphan", order_by="ProductVariant.id",
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_nonneg"),
        Index("ix_products_category_name", "category", "name"),
    )


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(String(128), primary_key=True)
    product_id = Column(String(128), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    color = Column(String(50), nullable=True)
    size = Column(String(50), nullable=True)
    inventory = Column(Integer, nullable=False, default=0)  # 📦 остаток на складе

    product = relationship("Product", back_populates="variants")

    __table_args__ = (
        CheckConstraint("inventory >= 0", name="ck_variants_inventory_nonneg"),
        Index("ix_product_variants_product", "product_id"),
    )


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(128), primary_key=True)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    risk_assessment = Column(Float, nullable=True)  # 0..1, вероятность фрода

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", order_by="OrderItem.position",
    )
    settlement = relationship(
        "Settlement", uselist=False, viewonly=True,
        primaryjoin="Order.id == foreign(Settlement.order_id)",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'shipped', 'delivered', 'cancelled')",
            name="ck_orders_status",
        ),
        Index("ix_orders_user_created", "user_id", "created_at"),
        Index("ix_orders_status", "status"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(128), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(128), nullable=False)
    variant_id = Column(String(128), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price_at_purchase = Column(Numeric(10, 2), nullable=False)  # 💰 цена на момент покупки
    currency = Column(String(10), nullable=False, default="USD")

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_orderitem_quantity_pos"),
        CheckConstraint("price_at_purchase >= 0", name="ck_orderitem_price_nonneg"),
    )


# 🏷️ Маркер идемпотентности: баллы за заказ начислены ровно один раз
class Settlement(Base):
    __tablename__ = "settlements"

    order_id = Column(String(128), primary_key=True)  # заказ может прийти только событием
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    award = Column(Integer, nullable=False)
    settled_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("award >= 0", name="ck_settlements_award_nonneg"),
        Index("ix_settlements_user", "user_id"),
    )


# 🧾 Журнал ошибок начисления (для сверки пропущенных баллов)
class SettlementAudit(Base):
    __tablename__ = "settlement_audit"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(128), nullable=True, index=True)
    user_id = Column(String(128), nullable=True)
    error = Column(String(50), nullable=False)
    detail = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Subscriber(Base):
    __tablename__ = "subscribers"

    user_id = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=False)
    subscribed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
