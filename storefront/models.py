"""
SQLAlchemy Database Models

Tables shared by the storefront and the admin console:
- Menu catalog (categories, menu items)
- Orders
- Store settings (singleton row)
- Payment methods and fulfillment types (toggled, never deleted)
- Admin users
"""

import enum
import re

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Text, Boolean, JSON, ForeignKey,
)
from sqlalchemy.sql import func

from storefront.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow (canonical spelling)."""
    PENDING = "pending"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: str) -> "OrderStatus":
        """
        Normalize any historical spelling to the canonical status.

        "Out for Delivery", "out-for-delivery" and "OUT_FOR_DELIVERY" all
        map to ``OrderStatus.OUT_FOR_DELIVERY``.

        Raises:
            ValueError: If the value names no known status
        """
        if isinstance(value, cls):
            return value
        key = re.sub(r"[\s\-]+", "_", str(value).strip().lower())
        if key == "canceled":
            key = "cancelled"
        return cls(key)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title().replace("For", "for")


class FulfillmentMode(str, enum.Enum):
    """How the order reaches the customer; decides the required fields."""
    DELIVERY = "delivery"
    PICKUP = "pickup"
    DINE_IN = "dine-in"


class StoreOverride(str, enum.Enum):
    """Manual store status override."""
    AUTO = "auto"
    OPEN = "open"
    CLOSED = "closed"


class Category(Base):
    """Menu category; the id is a slug of the name."""
    __tablename__ = "categories"

    id = Column(String(100), primary_key=True)
    name = Column(String(100), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Category {self.id} - {self.name}>"


class MenuItem(Base):
    """
    Purchasable catalog entry.

    ``variations`` holds either the flat shape ``[{name, price}]`` or the
    grouped shape ``[{groupName, required, options: [{name, price}]}]``.
    """
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # CATALOG DETAILS
    # =========================================================================
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(
        String(100),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    image = Column(String(500), nullable=True)
    out_of_stock = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    # =========================================================================
    # PRICING
    # =========================================================================
    price = Column(Float, nullable=False)
    promo_price = Column(Float, nullable=True)

    # =========================================================================
    # CUSTOMIZATION AXES
    # =========================================================================
    variations = Column(JSON, nullable=False, default=list)
    flavors = Column(JSON, nullable=False, default=list)
    addons = Column(JSON, nullable=False, default=list)
    dining_options = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.price}>"


class Order(Base):
    """
    Submitted order: a snapshot of the cart plus customer details.

    Mutated only by status transitions after creation; never deleted.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # FULFILLMENT
    # =========================================================================
    order_type = Column(
        String(50),
        ForeignKey("order_types.id"),
        nullable=False,
        index=True,
    )
    payment_method = Column(
        String(50),
        ForeignKey("payment_settings.id"),
        nullable=False,
    )

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)  # CartLine snapshots
    total_amount = Column(Float, nullable=False)
    customer_details = Column(JSON, nullable=False)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        String(32),
        default=OrderStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Order #{self.id} - {self.order_type} - {self.status}>"


class StoreSettings(Base):
    """Singleton row holding store identity and hours."""
    __tablename__ = "store_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    store_name = Column(String(150), nullable=False)
    contact = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)
    open_time = Column(String(8), nullable=False, default="10:00")
    close_time = Column(String(8), nullable=False, default="21:00")
    manual_status = Column(String(10), nullable=False, default=StoreOverride.AUTO.value)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class PaymentMethod(Base):
    """Manual payment option shown at checkout (e.g. cash on delivery, e-wallet)."""
    __tablename__ = "payment_settings"

    id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    account_name = Column(String(150), nullable=True)
    account_number = Column(String(100), nullable=True)
    qr_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<PaymentMethod {self.id} - active={self.is_active}>"


class OrderFulfillmentType(Base):
    """Delivery / pickup / dine-in availability."""
    __tablename__ = "order_types"

    id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<OrderFulfillmentType {self.id} - active={self.is_active}>"


class AdminUser(Base):
    """Back office account."""
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
