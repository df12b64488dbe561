"""
Pydantic Schemas for Request/Response Validation

Covers:
- Catalog (categories, menu items) and item customization quotes
- Cart and checkout
- Admin console entities (orders, store settings, payment methods, order types)
"""

import re
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from storefront.core.formatting import format_order_date
from storefront.models import OrderStatus, StoreOverride
from storefront.services.customization import MenuSchemaError, check_item_fields

_TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


def _validate_time_of_day(v: Optional[str]) -> Optional[str]:
    if v is not None and not _TIME_OF_DAY.match(v):
        raise ValueError("Time must be 24-hour HH:MM")
    return v


# =============================================================================
# CATALOG
# =============================================================================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Chicken Wings"])
    sort_order: Optional[int] = Field(None, ge=0)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    sort_order: Optional[int] = Field(None, ge=0)


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    sort_order: int


class MenuItemFields(BaseModel):
    """Shared shape check for the customization fields."""

    @model_validator(mode="after")
    def validate_customization(self):
        try:
            check_item_fields(
                variations=getattr(self, "variations", None),
                flavors=getattr(self, "flavors", None),
                addons=getattr(self, "addons", None),
                dining_options=getattr(self, "dining_options", None),
            )
        except MenuSchemaError as e:
            raise ValueError(str(e))
        return self


class MenuItemCreate(MenuItemFields):
    name: str = Field(..., min_length=1, max_length=150, examples=["Chicken Wings"])
    description: Optional[str] = Field(None, max_length=2000)
    price: float = Field(..., ge=0, examples=[249])
    promo_price: Optional[float] = Field(None, ge=0)
    category_id: Optional[str] = Field(None, examples=["wings"])
    image: Optional[str] = Field(None, max_length=500)
    out_of_stock: bool = False
    sort_order: int = Field(default=0, ge=0)
    variations: list[dict[str, Any]] = Field(default_factory=list)
    flavors: list[Union[str, dict[str, Any]]] = Field(default_factory=list)
    addons: list[dict[str, Any]] = Field(default_factory=list)
    dining_options: list[Union[str, dict[str, Any]]] = Field(default_factory=list)

    @field_validator("promo_price", "category_id", "image", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        # Form fields left empty arrive as ""
        return None if v == "" else v


class MenuItemUpdate(MenuItemFields):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[float] = Field(None, ge=0)
    promo_price: Optional[float] = Field(None, ge=0)
    category_id: Optional[str] = None
    image: Optional[str] = Field(None, max_length=500)
    out_of_stock: Optional[bool] = None
    sort_order: Optional[int] = Field(None, ge=0)
    variations: Optional[list[dict[str, Any]]] = None
    flavors: Optional[list[Union[str, dict[str, Any]]]] = None
    addons: Optional[list[dict[str, Any]]] = None
    dining_options: Optional[list[Union[str, dict[str, Any]]]] = None

    @field_validator("promo_price", "category_id", "image", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return None if v == "" else v


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    price: float
    promo_price: Optional[float]
    category_id: Optional[str]
    image: Optional[str]
    out_of_stock: bool
    sort_order: int
    variations: list[dict[str, Any]]
    flavors: list[Union[str, dict[str, Any]]]
    addons: list[dict[str, Any]]
    dining_options: list[Union[str, dict[str, Any]]]
    created_at: Optional[datetime] = None

    @field_validator("variations", "flavors", "addons", "dining_options", mode="before")
    @classmethod
    def null_to_list(cls, v):
        return v or []


# =============================================================================
# CUSTOMIZATION & CART
# =============================================================================

class SelectionRequest(BaseModel):
    """Customer selections for one menu item."""
    variation: Optional[str] = Field(None, examples=["8pc"])
    groups: dict[str, str] = Field(default_factory=dict, examples=[{"Size": "Large"}])
    flavor: Optional[str] = Field(None, examples=["Spicy Buffalo"])
    addons: list[str] = Field(default_factory=list, examples=[["Cheese"]])
    dining_option: Optional[str] = Field(None, examples=["Dine In"])
    quantity: int = Field(default=1, ge=1, le=99)


class AddToCartRequest(SelectionRequest):
    item_id: int


class QuoteResponse(BaseModel):
    item_id: int
    label: str
    unit_price: float
    total_price: float
    quantity: int
    can_add: bool
    missing: list[str]
    display_total: str


class QuantityUpdate(BaseModel):
    delta: int = Field(..., examples=[1, -1])


class CartLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    identity: str
    item_id: int
    name: str
    custom_title: str
    price: float
    quantity: int
    line_total: float
    image: Optional[str] = None
    selection: dict[str, Any] = Field(default_factory=dict)


class CartResponse(BaseModel):
    lines: list[CartLineResponse]
    total: float
    display_total: str
    item_count: int
    checkout_phase: str = "cart"


# =============================================================================
# CHECKOUT
# =============================================================================

class CheckoutRequest(BaseModel):
    """Customer-entered checkout form."""
    order_type: str = Field(..., examples=["delivery"])
    payment_method: str = Field(..., examples=["cod"])
    full_name: Optional[str] = Field(None, max_length=100, examples=["Juan Dela Cruz"])
    phone: Optional[str] = Field(None, max_length=30, examples=["09123456789"])
    address: Optional[str] = Field(None, max_length=500)
    landmark: Optional[str] = Field(None, max_length=255)
    table_number: Optional[str] = Field(None, max_length=20)

    @field_validator("full_name", "phone", "address", "landmark", "table_number", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class CheckoutResponse(BaseModel):
    success: bool
    message: str
    phase: str
    order_id: int
    reference: str
    total_amount: float
    display_total: str
    summary: str
    messenger_url: str


# =============================================================================
# ORDERS
# =============================================================================

class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_type: str
    payment_method: str
    items: list[dict[str, Any]]
    total_amount: float
    status: OrderStatus
    customer_details: dict[str, Any]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return OrderStatus.parse(v)

    @computed_field
    @property
    def status_label(self) -> str:
        return self.status.label

    @computed_field
    @property
    def created_at_display(self) -> str:
        return format_order_date(self.created_at)


class OrderListResponse(BaseModel):
    total: int
    orders: list[OrderResponse]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus = Field(..., examples=["preparing", "Out for Delivery"])

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        try:
            return OrderStatus.parse(v)
        except ValueError:
            raise ValueError(f"Invalid status. Options: {[s.value for s in OrderStatus]}")


# =============================================================================
# STORE SETTINGS
# =============================================================================

class StoreSettingsUpdate(BaseModel):
    store_name: Optional[str] = Field(None, min_length=1, max_length=150)
    contact: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    open_time: Optional[str] = Field(None, examples=["10:00"])
    close_time: Optional[str] = Field(None, examples=["21:00"])
    manual_status: Optional[StoreOverride] = None

    @field_validator("open_time", "close_time")
    @classmethod
    def validate_time_of_day(cls, v):
        return _validate_time_of_day(v)


class StoreSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    store_name: str
    contact: Optional[str]
    address: Optional[str]
    open_time: str
    close_time: str
    manual_status: StoreOverride


class StoreInfoResponse(StoreSettingsResponse):
    """Public storefront header: settings plus derived status."""
    is_open: bool
    status_reason: str
    hours_display: str
    currency_symbol: str
    messenger_url: str
    paused: bool = False


# =============================================================================
# PAYMENT METHODS & ORDER TYPES
# =============================================================================

class PaymentMethodCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=50, pattern=r"^[a-z0-9_-]+$", examples=["gcash"])
    name: str = Field(..., min_length=1, max_length=100, examples=["GCash"])
    is_active: bool = True
    account_name: Optional[str] = Field(None, max_length=150)
    account_number: Optional[str] = Field(None, max_length=100)
    qr_url: Optional[str] = Field(None, max_length=500)


class PaymentMethodUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    account_name: Optional[str] = Field(None, max_length=150)
    account_number: Optional[str] = Field(None, max_length=100)
    qr_url: Optional[str] = Field(None, max_length=500)


class PaymentMethodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    is_active: bool
    account_name: Optional[str]
    account_number: Optional[str]
    qr_url: Optional[str]


class OrderTypeCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=50, pattern=r"^[a-z0-9_-]+$", examples=["dine-in"])
    name: str = Field(..., min_length=1, max_length=100, examples=["Dine In"])
    is_active: bool = True


class OrderTypeUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class OrderTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    is_active: bool


# =============================================================================
# ADMIN SESSION & UPLOADS
# =============================================================================

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=200)


class SessionResponse(BaseModel):
    authenticated: bool
    username: Optional[str] = None


class UploadResponse(BaseModel):
    success: bool
    path: str
    public_url: str
    size_bytes: int


# =============================================================================
# GENERIC
# =============================================================================

class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    cart_storage: str
    order_feed: str
    object_storage: str
    timestamp: datetime
