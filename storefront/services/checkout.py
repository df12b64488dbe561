"""
Checkout / Order Submission

Validates the customer's fulfillment details against the cart and the
catalog, records the order, empties the cart and produces the plain-text
summary the customer relays to the store over Messenger.

The summary is plain ASCII: it gets pasted into chat clients that do not
render glyphs reliably.
"""

import logging
import time
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from kombu.exceptions import OperationalError as BrokerUnavailable
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings
from storefront.core.formatting import format_amount, format_clock
from storefront.models import (
    FulfillmentMode,
    Order,
    OrderFulfillmentType,
    OrderStatus,
    PaymentMethod,
)
from storefront.services.cart import CartAggregator
from storefront.services.catalog import CatalogUnavailable, get_store_profile
from storefront.services.realtime import OrderEventType, notify_order_change
from storefront.services.store_hours import store_status

logger = logging.getLogger(__name__)

SEPARATOR = "------------------"


# =============================================================================
# ERRORS
# =============================================================================

class CheckoutError(Exception):
    """Base class for checkout failures; the cart is left untouched."""


class EmptyCartError(CheckoutError):
    def __init__(self):
        super().__init__("Your cart is empty")


class CheckoutValidationError(CheckoutError):
    """Required customer fields are missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Please provide: {', '.join(missing)}")


class UnavailableOptionError(CheckoutError):
    """The chosen order type or payment method is unknown or inactive."""


class StoreClosedError(CheckoutError):
    pass


class OrderSubmissionError(CheckoutError):
    """The database rejected the order."""


# =============================================================================
# FORM HANDLING
# =============================================================================

@dataclass
class CheckoutForm:
    order_type: str
    payment_method: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    landmark: Optional[str] = None
    table_number: Optional[str] = None

    @classmethod
    def from_request(cls, request: Any) -> "CheckoutForm":
        return cls(
            order_type=request.order_type,
            payment_method=request.payment_method,
            full_name=request.full_name,
            phone=request.phone,
            address=request.address,
            landmark=request.landmark,
            table_number=request.table_number,
        )

    @property
    def mode(self) -> Optional[FulfillmentMode]:
        try:
            return FulfillmentMode(self.order_type)
        except ValueError:
            return None


def missing_fields(form: CheckoutForm) -> list[str]:
    """
    Required fields still empty for the chosen order type.

    Name and phone are always required. Delivery and pickup need the
    address field (pickup uses it for instructions); dine-in needs a
    table number. The landmark is always optional.
    """
    required = ["full_name", "phone"]
    if form.mode in (FulfillmentMode.DELIVERY, FulfillmentMode.PICKUP):
        required.append("address")
    elif form.mode == FulfillmentMode.DINE_IN:
        required.append("table_number")

    return [name for name in required if not (getattr(form, name) or "").strip()]


def build_customer_details(form: CheckoutForm) -> dict[str, Optional[str]]:
    if form.mode == FulfillmentMode.DINE_IN:
        address = "Dine In"
    elif form.landmark:
        address = f"{form.address or 'N/A'} (Landmark: {form.landmark})"
    else:
        address = form.address or "N/A"

    return {
        "full_name": form.full_name,
        "phone": form.phone,
        "address": address,
        "landmark": form.landmark,
        "table_number": form.table_number if form.mode == FulfillmentMode.DINE_IN else None,
    }


# =============================================================================
# SUMMARY
# =============================================================================

def plain_text(value: Any) -> str:
    """Fold accents and drop anything outside printable ASCII."""
    text = unicodedata.normalize("NFKD", str(value if value is not None else ""))
    return "".join(ch for ch in text if 32 <= ord(ch) < 127)


def generate_reference(now_ms: Optional[int] = None) -> str:
    """Local reference: last six digits of the millisecond clock."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return str(now_ms)[-6:]


def build_order_summary(
    *,
    store_name: str,
    reference: str,
    order_type: str,
    payment_method: str,
    customer_details: dict,
    lines: list[dict],
    total_amount: float,
    currency_code: str,
) -> str:
    """
    Plain-text summary for manual relay.

    Example:
        HELLO GABZAB FOOD HOUSE
        ORDER REF: #123456
        ------------------
        CUSTOMER: Juan
        ...
        TOTAL: PHP 1,249
    """
    mode = order_type.lower()
    if mode in (FulfillmentMode.DELIVERY.value, FulfillmentMode.PICKUP.value):
        place = f"ADDRESS: {plain_text(customer_details.get('address'))}"
    else:
        place = f"TABLE: {plain_text(customer_details.get('table_number'))}"

    items = [
        f"* {line.get('quantity') or 1}x {plain_text(line.get('custom_title') or line.get('name'))}"
        for line in lines
    ]

    rows = [
        f"HELLO {plain_text(store_name).upper()}",
        f"ORDER REF: #{reference}",
        SEPARATOR,
        f"CUSTOMER: {plain_text(customer_details.get('full_name'))}",
        f"PHONE: {plain_text(customer_details.get('phone'))}",
        f"TYPE: {plain_text(order_type).upper()}",
        place,
        f"PAYMENT: {plain_text(payment_method).upper()}",
        SEPARATOR,
        "ITEMS:",
        *items,
        SEPARATOR,
        f"TOTAL: {currency_code} {format_amount(total_amount)}",
    ]
    return "\n".join(rows)


def append_confirmation(summary: str, order_id: int, moment: datetime) -> str:
    """Add the backend-assigned id and the submission time."""
    return f"{summary}\nRef: #{order_id}\nTime: {format_clock(moment)}"


# =============================================================================
# SUBMISSION
# =============================================================================

@dataclass
class CheckoutResult:
    order_id: int
    reference: str
    total_amount: float
    summary: str
    items: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "reference": self.reference,
            "total_amount": self.total_amount,
            "summary": self.summary,
        }


async def _require_active(db: AsyncSession, model, identifier: str, label: str):
    try:
        row = await db.get(model, identifier)
    except SQLAlchemyError as e:
        logger.error(f"{label} lookup failed: {e}")
        raise CatalogUnavailable() from e
    if row is None or not row.is_active:
        raise UnavailableOptionError(f"{label} {identifier!r} is not available")
    return row


async def place_order(
    db: AsyncSession,
    cart: CartAggregator,
    form: CheckoutForm,
    now: Optional[datetime] = None,
) -> CheckoutResult:
    """
    Submit the cart as a new pending order.

    The cart is cleared only after the order row has committed; every
    failure before that leaves the cart as it was. Nothing after the commit
    fails the request.

    Raises:
        EmptyCartError: Nothing to order
        StoreClosedError: Store hours are enforced and the store is closed
        UnavailableOptionError: Unknown or inactive order type / payment method
        CheckoutValidationError: Required customer fields are missing
        OrderSubmissionError: The insert failed
    """
    settings = get_settings()
    now = now or datetime.now()

    if cart.state.is_empty:
        raise EmptyCartError()

    profile = await get_store_profile(db)
    if settings.enforce_store_hours:
        status = store_status(profile.open_time, profile.close_time, profile.manual_status, now=now)
        if not status.is_open:
            raise StoreClosedError(f"The store is currently closed. {status.reason}")

    await _require_active(db, OrderFulfillmentType, form.order_type, "Order type")
    await _require_active(db, PaymentMethod, form.payment_method, "Payment method")

    missing = missing_fields(form)
    if missing:
        raise CheckoutValidationError(missing)

    customer_details = build_customer_details(form)
    items = [line.model_dump(mode="json") for line in cart.lines]
    total_amount = cart.total

    order = Order(
        order_type=form.order_type,
        payment_method=form.payment_method,
        items=items,
        total_amount=total_amount,
        customer_details=customer_details,
        status=OrderStatus.PENDING.value,
    )

    try:
        db.add(order)
        await db.commit()
        await db.refresh(order)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Order insert failed: {e}")
        raise OrderSubmissionError(str(getattr(e, "orig", None) or e)) from e

    logger.info(f"Order #{order.id} created ({form.order_type}, {settings.currency_code} {total_amount})")

    reference = generate_reference(int(now.timestamp() * 1000))
    summary = build_order_summary(
        store_name=profile.store_name,
        reference=reference,
        order_type=form.order_type,
        payment_method=form.payment_method,
        customer_details=customer_details,
        lines=items,
        total_amount=total_amount,
        currency_code=settings.currency_code,
    )
    summary = append_confirmation(summary, order.id, now)

    try:
        await cart.clear()
    except RedisError as e:
        # Order already committed
        logger.error(f"Could not clear cart {cart.key} after order #{order.id}: {e}")
    await notify_order_change(OrderEventType.INSERT, order.id)

    if settings.ledger_export_enabled:
        _queue_ledger_export(order, summary)

    return CheckoutResult(
        order_id=order.id,
        reference=reference,
        total_amount=total_amount,
        summary=summary,
        items=items,
    )


def _queue_ledger_export(order: Order, summary: str) -> None:
    from storefront.tasks import export_order_to_ledger

    details = order.customer_details or {}
    try:
        export_order_to_ledger.delay({
            "order_id": order.id,
            "created_at": order.created_at.isoformat() if order.created_at else None,
            "order_type": order.order_type,
            "payment_method": order.payment_method,
            "customer_name": details.get("full_name"),
            "customer_phone": details.get("phone"),
            "address": details.get("address"),
            "table_number": details.get("table_number"),
            "items": order.items,
            "total_amount": order.total_amount,
            "order_status": order.status,
            "summary": summary,
        })
    except BrokerUnavailable as e:
        # The order is already committed
        logger.error(f"Ledger export for order #{order.id} not queued: {e}")
