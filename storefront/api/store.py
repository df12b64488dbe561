"""
Customer-facing storefront API.

Endpoints:
    - GET /api/store: Store header (name, hours, open status)
    - GET /api/categories, /api/menu, /api/menu/{id}: Catalog
    - POST /api/menu/{id}/quote: Price and label a selection
    - GET/POST/PATCH/DELETE /api/cart...: Session cart
    - POST /api/checkout: Submit the cart as an order
    - GET /api/messenger: Redirect to the store's Messenger inbox
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import PHASE_SESSION_KEY, get_cart
from storefront.core.config import get_settings
from storefront.core.formatting import format_currency, format_time_12h
from storefront.database import get_db
from storefront.models import MenuItem
from storefront.schemas import (
    AddToCartRequest,
    CartResponse,
    CategoryResponse,
    CheckoutRequest,
    CheckoutResponse,
    ErrorResponse,
    MenuItemResponse,
    OrderTypeResponse,
    PaymentMethodResponse,
    QuantityUpdate,
    QuoteResponse,
    SelectionRequest,
    StoreInfoResponse,
)
from storefront.services import catalog
from storefront.services.cart import CartAggregator, CartLineNotFound
from storefront.services.checkout import (
    CheckoutForm,
    CheckoutValidationError,
    EmptyCartError,
    OrderSubmissionError,
    StoreClosedError,
    UnavailableOptionError,
    place_order,
)
from storefront.services.customization import (
    CustomizationIncomplete,
    InvalidSelectionError,
    ItemCustomizer,
    ItemDefinition,
    MenuSchemaError,
)
from storefront.services.store_hours import store_status

logger = logging.getLogger(__name__)

# Reachable while the storefront is paused
public_router = APIRouter(prefix="/api", tags=["Storefront"])
router = APIRouter(prefix="/api", tags=["Storefront"])


# =============================================================================
# HELPERS
# =============================================================================

def _cart_response(request: Request, cart: CartAggregator) -> CartResponse:
    state = cart.state
    return CartResponse(
        lines=[
            {**line.model_dump(), "line_total": line.line_total}
            for line in state.lines
        ],
        total=state.total,
        display_total=format_currency(state.total, get_settings().currency_symbol),
        item_count=state.item_count,
        checkout_phase=request.session.get(PHASE_SESSION_KEY, "cart"),
    )


async def _load_item(db: AsyncSession, item_id: int) -> MenuItem:
    item = await catalog.get_menu_item(db, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Menu item #{item_id} not found")
    return item


def _customize(item: MenuItem, selection: SelectionRequest) -> ItemCustomizer:
    try:
        definition = ItemDefinition.from_record(item)
    except MenuSchemaError as e:
        logger.error(f"Menu item #{item.id} has an unreadable definition: {e}")
        raise HTTPException(status_code=500, detail=f"Menu item #{item.id} is misconfigured")

    try:
        return ItemCustomizer.from_request(
            definition,
            variation=selection.variation,
            groups=selection.groups,
            flavor=selection.flavor,
            addons=selection.addons,
            dining_option=selection.dining_option,
            quantity=selection.quantity,
        )
    except InvalidSelectionError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# STORE INFO
# =============================================================================

@public_router.get(
    "/store",
    response_model=StoreInfoResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Store header and open status",
)
async def store_info(db: AsyncSession = Depends(get_db)) -> StoreInfoResponse:
    settings = get_settings()
    profile = await catalog.get_store_profile(db)
    status = store_status(profile.open_time, profile.close_time, profile.manual_status)

    return StoreInfoResponse(
        **profile.to_dict(),
        is_open=status.is_open,
        status_reason=status.reason,
        hours_display=f"{format_time_12h(profile.open_time)} - {format_time_12h(profile.close_time)}",
        currency_symbol=settings.currency_symbol,
        messenger_url=settings.messenger_url,
        paused=settings.storefront_paused,
    )


@public_router.get("/messenger", summary="Open the store's Messenger inbox")
async def messenger_redirect() -> RedirectResponse:
    return RedirectResponse(get_settings().messenger_url)


# =============================================================================
# CATALOG
# =============================================================================

@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await catalog.list_categories(db)


@router.get(
    "/menu",
    response_model=list[MenuItemResponse],
    responses={503: {"model": ErrorResponse}},
)
async def list_menu(
    category: Optional[str] = Query(None, description="Category id, or 'all'"),
    db: AsyncSession = Depends(get_db),
):
    """Menu items by sort order, newest first within equal sort orders."""
    return await catalog.list_menu_items(db, category)


@router.get("/menu/{item_id}", response_model=MenuItemResponse)
async def get_menu_item(item_id: int, db: AsyncSession = Depends(get_db)):
    return await _load_item(db, item_id)


@router.post("/menu/{item_id}/quote", response_model=QuoteResponse)
async def quote_item(
    item_id: int,
    selection: SelectionRequest,
    db: AsyncSession = Depends(get_db),
) -> QuoteResponse:
    """Live price, label and completeness for a (possibly partial) selection."""
    customizer = _customize(await _load_item(db, item_id), selection)
    return QuoteResponse(
        item_id=item_id,
        label=customizer.label,
        unit_price=customizer.unit_price,
        total_price=customizer.total_price,
        quantity=customizer.quantity,
        can_add=customizer.can_add,
        missing=customizer.missing(),
        display_total=format_currency(customizer.total_price, get_settings().currency_symbol),
    )


@router.get("/order-types", response_model=list[OrderTypeResponse])
async def list_order_types(db: AsyncSession = Depends(get_db)):
    return await catalog.list_active_order_types(db)


@router.get("/payment-methods", response_model=list[PaymentMethodResponse])
async def list_payment_methods(db: AsyncSession = Depends(get_db)):
    return await catalog.list_active_payment_methods(db)


# =============================================================================
# CART
# =============================================================================

@router.get("/cart", response_model=CartResponse)
async def view_cart(request: Request, cart: CartAggregator = Depends(get_cart)) -> CartResponse:
    return _cart_response(request, cart)


@router.post(
    "/cart/lines",
    response_model=CartResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def add_to_cart(
    payload: AddToCartRequest,
    request: Request,
    cart: CartAggregator = Depends(get_cart),
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    item = await _load_item(db, payload.item_id)
    if item.out_of_stock:
        raise HTTPException(status_code=409, detail=f"{item.name} is out of stock")

    customizer = _customize(item, payload)
    try:
        line = customizer.build_line()
    except CustomizationIncomplete as e:
        raise HTTPException(status_code=400, detail=str(e))

    await cart.add_line(line)
    request.session[PHASE_SESSION_KEY] = "cart"
    logger.info(f"Cart {cart.key}: +{line.quantity} {line.custom_title}")
    return _cart_response(request, cart)


@router.patch("/cart/lines/{identity}", response_model=CartResponse)
async def change_quantity(
    identity: str,
    payload: QuantityUpdate,
    request: Request,
    cart: CartAggregator = Depends(get_cart),
) -> CartResponse:
    try:
        await cart.update_quantity(identity, payload.delta)
    except CartLineNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _cart_response(request, cart)


@router.delete("/cart/lines/{identity}", response_model=CartResponse)
async def remove_from_cart(
    identity: str,
    request: Request,
    cart: CartAggregator = Depends(get_cart),
) -> CartResponse:
    try:
        await cart.remove_line(identity)
    except CartLineNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _cart_response(request, cart)


@router.delete("/cart", response_model=CartResponse)
async def clear_cart(request: Request, cart: CartAggregator = Depends(get_cart)) -> CartResponse:
    await cart.clear()
    return _cart_response(request, cart)


# =============================================================================
# CHECKOUT
# =============================================================================

@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    status_code=201,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def checkout(
    payload: CheckoutRequest,
    request: Request,
    cart: CartAggregator = Depends(get_cart),
    db: AsyncSession = Depends(get_db),
) -> CheckoutResponse:
    """
    Submit the session cart as a pending order.

    On success the cart is emptied and the plain-text summary is returned
    for the customer to paste into Messenger.
    """
    settings = get_settings()
    try:
        result = await place_order(db, cart, CheckoutForm.from_request(payload))
    except (EmptyCartError, CheckoutValidationError, UnavailableOptionError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreClosedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OrderSubmissionError as e:
        raise HTTPException(status_code=500, detail=f"Error processing order: {e}")

    request.session[PHASE_SESSION_KEY] = "success"

    return CheckoutResponse(
        success=True,
        message="Order placed successfully!",
        phase="success",
        order_id=result.order_id,
        reference=result.reference,
        total_amount=result.total_amount,
        display_total=format_currency(result.total_amount, settings.currency_symbol),
        summary=result.summary,
        messenger_url=settings.messenger_url,
    )
