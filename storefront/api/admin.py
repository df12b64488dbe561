"""
Admin back office API.

Endpoints:
    - POST /admin/login, POST /admin/logout, GET /admin/session
    - /admin/api/orders: List, detail, status updates
    - /admin/api/menu-items, /admin/api/categories: Catalog CRUD
    - /admin/api/uploads: Menu image upload
    - /admin/api/payment-methods, /admin/api/order-types: Edit and toggle
    - /admin/api/store-settings: Store name, contact, hours, override
    - WS /admin/ws/orders: Live order list
"""

import asyncio
import logging
import re
import time
import uuid
from pathlib import PurePosixPath
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    Request,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
)
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.deps import (
    ADMIN_SESSION_KEY,
    ADMIN_TOKEN_SESSION_KEY,
    commit_or_raise,
    require_admin,
)
from storefront.database import async_session_maker, get_db
from storefront.models import (
    Category,
    MenuItem,
    OrderFulfillmentType,
    OrderStatus,
    PaymentMethod,
    StoreSettings,
)
from storefront.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ErrorResponse,
    LoginRequest,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MessageResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderTypeCreate,
    OrderTypeResponse,
    OrderTypeUpdate,
    PaymentMethodCreate,
    PaymentMethodResponse,
    PaymentMethodUpdate,
    SessionResponse,
    StoreSettingsResponse,
    StoreSettingsUpdate,
    UploadResponse,
)
from storefront.services import catalog, orders
from storefront.services.auth import INVALID_CREDENTIALS, authenticate
from storefront.services.catalog import CatalogUnavailable, StoreProfile
from storefront.services.realtime import OrderEventType, get_order_feed, revoke_admin_session
from storefront.services.storage import StorageUploadError, get_storage_service

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/admin", tags=["Admin Session"])
router = APIRouter(prefix="/admin/api", tags=["Admin"], dependencies=[Depends(require_admin)])
ws_router = APIRouter(prefix="/admin/ws")

IMAGE_FOLDER = "menu_items"


def _require_confirm(confirm: bool, what: str) -> None:
    if not confirm:
        raise HTTPException(status_code=400, detail=f"Deleting {what} requires confirm=true")


async def _get_or_404(db: AsyncSession, model, identifier, label: str):
    try:
        row = await db.get(model, identifier)
    except SQLAlchemyError as e:
        logger.error(f"{label} {identifier} fetch failed: {e}")
        raise CatalogUnavailable() from e
    if row is None:
        raise HTTPException(status_code=404, detail=f"{label} {identifier!r} not found")
    return row


async def _list(db: AsyncSession, query) -> list:
    try:
        return list((await db.execute(query)).scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Admin list query failed: {e}")
        raise CatalogUnavailable() from e


# =============================================================================
# SESSION
# =============================================================================

@auth_router.post(
    "/login",
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse}},
)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    username = await authenticate(db, credentials.username, credentials.password)
    if username is None:
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)

    request.session[ADMIN_SESSION_KEY] = username
    request.session[ADMIN_TOKEN_SESSION_KEY] = uuid.uuid4().hex
    return SessionResponse(authenticated=True, username=username)


@auth_router.post("/logout", response_model=SessionResponse)
async def logout(request: Request) -> SessionResponse:
    request.session.pop(ADMIN_SESSION_KEY, None)
    token = request.session.pop(ADMIN_TOKEN_SESSION_KEY, None)
    if token:
        await revoke_admin_session(token)
    return SessionResponse(authenticated=False)


@auth_router.get("/session", response_model=SessionResponse)
async def session_state(request: Request) -> SessionResponse:
    username = request.session.get(ADMIN_SESSION_KEY)
    return SessionResponse(authenticated=bool(username), username=username)


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    status: Optional[str] = Query(None, description="Filter by status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Orders newest first."""
    status_filter = None
    if status:
        try:
            status_filter = OrderStatus.parse(status)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Options: {[s.value for s in OrderStatus]}",
            )

    total, rows = await orders.list_orders(db, status_filter, skip, limit)
    return OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(order) for order in rows],
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, db: AsyncSession = Depends(get_db)) -> OrderResponse:
    order = await orders.get_order(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")
    return OrderResponse.model_validate(order)


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await orders.get_order(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")

    try:
        order = await orders.update_order_status(db, order, payload.status)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=500, detail=str(getattr(e, "orig", None) or e))
    return OrderResponse.model_validate(order)


# =============================================================================
# MENU ITEMS
# =============================================================================

@router.get("/menu-items", response_model=list[MenuItemResponse])
async def list_menu_items(db: AsyncSession = Depends(get_db)):
    return await catalog.list_menu_items(db)


@router.post("/menu-items", response_model=MenuItemResponse, status_code=201)
async def create_menu_item(payload: MenuItemCreate, db: AsyncSession = Depends(get_db)):
    item = MenuItem(**payload.model_dump())
    db.add(item)
    await commit_or_raise(db, "Menu item create")
    await db.refresh(item)
    logger.info(f"Menu item #{item.id} '{item.name}' created")
    return item


@router.put("/menu-items/{item_id}", response_model=MenuItemResponse)
async def update_menu_item(
    item_id: int,
    payload: MenuItemUpdate,
    db: AsyncSession = Depends(get_db),
):
    item = await _get_or_404(db, MenuItem, item_id, "Menu item")
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(item, key, value)
    await commit_or_raise(db, f"Menu item #{item_id} update")
    await db.refresh(item)
    return item


@router.delete("/menu-items/{item_id}", response_model=MessageResponse)
async def delete_menu_item(
    item_id: int,
    confirm: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    _require_confirm(confirm, "a menu item")
    item = await _get_or_404(db, MenuItem, item_id, "Menu item")
    await db.delete(item)
    await commit_or_raise(db, f"Menu item #{item_id} delete")
    logger.info(f"Menu item #{item_id} deleted")
    return MessageResponse(message=f"Menu item #{item_id} deleted")


@router.post(
    "/uploads",
    response_model=UploadResponse,
    status_code=201,
    responses={502: {"model": ErrorResponse}},
)
async def upload_image(file: UploadFile = File(...)) -> UploadResponse:
    """
    Store a menu image and return its public URL.

    On failure the item form can still take an image URL typed by hand.
    """
    extension = PurePosixPath(file.filename or "").suffix.lstrip(".").lower() or "jpg"
    path = f"{IMAGE_FOLDER}/{int(time.time() * 1000)}.{extension}"
    content = await file.read()

    try:
        result = await get_storage_service().upload(path, content, file.content_type)
    except (StorageUploadError, ValueError) as e:
        logger.error(f"Image upload failed: {e}")
        raise HTTPException(status_code=502, detail=f"Image upload failed: {e}")

    return UploadResponse(
        success=True,
        path=result.path,
        public_url=result.public_url,
        size_bytes=result.size_bytes,
    )


# =============================================================================
# CATEGORIES
# =============================================================================

def slugify(name: str) -> str:
    """Category id: lowercased name, whitespace runs replaced by hyphens."""
    return re.sub(r"\s+", "-", name.strip().lower())


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await catalog.list_categories(db)


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category(payload: CategoryCreate, db: AsyncSession = Depends(get_db)):
    sort_order = payload.sort_order
    if sort_order is None:
        try:
            count = (await db.execute(select(func.count(Category.id)))).scalar() or 0
        except SQLAlchemyError as e:
            raise CatalogUnavailable() from e
        sort_order = count + 1

    category = Category(id=slugify(payload.name), name=payload.name.strip(), sort_order=sort_order)
    db.add(category)
    await commit_or_raise(db, "Category create")
    logger.info(f"Category '{category.id}' created")
    return category


@router.put("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
):
    category = await _get_or_404(db, Category, category_id, "Category")
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(category, key, value)
    await commit_or_raise(db, f"Category '{category_id}' update")
    return category


@router.delete("/categories/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: str,
    confirm: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    _require_confirm(confirm, "a category")
    category = await _get_or_404(db, Category, category_id, "Category")
    await db.delete(category)
    await commit_or_raise(db, f"Category '{category_id}' delete")
    return MessageResponse(message=f"Category '{category_id}' deleted")


# =============================================================================
# PAYMENT METHODS
# =============================================================================

@router.get("/payment-methods", response_model=list[PaymentMethodResponse])
async def list_payment_methods(db: AsyncSession = Depends(get_db)):
    return await _list(db, select(PaymentMethod).order_by(PaymentMethod.created_at, PaymentMethod.id))


@router.post("/payment-methods", response_model=PaymentMethodResponse, status_code=201)
async def create_payment_method(payload: PaymentMethodCreate, db: AsyncSession = Depends(get_db)):
    method = PaymentMethod(**payload.model_dump())
    db.add(method)
    await commit_or_raise(db, "Payment method create")
    return method


@router.patch("/payment-methods/{method_id}", response_model=PaymentMethodResponse)
async def update_payment_method(
    method_id: str,
    payload: PaymentMethodUpdate,
    db: AsyncSession = Depends(get_db),
):
    method = await _get_or_404(db, PaymentMethod, method_id, "Payment method")
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(method, key, value)
    await commit_or_raise(db, f"Payment method '{method_id}' update")
    return method


@router.post("/payment-methods/{method_id}/toggle", response_model=PaymentMethodResponse)
async def toggle_payment_method(method_id: str, db: AsyncSession = Depends(get_db)):
    method = await _get_or_404(db, PaymentMethod, method_id, "Payment method")
    method.is_active = not method.is_active
    await commit_or_raise(db, f"Payment method '{method_id}' toggle")
    logger.info(f"Payment method '{method_id}' {'enabled' if method.is_active else 'disabled'}")
    return method


# =============================================================================
# ORDER TYPES
# =============================================================================

@router.get("/order-types", response_model=list[OrderTypeResponse])
async def list_order_types(db: AsyncSession = Depends(get_db)):
    return await _list(db, select(OrderFulfillmentType).order_by(OrderFulfillmentType.id))


@router.post("/order-types", response_model=OrderTypeResponse, status_code=201)
async def create_order_type(payload: OrderTypeCreate, db: AsyncSession = Depends(get_db)):
    order_type = OrderFulfillmentType(**payload.model_dump())
    db.add(order_type)
    await commit_or_raise(db, "Order type create")
    return order_type


@router.patch("/order-types/{type_id}", response_model=OrderTypeResponse)
async def update_order_type(
    type_id: str,
    payload: OrderTypeUpdate,
    db: AsyncSession = Depends(get_db),
):
    order_type = await _get_or_404(db, OrderFulfillmentType, type_id, "Order type")
    order_type.name = payload.name
    await commit_or_raise(db, f"Order type '{type_id}' update")
    return order_type


@router.post("/order-types/{type_id}/toggle", response_model=OrderTypeResponse)
async def toggle_order_type(type_id: str, db: AsyncSession = Depends(get_db)):
    order_type = await _get_or_404(db, OrderFulfillmentType, type_id, "Order type")
    order_type.is_active = not order_type.is_active
    await commit_or_raise(db, f"Order type '{type_id}' toggle")
    return order_type


# =============================================================================
# STORE SETTINGS
# =============================================================================

@router.get("/store-settings", response_model=StoreSettingsResponse)
async def get_store_settings(db: AsyncSession = Depends(get_db)):
    return (await catalog.get_store_profile(db)).to_dict()


@router.put("/store-settings", response_model=StoreSettingsResponse)
async def update_store_settings(payload: StoreSettingsUpdate, db: AsyncSession = Depends(get_db)):
    row = await catalog.get_store_settings_row(db)
    if row is None:
        defaults = StoreProfile.defaults()
        row = StoreSettings(
            store_name=defaults.store_name,
            contact=defaults.contact,
            address=defaults.address,
            open_time=defaults.open_time,
            close_time=defaults.close_time,
            manual_status=defaults.manual_status,
        )
        db.add(row)

    for key, value in payload.model_dump(mode="json", exclude_unset=True).items():
        setattr(row, key, value)

    await commit_or_raise(db, "Store settings update")
    await db.refresh(row)
    logger.info(f"Store settings saved ({row.open_time}-{row.close_time}, {row.manual_status})")
    return StoreProfile.from_row(row).to_dict()


# =============================================================================
# LIVE ORDER FEED
# =============================================================================

async def _send_orders(websocket: WebSocket) -> None:
    async with async_session_maker() as db:
        total, rows = await orders.list_orders(db)
    payload = OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(order) for order in rows],
    )
    await websocket.send_text(payload.model_dump_json())


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # Client messages carry nothing; reading detects the close
    while True:
        await websocket.receive_text()


@ws_router.websocket("/orders")
async def order_feed_socket(websocket: WebSocket) -> None:
    """
    Push the full order list on connect and after every order change.

    Every change event triggers a complete re-fetch; no deltas are sent.
    Signing out of the admin session that opened the socket closes it.
    """
    token = websocket.session.get(ADMIN_TOKEN_SESSION_KEY)
    if not websocket.session.get(ADMIN_SESSION_KEY) or not token:
        await websocket.close(code=4401)
        return

    await websocket.accept()
    feed = get_order_feed()
    logger.info("Admin order feed connected")

    async def forward(events) -> None:
        async for event in events:
            if event.event_type == OrderEventType.SIGN_OUT:
                if event.session_token == token:
                    logger.info("Admin signed out; closing order feed")
                    await websocket.close(code=4401)
                    return
                continue
            logger.debug(f"Order feed event {event.event_type.value} #{event.order_id}")
            await _send_orders(websocket)

    try:
        async with feed.subscribe() as events:
            await _send_orders(websocket)
            tasks = [
                asyncio.create_task(forward(events)),
                asyncio.create_task(_wait_for_disconnect(websocket)),
            ]
            try:
                done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    task.result()
            finally:
                for task in tasks:
                    task.cancel()
    except WebSocketDisconnect:
        logger.info("Admin order feed disconnected")
