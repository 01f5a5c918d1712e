"""
FastAPI Application Entry Point

FoodHub order core: order placement, status workflow, order listings and
payment records. The caller is identified by the ``X-User-Id`` header set by
the authentication gateway in front of this service.

Endpoints:
    - POST  /api/orders: Place an order
    - PATCH /api/orders/{order_id}/status: Update order status
    - GET   /api/orders/mine: Customer order history
    - GET   /api/orders: All orders (admin)
    - GET   /api/orders/by-number/{display_number}: Look up an order
    - GET   /api/restaurants/{restaurant_id}/orders: Restaurant orders
    - GET   /api/restaurants/{restaurant_id}/payments: Payment records
    - PATCH /api/payments/{transaction_id}/status: Update a payment record
    - GET   /health: System health check

Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Optional, Tuple

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodhub.core.config import get_settings, setup_logging
from foodhub.core.exceptions import OrderingError, ValidationError
from foodhub.database import engine, get_session_factory, init_db
from foodhub.dependencies import (
    get_current_user,
    get_order_writer,
    get_payment_records,
    get_query_service,
    get_status_machine,
)
from foodhub.models import Order, PaymentStatus, User
from foodhub.schemas import (
    ErrorResponse,
    HealthResponse,
    ListParams,
    OrderCreate,
    OrderCreateResponse,
    OrderFilters,
    OrderListResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderStatusUpdate,
    OrderSummary,
    Pagination,
    PaymentStatusResponse,
    PaymentStatusUpdate,
    PaymentTransactionListResponse,
    PaymentTransactionResponse,
    SortOrder,
)
from foodhub.services.notifications import get_notification_service
from foodhub.services.orders import (
    OrderPage,
    OrderQueryService,
    OrderStatusMachine,
    OrderWriter,
    PaymentRecordService,
)

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    notification_service = get_notification_service()
    logger.info(f"Notification Service: {notification_service.provider_name}")
    logger.info(
        f"Order numbers: {settings.order_number_prefix}{settings.order_number_min}"
        f"-{settings.order_number_max}, price policy: {settings.price_policy.value}, "
        f"strict transitions: {settings.strict_status_transitions}"
    )

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Order core of the FoodHub food-ordering platform: collision-free order "
        "numbers, status workflow with final cancellation, and restaurant notifications."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_list_arguments(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    sort_field: str = Query("created_at"),
    sort_order: SortOrder = Query(SortOrder.DESC),
    order_number: Optional[str] = Query(None, max_length=20),
    status: Optional[str] = Query(None, description="Order status or ALL"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    restaurant_name: Optional[str] = Query(None, max_length=100),
) -> Tuple[ListParams, OrderFilters]:
    """Listing query string -> (paging and sorting, filters)."""
    try:
        params = ListParams(
            page=page,
            page_size=page_size,
            sort_field=sort_field,
            sort_order=sort_order,
        )
        filters = OrderFilters(
            order_number=order_number,
            status=status.upper() if status else None,
            start_date=start_date,
            end_date=end_date,
            restaurant_name=restaurant_name,
        )
    except PydanticValidationError as e:
        raise ValidationError(e.errors()[0]["msg"]) from e
    return params, filters


def to_summary(order: Order) -> OrderSummary:
    customer_user = order.customer.user if order.customer else None
    payment = order.payment_transaction
    return OrderSummary(
        id=order.id,
        display_order_number=order.display_order_number,
        status=order.status,
        total_amount=order.total_amount,
        delivery_address=order.delivery_address,
        restaurant_id=order.restaurant_id,
        restaurant_name=order.restaurant.name if order.restaurant else "",
        customer_name=customer_user.name if customer_user else None,
        item_count=sum(item.quantity for item in order.items),
        payment_status=payment.status if payment else None,
        created_at=order.created_at,
    )


def to_list_response(page: OrderPage) -> OrderListResponse:
    return OrderListResponse(
        orders=[to_summary(order) for order in page.orders],
        pagination=Pagination(
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            total_pages=page.total_pages,
        ),
    )


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        async with session_factory() as session:
            await session.execute(select(func.count()).select_from(Order))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    notification_service = get_notification_service()
    notification_status = "healthy" if await notification_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        notification_service=notification_status,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=201,
    tags=["Orders"],
    summary="Place Order",
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def place_order(
    order_data: OrderCreate,
    caller: Optional[User] = Depends(get_current_user),
    writer: OrderWriter = Depends(get_order_writer),
) -> OrderCreateResponse:
    """
    Place a new order for the calling customer.

    The restaurant is notified after the order is saved; a notification
    failure does not fail the request.
    """
    confirmation = await writer.place_order(
        caller,
        restaurant_id=order_data.restaurant_id,
        delivery=order_data.delivery,
        items=order_data.items,
        declared_total=order_data.total,
        payment=order_data.payment,
    )
    return OrderCreateResponse(
        order_id=confirmation.order_id,
        display_order_number=confirmation.display_order_number,
        created_at=confirmation.created_at,
    )


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderStatusResponse,
    tags=["Orders"],
    summary="Update Order Status",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    caller: Optional[User] = Depends(get_current_user),
    machine: OrderStatusMachine = Depends(get_status_machine),
) -> OrderStatusResponse:
    order = await machine.update_status(
        order_id,
        caller,
        update.status,
        cancellation_reason=update.cancellation_reason,
    )
    return OrderStatusResponse(order=OrderResponse.from_order(order))


@app.get(
    "/api/orders/mine",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="My Orders",
)
async def list_my_orders(
    arguments: Tuple[ListParams, OrderFilters] = Depends(get_list_arguments),
    caller: Optional[User] = Depends(get_current_user),
    queries: OrderQueryService = Depends(get_query_service),
) -> OrderListResponse:
    params, filters = arguments
    return to_list_response(await queries.list_customer_orders(caller, params, filters))


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List All Orders",
)
async def list_all_orders(
    arguments: Tuple[ListParams, OrderFilters] = Depends(get_list_arguments),
    caller: Optional[User] = Depends(get_current_user),
    queries: OrderQueryService = Depends(get_query_service),
) -> OrderListResponse:
    params, filters = arguments
    return to_list_response(await queries.list_all_orders(caller, params, filters))


@app.get(
    "/api/orders/by-number/{display_number}",
    response_model=OrderResponse,
    tags=["Orders"],
    summary="Look Up Order by Number",
)
async def get_order_by_number(
    display_number: str,
    caller: Optional[User] = Depends(get_current_user),
    queries: OrderQueryService = Depends(get_query_service),
) -> OrderResponse:
    order = await queries.get_order_by_display_number(caller, display_number)
    return OrderResponse.from_order(order)


@app.get(
    "/api/restaurants/{restaurant_id}/orders",
    response_model=OrderListResponse,
    tags=["Restaurants"],
    summary="Restaurant Orders",
)
async def list_restaurant_orders(
    restaurant_id: str,
    arguments: Tuple[ListParams, OrderFilters] = Depends(get_list_arguments),
    caller: Optional[User] = Depends(get_current_user),
    queries: OrderQueryService = Depends(get_query_service),
) -> OrderListResponse:
    params, filters = arguments
    return to_list_response(
        await queries.list_restaurant_orders(caller, restaurant_id, params, filters)
    )


# =============================================================================
# PAYMENT RECORD ENDPOINTS
# =============================================================================

@app.get(
    "/api/restaurants/{restaurant_id}/payments",
    response_model=PaymentTransactionListResponse,
    tags=["Payments"],
    summary="Restaurant Payment Records",
)
async def list_restaurant_payments(
    restaurant_id: str,
    status: Optional[PaymentStatus] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    cursor: Optional[str] = Query(None),
    caller: Optional[User] = Depends(get_current_user),
    payments: PaymentRecordService = Depends(get_payment_records),
) -> PaymentTransactionListResponse:
    page = await payments.list_restaurant_transactions(
        caller, restaurant_id, status=status, limit=limit, cursor=cursor
    )
    return PaymentTransactionListResponse(
        transactions=[PaymentTransactionResponse.model_validate(t) for t in page.transactions],
        next_cursor=page.next_cursor,
    )


@app.patch(
    "/api/payments/{transaction_id}/status",
    response_model=PaymentStatusResponse,
    tags=["Payments"],
    summary="Update Payment Record",
)
async def update_payment_status(
    transaction_id: str,
    update: PaymentStatusUpdate,
    caller: Optional[User] = Depends(get_current_user),
    payments: PaymentRecordService = Depends(get_payment_records),
) -> PaymentStatusResponse:
    record = await payments.update_transaction_status(
        caller, transaction_id, update.status, notes=update.notes
    )
    return PaymentStatusResponse(
        message=f"Payment marked {record.status.value}",
        transaction=PaymentTransactionResponse.model_validate(record),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    """Render the error taxonomy with its stable code."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(p) for p in error['loc'] if p != 'body')}: {error['msg']}"
        for error in errors
    ) or "Invalid request"
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=ValidationError(detail).to_dict(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "INTERNAL",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("foodhub.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)
