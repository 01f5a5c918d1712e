"""Shared fixtures: a seeded SQLite database and the order-core services."""

import os

# Settings are read once per process; point them at throwaway resources
# before anything from foodhub is imported.
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from foodhub.core.config import get_settings
from foodhub.database import Base, build_engine, build_session_factory, get_session_factory
from foodhub.models import (
    Customer,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Restaurant,
    RestaurantManager,
    User,
    UserRole,
)
from foodhub.schemas import CartItem, DeliveryInfo, PaymentInfo
from foodhub.services.notifications import NotificationDispatcher, build_channels
from foodhub.services.notifications.mock import MockNotificationService
from foodhub.services.orders import (
    OrderNumberAllocator,
    OrderQueryService,
    OrderStatusMachine,
    OrderWriter,
    PaymentRecordService,
)

RESTAURANT_EMAIL = "kitchen@chezmama.test"
RESTAURANT_PHONE = "+243810000001"
CUSTOMER_EMAIL = "amani@example.test"


def seed(session) -> None:
    session.add_all([
        User(id="u-admin", name="Platform Admin", email="admin@foodhub.test", role=UserRole.ADMIN),
        User(id="u-staff1", name="Mama Staff", email="staff@chezmama.test", role=UserRole.RESTAURANT),
        User(id="u-staff2", name="Grill Staff", email="staff@grill.test", role=UserRole.RESTAURANT),
        User(id="u-cust", name="Amani", email=CUSTOMER_EMAIL, role=UserRole.CUSTOMER),
        User(id="u-cust2", name="Bola", email=None, role=UserRole.CUSTOMER),
        Restaurant(
            id="r1",
            name="Chez Mama",
            email=RESTAURANT_EMAIL,
            phone_number=RESTAURANT_PHONE,
            preparation_time="30-45 min",
        ),
        Restaurant(id="r2", name="Grill House"),
        Restaurant(id="r3", name="Closed Kitchen", email="closed@kitchen.test", is_active=False),
    ])
    session.add_all([
        Customer(id="c1", user_id="u-cust", phone_number="+243820000002", address="12 Avenue Kasa-Vubu"),
        Customer(id="c2", user_id="u-cust2"),
        RestaurantManager(user_id="u-staff1", restaurant_id="r1"),
        RestaurantManager(user_id="u-staff2", restaurant_id="r2"),
        MenuItem(id="m1", restaurant_id="r1", name="Chicken Moambe", price=Decimal("5.00")),
        MenuItem(id="m2", restaurant_id="r1", name="Pondu", price=Decimal("3.50")),
        MenuItem(id="m3", restaurant_id="r2", name="Brochette", price=Decimal("4.00")),
        MenuItem(id="m4", restaurant_id="r3", name="Fufu", price=Decimal("2.00")),
    ])


@pytest.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'foodhub.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = build_session_factory(engine)
    async with factory() as session:
        async with session.begin():
            seed(session)

    yield factory
    await engine.dispose()


@pytest.fixture
def load_user(session_factory):
    async def load(user_id):
        async with session_factory() as session:
            return await session.get(User, user_id)
    return load


@pytest.fixture
async def admin(load_user):
    return await load_user("u-admin")


@pytest.fixture
async def staff(load_user):
    """Staff of r1."""
    return await load_user("u-staff1")


@pytest.fixture
async def other_staff(load_user):
    """Staff of r2."""
    return await load_user("u-staff2")


@pytest.fixture
async def customer(load_user):
    return await load_user("u-cust")


@pytest.fixture
async def other_customer(load_user):
    return await load_user("u-cust2")


@pytest.fixture
def transport():
    return MockNotificationService()


@pytest.fixture
def dispatcher(transport):
    return NotificationDispatcher(build_channels(transport, get_settings()))


@pytest.fixture
def writer(session_factory, dispatcher):
    return OrderWriter(session_factory, OrderNumberAllocator(), dispatcher=dispatcher)


@pytest.fixture
def machine(session_factory):
    return OrderStatusMachine(session_factory)


@pytest.fixture
def queries(session_factory):
    return OrderQueryService(session_factory, default_page_size=10, max_page_size=100)


@pytest.fixture
def payments(session_factory):
    return PaymentRecordService(session_factory)


@pytest.fixture
def cart():
    """Scenario cart: 2 x m1 at 5.00 and 1 x m2 at 3.50."""
    return [
        CartItem(id="m1", name="Chicken Moambe", quantity=2, price=Decimal("5.00")),
        CartItem(id="m2", name="Pondu", quantity=1, price=Decimal("3.50")),
    ]


@pytest.fixture
def delivery():
    return DeliveryInfo(delivery_address="12 Avenue Kasa-Vubu", notes="Ring twice")


@pytest.fixture
def mobile_money():
    return PaymentInfo(
        payment_method="mobile_money",
        mobile_number="0812345678",
        transaction_id="MP240617",
        provider_name="M-Pesa",
    )


@pytest.fixture
def place(writer, customer, cart, delivery):
    """Place the scenario order for ``customer`` at r1."""
    async def place_order(caller=customer, items=cart, payment=None, restaurant_id="r1"):
        return await writer.place_order(
            caller,
            restaurant_id=restaurant_id,
            delivery=delivery,
            items=items,
            declared_total=Decimal("13.50"),
            payment=payment,
        )
    return place_order


@pytest.fixture
def make_order(session_factory):
    """Insert an order row directly, bypassing the writer."""
    async def make(
        display,
        restaurant_id="r1",
        customer_id="c1",
        status=OrderStatus.PLACED,
        total="10.00",
        created_at=None,
        cancellation_reason=None,
    ):
        created_at = created_at or datetime.now(timezone.utc)
        order = Order(
            display_order_number=display,
            order_number=int(display.lstrip("#")),
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            status=status,
            total_amount=Decimal(total),
            delivery_address="1 Test Street",
            cancellation_reason=cancellation_reason,
            created_at=created_at,
            updated_at=created_at,
        )
        menu_item_id = "m1" if restaurant_id == "r1" else "m3"
        async with session_factory() as session:
            async with session.begin():
                session.add(order)
                await session.flush()
                session.add(OrderItem(order_id=order.id, menu_item_id=menu_item_id, quantity=1, price=Decimal(total)))
        return order
    return make


@pytest.fixture
def count_rows(session_factory):
    async def count(model):
        async with session_factory() as session:
            return (await session.execute(select(func.count()).select_from(model))).scalar_one()
    return count


@pytest.fixture
async def client(session_factory, dispatcher):
    from foodhub.dependencies import get_dispatcher
    from foodhub.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()
