"""Order listings: caller scoping, filters, sorting and pagination."""

from datetime import date, datetime, timezone

import pytest

from foodhub.core.exceptions import Forbidden, NotFound, Unauthorized, ValidationError
from foodhub.models import OrderStatus
from foodhub.schemas import ListParams, OrderFilters, SortOrder


def numbers(page):
    return [o.display_order_number for o in page.orders]


@pytest.fixture
async def orders(make_order):
    """Five orders across two restaurants and two customers."""
    return [
        await make_order("#1101", created_at=datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc), total="12.00"),
        await make_order("#1102", created_at=datetime(2024, 6, 2, 23, 30, tzinfo=timezone.utc),
                         status=OrderStatus.DELIVERED, total="30.00"),
        await make_order("#2201", created_at=datetime(2024, 6, 3, 8, 0, tzinfo=timezone.utc),
                         status=OrderStatus.CANCELLED, cancellation_reason="closed"),
        await make_order("#3301", restaurant_id="r2", customer_id="c2",
                         created_at=datetime(2024, 6, 4, 10, 0, tzinfo=timezone.utc), total="8.00"),
        await make_order("#3302", restaurant_id="r2", customer_id="c1",
                         created_at=datetime(2024, 6, 5, 10, 0, tzinfo=timezone.utc), total="4.00"),
    ]


class TestScoping:

    async def test_customer_sees_own_orders(self, queries, orders, customer, other_customer):
        page = await queries.list_customer_orders(customer)
        assert numbers(page) == ["#3302", "#2201", "#1102", "#1101"]

        page = await queries.list_customer_orders(other_customer)
        assert numbers(page) == ["#3301"]

    async def test_staff_sees_own_restaurant(self, queries, orders, staff):
        page = await queries.list_restaurant_orders(staff, "r1")
        assert set(numbers(page)) == {"#1101", "#1102", "#2201"}

    async def test_staff_of_other_restaurant_forbidden(self, queries, orders, other_staff, customer):
        with pytest.raises(Forbidden):
            await queries.list_restaurant_orders(other_staff, "r1")
        with pytest.raises(Forbidden):
            await queries.list_restaurant_orders(customer, "r1")

    async def test_admin_sees_everything(self, queries, orders, admin):
        page = await queries.list_all_orders(admin)
        assert page.total == 5

        page = await queries.list_restaurant_orders(admin, "r2")
        assert set(numbers(page)) == {"#3301", "#3302"}

    async def test_admin_listing_needs_admin(self, queries, staff, customer):
        with pytest.raises(Forbidden):
            await queries.list_all_orders(staff)
        with pytest.raises(Forbidden):
            await queries.list_customer_orders(staff)
        with pytest.raises(Unauthorized):
            await queries.list_all_orders(None)


class TestFilters:

    async def test_order_number_contains(self, queries, orders, admin):
        page = await queries.list_all_orders(admin, filters=OrderFilters(order_number="33"))
        assert set(numbers(page)) == {"#3301", "#3302"}

    async def test_order_number_wildcards_are_literal(self, queries, orders, admin):
        page = await queries.list_all_orders(admin, filters=OrderFilters(order_number="%"))
        assert page.total == 0

    async def test_status(self, queries, orders, admin):
        page = await queries.list_all_orders(admin, filters=OrderFilters(status=OrderStatus.CANCELLED))
        assert numbers(page) == ["#2201"]

        page = await queries.list_all_orders(admin, filters=OrderFilters(status="ALL"))
        assert page.total == 5

    async def test_date_range_includes_whole_end_day(self, queries, orders, staff):
        filters = OrderFilters(start_date=date(2024, 6, 2), end_date=date(2024, 6, 2))
        page = await queries.list_restaurant_orders(staff, "r1", filters=filters)
        assert numbers(page) == ["#1102"]

    async def test_restaurant_name(self, queries, orders, admin):
        page = await queries.list_all_orders(admin, filters=OrderFilters(restaurant_name="grill"))
        assert set(numbers(page)) == {"#3301", "#3302"}
        assert page.total == 2

    def test_inverted_date_range_rejected(self):
        with pytest.raises(ValueError):
            OrderFilters(start_date=date(2024, 6, 3), end_date=date(2024, 6, 1))


class TestSortingAndPaging:

    async def test_sort_by_total_ascending(self, queries, orders, admin):
        params = ListParams(sort_field="total_amount", sort_order=SortOrder.ASC)
        page = await queries.list_all_orders(admin, params)
        assert numbers(page)[:2] == ["#3302", "#3301"]

    async def test_unknown_sort_field(self, queries, admin):
        with pytest.raises(ValidationError):
            await queries.list_all_orders(admin, ListParams(sort_field="password"))

    async def test_page_size_cap(self, queries, admin):
        with pytest.raises(ValidationError):
            await queries.list_all_orders(admin, ListParams(page_size=500))

    async def test_pagination(self, queries, orders, admin):
        first = await queries.list_all_orders(admin, ListParams(page=1, page_size=2))
        last = await queries.list_all_orders(admin, ListParams(page=3, page_size=2))

        assert (first.total, first.page_size, first.total_pages) == (5, 2, 3)
        assert numbers(first) == ["#3302", "#3301"]
        assert numbers(last) == ["#1101"]

    async def test_empty_listing(self, queries, admin):
        page = await queries.list_all_orders(admin)
        assert page.total == 0
        assert page.total_pages == 0


class TestLookup:

    async def test_owner_staff_and_admin_can_look_up(self, queries, orders, customer, staff, admin):
        for caller in (customer, staff, admin):
            order = await queries.get_order_by_display_number(caller, "#1101")
            assert order.id == orders[0].id

    async def test_others_forbidden(self, queries, orders, other_customer, other_staff):
        with pytest.raises(Forbidden):
            await queries.get_order_by_display_number(other_customer, "#1101")
        with pytest.raises(Forbidden):
            await queries.get_order_by_display_number(other_staff, "#1101")

    async def test_unknown_number(self, queries, admin):
        with pytest.raises(NotFound):
            await queries.get_order_by_display_number(admin, "#0000")
