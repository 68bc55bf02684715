"""Tests for order placement and the fulfillment state machine."""

import re
import threading
from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from app.data.models.cart_item import CartItemModel
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel
from app.data.models.product import ProductModel
from app.domain.errors import ConflictError, EmptyCartError, NotFoundError, ValidationError
from app.services.cart_service import CartService
from app.services.order_service import OrderService, generate_order_number

SHIPPING = {
    "customer_name": "Alice",
    "customer_phone": "0123456789",
    "delivery_address": "1 Main St",
    "delivery_area": "inside",
}


@pytest.fixture
def cart(db, lock_service, catalog):
    return CartService(db, lock_service)


@pytest.fixture
def orders(db, lock_service, catalog):
    return OrderService(db, lock_service)


@pytest.fixture
def scenario_cart(cart):
    """2x Product A ($10) and 1x Product B with a $30 variant."""
    cart.add_line(1, {"product_id": 1, "quantity": 2})
    cart.add_line(1, {"product_id": 2, "quantity": 1,
                      "selected_variant": {"id": 1, "name": "Zip", "price": 30, "image": "/img/b-zip.jpg"}})
    return cart


def count(session_factory, model, **filters):
    session = session_factory()
    try:
        return session.query(model).filter_by(**filters).count()
    finally:
        session.close()


class TestPlaceOrder:
    def test_scenario_totals(self, scenario_cart, orders, session_factory):
        result = orders.place_order(1, SHIPPING)

        assert result["status"] == "pending"
        assert result["total"] == Decimal("130.00")

        order = orders.get_order(result["id"])
        assert order.subtotal == Decimal("50.00")
        assert order.delivery_charge == Decimal("80.00")
        assert order.total == order.subtotal + order.delivery_charge
        assert order.payment_status == "pending"
        assert count(session_factory, CartItemModel, user_id=1) == 0

    def test_items_are_snapshots(self, scenario_cart, orders, session_factory):
        result = orders.place_order(1, SHIPPING)

        session = session_factory()
        session.execute(update(ProductModel).where(ProductModel.id == 1).values(price=Decimal("99.00"), title="Renamed"))
        session.commit()
        session.close()

        order = orders.get_order(result["id"])
        first, second = order.items
        assert (first.title, first.price, first.quantity, first.image) == ("Product A", Decimal("10.00"), 2, "/img/a.jpg")
        assert (second.title, second.price, second.image) == ("Product B", Decimal("30.00"), "/img/b-zip.jpg")
        assert second.selected_variant["name"] == "Zip"

    def test_outside_delivery_charge(self, scenario_cart, orders):
        result = orders.place_order(1, {**SHIPPING, "delivery_area": "Outside"})
        order = orders.get_order(result["id"])
        assert order.delivery_area == "outside"
        assert order.delivery_charge == Decimal("150.00")
        assert result["total"] == Decimal("200.00")

    def test_stock_not_touched_on_placement(self, scenario_cart, orders, stock_of):
        orders.place_order(1, SHIPPING)
        assert stock_of(1) == 5
        assert stock_of(2) == 10

    def test_empty_cart(self, orders, session_factory):
        with pytest.raises(EmptyCartError):
            orders.place_order(1, SHIPPING)
        assert count(session_factory, OrderModel) == 0

    @pytest.mark.parametrize("field", ["customer_name", "customer_phone", "delivery_address", "delivery_area"])
    def test_missing_required_field(self, scenario_cart, orders, session_factory, field):
        with pytest.raises(ValidationError) as exc:
            orders.place_order(1, {**SHIPPING, field: "  "})
        assert field in exc.value.details
        assert count(session_factory, CartItemModel, user_id=1) == 2

    def test_unknown_delivery_area(self, scenario_cart, orders):
        with pytest.raises(ValidationError):
            orders.place_order(1, {**SHIPPING, "delivery_area": "moon"})

    def test_unknown_product_degrades(self, cart, orders):
        cart.add_line(1, {"product_id": 404, "quantity": 3})
        cart.add_line(1, {"product_id": 1})
        result = orders.place_order(1, SHIPPING)

        order = orders.get_order(result["id"])
        unknown = next(i for i in order.items if i.product_id == 404)
        assert unknown.title == "Unknown Product"
        assert unknown.price == Decimal("0.00")
        assert order.subtotal == Decimal("10.00")

    def test_failure_leaves_nothing_behind(self, scenario_cart, orders, session_factory, monkeypatch):
        def boom(user_id):
            raise RuntimeError("storage failure")

        monkeypatch.setattr(orders.cart_repo, "delete_all", boom)
        with pytest.raises(RuntimeError):
            orders.place_order(1, SHIPPING)

        assert count(session_factory, OrderModel) == 0
        assert count(session_factory, OrderItemModel) == 0
        assert count(session_factory, CartItemModel, user_id=1) == 2

    def test_order_numbers_are_unique(self):
        numbers = {generate_order_number() for _ in range(200)}
        assert len(numbers) == 200
        assert all(re.fullmatch(r"KNX-[0-9A-Z]+-[0-9A-Z]{4}", n) for n in numbers)

    def test_only_own_orders_visible(self, scenario_cart, orders):
        result = orders.place_order(1, SHIPPING)
        assert orders.get_user_order(result["id"], 1).id == result["id"]
        with pytest.raises(NotFoundError):
            orders.get_user_order(result["id"], 2)
        assert orders.list_user_orders(2) == []


class TestSetStatus:
    @pytest.fixture
    def order_id(self, scenario_cart, orders):
        return orders.place_order(1, SHIPPING)["id"]

    def test_delivery_decrements_stock_and_marks_paid(self, orders, order_id, stock_of):
        order = orders.set_status(order_id, "delivered")
        assert order.status == "delivered"
        assert order.payment_status == "paid"
        assert stock_of(1) == 3
        assert stock_of(2) == 9

    def test_double_delivery_decrements_once(self, orders, order_id, stock_of):
        orders.set_status(order_id, "processing")
        orders.set_status(order_id, "delivered")
        orders.set_status(order_id, "delivered")
        assert stock_of(1) == 3
        assert stock_of(2) == 9

    def test_round_trip_restores_stock(self, orders, order_id, stock_of):
        orders.set_status(order_id, "delivered")
        orders.set_status(order_id, "cancelled")
        assert stock_of(1) == 5
        assert stock_of(2) == 10

    def test_non_delivery_transitions_leave_stock(self, orders, order_id, stock_of):
        orders.set_status(order_id, "processing")
        orders.set_status(order_id, "cancelled")
        assert stock_of(1) == 5

    def test_stock_may_go_negative(self, cart, orders, stock_of):
        cart.add_line(1, {"product_id": 1, "quantity": 7})
        order_id = orders.place_order(1, SHIPPING)["id"]
        orders.set_status(order_id, "delivered")
        assert stock_of(1) == -2

    def test_explicit_payment_status_wins(self, orders, order_id):
        order = orders.set_status(order_id, "delivered", payment_status="pending")
        assert order.payment_status == "pending"

    def test_notes_only_update(self, orders, order_id):
        order = orders.set_status(order_id, notes="call before delivery")
        assert order.status == "pending"
        assert order.notes == "call before delivery"

    def test_invalid_transition(self, orders, order_id, stock_of):
        orders.set_status(order_id, "cancelled")
        with pytest.raises(ValidationError):
            orders.set_status(order_id, "delivered")
        assert stock_of(1) == 5

    def test_unknown_status(self, orders, order_id):
        with pytest.raises(ValidationError):
            orders.set_status(order_id, "shipped")

    def test_unknown_order(self, orders):
        with pytest.raises(NotFoundError):
            orders.set_status(12345, "delivered")

    def test_expected_status_mismatch(self, orders, order_id, stock_of):
        orders.set_status(order_id, "processing")
        with pytest.raises(ConflictError):
            orders.set_status(order_id, "delivered", expected_status="pending")
        assert stock_of(1) == 5

    def test_stale_version_is_conflict(self, orders, order_id, session_factory, stock_of, monkeypatch):
        original = orders.repo.get_order_for_update

        def read_then_race(oid):
            order = original(oid)
            # another admin request commits between our read and our write
            other = session_factory()
            other.execute(
                update(OrderModel)
                .where(OrderModel.id == oid)
                .values(status="delivered", version=OrderModel.version + 1)
            )
            other.commit()
            other.close()
            return order

        monkeypatch.setattr(orders.repo, "get_order_for_update", read_then_race)

        with pytest.raises(ConflictError):
            orders.set_status(order_id, "delivered")
        assert stock_of(1) == 5


class TestConcurrentDelivery:
    def test_parallel_delivery_decrements_once(self, scenario_cart, orders, session_factory, lock_service, stock_of):
        order_id = orders.place_order(1, SHIPPING)["id"]
        workers = 4
        barrier = threading.Barrier(workers)
        succeeded = []
        lost = []

        def worker():
            session = session_factory()
            try:
                svc = OrderService(session, lock_service)
                barrier.wait()
                svc.set_status(order_id, "delivered")
                succeeded.append(True)
            # sqlite: przegrany wyscig o blokade pliku konczy sie "database is locked"
            except (ConflictError, OperationalError) as e:
                lost.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert succeeded
        assert len(succeeded) + len(lost) == workers
        assert stock_of(1) == 3
        assert stock_of(2) == 9

        session = session_factory()
        try:
            order = session.get(OrderModel, order_id)
            assert order.status == "delivered"
            # delivered -> delivered tez przechodzi, ale bez zmian magazynu
            assert order.version == 1 + len(succeeded)
        finally:
            session.close()


class TestAdminQueries:
    def test_list_filter_and_pagination(self, cart, orders):
        ids = []
        for _ in range(3):
            cart.add_line(1, {"product_id": 1})
            ids.append(orders.place_order(1, SHIPPING)["id"])
        orders.set_status(ids[0], "delivered")

        page = orders.list_orders(page=1, limit=2)
        assert page["total"] == 3
        assert page["total_pages"] == 2
        assert len(page["orders"]) == 2

        delivered = orders.list_orders(status="Delivered")
        assert [o.id for o in delivered["orders"]] == [ids[0]]

        assert orders.list_orders(status="All")["total"] == 3

    def test_invalid_pagination(self, orders):
        with pytest.raises(ValidationError):
            orders.list_orders(page=0)

    def test_stats(self, cart, orders):
        cart.add_line(1, {"product_id": 1})
        first = orders.place_order(1, SHIPPING)["id"]
        cart.add_line(1, {"product_id": 1})
        second = orders.place_order(1, SHIPPING)["id"]
        orders.set_status(second, "cancelled")

        stats = orders.stats()
        assert stats["total_orders"] == 2
        assert stats["pending_orders"] == 1
        assert stats["cancelled_orders"] == 1
        assert stats["total_revenue"] == Decimal("90.00")
        assert first

    def test_delete_cascades_items(self, scenario_cart, orders, session_factory):
        order_id = orders.place_order(1, SHIPPING)["id"]
        orders.delete_order(order_id)
        assert count(session_factory, OrderModel) == 0
        assert count(session_factory, OrderItemModel) == 0
        with pytest.raises(NotFoundError):
            orders.delete_order(order_id)
