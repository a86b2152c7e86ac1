"""SQLAlchemy repositories against in-memory SQLite"""

from datetime import timedelta

import pytest

from storefront.domain.clock import utcnow
from storefront.domain.entities.order import Order
from storefront.domain.enums import DeliveryStatus, HistoryActor, PaymentMethodType
from storefront.domain.exceptions import ConcurrentModification
from storefront.domain.repositories.inventory_repository import StockAdjustment
from storefront.domain.value_objects.entity_ids import ProductId
from storefront.domain.value_objects.money import Money

from conftest import product_counters


async def place_order(unit_of_work, cart_id, user_id, address, method=PaymentMethodType.CASH,
                      session_id=None):
    async with unit_of_work:
        cart = await unit_of_work.carts.find_cart(cart_id)
        order = Order.place(
            user_id=user_id, cart=cart, shipping_address=address, payment_method=method,
            shipping_price=Money(500), tax_price=Money(0), actor=HistoryActor.CUSTOMER,
            gateway_session_id=session_id,
        )
        await unit_of_work.orders.add(order)
    return order


class TestCartRepository:

    async def test_snapshot_keeps_line_prices(self, unit_of_work, cart_id, user_id, products):
        async with unit_of_work:
            cart = await unit_of_work.carts.find_cart(cart_id)

        assert cart.belongs_to(user_id)
        assert cart.total_price == Money(2800)
        assert [line.quantity for line in cart.items] == [2, 1]
        assert cart.items[0].title == "Linen Shirt"

    async def test_delete_reports_missing_cart(self, unit_of_work, cart_id):
        async with unit_of_work:
            assert await unit_of_work.carts.delete_cart(cart_id) is True
        async with unit_of_work:
            assert await unit_of_work.carts.delete_cart(cart_id) is False
            assert await unit_of_work.carts.find_cart(cart_id) is None


class TestOrderRepository:

    async def test_round_trip(self, unit_of_work, cart_id, user_id, address):
        placed = await place_order(unit_of_work, cart_id, user_id, address)

        async with unit_of_work:
            loaded = await unit_of_work.orders.get_by_id(placed.id)

        assert loaded.total_order_price == Money(3300)
        assert loaded.shipping_address == address
        assert loaded.payment_method == PaymentMethodType.CASH
        assert [entry.status for entry in loaded.status_history] == ["pending"]
        assert loaded.status_history[0].actor == HistoryActor.CUSTOMER
        assert loaded.version == 0

    async def test_update_appends_history_and_bumps_version(self, unit_of_work, cart_id, user_id, address):
        placed = await place_order(unit_of_work, cart_id, user_id, address)

        async with unit_of_work:
            order = await unit_of_work.orders.get_by_id(placed.id)
            order.confirm()
            await unit_of_work.orders.update(order)

        async with unit_of_work:
            loaded = await unit_of_work.orders.get_by_id(placed.id)
        assert loaded.delivery_status == DeliveryStatus.CONFIRMED
        assert loaded.version == 1
        assert [entry.status for entry in loaded.status_history] == ["pending", "confirmed"]

    async def test_stale_copy_cannot_overwrite(self, unit_of_work, cart_id, user_id, address):
        placed = await place_order(unit_of_work, cart_id, user_id, address)

        async with unit_of_work:
            first = await unit_of_work.orders.get_by_id(placed.id)
            second = await unit_of_work.orders.get_by_id(placed.id)

        async with unit_of_work:
            first.confirm()
            await unit_of_work.orders.update(first)

        with pytest.raises(ConcurrentModification):
            async with unit_of_work:
                second.cancel("too slow", HistoryActor.CUSTOMER)
                await unit_of_work.orders.update(second)

        async with unit_of_work:
            loaded = await unit_of_work.orders.get_by_id(placed.id)
        assert loaded.delivery_status == DeliveryStatus.CONFIRMED
        assert [entry.status for entry in loaded.status_history] == ["pending", "confirmed"]

    async def test_duplicate_gateway_session_is_rejected(self, unit_of_work, make_cart, user_id, address):
        await place_order(unit_of_work, make_cart(user_id), user_id, address,
                          PaymentMethodType.CARD, session_id="cs_dup")

        with pytest.raises(ConcurrentModification):
            await place_order(unit_of_work, make_cart(user_id), user_id, address,
                              PaymentMethodType.CARD, session_id="cs_dup")

        async with unit_of_work:
            order = await unit_of_work.orders.get_by_gateway_session_id("cs_dup")
        assert order is not None

    async def test_amount_lookup_finds_latest_authorized_card_order(self, unit_of_work, make_cart,
                                                                     user_id, address):
        await place_order(unit_of_work, make_cart(user_id), user_id, address)
        card = await place_order(unit_of_work, make_cart(user_id), user_id, address,
                                 PaymentMethodType.CARD, session_id="cs_amount")

        async with unit_of_work:
            match = await unit_of_work.orders.find_latest_authorized_card_order(Money(3300))
            miss = await unit_of_work.orders.find_latest_authorized_card_order(Money(1))

        assert match.id == card.id
        assert miss is None

    async def test_listing_by_user(self, unit_of_work, make_cart, user_id, address):
        await place_order(unit_of_work, make_cart(user_id), user_id, address)
        await place_order(unit_of_work, make_cart(user_id), user_id, address)

        async with unit_of_work:
            mine = await unit_of_work.orders.get_by_user_id(user_id)
            everything = await unit_of_work.orders.get_all()

        assert len(mine) == 2
        assert len(everything) == 2


class TestInventory:

    async def test_marker_is_set_once(self, unit_of_work, cart_id, user_id, address):
        placed = await place_order(unit_of_work, cart_id, user_id, address)
        now = utcnow()

        async with unit_of_work:
            assert await unit_of_work.orders.mark_inventory_adjusted(placed.id, now) is True
        async with unit_of_work:
            assert await unit_of_work.orders.mark_inventory_adjusted(placed.id, now) is False

    async def test_pending_inventory_listing(self, unit_of_work, cart_id, user_id, address):
        placed = await place_order(unit_of_work, cart_id, user_id, address)
        later = utcnow() + timedelta(minutes=5)

        async with unit_of_work:
            pending = await unit_of_work.orders.list_orders_pending_inventory(later)
        assert [order.id for order in pending] == [placed.id]

        async with unit_of_work:
            await unit_of_work.orders.mark_inventory_adjusted(placed.id, utcnow())
        async with unit_of_work:
            assert await unit_of_work.orders.list_orders_pending_inventory(later) == []

    async def test_adjust_stock(self, unit_of_work, db_session, products):
        shirt, belt = products

        async with unit_of_work:
            await unit_of_work.inventory.adjust_stock([
                StockAdjustment(ProductId(shirt.id), delta_quantity=-2, delta_sold=2),
                StockAdjustment(ProductId.generate(), delta_quantity=-1, delta_sold=1),
            ])

        assert product_counters(db_session, shirt.id) == (8, 2)
        assert product_counters(db_session, belt.id) == (5, 2)
