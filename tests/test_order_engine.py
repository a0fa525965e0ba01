# tests/test_order_engine.py
from decimal import Decimal

import pytest
from sqlalchemy import delete, func, select, update

from storefront.models.cart import Cart, CartStatus
from storefront.models.item import Item
from storefront.models.order import Order, OrderStatus
from storefront.services.exceptions import EmptyCartError, NoActiveCartError


async def _count(database, model) -> int:
    async with database.read_transaction() as db:
        result = await db.execute(select(func.count()).select_from(model))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_place_order_consumes_active_cart(carts, orders, database, seeded_items, shopper):
    added = await carts.add_line(shopper, 2, qty_delta=2)

    summary = await orders.place_order(shopper)
    assert summary.cart_id == added.cart.id
    assert summary.status == OrderStatus.completed
    assert [(line.item_id, line.name, line.quantity) for line in summary.items] == [(2, "Smartphone", 2)]
    assert summary.total == Decimal("1399.98")

    async with database.read_transaction() as db:
        cart = await db.get(Cart, added.cart.id)
    assert cart.status == CartStatus.ordered
    assert not (await carts.get_cart_view(shopper)).exists


@pytest.mark.asyncio
async def test_second_order_needs_a_new_cart(carts, orders, seeded_items, shopper):
    await carts.add_line(shopper, 1)
    await orders.place_order(shopper)

    with pytest.raises(NoActiveCartError):
        await orders.place_order(shopper)

    # the next addition opens a fresh cart
    fresh = await carts.add_line(shopper, 1)
    assert fresh.created_cart is True


@pytest.mark.asyncio
async def test_empty_cart_is_not_ordered(carts, orders, database, shopper):
    cart = await carts.resolve_active_cart(shopper)

    with pytest.raises(EmptyCartError):
        await orders.place_order(shopper)

    assert await _count(database, Order) == 0
    async with database.read_transaction() as db:
        reloaded = await db.get(Cart, cart.id)
    assert reloaded.status == CartStatus.active


@pytest.mark.asyncio
async def test_order_history_keeps_prices_at_order_time(carts, orders, database, seeded_items, shopper):
    await carts.add_line(shopper, 5, qty_delta=3)
    placed = await orders.place_order(shopper)

    async with database.transaction() as db:
        await db.execute(update(Item).where(Item.id == 5).values(price=Decimal("1.00"), name="Mouse v2"))

    [listed] = await orders.list_orders(shopper.user_id)
    assert listed.order_id == placed.order_id
    assert [(line.name, line.price) for line in listed.items] == [("Mouse", Decimal("49.99"))]
    assert listed.total == Decimal("149.97")


@pytest.mark.asyncio
async def test_list_orders_newest_first_and_skips_missing_cart(carts, orders, database, seeded_items, shopper):
    await carts.add_line(shopper, 1)
    first = await orders.place_order(shopper)
    await carts.add_line(shopper, 2)
    second = await orders.place_order(shopper)

    listed = await orders.list_orders(shopper.user_id)
    assert [summary.order_id for summary in listed] == [second.order_id, first.order_id]

    async with database.transaction() as db:
        await db.execute(delete(Cart).where(Cart.id == first.cart_id))

    listed = await orders.list_orders(shopper.user_id)
    assert [summary.order_id for summary in listed] == [second.order_id]


@pytest.mark.asyncio
async def test_guest_cart_does_not_leak_into_user_orders(carts, orders, seeded_items, shopper, guest):
    await carts.add_line(guest, 1)
    with pytest.raises(NoActiveCartError):
        await orders.place_order(shopper)
    assert await orders.list_orders(shopper.user_id) == []
