# tests/test_cart_store.py
import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from storefront.models.cart import Cart, CartLine, CartStatus
from storefront.models.item import ItemStatus
from storefront.services import cart_service
from storefront.services.exceptions import (
    DomainValidationError,
    ItemNotFoundError,
    ItemUnavailableError,
)


async def _count(database, model) -> int:
    async with database.read_transaction() as db:
        result = await db.execute(select(func.count()).select_from(model))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_add_line_creates_cart_and_accumulates_quantity(carts, seeded_items, guest):
    first = await carts.add_line(guest, 1)
    assert first.created_cart is True
    assert first.line.quantity == 1
    assert first.cart.session_id == guest.session_id
    assert first.cart.user_id is None

    second = await carts.add_line(guest, 1, qty_delta=3)
    assert second.created_cart is False
    assert second.cart.id == first.cart.id
    assert second.line.quantity == 4
    assert [line.item_id for line in second.cart.lines] == [1]


@pytest.mark.asyncio
async def test_add_line_rejects_non_positive_quantity(carts, seeded_items, guest):
    with pytest.raises(DomainValidationError):
        await carts.add_line(guest, 1, qty_delta=0)


@pytest.mark.asyncio
async def test_missing_item_rolls_back_lazily_created_cart(carts, database, seeded_items, guest):
    with pytest.raises(ItemNotFoundError):
        await carts.add_line(guest, 999)

    assert await _count(database, Cart) == 0
    assert await _count(database, CartLine) == 0


@pytest.mark.asyncio
async def test_unavailable_item_is_rejected(carts, catalog, database, guest):
    item = await catalog.create_item("Discontinued", Decimal("5.00"), ItemStatus.unavailable)

    with pytest.raises(ItemUnavailableError):
        await carts.add_line(guest, item.id)
    assert await _count(database, Cart) == 0


@pytest.mark.asyncio
async def test_store_rejects_second_active_cart_for_owner(database, guest):
    async with database.transaction() as db:
        db.add(Cart(owner_key=guest.owner_key, session_id=guest.session_id, status=CartStatus.active))

    with pytest.raises(IntegrityError):
        async with database.transaction() as db:
            db.add(Cart(owner_key=guest.owner_key, session_id=guest.session_id, status=CartStatus.active))

    # ordered carts do not count against the limit
    async with database.transaction() as db:
        db.add(Cart(owner_key=guest.owner_key, session_id=guest.session_id, status=CartStatus.ordered))
    assert await _count(database, Cart) == 2


@pytest.mark.asyncio
async def test_concurrent_creation_adopts_existing_cart(carts, database, seeded_items, guest, monkeypatch):
    existing = await carts.resolve_active_cart(guest)

    real_find = cart_service.find_active_cart
    calls = {"n": 0}

    async def stale_then_real(db, identity, *, lock=False):
        # the first lookup misses, as if the other request had not committed yet
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return await real_find(db, identity, lock=lock)

    monkeypatch.setattr(cart_service, "find_active_cart", stale_then_real)

    result = await carts.add_line(guest, 2)
    assert result.created_cart is False
    assert result.cart.id == existing.id
    assert await _count(database, Cart) == 1


@pytest.mark.asyncio
async def test_resolve_active_cart_is_idempotent(carts, database, guest):
    first = await carts.resolve_active_cart(guest)
    again = await carts.resolve_active_cart(guest)
    assert first.id == again.id
    assert first.status == CartStatus.active
    assert await _count(database, Cart) == 1


@pytest.mark.asyncio
async def test_user_and_guest_carts_are_separate(carts, seeded_items, shopper, guest):
    user_cart = await carts.add_line(shopper, 1)
    guest_cart = await carts.add_line(guest, 1)
    assert user_cart.cart.id != guest_cart.cart.id
    assert user_cart.cart.user_id == shopper.user_id
    assert user_cart.cart.session_id is None


@pytest.mark.asyncio
async def test_cart_view_variants(carts, seeded_items, guest):
    assert not (await carts.get_cart_view(None)).exists
    assert not (await carts.get_cart_view(guest)).exists

    cart = await carts.resolve_active_cart(guest)
    view = await carts.get_cart_view(guest)
    assert view.cart_id == cart.id
    assert view.is_empty

    await carts.add_line(guest, 1, qty_delta=2)
    await carts.add_line(guest, 5)
    view = await carts.get_cart_view(guest)
    assert not view.is_empty
    assert [(line.name, line.quantity) for line in view.lines] == [("Laptop", 2), ("Mouse", 1)]
    assert view.total == Decimal("999.99") * 2 + Decimal("49.99")


@pytest.mark.asyncio
async def test_interleaved_adds_for_same_shopper_share_one_cart(carts, database, seeded_items, guest):
    results = await asyncio.gather(*(carts.add_line(guest, 1) for _ in range(5)))

    assert len({result.cart.id for result in results}) == 1
    assert sorted(result.line.quantity for result in results) == [1, 2, 3, 4, 5]
    assert sum(result.created_cart for result in results) == 1
    assert await _count(database, Cart) == 1

    view = await carts.get_cart_view(guest)
    assert [(line.item_id, line.quantity) for line in view.lines] == [(1, 5)]
