from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import get_logger
from storefront.db.session import Database
from storefront.models.cart import Cart, CartLine, CartStatus
from storefront.models.item import Item
from storefront.services.catalog_service import get_available_item
from storefront.services.exceptions import DomainValidationError
from storefront.services.identity import Identity

logger = get_logger(__name__)


@dataclass(frozen=True)
class CartViewLine:
    item_id: int
    name: str
    price: Decimal
    quantity: int


@dataclass
class CartView:
    """Display view of an identity's active cart.

    ``cart_id is None`` means there is no active cart; an active cart without
    lines is the distinguished empty result.
    """

    cart_id: int | None = None
    lines: list[CartViewLine] = field(default_factory=list)
    total: Decimal = Decimal("0")

    @property
    def exists(self) -> bool:
        return self.cart_id is not None

    @property
    def is_empty(self) -> bool:
        return self.exists and not self.lines


@dataclass
class AddLineResult:
    cart: Cart
    line: CartLine
    created_cart: bool


async def find_active_cart(db: AsyncSession, identity: Identity, *, lock: bool = False) -> Cart | None:
    stmt = (
        select(Cart)
        .where(Cart.owner_key == identity.owner_key)
        .where(Cart.status == CartStatus.active)
        .limit(1)
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()


async def snapshot_lines(db: AsyncSession, cart_id: int) -> list[CartViewLine]:
    """Join the cart's lines against current item name and price."""
    stmt = (
        select(Item.id, Item.name, Item.price, CartLine.quantity)
        .join(Item, Item.id == CartLine.item_id)
        .where(CartLine.cart_id == cart_id)
        .order_by(CartLine.created_at, CartLine.item_id)
    )
    result = await db.execute(stmt)
    return [
        CartViewLine(item_id=item_id, name=name, price=Decimal(price), quantity=quantity)
        for item_id, name, price, quantity in result.all()
    ]


def cart_total(lines: list[CartViewLine]) -> Decimal:
    return sum((line.price * line.quantity for line in lines), Decimal("0"))


class CartStore:
    """Owns carts and their lines. Each public call is one transaction."""

    def __init__(self, database: Database):
        self._database = database

    async def _resolve_or_create(self, db: AsyncSession, identity: Identity) -> tuple[Cart, bool]:
        cart = await find_active_cart(db, identity, lock=True)
        if cart is not None:
            return cart, False

        cart = Cart(
            owner_key=identity.owner_key,
            user_id=identity.user_id,
            session_id=identity.session_id,
            status=CartStatus.active,
        )
        try:
            async with db.begin_nested():
                db.add(cart)
                await db.flush()
        except IntegrityError:
            # Lost the race against another request for the same owner; the
            # unique index kept the store consistent, so adopt the winner.
            winner = await find_active_cart(db, identity, lock=True)
            if winner is None:
                raise
            logger.info(
                "Concurrent cart creation resolved",
                extra={"cart_id": winner.id, "identity": identity.kind},
            )
            return winner, False

        logger.info("Cart created", extra={"cart_id": cart.id, "identity": identity.kind})
        return cart, True

    async def _upsert_line(self, db: AsyncSession, cart: Cart, item_id: int, qty_delta: int) -> CartLine:
        line = await db.get(CartLine, (cart.id, item_id))
        if line is None:
            line = CartLine(cart_id=cart.id, item_id=item_id, quantity=qty_delta)
            try:
                async with db.begin_nested():
                    db.add(line)
                    await db.flush()
                await db.refresh(line)
                return line
            except IntegrityError:
                line = await db.get(CartLine, (cart.id, item_id))
                if line is None:
                    raise
        # increment in SQL so concurrent additions are not lost
        line.quantity = CartLine.quantity + qty_delta
        await db.flush()
        await db.refresh(line)
        return line

    async def resolve_active_cart(self, identity: Identity) -> Cart:
        async with self._database.transaction() as db:
            cart, _ = await self._resolve_or_create(db, identity)
            await db.refresh(cart, attribute_names=["lines"])
        return cart

    async def add_line(self, identity: Identity, item_id: int, qty_delta: int = 1) -> AddLineResult:
        """Add ``qty_delta`` units of an item to the identity's active cart.

        Cart lookup or creation, item validation and the line upsert share one
        transaction: on any failure nothing is persisted, not even a cart
        created by this call.
        """
        if qty_delta < 1:
            raise DomainValidationError("Quantity must be at least 1")

        async with self._database.transaction() as db:
            cart, created = await self._resolve_or_create(db, identity)
            item = await get_available_item(db, item_id)
            line = await self._upsert_line(db, cart, item.id, qty_delta)
            cart.updated_at = func.now()
            await db.flush()
            await db.refresh(cart)
            await db.refresh(cart, attribute_names=["lines"])

        logger.info(
            "Cart line updated",
            extra={
                "cart_id": cart.id,
                "item_id": item_id,
                "quantity": line.quantity,
                "identity": identity.kind,
            },
        )
        return AddLineResult(cart=cart, line=line, created_cart=created)

    async def get_cart_view(self, identity: Identity | None) -> CartView:
        if identity is None:
            return CartView()
        async with self._database.read_transaction() as db:
            cart = await find_active_cart(db, identity)
            if cart is None:
                return CartView()
            lines = await snapshot_lines(db, cart.id)
            return CartView(cart_id=cart.id, lines=lines, total=cart_total(lines))
