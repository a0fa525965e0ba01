from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from storefront.core.logging import get_logger
from storefront.db.session import Database
from storefront.models.cart import Cart, CartStatus
from storefront.models.order import Order, OrderLine, OrderStatus
from storefront.services.cart_service import CartViewLine, find_active_cart, snapshot_lines
from storefront.services.exceptions import EmptyCartError, NoActiveCartError
from storefront.services.identity import AuthenticatedUser

logger = get_logger(__name__)


@dataclass
class OrderSummary:
    order_id: int
    cart_id: int
    status: OrderStatus
    created_at: datetime
    items: list[CartViewLine]

    @property
    def total(self) -> Decimal:
        return sum((line.price * line.quantity for line in self.items), Decimal("0"))


def _summary(order: Order) -> OrderSummary:
    return OrderSummary(
        order_id=order.id,
        cart_id=order.cart_id,
        status=order.status,
        created_at=order.created_at,
        items=[
            CartViewLine(item_id=line.item_id, name=line.name, price=Decimal(line.price), quantity=line.quantity)
            for line in order.lines
        ],
    )


class OrderEngine:
    """Turns an active cart into an order.

    The order keeps its own copy of the lines (``order_lines``) so later
    changes to item names or prices do not rewrite order history.
    """

    def __init__(self, database: Database):
        self._database = database

    async def place_order(self, identity: AuthenticatedUser) -> OrderSummary:
        async with self._database.transaction() as db:
            cart = await find_active_cart(db, identity, lock=True)
            if cart is None:
                raise NoActiveCartError("No active cart found")

            lines = await snapshot_lines(db, cart.id)
            if not lines:
                raise EmptyCartError("Cannot create order with empty cart")

            order = Order(user_id=identity.user_id, cart_id=cart.id, status=OrderStatus.completed)
            db.add(order)
            await db.flush()
            db.add_all(
                [
                    OrderLine(
                        order_id=order.id,
                        item_id=line.item_id,
                        name=line.name,
                        price=line.price,
                        quantity=line.quantity,
                    )
                    for line in lines
                ]
            )

            cart.status = CartStatus.ordered
            await db.flush()
            await db.refresh(order)
            await db.refresh(order, attribute_names=["lines"])
            summary = _summary(order)

        logger.info(
            "Order placed",
            extra={
                "order_id": summary.order_id,
                "cart_id": summary.cart_id,
                "user_id": identity.user_id,
                "lines": len(summary.items),
            },
        )
        return summary

    async def list_orders(self, user_id: int) -> list[OrderSummary]:
        async with self._database.read_transaction() as db:
            stmt = (
                select(Order)
                .options(selectinload(Order.lines))
                .where(Order.user_id == user_id)
                .order_by(Order.created_at.desc(), Order.id.desc())
            )
            result = await db.execute(stmt)
            orders = result.scalars().all()

            cart_ids = [order.cart_id for order in orders if order.cart_id is not None]
            existing: set[int] = set()
            if cart_ids:
                found = await db.execute(select(Cart.id).where(Cart.id.in_(cart_ids)))
                existing = set(found.scalars().all())

            summaries: list[OrderSummary] = []
            for order in orders:
                if order.cart_id not in existing:
                    logger.warning(
                        "Order skipped: backing cart is missing",
                        extra={"order_id": order.id, "cart_id": order.cart_id},
                    )
                    continue
                summaries.append(_summary(order))
        return summaries
