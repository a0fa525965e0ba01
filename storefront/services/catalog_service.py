from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import get_logger
from storefront.db.session import Database
from storefront.models.item import Item, ItemStatus
from storefront.services.exceptions import ItemNotFoundError, ItemUnavailableError

logger = get_logger(__name__)

DEMO_ITEMS = (
    ("Laptop", Decimal("999.99")),
    ("Smartphone", Decimal("699.99")),
    ("Headphones", Decimal("199.99")),
    ("Keyboard", Decimal("99.99")),
    ("Mouse", Decimal("49.99")),
)


async def get_item(db: AsyncSession, item_id: int) -> Item:
    item = await db.get(Item, item_id)
    if item is None:
        raise ItemNotFoundError("Item not found")
    return item


def ensure_available(item: Item) -> Item:
    if item.status != ItemStatus.available:
        raise ItemUnavailableError("Item is not available for purchase")
    return item


async def get_available_item(db: AsyncSession, item_id: int) -> Item:
    """Lookup used by the cart store at line insertion time."""
    return ensure_available(await get_item(db, item_id))


async def _insert_missing_demo_items(db: AsyncSession) -> int:
    result = await db.execute(select(Item.name))
    existing = set(result.scalars().all())
    missing = [(name, price) for name, price in DEMO_ITEMS if name not in existing]
    db.add_all([Item(name=name, price=price, status=ItemStatus.available) for name, price in missing])
    await db.flush()
    return len(missing)


def dedupe_by_name(items: list[Item]) -> list[Item]:
    seen: set[str] = set()
    unique: list[Item] = []
    for item in items:
        if item.name in seen:
            logger.debug("Duplicate item name skipped", extra={"item_id": item.id, "item_name": item.name})
            continue
        seen.add(item.name)
        unique.append(item)
    return unique


class Catalog:
    """Item listing and creation."""

    def __init__(self, database: Database):
        self._database = database

    async def list_items(self) -> list[Item]:
        async with self._database.read_transaction() as db:
            result = await db.execute(select(Item).order_by(Item.id))
            items = list(result.scalars().all())
        unique = dedupe_by_name(items)
        logger.debug("Listed catalog", extra={"found": len(items), "returned": len(unique)})
        return unique

    async def create_item(
        self,
        name: str,
        price: Decimal,
        status: ItemStatus = ItemStatus.available,
    ) -> Item:
        async with self._database.transaction() as db:
            item = Item(name=name, price=price, status=status)
            db.add(item)
            await db.flush()
            await db.refresh(item)
        logger.info("Item created", extra={"item_id": item.id, "item_name": item.name})
        return item

    async def seed_demo_items(self) -> int:
        """Insert the demo catalog; items are matched by name so reruns are no-ops."""
        created = await self._database.run_in_transaction(_insert_missing_demo_items)
        if created:
            logger.info("Seeded demo catalog", extra={"created_count": created})
        return created
