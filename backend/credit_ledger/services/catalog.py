"""Catalog Reader — read-only view of purchasable items.

Invariants:
    - Never writes the items table
    - Returns core CatalogItem snapshots, not ORM rows
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.core.domain_types import CatalogItem, ItemId
from credit_ledger.models.item import Item


def to_catalog_item(item: Item) -> CatalogItem:
    return CatalogItem(
        id=ItemId(item.id),
        title=item.title,
        price=item.price,
        subject=item.subject,
        level=item.level,
        published=item.published,
        published_at=item.published_at,
    )


class CatalogReader:
    """Lookups against the external catalog table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_item(self, item_id: ItemId) -> CatalogItem | None:
        item = await self.db.get(Item, item_id)
        return to_catalog_item(item) if item else None

    async def list_published(self) -> list[CatalogItem]:
        result = await self.db.execute(
            select(Item).where(Item.published.is_(True)).order_by(Item.id),
        )
        return [to_catalog_item(item) for item in result.scalars().all()]
