"""Ownership Registry — (account, item) entitlements created by completed purchases.

Invariants:
    - grant() only runs inside the purchase unit of work, after the purchase is recorded
    - At most one row per (account, item); a duplicate raises IntegrityError on flush
    - Listings expose published items only

Design Decisions:
    - Preference signals (subjects, levels) derive from owned items: ownership exists
      iff a completed purchase exists, so this equals "previously purchased"
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.core.domain_types import AccountId, ItemId, TransactionId
from credit_ledger.core.errors import NotEntitledError, ResourceNotFoundError
from credit_ledger.models.item import Item
from credit_ledger.models.ledger_transaction import LedgerTransaction
from credit_ledger.models.ownership import Ownership

logger = logging.getLogger(__name__)

DOWNLOAD_REF_TEMPLATE = "/api/v1/purchases/{item_id}/download"


class OwnershipRegistry:
    """Entitlement reads and the single grant write."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_owned(self, account_id: AccountId, item_id: ItemId) -> bool:
        result = await self.db.execute(
            select(Ownership.id).where(
                Ownership.account_id == account_id,
                Ownership.item_id == item_id,
            ),
        )
        return result.first() is not None

    async def grant(
        self, account_id: AccountId, item_id: ItemId, transaction_id: TransactionId,
    ) -> Ownership:
        """Create the entitlement. Flushes so constraint violations surface here."""
        ownership = Ownership(
            account_id=account_id, item_id=item_id, transaction_id=transaction_id,
        )
        self.db.add(ownership)
        await self.db.flush()
        return ownership

    async def owned_item_ids(self, account_id: AccountId) -> frozenset[ItemId]:
        result = await self.db.execute(
            select(Ownership.item_id).where(Ownership.account_id == account_id),
        )
        return frozenset(ItemId(row) for row in result.scalars().all())

    async def purchased_subjects(self, account_id: AccountId) -> frozenset[str]:
        return await self._owned_item_attribute(account_id, Item.subject)

    async def purchased_levels(self, account_id: AccountId) -> frozenset[str]:
        return await self._owned_item_attribute(account_id, Item.level)

    async def _owned_item_attribute(self, account_id: AccountId, column) -> frozenset[str]:
        result = await self.db.execute(
            select(column)
            .join(Ownership, Ownership.item_id == Item.id)
            .where(Ownership.account_id == account_id, column.is_not(None))
            .distinct(),
        )
        return frozenset(result.scalars().all())

    async def list_owned(self, account_id: AccountId) -> list[dict]:
        """Owned published items, most recent purchase first."""
        result = await self.db.execute(
            select(Item, LedgerTransaction)
            .join(Ownership, Ownership.item_id == Item.id)
            .join(LedgerTransaction, LedgerTransaction.id == Ownership.transaction_id)
            .where(Ownership.account_id == account_id, Item.published.is_(True))
            .order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id.desc()),
        )
        return [
            {
                "id": item.id,
                "title": item.title,
                "subject": item.subject or "General",
                "level": item.level or "All Levels",
                "purchase_date": txn.created_at.isoformat(),
                "price": txn.amount,
                "download_ref": DOWNLOAD_REF_TEMPLATE.format(item_id=item.id),
            }
            for item, txn in result.all()
        ]

    async def download_reference(self, account_id: AccountId, item_id: ItemId) -> dict:
        """Owner-only file reference. NotEntitledError unless the account owns the item."""
        if not await self.is_owned(account_id, item_id):
            logger.warning(
                "Download refused: item not owned",
                extra={"account_id": account_id, "item_id": item_id},
            )
            raise NotEntitledError(item_id)
        item = await self.db.get(Item, item_id)
        if item is None or not item.file_ref:
            raise ResourceNotFoundError("Item file", str(item_id))
        return {"item_id": item.id, "title": item.title, "file_ref": item.file_ref}
