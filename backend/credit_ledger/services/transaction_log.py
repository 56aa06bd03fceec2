"""Transaction Log — append-only history of top-ups and purchases.

Invariants:
    - append_* flush but never commit: the caller's unit of work decides visibility
    - Top-ups are appended pending; purchases are appended completed inside the purchase
      unit of work, or failed as an audit record after compensation
    - update_status is the only mutation and only for pending top-ups; it is a
      conditional UPDATE on the status it read, so a top-up settles at most once
    - Listings are newest first (created_at desc, id desc)

Design Decisions:
    - Rows are flattened to core TransactionRecord before formatting or aggregation
    - purchase_counts() is the popularity signal: completed purchases per item
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.core.domain_types import (
    AccountId, ItemId, TransactionId, TransactionKind, TransactionStatus,
)
from credit_ledger.core.errors import (
    InvalidStatusTransitionError, ResourceNotFoundError,
)
from credit_ledger.core.topup_rules import ensure_status_transition
from credit_ledger.core.transaction_summary import TransactionRecord, aggregate_stats
from credit_ledger.models.item import Item
from credit_ledger.models.ledger_transaction import LedgerTransaction

logger = logging.getLogger(__name__)


def to_record(txn: LedgerTransaction, item_title: str | None = None) -> TransactionRecord:
    return TransactionRecord(
        id=TransactionId(txn.id),
        kind=TransactionKind(txn.kind),
        amount=txn.amount,
        status=TransactionStatus(txn.status),
        created_at=txn.created_at,
        item_id=ItemId(txn.item_id) if txn.item_id is not None else None,
        item_title=item_title,
        payment_method=txn.payment_method,
        money_amount_cents=txn.money_amount_cents,
    )


class TransactionLog:
    """Reads and appends against ledger_transactions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, transaction: LedgerTransaction) -> LedgerTransaction:
        """Append one row and flush so its id is known."""
        self.db.add(transaction)
        await self.db.flush()
        logger.info(
            f"Appended {transaction.kind} transaction {transaction.id} ({transaction.status})",
            extra={
                "account_id": transaction.account_id,
                "transaction_id": transaction.id,
                "item_id": transaction.item_id,
            },
        )
        return transaction

    async def append_topup(
        self,
        account_id: AccountId,
        credits: int,
        money_amount_cents: int,
        payment_method: str,
        payment_reference: str | None = None,
    ) -> LedgerTransaction:
        return await self.append(LedgerTransaction(
            account_id=account_id,
            kind=TransactionKind.TOPUP.value,
            amount=credits,
            status=TransactionStatus.PENDING.value,
            payment_method=payment_method,
            payment_reference=payment_reference,
            money_amount_cents=money_amount_cents,
        ))

    async def append_purchase(
        self,
        account_id: AccountId,
        item_id: ItemId,
        price: int,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        failure_note: str | None = None,
    ) -> LedgerTransaction:
        return await self.append(LedgerTransaction(
            account_id=account_id,
            kind=TransactionKind.PURCHASE.value,
            amount=price,
            item_id=item_id,
            status=status.value,
            failure_note=failure_note,
        ))

    async def get(self, transaction_id: TransactionId, for_update: bool = False) -> LedgerTransaction:
        query = select(LedgerTransaction).where(LedgerTransaction.id == transaction_id)
        if for_update:
            # Re-read under the row lock; a cached identity-map copy may be stale
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        txn = result.scalar_one_or_none()
        if txn is None:
            raise ResourceNotFoundError("Transaction", str(transaction_id))
        return txn

    async def update_status(
        self, transaction_id: TransactionId, new_status: TransactionStatus,
    ) -> LedgerTransaction:
        """Move a pending top-up to completed or failed."""
        txn = await self.get(transaction_id, for_update=True)
        current = TransactionStatus(txn.status)
        ensure_status_transition(
            transaction_id, TransactionKind(txn.kind), current, new_status,
        )
        now = datetime.now(timezone.utc)
        # Conditional on the status just read: a concurrent settlement matches no row
        result = await self.db.execute(
            update(LedgerTransaction)
            .where(
                LedgerTransaction.id == transaction_id,
                LedgerTransaction.status == current.value,
            )
            .values(status=new_status.value, updated_at=now)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            raise InvalidStatusTransitionError(
                transaction_id, current.value, new_status.value,
            )
        set_committed_value(txn, "status", new_status.value)
        set_committed_value(txn, "updated_at", now)
        return txn

    async def list_by_account(
        self, account_id: AccountId, limit: int | None = None,
    ) -> list[TransactionRecord]:
        """Account history, newest first."""
        query = (
            select(LedgerTransaction, Item.title)
            .outerjoin(Item, Item.id == LedgerTransaction.item_id)
            .where(LedgerTransaction.account_id == account_id)
            .order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return [to_record(txn, title) for txn, title in result.all()]

    async def aggregate_stats(
        self, account_id: AccountId, now: datetime | None = None,
    ) -> dict:
        records = await self.list_by_account(account_id)
        return aggregate_stats(records, now or datetime.now(timezone.utc))

    async def purchase_counts(self) -> dict[ItemId, int]:
        """Completed purchases per item across all accounts."""
        result = await self.db.execute(
            select(LedgerTransaction.item_id, func.count(LedgerTransaction.id))
            .where(
                LedgerTransaction.kind == TransactionKind.PURCHASE.value,
                LedgerTransaction.status == TransactionStatus.COMPLETED.value,
                LedgerTransaction.item_id.is_not(None),
            )
            .group_by(LedgerTransaction.item_id),
        )
        return {ItemId(item_id): count for item_id, count in result.all()}
