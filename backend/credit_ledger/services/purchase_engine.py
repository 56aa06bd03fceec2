"""Purchase Engine — drives one purchase through Validating → FundsCheck → Debiting →
Recording → Granting → Committed.

Invariants:
    - Debit, purchase record and ownership grant commit together or not at all
    - A declined or failed result leaves the balance exactly as it was before the call
    - Validation declines (unavailable, already owned, insufficient funds) write nothing
    - Same-account purchases are serialized: account lock in-process, row lock in the DB
    - Once started, a purchase runs to Committed or to a compensated decline even if
      the caller is cancelled (asyncio.shield + engine-owned session)
    - Internal failures return a generic decline; the detail goes to the log and to a
      failed audit transaction

Design Decisions:
    - The single compensating action is the rollback of the unit of work; if the rollback
      itself fails the connection is invalidated so the server discards the work
    - An ownership uniqueness violation while granting is a concurrent duplicate purchase
      on another worker and is reported as AlreadyOwned
"""

import asyncio
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.core.domain_types import (
    AccountContext, AccountId, CatalogItem, DeclineReason, ItemId,
    PurchaseStage, TransactionId, TransactionStatus,
)
from credit_ledger.core.errors import ItemUnavailableError
from credit_ledger.core.purchase_rules import (
    PurchaseResult, check_funds, summarize_eligibility, validate_item,
)
from credit_ledger.infrastructure.account_locks import AccountLockRegistry, account_locks
from credit_ledger.infrastructure.database import SessionScope
from credit_ledger.services.catalog import CatalogReader
from credit_ledger.services.credit_service import CreditService
from credit_ledger.services.ownership_registry import OwnershipRegistry
from credit_ledger.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)

# Strong references to running purchases; shielded tasks outlive their callers.
_inflight: set[asyncio.Task] = set()


class PurchaseEngine:
    """Orchestrates purchases over credits, transaction log, ownership and catalog."""

    def __init__(
        self,
        session_scope: SessionScope,
        locks: AccountLockRegistry = account_locks,
    ):
        self._session_scope = session_scope
        self._locks = locks

    async def purchase(self, ctx: AccountContext, item_id: ItemId) -> PurchaseResult:
        """Buy `item_id` for the caller. Never returns with a half-applied state."""
        task = asyncio.ensure_future(self._run_locked(ctx.account_id, item_id))
        _inflight.add(task)
        task.add_done_callback(_inflight.discard)
        return await asyncio.shield(task)

    async def check_eligibility(self, ctx: AccountContext, item_id: ItemId) -> dict:
        """Read-only preview of a purchase. Raises ItemUnavailableError."""
        async with self._session_scope() as db:
            item = await CatalogReader(db).get_item(item_id)
            owned = await OwnershipRegistry(db).is_owned(ctx.account_id, item_id)
            # Same rule as the purchase; an owned item still gets a preview
            decline = validate_item(item_id, item, owned)
            if decline is not None and decline.decline == DeclineReason.ITEM_UNAVAILABLE:
                raise ItemUnavailableError(item_id)
            balance = await CreditService(db).get_balance(ctx.account_id)
        return summarize_eligibility(item, owned, balance)

    async def _run_locked(self, account_id: AccountId, item_id: ItemId) -> PurchaseResult:
        async with self._locks.hold(account_id):
            async with self._session_scope() as db:
                return await self._run(db, account_id, item_id)

    async def _run(
        self, db: AsyncSession, account_id: AccountId, item_id: ItemId,
    ) -> PurchaseResult:
        credits = CreditService(db)
        log = TransactionLog(db)
        registry = OwnershipRegistry(db)
        extra = {"account_id": account_id, "item_id": item_id}

        # Validating + FundsCheck (row lock held from here until commit/rollback)
        item = await CatalogReader(db).get_item(item_id)
        balance = await credits.lock_balance(account_id)
        owned = await registry.is_owned(account_id, item_id)
        decline = validate_item(item_id, item, owned) or check_funds(item, balance)
        if decline is not None:
            await db.rollback()
            logger.info(
                f"Purchase declined: {decline.decline.value}",
                extra={**extra, "stage": decline.stage.value},
            )
            return decline

        stage = PurchaseStage.DEBITING
        try:
            if not await credits.deduct_credits(account_id, item.price):
                await db.rollback()
                available = await credits.get_balance(account_id)
                return PurchaseResult.declined(
                    item_id, stage, DeclineReason.INSUFFICIENT_FUNDS,
                    required=item.price, available=available,
                )
            stage = PurchaseStage.RECORDING
            txn = await log.append_purchase(account_id, item_id, item.price)
            stage = PurchaseStage.GRANTING
            await registry.grant(account_id, item_id, TransactionId(txn.id))
            remaining = await credits.get_balance(account_id)
            await db.commit()
        except IntegrityError as e:
            await self._compensate(db, account_id, item_id, stage)
            if stage == PurchaseStage.GRANTING:
                logger.warning(
                    "Concurrent duplicate purchase rejected at grant",
                    extra={**extra, "stage": stage.value},
                )
                return PurchaseResult.declined(
                    item_id, PurchaseStage.VALIDATING, DeclineReason.ALREADY_OWNED,
                )
            return await self._fail(db, account_id, item, stage, e)
        except Exception as e:
            await self._compensate(db, account_id, item_id, stage)
            return await self._fail(db, account_id, item, stage, e)

        logger.info(
            f"Account {account_id} purchased item {item_id} for {item.price} credits",
            extra={**extra, "transaction_id": txn.id, "amount": item.price},
        )
        return PurchaseResult.success(item_id, TransactionId(txn.id), remaining)

    async def _compensate(
        self, db: AsyncSession, account_id: AccountId, item_id: ItemId,
        stage: PurchaseStage,
    ) -> None:
        """Undo the uncommitted debit/record/grant."""
        extra = {"account_id": account_id, "item_id": item_id, "stage": stage.value}
        try:
            await db.rollback()
        except SQLAlchemyError:
            logger.critical(
                "Rollback failed during purchase compensation; invalidating connection",
                extra=extra, exc_info=True,
            )
            await db.invalidate()
        logger.warning("Purchase compensated", extra=extra)

    async def _fail(
        self, db: AsyncSession, account_id: AccountId, item: CatalogItem,
        stage: PurchaseStage, error: Exception,
    ) -> PurchaseResult:
        """Log the failure, keep an audit row, return the generic decline."""
        note = f"{stage.value}: {type(error).__name__}: {error}"
        logger.error(
            f"Purchase failed at {stage.value}",
            extra={
                "account_id": account_id, "item_id": item.id,
                "stage": stage.value, "error_code": "INTERNAL_ERROR",
            },
            exc_info=error,
        )
        try:
            await TransactionLog(db).append_purchase(
                account_id, item.id, item.price,
                status=TransactionStatus.FAILED, failure_note=note,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            logger.error(
                "Could not record failed purchase audit row",
                extra={"account_id": account_id, "item_id": item.id},
                exc_info=True,
            )
        return PurchaseResult.declined(item.id, stage, DeclineReason.INTERNAL_ERROR)
