"""Top-up Service — pending credit requests and their manual settlement.

Invariants:
    - request_topup never touches the balance; the transaction starts pending
    - settle_topup(approved=True) flips status and adds credits in one commit
    - settle_topup(approved=False) flips status to failed, balance untouched
    - A transaction settles at most once (InvalidStatusTransitionError otherwise)

Design Decisions:
    - Verification itself happens off-platform; this service only keeps the books
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.config import Settings
from credit_ledger.core.credit_math import (
    credits_for_cents, money_to_cents, validate_topup_cents,
)
from credit_ledger.core.domain_types import (
    AccountContext, AccountId, TransactionId, TransactionStatus,
)
from credit_ledger.core.errors import InvalidAmountError
from credit_ledger.infrastructure.account_locks import AccountLockRegistry, account_locks
from credit_ledger.models.ledger_transaction import LedgerTransaction
from credit_ledger.services.credit_service import CreditService
from credit_ledger.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)


class TopUpService:
    """Bookkeeping for credit top-ups."""

    def __init__(
        self, db: AsyncSession, settings: Settings,
        locks: AccountLockRegistry = account_locks,
    ):
        self.db = db
        self.settings = settings
        self.locks = locks

    async def request_topup(
        self,
        ctx: AccountContext,
        amount: Decimal,
        payment_method: str,
        payment_reference: str | None = None,
    ) -> LedgerTransaction:
        """Record a pending top-up for `amount` of real money."""
        cents = money_to_cents(amount)
        validate_topup_cents(cents, self.settings.minimum_topup_amount)
        credits = credits_for_cents(cents, self.settings.credits_per_unit)
        if credits <= 0:
            raise InvalidAmountError("Amount is too small to buy any credits")

        txn = await TransactionLog(self.db).append_topup(
            ctx.account_id, credits, cents, payment_method, payment_reference,
        )
        await self.db.commit()
        logger.info(
            f"Top-up of {credits} credits requested via {payment_method}",
            extra={"account_id": ctx.account_id, "transaction_id": txn.id},
        )
        return txn

    async def settle_topup(
        self, transaction_id: TransactionId, approved: bool,
    ) -> LedgerTransaction:
        """External verification outcome for a pending top-up."""
        log = TransactionLog(self.db)
        # Only locates the account; the status is re-read under the locks below
        pending = await log.get(transaction_id)
        account_id = AccountId(pending.account_id)

        async with self.locks.hold(account_id):
            new_status = (
                TransactionStatus.COMPLETED if approved else TransactionStatus.FAILED
            )
            txn = await log.update_status(transaction_id, new_status)
            if approved:
                await CreditService(self.db).add_credits(account_id, txn.amount)
            await self.db.commit()

        logger.info(
            f"Top-up {transaction_id} settled as {new_status.value}",
            extra={"account_id": account_id, "transaction_id": transaction_id},
        )
        return txn
