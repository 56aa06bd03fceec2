"""Credit Service — balance query, credit and debit over the accounts table.

Invariants:
    - Amounts are positive ints; anything else raises InvalidAmountError
    - deduct_credits is a compare-and-swap: UPDATE ... WHERE balance >= amount
    - Insufficient funds is a False return with zero mutation, not an exception
    - Methods never commit: the caller owns the unit of work

Design Decisions:
    - Column-level selects for balance reads: bypass the identity map so reads see the row
    - lock_balance() issues SELECT ... FOR UPDATE (no-op on SQLite, row lock on PostgreSQL)
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.core.domain_types import AccountId
from credit_ledger.core.errors import AccountNotFoundError, InvalidAmountError
from credit_ledger.models.account import Account

logger = logging.getLogger(__name__)


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(f"Credit amount must be a positive integer, got {amount!r}")


class CreditService:
    """Ledger store access. One instance per unit of work."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_balance(self, account_id: AccountId) -> int:
        """Current balance. Pure read."""
        result = await self.db.execute(
            select(Account.balance).where(Account.id == account_id),
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise AccountNotFoundError(account_id)
        return balance

    async def lock_balance(self, account_id: AccountId) -> int:
        """Read the balance while holding the account row lock until commit/rollback."""
        result = await self.db.execute(
            select(Account.balance)
            .where(Account.id == account_id)
            .with_for_update(),
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise AccountNotFoundError(account_id)
        return balance

    async def add_credits(self, account_id: AccountId, amount: int) -> None:
        """Increase the balance by `amount`."""
        _require_positive(amount)
        result = await self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(balance=Account.balance + amount)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount == 0:
            raise AccountNotFoundError(account_id)
        logger.info(
            f"Added {amount} credits to account {account_id}",
            extra={"account_id": account_id, "amount": amount},
        )

    async def deduct_credits(self, account_id: AccountId, amount: int) -> bool:
        """Decrease the balance only if it covers `amount`. False means declined."""
        _require_positive(amount)
        result = await self.db.execute(
            update(Account)
            .where(Account.id == account_id, Account.balance >= amount)
            .values(balance=Account.balance - amount)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount == 1:
            logger.info(
                f"Deducted {amount} credits from account {account_id}",
                extra={"account_id": account_id, "amount": amount},
            )
            return True
        # Distinguish "no such account" from "not enough credits"
        await self.get_balance(account_id)
        return False
