"""Transaction Routes — the caller's history and aggregate statistics."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.api.deps import require_account
from credit_ledger.config import Settings, get_settings
from credit_ledger.core.domain_types import AccountContext
from credit_ledger.core.transaction_summary import format_transaction
from credit_ledger.infrastructure.database import get_db
from credit_ledger.schemas.commerce import StatsResponse, TransactionsResponse
from credit_ledger.services.transaction_log import TransactionLog

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


@router.get("", response_model=TransactionsResponse)
async def list_transactions(
    ctx: AccountContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Most recent transactions first."""
    records = await TransactionLog(db).list_by_account(
        ctx.account_id, limit=settings.transaction_history_limit,
    )
    transactions = [format_transaction(r) for r in records]
    return TransactionsResponse(
        transactions=transactions, count=len(transactions),
    )


@router.get("/stats", response_model=StatsResponse)
async def transaction_stats(
    ctx: AccountContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    stats = await TransactionLog(db).aggregate_stats(ctx.account_id)
    return StatsResponse(stats=stats)
