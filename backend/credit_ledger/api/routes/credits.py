"""Credit Routes — balance, top-up requests and the public rates table.

Invariants:
    - Balance and top-up act only on the resolved caller's account
    - A top-up request never changes the balance (it starts pending)
    - GET /credits/rates is the only unauthenticated ledger endpoint
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.api.deps import require_account
from credit_ledger.config import Settings, get_settings
from credit_ledger.core.credit_math import build_rates_table, cents_to_display
from credit_ledger.core.domain_types import AccountContext
from credit_ledger.infrastructure.database import get_db
from credit_ledger.schemas.commerce import (
    BalanceResponse, TopUpRequest, TopUpResponse,
)
from credit_ledger.services.credit_service import CreditService
from credit_ledger.services.topup_service import TopUpService

router = APIRouter(prefix="/api/v1/credits", tags=["credits"])


@router.get("", response_model=BalanceResponse)
async def get_balance(
    ctx: AccountContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    credits = await CreditService(db).get_balance(ctx.account_id)
    return BalanceResponse(credits=credits, account_id=ctx.account_id)


@router.post(
    "/top-up", response_model=TopUpResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_topup(
    body: TopUpRequest,
    ctx: AccountContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Record a pending top-up; credits arrive once the payment is verified."""
    txn = await TopUpService(db, settings).request_topup(
        ctx, body.amount, body.method, body.reference,
    )
    return TopUpResponse(
        message="Top-up request submitted. Credits will be added after verification.",
        transaction_id=txn.id,
        credits_requested=txn.amount,
        real_amount=cents_to_display(txn.money_amount_cents),
        status=txn.status,
    )


@router.get("/rates")
async def get_rates(settings: Settings = Depends(get_settings)):
    table = build_rates_table(
        settings.credits_per_unit,
        settings.minimum_topup_amount,
        settings.currency,
    )
    return {"success": True, **table}
