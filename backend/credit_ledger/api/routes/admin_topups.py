"""Admin Top-up Routes — record the outcome of off-platform payment verification.

Invariants:
    - Guarded by X-Admin-Token, not by an account session
    - A top-up settles once; repeats are 409 (InvalidStatusTransitionError)
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.api.deps import require_admin
from credit_ledger.config import Settings, get_settings
from credit_ledger.core.domain_types import TransactionId
from credit_ledger.infrastructure.database import get_db
from credit_ledger.schemas.commerce import TopUpSettlement
from credit_ledger.services.topup_service import TopUpService

router = APIRouter(
    prefix="/api/v1/admin/top-ups", tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.post("/{transaction_id}/settle")
async def settle_topup(
    body: TopUpSettlement,
    transaction_id: int = Path(gt=0),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    txn = await TopUpService(db, settings).settle_topup(
        TransactionId(transaction_id), body.approved,
    )
    return {
        "success": True,
        "transaction_id": txn.id,
        "status": txn.status,
        "credits": txn.amount,
    }
