"""Purchase Routes — buy an item, list owned items, preview eligibility, owner-only download.

Invariants:
    - A declined purchase is raised as its LedgerError (status code from the error)
    - /owned is declared before /{item_id} routes
    - The purchase itself runs in the engine's own session, not the request's
    - /{item_id}/download answers 403 unless the caller owns the item
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.api.deps import get_purchase_engine, require_account
from credit_ledger.core.domain_types import AccountContext, ItemId
from credit_ledger.infrastructure.database import get_db
from credit_ledger.schemas.commerce import (
    DownloadResponse, EligibilityResponse, OwnedItemsResponse, PurchaseResponse,
)
from credit_ledger.services.ownership_registry import OwnershipRegistry
from credit_ledger.services.purchase_engine import PurchaseEngine

router = APIRouter(prefix="/api/v1/purchases", tags=["purchases"])


@router.get("/owned", response_model=OwnedItemsResponse)
async def list_owned(
    ctx: AccountContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    items = await OwnershipRegistry(db).list_owned(ctx.account_id)
    return OwnedItemsResponse(items=items, count=len(items))


@router.post("/{item_id}", response_model=PurchaseResponse)
async def purchase_item(
    item_id: int = Path(gt=0),
    ctx: AccountContext = Depends(require_account),
    engine: PurchaseEngine = Depends(get_purchase_engine),
):
    result = await engine.purchase(ctx, ItemId(item_id))
    if not result.committed:
        raise result.to_error()
    return PurchaseResponse(
        message="Item purchased successfully!",
        transaction_id=result.transaction_id,
        remaining_credits=result.remaining_credits,
    )


@router.get("/{item_id}/eligibility", response_model=EligibilityResponse)
async def check_eligibility(
    item_id: int = Path(gt=0),
    ctx: AccountContext = Depends(require_account),
    engine: PurchaseEngine = Depends(get_purchase_engine),
):
    summary = await engine.check_eligibility(ctx, ItemId(item_id))
    return EligibilityResponse(**summary)


@router.get("/{item_id}/download", response_model=DownloadResponse)
async def download_item(
    item_id: int = Path(gt=0),
    ctx: AccountContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    ref = await OwnershipRegistry(db).download_reference(ctx.account_id, ItemId(item_id))
    return DownloadResponse(**ref)
