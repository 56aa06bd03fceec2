"""Recommendation Routes — tiered, deterministic item suggestions for the caller."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.api.deps import require_account
from credit_ledger.config import Settings, get_settings
from credit_ledger.core.domain_types import AccountContext
from credit_ledger.infrastructure.database import get_db
from credit_ledger.schemas.commerce import RecommendationsResponse
from credit_ledger.services.recommendation_service import (
    RecommendationService, clamp_limit, format_recommendation,
)

router = APIRouter(prefix="/api/v1/recommendations", tags=["recommendations"])


@router.get("", response_model=RecommendationsResponse)
async def get_recommendations(
    limit: int | None = Query(None),
    ctx: AccountContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Out-of-range limits are clamped, not rejected."""
    limit = clamp_limit(
        limit,
        settings.recommendation_default_limit,
        settings.recommendation_max_limit,
    )
    recs = await RecommendationService(db).recommend(ctx, limit)
    return RecommendationsResponse(
        recommendations=[format_recommendation(r) for r in recs],
        count=len(recs),
        account_id=ctx.account_id,
    )
