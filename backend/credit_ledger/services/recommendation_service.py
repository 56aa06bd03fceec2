"""Recommendation Service — gathers per-account signals and runs the tier pipeline.

Invariants:
    - Each tier-specific signal is loaded inside its own SAVEPOINT; a failing source
      becomes None (tier skipped) without poisoning the rest of the request
    - Owned ids and the catalog are shared by every tier: their failure is fatal
    - Output is deterministic for identical data (no randomness anywhere)
"""

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.core.domain_types import AccountContext
from credit_ledger.core.recommendation_pipeline import (
    Recommendation, RecommendationSignals, recommend, skipped_tiers,
)
from credit_ledger.services.catalog import CatalogReader
from credit_ledger.services.ownership_registry import OwnershipRegistry
from credit_ledger.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)

T = TypeVar("T")


def clamp_limit(limit: int | None, default: int, maximum: int) -> int:
    """Requested limit forced into 1..maximum."""
    if limit is None:
        return default
    return min(max(limit, 1), maximum)


def format_recommendation(rec: Recommendation) -> dict:
    item = rec.item
    return {
        "id": item.id,
        "title": item.title,
        "subject": item.subject or "General",
        "level": item.level or "All Levels",
        "price": item.price,
        "popularity": rec.popularity,
        "reason": rec.tier,
    }


class RecommendationService:
    """Builds RecommendationSignals from storage and ranks the catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ownership = OwnershipRegistry(db)
        self.transactions = TransactionLog(db)
        self.catalog = CatalogReader(db)

    async def recommend(self, ctx: AccountContext, limit: int) -> list[Recommendation]:
        account_id = ctx.account_id
        owned = await self.ownership.owned_item_ids(account_id)
        signals = RecommendationSignals(
            owned_ids=owned,
            purchased_subjects=await self._optional(
                "subject", lambda: self.ownership.purchased_subjects(account_id),
            ),
            purchased_levels=await self._optional(
                "level", lambda: self.ownership.purchased_levels(account_id),
            ),
            purchase_counts=await self._optional(
                "popularity", self.transactions.purchase_counts,
            ),
        )
        for tier in skipped_tiers(signals):
            logger.warning(
                f"Recommendation tier '{tier}' skipped: source unavailable",
                extra={"account_id": account_id, "tier": tier},
            )
        catalog = await self.catalog.list_published()
        return recommend(catalog, signals, limit)

    async def _optional(
        self, tier: str, load: Callable[[], Awaitable[T]],
    ) -> T | None:
        """Load one tier's signal; None if its source fails."""
        try:
            async with self.db.begin_nested():
                return await load()
        except SQLAlchemyError:
            logger.error(
                f"Signal for tier '{tier}' failed to load",
                extra={"tier": tier}, exc_info=True,
            )
            return None
