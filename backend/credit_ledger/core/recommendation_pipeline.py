"""Recommendation Pipeline — ordered, declarative tiers over a shared exclusion set.

Invariants:
    - Tiers run strictly in TIERS order until `limit` items are collected
    - Owned items and items picked by an earlier tier are never returned
    - Only published catalog items are candidates
    - Within a tier, ties break by ascending item id: same input, same output
    - A tier whose signal is None (source unavailable) is skipped, never fatal
    - The recency tier needs no signal, so it always runs

Design Decisions:
    - Tier = (signal selector, predicate, ordering): adding a strategy is one tuple entry
    - Popularity is the real completed-purchase count, never a random placeholder
    - Two-pass stable sort (id asc, then primary key desc) enforces the tie-break centrally
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping, Sequence

from credit_ledger.core.domain_types import CatalogItem, ItemId


@dataclass(frozen=True)
class RecommendationSignals:
    """Per-account inputs. None means the backing data source was unavailable."""
    owned_ids: frozenset[ItemId] = frozenset()
    purchased_subjects: frozenset[str] | None = frozenset()
    purchased_levels: frozenset[str] | None = frozenset()
    purchase_counts: Mapping[ItemId, int] | None = field(default_factory=dict)


@dataclass(frozen=True)
class Recommendation:
    """A selected item and the tier that picked it."""
    item: CatalogItem
    tier: str
    popularity: int


@dataclass(frozen=True)
class Tier:
    name: str
    signal: Callable[[RecommendationSignals], Any]
    accepts: Callable[[CatalogItem, Any], bool]
    rank: Callable[[CatalogItem, Any], Any]


def _recency(item: CatalogItem, _signal: Any) -> tuple[bool, datetime]:
    return (item.published_at is not None, item.published_at or datetime.min)


def _popularity(item: CatalogItem, counts: Mapping[ItemId, int]) -> int:
    return counts.get(item.id, 0)


TIERS: tuple[Tier, ...] = (
    Tier(
        name="subject",
        signal=lambda s: s.purchased_subjects,
        accepts=lambda item, subjects: item.subject in subjects,
        rank=_recency,
    ),
    Tier(
        name="level",
        signal=lambda s: s.purchased_levels,
        accepts=lambda item, levels: item.level in levels,
        rank=_recency,
    ),
    Tier(
        name="popularity",
        signal=lambda s: s.purchase_counts,
        accepts=lambda item, counts: counts.get(item.id, 0) > 0,
        rank=_popularity,
    ),
    Tier(
        name="recency",
        signal=lambda s: True,
        accepts=lambda item, _signal: True,
        rank=_recency,
    ),
)


def rank_tier(
    tier: Tier, candidates: Sequence[CatalogItem], signal: Any,
) -> list[CatalogItem]:
    """Filter and order one tier's candidates. Primary key descending, id ascending."""
    matching = [item for item in candidates if tier.accepts(item, signal)]
    by_id = sorted(matching, key=lambda item: item.id)
    return sorted(by_id, key=lambda item: tier.rank(item, signal), reverse=True)


def recommend(
    catalog: Sequence[CatalogItem],
    signals: RecommendationSignals,
    limit: int,
    tiers: Sequence[Tier] = TIERS,
) -> list[Recommendation]:
    """Run the tiers in order and return at most `limit` recommendations."""
    if limit <= 0:
        return []

    excluded: set[ItemId] = set(signals.owned_ids)
    counts = signals.purchase_counts or {}
    picked: list[Recommendation] = []

    for tier in tiers:
        signal = tier.signal(signals)
        if signal is None:
            continue
        candidates = [
            item for item in catalog
            if item.published and item.id not in excluded
        ]
        for item in rank_tier(tier, candidates, signal):
            picked.append(Recommendation(
                item=item, tier=tier.name, popularity=counts.get(item.id, 0),
            ))
            excluded.add(item.id)
            if len(picked) >= limit:
                return picked
    return picked


def skipped_tiers(
    signals: RecommendationSignals, tiers: Sequence[Tier] = TIERS,
) -> list[str]:
    """Names of tiers that will not run because their source is unavailable."""
    return [tier.name for tier in tiers if tier.signal(signals) is None]
