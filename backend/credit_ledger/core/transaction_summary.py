"""Transaction Summary — pure formatting and one-pass statistics over an account's history.

Invariants:
    - aggregate_stats walks the history exactly once
    - Only completed top-ups count as topped up; only completed purchases count as spent
    - Pending top-ups are counted, never summed
    - `now` is passed in (month boundary is the caller's clock)
"""

from dataclasses import dataclass
from datetime import datetime

from credit_ledger.core.credit_math import cents_to_display
from credit_ledger.core.domain_types import (
    ItemId, TransactionId, TransactionKind, TransactionStatus,
)


@dataclass(frozen=True)
class TransactionRecord:
    """Flattened view of a transaction row plus the purchased item's title."""
    id: TransactionId
    kind: TransactionKind
    amount: int
    status: TransactionStatus
    created_at: datetime
    item_id: ItemId | None = None
    item_title: str | None = None
    payment_method: str | None = None
    money_amount_cents: int | None = None


def describe(record: TransactionRecord) -> str:
    """Human-readable one-liner for history listings."""
    if record.kind == TransactionKind.TOPUP:
        method = record.payment_method or "manual"
        return f"Credit top-up via {method}"
    title = record.item_title or f"item #{record.item_id}"
    if record.status == TransactionStatus.FAILED:
        return f"Failed purchase: {title}"
    return f"Purchased {title}"


def format_transaction(record: TransactionRecord) -> dict:
    """API shape for one history entry."""
    return {
        "id": record.id,
        "type": record.kind.value,
        "amount": record.amount,
        "description": describe(record),
        "date": record.created_at.isoformat(),
        "status": record.status.value,
        "item_id": record.item_id,
        "real_amount": (
            cents_to_display(record.money_amount_cents)
            if record.money_amount_cents is not None else None
        ),
    }


def aggregate_stats(records: list[TransactionRecord], now: datetime) -> dict:
    """Totals for the dashboard, computed in a single pass."""
    stats = {
        "total_topped_up": 0,
        "total_spent": 0,
        "pending_count": 0,
        "this_month_purchase_count": 0,
        "items_purchased": 0,
        "total_money_spent_cents": 0,
    }
    current_month = (now.year, now.month)

    for record in records:
        if record.kind == TransactionKind.TOPUP:
            if record.status == TransactionStatus.COMPLETED:
                stats["total_topped_up"] += record.amount
                stats["total_money_spent_cents"] += record.money_amount_cents or 0
            elif record.status == TransactionStatus.PENDING:
                stats["pending_count"] += 1
        elif record.status == TransactionStatus.COMPLETED:
            stats["total_spent"] += record.amount
            stats["items_purchased"] += 1
            if (record.created_at.year, record.created_at.month) == current_month:
                stats["this_month_purchase_count"] += 1

    return stats
