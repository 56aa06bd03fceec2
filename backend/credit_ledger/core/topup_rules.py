"""Top-up status rules — the only mutation the transaction log allows."""

from credit_ledger.core.domain_types import (
    TransactionId, TransactionKind, TransactionStatus,
)
from credit_ledger.core.errors import InvalidStatusTransitionError

SETTLED_STATES = frozenset({TransactionStatus.COMPLETED, TransactionStatus.FAILED})


def ensure_status_transition(
    transaction_id: TransactionId,
    kind: TransactionKind,
    current: TransactionStatus,
    requested: TransactionStatus,
) -> None:
    """Allow pending top-up -> completed|failed. Everything else is immutable history."""
    if (
        kind != TransactionKind.TOPUP
        or current != TransactionStatus.PENDING
        or requested not in SETTLED_STATES
    ):
        raise InvalidStatusTransitionError(
            transaction_id, current.value, requested.value,
        )
