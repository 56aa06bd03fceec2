"""Purchase Rules — pure validation stages and the purchase outcome value.

Invariants:
    - Validating runs before FundsCheck; the first failing stage wins
    - A decline produced here implies zero state mutation
    - PurchaseResult is either committed (with remaining_credits) or declined (with reason)

Design Decisions:
    - Rules are pure: the engine loads item/ownership/balance, these functions decide
    - PurchaseResult.to_error() maps a decline onto the error hierarchy so routes stay thin
"""

from dataclasses import dataclass

from credit_ledger.core.domain_types import (
    CatalogItem, DeclineReason, ItemId, PurchaseStage, TransactionId,
)
from credit_ledger.core.errors import (
    AlreadyOwnedError,
    InsufficientFundsError,
    ItemUnavailableError,
    LedgerError,
    PurchaseFailedError,
)


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of a single purchase attempt."""
    item_id: ItemId
    stage: PurchaseStage
    decline: DeclineReason | None = None
    transaction_id: TransactionId | None = None
    remaining_credits: int | None = None
    required: int | None = None
    available: int | None = None

    @property
    def committed(self) -> bool:
        return self.decline is None

    @classmethod
    def success(
        cls, item_id: ItemId, transaction_id: TransactionId, remaining_credits: int,
    ) -> "PurchaseResult":
        return cls(
            item_id=item_id,
            stage=PurchaseStage.COMMITTED,
            transaction_id=transaction_id,
            remaining_credits=remaining_credits,
        )

    @classmethod
    def declined(
        cls, item_id: ItemId, stage: PurchaseStage, reason: DeclineReason,
        required: int | None = None, available: int | None = None,
    ) -> "PurchaseResult":
        return cls(
            item_id=item_id, stage=stage, decline=reason,
            required=required, available=available,
        )

    def to_error(self) -> LedgerError:
        """Error carrying the decline reason to the caller."""
        if self.decline == DeclineReason.ITEM_UNAVAILABLE:
            return ItemUnavailableError(self.item_id)
        if self.decline == DeclineReason.ALREADY_OWNED:
            return AlreadyOwnedError(self.item_id)
        if self.decline == DeclineReason.INSUFFICIENT_FUNDS:
            return InsufficientFundsError(self.required, self.available)
        return PurchaseFailedError()


def validate_item(
    item_id: ItemId, item: CatalogItem | None, already_owned: bool,
) -> PurchaseResult | None:
    """Validating stage. Returns a decline or None when the item may be bought."""
    if item is None or not item.published or item.price <= 0:
        return PurchaseResult.declined(
            item_id, PurchaseStage.VALIDATING, DeclineReason.ITEM_UNAVAILABLE,
        )
    if already_owned:
        return PurchaseResult.declined(
            item_id, PurchaseStage.VALIDATING, DeclineReason.ALREADY_OWNED,
        )
    return None


def check_funds(item: CatalogItem, balance: int) -> PurchaseResult | None:
    """FundsCheck stage. Declines with the exact shortfall figures."""
    if balance < item.price:
        return PurchaseResult.declined(
            item.id, PurchaseStage.FUNDS_CHECK, DeclineReason.INSUFFICIENT_FUNDS,
            required=item.price, available=balance,
        )
    return None


def summarize_eligibility(
    item: CatalogItem, already_owned: bool, balance: int,
) -> dict:
    """Read-only preview of whether a purchase would go through."""
    sufficient = balance >= item.price
    return {
        "can_purchase": not already_owned and sufficient,
        "already_owned": already_owned,
        "price": item.price,
        "user_credits": balance,
        "sufficient_credits": sufficient,
    }
