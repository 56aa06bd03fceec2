"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - AccountId, ItemId, TransactionId wrap ints — never mix them up in signatures
    - Credits are always int; money is always int minor units (cents)
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and store in String columns without custom encoders
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

AccountId = NewType("AccountId", int)
ItemId = NewType("ItemId", int)
TransactionId = NewType("TransactionId", int)


# ─── Value Types ─────────────────────────────────────────────────

Credits = NewType("Credits", int)
MoneyCents = NewType("MoneyCents", int)


# ─── Enums ───────────────────────────────────────────────────────

class TransactionKind(str, Enum):
    """Balance-changing event types recorded in the transaction log."""
    TOPUP = "topup"
    PURCHASE = "purchase"


class TransactionStatus(str, Enum):
    """Transaction states — only top-ups ever leave PENDING."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PurchaseStage(str, Enum):
    """Purchase state machine, in execution order."""
    VALIDATING = "validating"
    FUNDS_CHECK = "funds_check"
    DEBITING = "debiting"
    RECORDING = "recording"
    GRANTING = "granting"
    COMMITTED = "committed"


class DeclineReason(str, Enum):
    """Why a purchase did not commit."""
    ITEM_UNAVAILABLE = "item_unavailable"
    ALREADY_OWNED = "already_owned"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INTERNAL_ERROR = "internal_error"


# ─── Context ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class AccountContext:
    """Authenticated caller, threaded explicitly through every service call."""
    account_id: AccountId
    session_id: str


@dataclass(frozen=True)
class CatalogItem:
    """Read-only snapshot of a purchasable item as the catalog exposes it."""
    id: ItemId
    title: str
    price: int
    subject: str | None
    level: str | None
    published: bool
    published_at: datetime | None = None
