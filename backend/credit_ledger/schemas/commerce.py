"""Commerce Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - TopUpRequest.amount: positive decimal, at most 2 places (converted to int cents)
    - TopUpRequest.method: 1-50 chars, stripped, non-empty
    - Responses carry credits as int, money as decimal strings

Design Decisions:
    - Decimal over float for money input: no binary rounding before the cents conversion
    - field_validator for side-effect-free transforms (strip)
"""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class TopUpRequest(BaseModel):
    """Credit top-up request, verified manually later."""
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    method: str = Field(min_length=1, max_length=50)
    reference: str | None = Field(None, max_length=255)

    @field_validator("method")
    @classmethod
    def strip_method(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("method cannot be empty or whitespace")
        return v

    @field_validator("reference")
    @classmethod
    def strip_reference(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class TopUpResponse(BaseModel):
    success: bool = True
    message: str
    transaction_id: int
    credits_requested: int
    real_amount: str
    status: str


class TopUpSettlement(BaseModel):
    """Outcome of the off-platform payment verification."""
    approved: bool


class BalanceResponse(BaseModel):
    success: bool = True
    credits: int
    account_id: int


class PurchaseResponse(BaseModel):
    success: bool = True
    message: str
    transaction_id: int
    remaining_credits: int


class OwnedItem(BaseModel):
    id: int
    title: str
    subject: str
    level: str
    purchase_date: str
    price: int
    download_ref: str


class DownloadResponse(BaseModel):
    success: bool = True
    item_id: int
    title: str
    file_ref: str


class OwnedItemsResponse(BaseModel):
    success: bool = True
    items: list[OwnedItem]
    count: int


class EligibilityResponse(BaseModel):
    success: bool = True
    can_purchase: bool
    already_owned: bool
    price: int
    user_credits: int
    sufficient_credits: bool


class TransactionView(BaseModel):
    id: int
    type: str
    amount: int
    description: str
    date: str
    status: str
    item_id: int | None = None
    real_amount: str | None = None


class TransactionsResponse(BaseModel):
    success: bool = True
    transactions: list[TransactionView]
    count: int


class TransactionStats(BaseModel):
    total_topped_up: int
    total_spent: int
    pending_count: int
    this_month_purchase_count: int
    items_purchased: int
    total_money_spent_cents: int


class StatsResponse(BaseModel):
    success: bool = True
    stats: TransactionStats


class RecommendedItem(BaseModel):
    id: int
    title: str
    subject: str
    level: str
    price: int
    popularity: int
    reason: str


class RecommendationsResponse(BaseModel):
    success: bool = True
    recommendations: list[RecommendedItem]
    count: int
    account_id: int
