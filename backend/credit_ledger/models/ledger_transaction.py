"""LedgerTransaction ORM — append-only audit record of balance-changing events.

Invariants:
    - kind is topup | purchase; status is pending | completed | failed
    - amount is in credits (int); money_amount_cents is the real-money side of a top-up
    - Immutable once written, except pending -> completed|failed on top-ups
    - failure_note is diagnostic only and never returned to callers

Design Decisions:
    - One table for both kinds: history listing and stats need a single ordered scan
    - Composite index (account_id, created_at): newest-first listing per account
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.db.base import Base


class LedgerTransaction(Base):
    """Transaction log entry."""
    __tablename__ = "ledger_transactions"
    __table_args__ = (
        Index("ix_ledger_transactions_account_created", "account_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    item_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("items.id"), nullable=True, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )

    # Top-up request details (manual, off-platform verification)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    money_amount_cents: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    failure_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
