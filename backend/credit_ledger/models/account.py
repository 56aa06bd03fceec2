"""Account ORM — the ledger store: one non-negative integer balance per account.

Invariants:
    - balance is an integer and never negative (CHECK constraint backs the CAS update)
    - Rows are created by registration (external); only CreditService mutates balance

Design Decisions:
    - Integer primary key: account ids come from the external identity system
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.db.base import Base


class Account(Base):
    """Ledger account — owns a credit balance."""
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str | None] = mapped_column(String(120), nullable=True)
    balance: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
