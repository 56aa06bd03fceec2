"""Ownership ORM — entitlement granting an account access to an item.

Invariants:
    - Unique per (account_id, item_id): an item is owned at most once
    - transaction_id points at the completed purchase that created it (unique)
    - Never deleted
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.db.base import Base


class Ownership(Base):
    """Entitlement row, written in the same unit of work as the purchase."""
    __tablename__ = "ownerships"
    __table_args__ = (
        UniqueConstraint("account_id", "item_id", name="uq_ownerships_account_item"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=False, index=True,
    )
    item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("items.id"), nullable=False,
    )
    transaction_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ledger_transactions.id"), nullable=False, unique=True,
    )
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
