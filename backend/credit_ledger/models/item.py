"""Item ORM — purchasable catalog entries (worksheets, videos, ...).

Invariants:
    - price is an integer number of credits
    - Only published items can be bought or recommended
    - The ledger never writes this table; the content system owns it

Design Decisions:
    - published_at kept separate from created_at: recency ranks by publication
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.db.base import Base


class Item(Base):
    """Catalog item entity."""
    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    subject: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True,
    )
    level: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True,
    )
    published: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    # Storage location handed out to owners; hosting lives outside the ledger
    file_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
