"""AuthSession ORM — login sessions owned by the external account system.

Invariants:
    - sid is the opaque bearer credential; lookups are exact-match only
    - last_active_at drives expiry (see Settings.session_ttl_seconds)
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.db.base import Base


class AuthSession(Base):
    """Session row consulted by the identity resolver."""
    __tablename__ = "auth_sessions"

    sid: Mapped[str] = mapped_column(String(128), primary_key=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id"), nullable=False, index=True,
    )
    last_active_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
