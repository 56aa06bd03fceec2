"""Identity Resolver — maps a bearer credential to an account id.

Invariants:
    - Exact sid match against auth_sessions, and last_active_at within the TTL
    - A miss is always UnauthenticatedError: there is no fallback to another
      session (e.g. "most recently active"), no anonymous or default account
    - The credential is never logged, not even in part

Design Decisions:
    - Returns AccountContext, a value passed explicitly to every service call
"""

import logging
import re
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.core.domain_types import AccountContext, AccountId
from credit_ledger.core.errors import UnauthenticatedError
from credit_ledger.models.auth_session import AuthSession

logger = logging.getLogger(__name__)

BEARER_PATTERN = re.compile(r"^Bearer\s+(\S+)\s*$", re.IGNORECASE)


def extract_bearer(authorization: str | None) -> str:
    """Pull the credential out of an Authorization header."""
    if not authorization:
        raise UnauthenticatedError("Missing bearer token")
    match = BEARER_PATTERN.match(authorization.strip())
    if not match:
        raise UnauthenticatedError("Malformed Authorization header")
    return match.group(1)


class IdentityResolver:
    """Exact, unexpired session lookup."""

    def __init__(self, db: AsyncSession, session_ttl_seconds: int):
        self.db = db
        self.ttl = timedelta(seconds=session_ttl_seconds)

    async def resolve(
        self, credential: str, now: datetime | None = None,
    ) -> AccountContext:
        cutoff = (now or datetime.now(timezone.utc)) - self.ttl
        result = await self.db.execute(
            select(AuthSession.account_id).where(
                AuthSession.sid == credential,
                AuthSession.last_active_at > cutoff,
            ),
        )
        account_id = result.scalar_one_or_none()
        if account_id is None:
            logger.warning("Rejected unknown or expired session credential")
            raise UnauthenticatedError("Invalid or expired session")
        return AccountContext(account_id=AccountId(account_id), session_id=credential)
