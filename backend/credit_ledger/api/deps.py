"""Request Dependencies — account context and service wiring for routes.

Invariants:
    - require_account is the only way a route obtains an account id
    - Missing/invalid credentials end in 401 before any service runs
"""

import hmac
import logging

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.config import Settings, get_settings
from credit_ledger.core.domain_types import AccountContext
from credit_ledger.core.errors import UnauthenticatedError
from credit_ledger.infrastructure.database import SessionScope, get_db, get_session_scope
from credit_ledger.services.identity_resolver import IdentityResolver, extract_bearer
from credit_ledger.services.purchase_engine import PurchaseEngine

logger = logging.getLogger(__name__)


async def require_account(
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AccountContext:
    """Resolve the bearer credential to an explicit account context."""
    credential = extract_bearer(authorization)
    resolver = IdentityResolver(db, settings.session_ttl_seconds)
    return await resolver.resolve(credential)


def require_admin(
    x_admin_token: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard for the manual top-up verification endpoint.

    Refuses every request while ADMIN_TOKEN is not configured.
    """
    if not settings.admin_token:
        logger.warning("Top-up settlement refused: ADMIN_TOKEN is not configured")
        raise UnauthenticatedError("Top-up settlement is not enabled")
    if not x_admin_token or not hmac.compare_digest(
        x_admin_token, settings.admin_token,
    ):
        raise UnauthenticatedError("Bad admin token")


def get_purchase_engine(
    session_scope: SessionScope = Depends(get_session_scope),
) -> PurchaseEngine:
    return PurchaseEngine(session_scope)
