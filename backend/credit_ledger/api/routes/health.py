"""Health & Readiness Probes.

Invariants:
    - GET /health/ answers 200 whenever the process is serving (no IO)
    - GET /health/ready answers 503 until the ledger database round-trips
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from credit_ledger.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "credit-ledger-api"


@router.get("/", status_code=status.HTTP_200_OK)
async def liveness():
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness():
    """Ledger database must be reachable before traffic is routed here."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        logger.warning("Readiness check failed: ledger database unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {"status": "ready", "checks": {"database": "healthy"}}
