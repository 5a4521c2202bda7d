"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /api/v1/health/ always returns 200 if process is up (liveness)
    - GET /api/v1/health/ready returns the 503 DATABASE_ERROR envelope if the
      account database is unreachable
    - Presence counters are reported, identities are not

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from
      the load balancer
"""

from fastapi import APIRouter, Depends, status

import relay.infrastructure.database as database
from relay.api.dependencies import get_relay_engine
from relay.core.errors import DatabaseError
from relay.services.relay_engine import RelayEngine

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "relay-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(engine: RelayEngine = Depends(get_relay_engine)):
    """Readiness probe — database connectivity plus presence counters.

    Raises DatabaseError (→ 503 envelope) when the account database is down.
    """
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        raise DatabaseError("account database unreachable", "health_check")
    return {
        "status": "ready",
        "checks": {"database": "healthy"},
        "relay": {
            "connections": engine.registry.online_count(),
            "pending_messages": engine.store.total_pending(),
        },
    }
