"""
FridgeLingo Backend — Health Check Route
=========================================

What:  GET /health for Docker health checks and load balancer probes.
How:   SELECT 1 against the database, then the Gemini circuit state and a
       cheap model-listing probe.

Status levels:
    healthy    database and Gemini fine
    degraded   Gemini down or circuit open (photos still fail soft)
    unhealthy  database unreachable
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text

from fridgelingo import __version__
from fridgelingo.container import ServiceContainer, get_container
from fridgelingo.database import engine
from fridgelingo.schemas.common import HealthResponse
from fridgelingo.services.gemini_service import CircuitBreaker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(container: ServiceContainer = Depends(get_container)) -> HealthResponse:
    db_status = "connected"
    gemini_status = "available"
    overall = "healthy"

    # ── Database ──────────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Gemini ────────────────────────────────────────────────────────────
    breaker = getattr(container.generator, "circuit_breaker", None)
    if breaker is not None and breaker.state == CircuitBreaker.OPEN:
        gemini_status = "circuit_open"
    elif not await container.generator.health_check():
        gemini_status = "unavailable"

    if gemini_status != "available" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        gemini=gemini_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
