"""
Jokebox Backend — Health Check and API Index Routes
=====================================================

What:  GET /health for monitoring probes and GET / listing the endpoints.
How:   /health runs SELECT 1 against the engine and reports how many /events
       connections are open and how many were dropped after a failed write.

Status levels:
    - healthy:   Database reachable
    - unhealthy: Database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from jokebox import __version__
from jokebox.schemas.joke import ApiIndexResponse, HealthResponse
from jokebox.services.broadcast import broadcast_registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()

ENDPOINTS = {
    "GET /jokes": "Get all jokes (?name= filters by author)",
    "GET /jokes/:id": "Get a specific joke",
    "POST /jokes": "Create a new joke (requires setup, punchline and name)",
    "PUT /jokes/:id": "Update a joke",
    "DELETE /jokes/:id": "Delete a joke",
    "GET /jokes/random/one": "Get a random joke",
    "POST /advanced-joke": "Create a joke (requires auth-key header)",
    "GET /events": "Live stream of new jokes (Server-Sent Events)",
    "GET /health": "Service health",
}


@router.get("/", response_model=ApiIndexResponse, summary="API index")
async def index() -> ApiIndexResponse:
    return ApiIndexResponse(message="Welcome to the Jokes API!", endpoints=ENDPOINTS)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    """
    Check the database and report live subscriber count and uptime.

    Check details:
        Database: Executes SELECT 1 to verify connection and query execution
    """
    db_status = "connected"
    overall = "healthy"

    try:
        from jokebox.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        subscribers=broadcast_registry.subscriber_count,
        dropped_subscribers=broadcast_registry.dropped,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
