"""Health and readiness endpoints.

/health is the liveness probe: it always answers 200 and reports each
dependency in ``checks``; ``status`` is "degraded" when one is down.
/ready answers 503 when the database is configured but unreachable, since
no sync operation can succeed without it.  Redis only guards job overlap,
so it never affects readiness.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from learnsync.db import engine as db_engine
from learnsync.db.redis import ping_redis, redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _database_ok() -> bool:
    if db_engine.engine is None:
        return True
    try:
        async with db_engine.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Database ping failed", exc_info=True)
        return False
    return True


@router.get("/health")
async def health(request: Request) -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if db_engine.engine is None:
        checks["database"] = "not_configured"
    elif await _database_ok():
        checks["database"] = "ok"
    else:
        checks["database"] = "degraded"
        overall = "degraded"

    if redis_pool is None:
        checks["redis"] = "not_configured"
    elif await ping_redis():
        checks["redis"] = "ok"
    else:
        checks["redis"] = "degraded"
        overall = "degraded"

    scheduler = request.app.state.container.scheduler
    checks["scheduler"] = "running" if scheduler.running else "not_running"

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if not await _database_ok():
        return Response(status_code=503)
    return Response(status_code=200)
