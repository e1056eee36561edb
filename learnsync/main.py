from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from learnsync.api.errors import install_error_handlers
from learnsync.api.health import router as health_router
from learnsync.api.jobs import router as jobs_router
from learnsync.api.metrics_endpoint import router as metrics_router
from learnsync.api.progress import router as progress_router
from learnsync.container import build_container
from learnsync.core.config import SETTINGS
from learnsync.core.logging import setup_logging
from learnsync.db.engine import lifespan_db
from learnsync.db.redis import lifespan_redis
from learnsync.middleware.metrics import MetricsMiddleware
from learnsync.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_context_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        async with lifespan_redis():
            scheduler = app.state.container.scheduler
            if SETTINGS.scheduler_enabled:
                scheduler.start()
            try:
                yield
            finally:
                scheduler.shutdown()


app = FastAPI(
    title="learnsync",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)
app.state.container = build_container(SETTINGS)

# Last added runs first: RequestContext wraps Metrics, which wraps the route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

install_error_handlers(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(progress_router)
app.include_router(jobs_router)

logger.info(
    "learnsync started  env=%s log_level=%s port=%d scheduler=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.scheduler_enabled else "off",
)
