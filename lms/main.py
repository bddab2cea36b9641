from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lms.api.certificates import router as certificates_router
from lms.api.courses import router as courses_router
from lms.api.curriculum import router as curriculum_router
from lms.api.enrollments import router as enrollments_router
from lms.api.health import router as health_router
from lms.api.instructor import router as instructor_router
from lms.api.metrics_endpoint import router as metrics_router
from lms.api.progress import router as progress_router
from lms.api.reviews import router as reviews_router
from lms.api.users import router as users_router
from lms.core.config import SETTINGS
from lms.core.errors import DomainError, UnauthorizedError
from lms.core.logging import setup_logging
from lms.db.engine import lifespan_db
from lms.db.redis import lifespan_redis
from lms.middleware.metrics import MetricsMiddleware
from lms.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="lms-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """One place maps the domain taxonomy to HTTP.

    Body: {"error": <kind>, "detail": <message>, ...extra}.  Clients branch
    on ``error``, so 401/402/403/409 must never collapse into one another.
    """
    logger.info(
        "%s %s rejected: %s (%s)",
        request.method,
        request.url.path,
        exc.kind,
        exc.detail,
    )
    headers = (
        {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.detail, **exc.extra()},
        headers=headers,
    )


app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(courses_router)
app.include_router(curriculum_router)
app.include_router(enrollments_router)
app.include_router(instructor_router)
app.include_router(progress_router)
app.include_router(certificates_router)
app.include_router(reviews_router)
app.include_router(users_router)

logger.info(
    "lms-service started  env=%s log_level=%s port=%d docs=%s storage=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
    "postgres" if SETTINGS.database_url else "memory",
)
