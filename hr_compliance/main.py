"""HR Compliance — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from hr_compliance import __version__
from hr_compliance.alerts.router import router as alerts_router
from hr_compliance.analysis.client import get_analysis_client
from hr_compliance.analysis.tasks import AnalysisTaskQueue
from hr_compliance.common.exceptions import register_exception_handlers
from hr_compliance.common.logging import setup_logging
from hr_compliance.common.rate_limit import limiter
from hr_compliance.config import settings
from hr_compliance.core_hr.router import departments_router, employees_router
from hr_compliance.database import async_session_factory
from hr_compliance.documents.router import documents_router, templates_router
from hr_compliance.recurring.router import router as recurring_router
from hr_compliance.timeclock.router import router as timeclock_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the background analysis worker; stop it on shutdown."""
    setup_logging(settings.LOG_LEVEL)
    queue = AnalysisTaskQueue(async_session_factory, get_analysis_client())
    app.state.analysis_queue = queue
    queue.start()
    logger.info("HR Compliance %s started (%s)", __version__, settings.ENVIRONMENT)
    yield
    await queue.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="HR Compliance",
        description="Document lifecycle and labor-compliance monitoring",
        version=__version__,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(employees_router, prefix="/api/v1/employees", tags=["employees"])
    app.include_router(departments_router, prefix="/api/v1/departments", tags=["departments"])
    app.include_router(templates_router, prefix="/api/v1/templates", tags=["templates"])
    app.include_router(documents_router, prefix="/api/v1/documents", tags=["documents"])
    app.include_router(recurring_router, prefix="/api/v1/recurring", tags=["recurring"])
    app.include_router(timeclock_router, prefix="/api/v1/timeclock", tags=["timeclock"])
    app.include_router(alerts_router, prefix="/api/v1/alerts", tags=["alerts"])

    return app


app = create_app()
