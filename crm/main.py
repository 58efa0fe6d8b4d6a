"""Agency CRM — FastAPI Application Factory."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from crm.accounts.router import router as accounts_router
from crm.alerts.router import router as alerts_router
from crm.attendance.router import router as work_sessions_router
from crm.auth.router import router as auth_router
from crm.catalog.router import router as services_router
from crm.common.exceptions import register_exception_handlers
from crm.common.rate_limit import limiter
from crm.config import settings
from crm.events.router import router as events_router
from crm.leave.router import router as leave_router
from crm.logging import RequestIdMiddleware, setup_logging
from crm.notifications.router import router as notifications_router
from crm.projects.router import router as projects_router
from crm.projects.router import steps_router
from crm.realtime.hub import ConnectionHub
from crm.realtime.router import router as realtime_router
from crm.subscriptions.router import router as subscriptions_router
from crm.tasks.router import router as tasks_router
from crm.users.router import router as users_router
from crm.users.router import teams_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    setup_logging()
    logger.info("app_startup", environment=settings.ENVIRONMENT)
    yield
    logger.info("app_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Agency CRM",
        description="Accounts, catalog, subscriptions, projects, tasks, events, leave and attendance",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Real-time rooms, shared by every request through get_notifier
    app.state.notifier = ConnectionHub()

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
    app.add_middleware(RequestIdMiddleware)

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
    app.include_router(teams_router, prefix="/api/v1/teams", tags=["teams"])
    app.include_router(services_router, prefix="/api/v1/services", tags=["services"])
    app.include_router(accounts_router, prefix="/api/v1/accounts", tags=["accounts"])
    app.include_router(subscriptions_router, prefix="/api/v1/subscriptions", tags=["subscriptions"])
    app.include_router(steps_router, prefix="/api/v1/steps", tags=["steps"])
    app.include_router(projects_router, prefix="/api/v1/projects", tags=["projects"])
    app.include_router(tasks_router, prefix="/api/v1/tasks", tags=["tasks"])
    app.include_router(events_router, prefix="/api/v1/events", tags=["events"])
    app.include_router(leave_router, prefix="/api/v1/leaves", tags=["leaves"])
    app.include_router(work_sessions_router, prefix="/api/v1/work-sessions", tags=["work-sessions"])
    app.include_router(alerts_router, prefix="/api/v1/alerts", tags=["alerts"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])
    app.include_router(realtime_router)

    return app


app = create_app()
