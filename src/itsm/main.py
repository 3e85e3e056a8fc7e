"""
ITSM Service - Main Application
================================

Workload-balanced ticket assignment and notification routing for a
multi-tenant IT service desk.

Modules:
- Assignment: least-loaded agent selection across incidents, service
  requests and change requests
- Notifications: per-type email account routing, SMTP and Slack delivery
- Tickets: intake workflow tying the two together

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, policy file, SMTP, Slack
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

# Configuration and Core
from itsm.config import settings
from itsm.core import ApplicationException

# Infrastructure
from itsm.infrastructure.database import close_database, create_tables, get_engine, init_database

# External services
from itsm.assignment.infrastructure import get_policy_manager
from itsm.notifications.infrastructure import SlackClient

# Module Routers
from itsm.assignment.interfaces import assignment_router
from itsm.notifications.interfaces import notifications_router
from itsm.tickets.interfaces import tickets_router

# Middleware
from itsm.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)

# Logging
from itsm.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load assignment policy and watch it
    4. Initialize Slack client

    SHUTDOWN:
    1. Stop policy watcher
    2. Close Slack client
    3. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting ITSM Service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Tables are created for development; without a database the server
    # still starts and database-backed endpoints fail.
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    logger.info("Loading assignment policy")
    policy_manager = get_policy_manager()
    if settings.assignment_policy_watch:
        policy_manager.start_watching()

    slack_client = SlackClient() if settings.slack_configured else None
    if slack_client is None:
        logger.info("Slack not configured - Slack notifications disabled")
    app.state.slack_client = slack_client

    logger.info("ITSM Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down ITSM Service")

    policy_manager.stop_watching()

    if slack_client is not None:
        await slack_client.close()

    await close_database()

    logger.info("ITSM Service shutdown complete")


app = FastAPI(
    title="ITSM Service API",
    description="""
    ## IT Service Management Back End

    ### Assignment
    - `GET /assignment/tenants/{tenant_id}/workload` - Open tickets per agent
    - `GET /assignment/tenants/{tenant_id}/next-agent` - Least-loaded agent

    ### Notifications
    - `GET|POST /notifications/tenants/{tenant_id}/accounts` - Email accounts
    - `PUT /notifications/tenants/{tenant_id}/mappings/{type}` - Route a type to an account
    - `GET /notifications/tenants/{tenant_id}/resolve/{type}` - Account used for a type

    ### Tickets
    - `POST /tickets/{category}` - Create, auto-assign and notify
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(assignment_router)
app.include_router(notifications_router)
app.include_router(tickets_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service health",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "connected",
                        "assignment_policy": "loaded",
                        "slack": "configured"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports "degraded" when the database cannot be reached.
    """
    checks = {
        "database": "connected",
        "assignment_policy": "loaded",
        "slack": "configured" if getattr(request.app.state, "slack_client", None) else "not_configured"
    }

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        get_policy_manager().get_policy()
    except Exception as e:
        checks["assignment_policy"] = f"error: {e}"

    healthy = checks["database"] == "connected" and checks["assignment_policy"] == "loaded"

    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "ITSM Service",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "assignment": {
                "prefix": "/assignment",
                "endpoints": [
                    "GET /assignment/tenants/{tenant_id}/workload - Agent workload",
                    "GET /assignment/tenants/{tenant_id}/next-agent - Recommended assignee"
                ]
            },
            "notifications": {
                "prefix": "/notifications",
                "endpoints": [
                    "GET /notifications/tenants/{tenant_id}/accounts - List email accounts",
                    "POST /notifications/tenants/{tenant_id}/accounts - Add email account",
                    "DELETE /notifications/tenants/{tenant_id}/accounts/{id} - Delete email account",
                    "POST /notifications/tenants/{tenant_id}/accounts/{id}/default - Set default account",
                    "GET /notifications/tenants/{tenant_id}/mappings - List mappings",
                    "PUT /notifications/tenants/{tenant_id}/mappings/{type} - Route type to account",
                    "GET /notifications/tenants/{tenant_id}/resolve/{type} - Resolve account",
                    "GET /notifications/tenants/{tenant_id}/settings - Delivery status",
                    "POST /notifications/tenants/{tenant_id}/test - Send test notification",
                    "POST /notifications/tenants/{tenant_id}/alerts - Notify monitoring alert event"
                ]
            },
            "tickets": {
                "prefix": "/tickets",
                "endpoints": [
                    "POST /tickets/{category} - Create ticket"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "itsm.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
