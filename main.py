"""
PetBook Health Access - Backend API
FastAPI + SQLModel: QR access handshake, grants, emergency override, co-authored records
"""
from dotenv import load_dotenv
load_dotenv()  # Load .env before any other imports

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.v1 import (
    emergency,
    grants,
    health_access,
    notifications,
    pending_records,
    realtime,
    tokens,
)
from config import settings
from domain.errors import AccessControlError
from infrastructure.realtime.bus import InMemorySignalBus, SignalBus
from infrastructure.structured_logging import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    logger.info("health_access_api_started")

    yield

    logger.info("health_access_api_stopping")


async def access_control_error_handler(request: Request, exc: AccessControlError) -> JSONResponse:
    logger.info(
        "access_control_error",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})


def create_app(signal_bus: Optional[SignalBus] = None) -> FastAPI:
    app = FastAPI(
        title="PetBook Health Access API",
        description="Guardian-controlled access to pet health records",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.signal_bus = signal_bus or InMemorySignalBus(queue_size=settings.realtime_queue_size)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_origin_regex=r"https://.*\.vercel\.app",  # preview deployments
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AccessControlError, access_control_error_handler)

    # Routers
    app.include_router(health_access.router, prefix="/api/v1/health-access", tags=["health-access"])
    app.include_router(tokens.router, prefix="/api/v1/tokens", tags=["tokens"])
    app.include_router(grants.router, prefix="/api/v1/grants", tags=["grants"])
    app.include_router(pending_records.router, prefix="/api/v1/pending-records", tags=["pending-records"])
    app.include_router(emergency.router, prefix="/api/v1/emergency", tags=["emergency"])
    app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["notifications"])
    app.include_router(realtime.router, prefix="/api/v1/realtime", tags=["realtime"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "petbook-health-access"}

    @app.get("/")
    async def root():
        return {"message": "PetBook Health Access API", "docs": "/docs"}

    return app


app = create_app()
