"""FastAPI application factory"""

from typing import Optional

import uvicorn
from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from lifecycle_reconciler.api.dependencies import get_settings
from lifecycle_reconciler.api.middleware import RequestIDMiddleware
from lifecycle_reconciler.api.v1 import classify, runs
from lifecycle_reconciler.config import Settings
from lifecycle_reconciler.infrastructure.observability.logging import setup_logging


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure FastAPI application"""
    settings = settings or get_settings()
    setup_logging(settings.effective_log_level, settings.service_name)

    app = FastAPI(
        title="Account Lifecycle Reconciler",
        description="Inactive account notification and deactivation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(runs.router, prefix="/v1", tags=["runs"])
    app.include_router(classify.router, prefix="/v1", tags=["classification"])

    return app


def serve() -> None:
    """Run the API under uvicorn with the configured bind address"""
    settings = get_settings()
    uvicorn.run(
        "lifecycle_reconciler.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )
