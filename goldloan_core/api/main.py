"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from goldloan_core.api.errors import register_exception_handlers
from goldloan_core.api.middleware import RequestIDMiddleware, MetricsMiddleware
from goldloan_core.api.v1 import gold_items, loans, overdue, payments
from goldloan_core.infrastructure.observability.logging import setup_logging
from goldloan_core.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Gold Loan Ledger",
        description="Loan lifecycle, collateral custody and payment ledger service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(gold_items.router, prefix="/v1", tags=["gold-items"])
    app.include_router(overdue.router, prefix="/v1", tags=["overdue"])

    return app


app = create_app()
