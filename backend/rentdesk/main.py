"""
RentDesk - Main Application Entry Point

Rental property administration: rent payments, property expenses and the
monthly tax summaries derived from them.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rentdesk.core.config import settings
from rentdesk.core.scheduler import start_scheduler, stop_scheduler
from rentdesk.modules.payments.events import get_event_bus
from rentdesk.modules.tax.coordinator import RecomputeCoordinator

# Import module routers
from rentdesk.modules.payments.router import router as payments_router
from rentdesk.modules.expenses.router import router as expenses_router
from rentdesk.modules.tax.router import router as tax_router

logger = logging.getLogger(__name__)

_coordinator: Optional[RecomputeCoordinator] = None


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Rental property payments, expenses and monthly tax summaries",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    cors_origins = ["*"] if settings.CORS_ALLOW_ALL else settings.CORS_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register module routers
    app.include_router(payments_router, prefix="/api/v1/payments", tags=["Payments"])
    app.include_router(expenses_router, prefix="/api/v1/expenses", tags=["Expenses"])
    app.include_router(tax_router, prefix="/api/v1/tax", tags=["Tax"])

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint - health check."""
        return {
            "application": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running"
        }

    @app.get("/api/health", tags=["Health"])
    async def health_check():
        """API health check endpoint."""
        return {"status": "healthy"}

    @app.on_event("startup")
    async def startup_event():
        """Wire payment change events to tax summary recomputes."""
        global _coordinator
        configure_logging()
        start_scheduler()
        if _coordinator is None:
            _coordinator = RecomputeCoordinator().attach(get_event_bus())
        logger.info("Application startup complete - tax recompute coordinator attached")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Detach the coordinator and stop the background scheduler."""
        global _coordinator
        if _coordinator is not None:
            _coordinator.detach(get_event_bus())
            _coordinator = None
        try:
            stop_scheduler()
            logger.info("Application shutdown - scheduler stopped")
        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("rentdesk.main:app", host="0.0.0.0", port=8000, reload=True)
