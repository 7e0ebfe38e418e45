"""
Inventory Core FastAPI Main Application
Entry point for the inventory consistency REST API
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inventory_core.core.config import settings
from inventory_core.core.database import check_db_connection, init_db
from inventory_core.core.exceptions import (
    ConcurrentModificationError, InsufficientBatchStockError, InsufficientStockError,
    InvalidAmountError, InvalidOrderStateError, InvalidTransferStateError,
    InventoryError, NotFoundError, OverReceiptError, ValidationError
)
from inventory_core.core.logging import get_logger, setup_logging
from inventory_core.api.v1.api_router import api_router
from inventory_core.services.alerts import AlertScheduler

logger = get_logger("api")

ERROR_STATUS_CODES = {
    ValidationError: 400,
    InvalidAmountError: 400,
    NotFoundError: 404,
    InsufficientStockError: 409,
    InsufficientBatchStockError: 409,
    OverReceiptError: 409,
    InvalidTransferStateError: 409,
    InvalidOrderStateError: 409,
    ConcurrentModificationError: 409,
}


def status_code_for(exc: InventoryError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown tasks

    Configures logging, creates tables and starts the alert sweeps.
    """
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if not check_db_connection():
        logger.error("Failed to connect to database on startup")
        raise RuntimeError("Database connection failed")
    init_db()

    scheduler = None
    if settings.ALERT_SWEEP_INTERVAL_SECONDS > 0:
        scheduler = AlertScheduler(settings.ALERT_SWEEP_INTERVAL_SECONDS)
        scheduler.start()

    logger.info("Application startup completed successfully")
    yield

    logger.info("Shutting down application")
    if scheduler:
        scheduler.stop()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## Inventory Core API

    Stock ledger, batch registry, weighted-average costing, warehouse
    transfers, purchase-order receiving and stock alerts.

    Every command runs in a single database transaction: it either applies
    completely or leaves no trace. Conflicting concurrent writes return
    409 with `retryable: true`.
    """,
    docs_url=settings.DOCS_URL,
    redoc_url=settings.REDOC_URL,
    openapi_url=settings.OPENAPI_URL,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers

    Returns system status and database connectivity
    """
    try:
        db_status = check_db_connection()

        return {
            "status": "healthy" if db_status else "degraded",
            "version": settings.APP_VERSION,
            "database": "connected" if db_status else "disconnected",
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


@app.exception_handler(InventoryError)
async def inventory_exception_handler(request: Request, exc: InventoryError):
    """Typed inventory failures become 4xx responses"""
    content = {"error": exc.code, "detail": exc.message}
    if isinstance(exc, ConcurrentModificationError):
        content["retryable"] = True
    return JSONResponse(status_code=status_code_for(exc), content=content)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors

    Returns:
        JSON error response
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        }
    )


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "inventory_core.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
