"""
FastAPI Application Entry Point
Main application with all routes and middleware
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from gad_procurement.core.config import settings
from gad_procurement.core.logging import setup_logging, get_logger
from gad_procurement.core.exceptions import AppException
from gad_procurement.api.v1 import router as api_v1_router
from gad_procurement.models.common import ErrorDetail, ErrorResponse, HealthResponse

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan management"""
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.DEBUG}")

    from gad_procurement.db.session import init_db, close_db

    await init_db()
    logger.info("All services initialized successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_db()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-department access control for the digital procurement file",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan
)


# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)


def _error_response(status_code: int, error: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error).model_dump(mode="json", exclude_none=True),
    )


# Exception Handlers
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error_response(
        exc.status_code,
        ErrorDetail(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            timestamp=exc.timestamp,
        ),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions"""
    # Handle both string and dict details
    if isinstance(exc.detail, dict):
        error_code = exc.detail.get("code", "http_error")
        error_message = exc.detail.get("message", str(exc.detail))
        error_details = {k: v for k, v in exc.detail.items() if k not in ("code", "message")}
    else:
        error_code = str(exc.detail).lower().replace(" ", "_")
        error_message = str(exc.detail)
        error_details = None

    return _error_response(
        exc.status_code,
        ErrorDetail(code=error_code, message=error_message, details=error_details or None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation errors"""
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        ErrorDetail(
            code="validation_error",
            message="Invalid request parameters",
            details={"errors": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                for e in exc.errors()
            ]},
        ),
    )


# Include routers
app.include_router(api_v1_router, prefix="/api/v1")


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs" if settings.DEBUG else None,
    }


# Health check endpoint
@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    health_status = HealthResponse(status="healthy", version=settings.APP_VERSION)

    try:
        from gad_procurement.db.session import get_db_session
        from sqlalchemy import text
        async for session in get_db_session():
            await session.execute(text("SELECT 1"))
            health_status.services["database"] = "healthy"
            break
    except Exception as e:
        health_status.status = "degraded"
        health_status.services["database"] = f"unhealthy: {str(e)}"

    return health_status


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gad_procurement.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )
