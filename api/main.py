"""
FastAPI API Service Entry Point
"""

import logging
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from api.dependencies import get_session_factory
from api.responses import failure
from api.routes import appointments, auth, catalog, feedback, notifications, superadmin, users
from salon.errors import SalonError
from salon.repositories.sql import SessionFactory
from shared.config import get_settings
from shared.logging_config import configure_logging
from shared.startup_validator import (
    StartupValidationError,
    validate_database_connection,
    validate_startup_config,
)

# Configure structured JSON logging on startup
configure_logging()
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title=f"{settings.SALON_NAME} API",
    version="1.0.0",
)

origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=origins != ["*"],
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(appointments.router)
app.include_router(catalog.router)
app.include_router(feedback.router)
app.include_router(notifications.router)
app.include_router(superadmin.router)


# =========================================================================
# STARTUP
# =========================================================================
@app.on_event("startup")
async def startup() -> None:
    """
    Validate configuration, ensure the schema and seed the required rows.

    Raises:
        StartupValidationError: If critical configuration is invalid
    """
    from database.connection import init_models
    from database.seeds import seed_all

    logger.info("Running API startup configuration validation...")
    try:
        await validate_startup_config()
        logger.info("API startup configuration validation passed")
    except StartupValidationError as e:
        logger.critical(f"API startup blocked due to configuration errors: {e}")
        raise  # FastAPI will fail to start

    if not await validate_database_connection():
        raise StartupValidationError("Database is unreachable")

    await init_models()
    await seed_all()


@app.on_event("shutdown")
async def shutdown() -> None:
    from database.connection import dispose_engine

    await dispose_engine()


# =========================================================================
# EXCEPTION HANDLERS
# =========================================================================
def jsonable_errors(errors: list) -> list[dict]:
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": str(error.get("msg", ""))}
        for error in errors
    ]


@app.exception_handler(SalonError)
async def salon_error_handler(request: Request, exc: SalonError) -> JSONResponse:
    """Business failures keep HTTP 200 and the uniform failure shape."""
    return JSONResponse(status_code=200, content=failure(exc.message))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with validation error details."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request: {field} {first.get('msg', '')}".strip() if field else "Invalid request"
    logger.warning(message, extra={"request_path": request.url.path, "error_code": "INVALID_INPUT"})
    return JSONResponse(
        status_code=400,
        content=failure(message, details=jsonable_errors(errors)),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error: {exc}",
        extra={"request_path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content=failure("Internal server error"))


@app.get("/health")
async def health_check(session_factory: Annotated[SessionFactory, Depends(get_session_factory)]) -> JSONResponse:
    """
    Health check endpoint for Docker health checks and monitoring.

    Checks:
    - Database connectivity (SELECT 1 query)

    Returns:
        200 OK if all systems healthy
        503 Service Unavailable if degraded
    """
    health_status = {"status": "healthy", "database": "unknown"}
    status_code = 200

    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check database failure: {e}")
        health_status["database"] = "disconnected"
        health_status["status"] = "degraded"
        status_code = 503

    return JSONResponse(status_code=status_code, content=health_status)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": f"{settings.SALON_NAME} API - Use /health for health checks"}
