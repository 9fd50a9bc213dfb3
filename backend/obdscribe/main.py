"""Main FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .auth_routes import router as auth_router
from .db import dispose_engine, init_db
from .preferences import router as settings_router
from .reports import router as reports_router
from .schemas import HealthResponse
from .settings import settings


logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger("obdscribe")

app = FastAPI(title="OBDscribe Backend", version=settings.app_version)
app.include_router(auth_router)
app.include_router(reports_router)
app.include_router(settings_router)


@app.on_event("startup")
async def startup_event() -> None:
    """Create the tables if needed and load reference data."""
    await init_db()
    logger.info(
        "Database initialised; environment=%s; Vertex location=%s; models=%s/%s; dev identity=%s",
        settings.environment,
        settings.location,
        settings.standard_model,
        settings.premium_model,
        settings.dev_identity_enabled,
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await dispose_engine()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed or incomplete input as a 400."""
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health endpoint to confirm the service is up."""
    return HealthResponse(status="ok", version=settings.app_version)
