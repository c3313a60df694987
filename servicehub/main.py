# servicehub/main.py
"""
ASGI entry point for ServiceHub.

Run with:
    uvicorn servicehub.main:app --reload
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
import logging
from datetime import datetime
import os

from servicehub.api.api import api_router
from servicehub.core.config import settings
from servicehub.core.events import setup_event_handlers

# --- Logging ---
LOG_LEVEL_NAME = os.environ.get("LOG_LEVEL", settings.LOG_LEVEL).upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("servicehub")
logger.setLevel(LOG_LEVEL)

DEV_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Recurring bookings for the ServiceHub marketplace",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
)

cors_origins = [str(origin) for origin in settings.BACKEND_CORS_ORIGINS if origin]
if not cors_origins:
    logger.warning(f"BACKEND_CORS_ORIGINS is empty; allowing {DEV_CORS_ORIGINS}")
    cors_origins = DEV_CORS_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning(
        f"Rejected {request.method} {request.url.path}: "
        + "; ".join(f"{'.'.join(str(p) for p in e.get('loc', []))}: {e.get('msg')}" for e in errors)
    )
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": errors})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = datetime.now()
    try:
        response = await call_next(request)
    except Exception:
        elapsed = (datetime.now() - started).total_seconds()
        logger.exception(f"{request.method} {request.url.path} failed after {elapsed:.4f}s")
        raise
    elapsed = (datetime.now() - started).total_seconds()
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.4f}s)")
    return response


setup_event_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/", tags=["Root"], summary="API Root Endpoint")
def read_root():
    """Basic service information and the documentation URLs."""
    return {
        "project_name": settings.PROJECT_NAME,
        "version": app.version,
        "environment": settings.ENVIRONMENT,
        "docs_url": app.docs_url,
        "openapi_url": app.openapi_url,
    }


@app.get("/health", tags=["Health"], summary="API Health Check")
def health_check():
    return {"status": "ok", "timestamp": datetime.now().isoformat()}
