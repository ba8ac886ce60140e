"""
FastAPI entrypoint for the Lendtrack backend application.
"""
import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from lendtrack.core.config import settings
from lendtrack.api.router import api_router
from lendtrack.db.session import init_db
from lendtrack.services.exceptions import (
    LedgerServiceError, NotFoundError, EntryValidationError, FieldLockedError,
    PaymentLimitExceededError, TermActionError, ConflictError
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

# Domain error -> HTTP status
ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    EntryValidationError: status.HTTP_400_BAD_REQUEST,
    PaymentLimitExceededError: status.HTTP_400_BAD_REQUEST,
    FieldLockedError: status.HTTP_409_CONFLICT,
    TermActionError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup when enabled."""
    if settings.AUTO_CREATE_TABLES:
        init_db()
    yield


app = FastAPI(
    title="Lendtrack API",
    description="Backend API for tracking loans, installments and shared group expenses",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerServiceError)
async def ledger_error_handler(request: Request, exc: LedgerServiceError):
    """Convert service-layer rule violations to JSON error responses."""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# Mount uploaded proof images
# This serves files from UPLOAD_DIR at /static URL path
static_dir = settings.UPLOAD_DIR
if os.path.exists(static_dir):
    app.mount("/static", StaticFiles(directory=static_dir), name="static")

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Lendtrack API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
