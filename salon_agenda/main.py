# salon_agenda/main.py
from __future__ import annotations

# Load .env early so settings and os.getenv see the same values
from dotenv import load_dotenv
load_dotenv()

import secrets

import sqlalchemy as sa
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salon_agenda.core.config import settings
from salon_agenda.core.errors import BookingError, ErrorSeverity, PersistenceFailure, error_aggregator, log_error
from salon_agenda.core.logging import LoggingMiddleware, get_logger, setup_logging
from salon_agenda.db.session import get_session

# Routers
from salon_agenda.api.routes.public import router as public_router
from salon_agenda.api.routes.businesses import router as businesses_router
from salon_agenda.api.routes.appointments import router as appointments_router

setup_logging(debug=settings.is_development, max_log_length=settings.MAX_LOG_LENGTH, level=settings.LOG_LEVEL)
logger = get_logger(__name__)

app = FastAPI(title="Salon Agenda", description="Appointment booking for salons and barbershops")

app.middleware("http")(LoggingMiddleware(
    log_requests=settings.LOG_REQUESTS or settings.is_development,
    log_responses=settings.LOG_RESPONSES or settings.is_development,
    slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
))

# -------- Error mapping --------
@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        log_error(exc, {"endpoint": request.url.path, "method": request.method})
    else:
        # Expected outcomes (validation, slot taken): not system errors
        logger.info("booking_rejected", code=exc.code, path=request.url.path)
    return JSONResponse({"error": exc.to_dict()}, status_code=exc.status_code)

@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    log_error(exc, {"endpoint": request.url.path, "method": request.method}, ErrorSeverity.HIGH)
    err = PersistenceFailure(details=type(exc).__name__)
    return JSONResponse({"error": err.to_dict()}, status_code=err.status_code)

# -------- Health / readiness (public) --------
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"ok": True}

@app.get("/readyz", include_in_schema=False)
async def readyz(db: AsyncSession = Depends(get_session)):
    await db.execute(sa.text("SELECT 1"))
    return {"db": "ok"}

@app.get("/errors", include_in_schema=False)
async def errors_summary():
    """Recent aggregated errors (behind the API key)."""
    return error_aggregator.get_error_summary()

# -------- Global security gate (single place) --------
# Public paths (do NOT require X-API-Key here)
PUBLIC_EXACT = {
    "/healthz",
    "/readyz",
    "/docs",
    "/openapi.json",
    "/favicon.ico",
}

# Customer-facing booking pages
PUBLIC_PREFIXES = (
    "/book/",
)

def _is_public(path: str) -> bool:
    return path in PUBLIC_EXACT or any(path.startswith(p) for p in PUBLIC_PREFIXES)

@app.middleware("http")
async def lock_all(request: Request, call_next):
    path = request.url.path

    if request.method == "OPTIONS" or _is_public(path):
        return await call_next(request)

    # Owner routes → require API key header
    expected = settings.AGENDA_API_KEY or ""
    api_key = request.headers.get("X-API-Key", "")
    if not expected or not secrets.compare_digest(api_key, expected):
        log_error(Exception("API key validation failed"),
                  {"endpoint": path, "has_key": bool(api_key)},
                  ErrorSeverity.MEDIUM)
        return JSONResponse({"detail": "Invalid or missing API key"}, status_code=401)

    return await call_next(request)

# Outermost, so preflight and 401 responses still carry CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# -------- Include routers --------
app.include_router(public_router)
app.include_router(businesses_router)
app.include_router(appointments_router)

# -------- Application startup/shutdown events --------
@app.on_event("startup")
async def startup_event():
    logger.info("Application startup", env=settings.APP_ENV)
    if settings.is_development:
        # Local runs without migrations
        from salon_agenda.db.base import init_db
        await init_db()
        logger.info("Development schema created")

@app.on_event("shutdown")
async def shutdown_event():
    """Let in-flight confirmation emails finish before the loop closes."""
    from salon_agenda.services.notifications import drain_pending
    logger.info("Application shutdown - waiting for pending emails")
    await drain_pending()
