"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventrsvp.config import settings
from eventrsvp.database import Base, engine
from eventrsvp.errors import RSVPServiceError, StorageError, from_request_errors
from eventrsvp.logging_config import configure_logging

# Import routers
from eventrsvp.routers import events, rsvps

# Registers the events and rsvps tables on Base.metadata
import eventrsvp.models  # noqa: F401

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Event RSVP",
    description="Events with a seat limit and public, account-free RSVPs",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(rsvps.router, prefix="/api", tags=["RSVPs"])


@app.exception_handler(RSVPServiceError)
async def service_error_handler(request: Request, exc: RSVPServiceError):
    """Render typed service outcomes as {"error": code, "detail": message}."""
    if isinstance(exc, StorageError):
        logger.error("Storage error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"error": exc.code, "detail": exc.message},
        status_code=exc.status_code,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings get the same shape as service validation."""
    return await service_error_handler(request, from_request_errors(exc.errors()))


@app.on_event("startup")
def on_startup():
    """Configure logging; create tables in SQLite dev mode."""
    configure_logging()
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
