import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, models  # noqa: F401
from .config import ALLOWED_ORIGINS, SECURITY_HEADERS_ENABLED
from .database import Base, engine
from .domain.appointments.router import router as appointments_router
from .domain.leave.router import router as leave_router
from .domain.schedules.router import router as schedules_router
from .security_headers import SecurityHeadersMiddleware
from .shared.errors import ClinicError, ValidationFailed

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 DentalDesk API {__version__} starting")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
    except Exception as e:
        # Several workers may race to create the same tables on first boot
        if "already exists" not in str(e) and "duplicate key" not in str(e):
            logger.error(f"❌ Could not create clinic tables: {e}")
            raise
    logger.info(f"Clinic tables ready: {', '.join(sorted(Base.metadata.tables))}")

    yield
    logger.info("DentalDesk API shutting down")


app = FastAPI(title="DentalDesk API", version=__version__, lifespan=lifespan)


@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError):
    """Render domain errors as {"error": code, "message": ..., "details": {...}}"""
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} - {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} - {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _field_errors(exc: RequestValidationError) -> list[dict]:
    fields = []
    for error in exc.errors():
        cause = (error.get("ctx") or {}).get("error")
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        if isinstance(cause, ValidationFailed):
            field = cause.field or ".".join(loc) or None
            message = cause.message
        else:
            field = ".".join(loc) or None
            message = error.get("msg", "Invalid value")
            if message.startswith("Value error, "):
                message = message[len("Value error, ") :]
        fields.append({"field": field, "message": message})
    return fields


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request validation errors use the same envelope as domain errors"""
    fields = _field_errors(exc)
    logger.warning(f"Validation error for {request.url.path}: {fields}")
    return JSONResponse(
        status_code=422,
        content={
            "error": ValidationFailed.code,
            "message": fields[0]["message"] if fields else "Invalid request",
            "details": {"fields": fields},
        },
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"❌ {request.method} {request.url.path} failed: {e}")
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("⚠️ Security headers disabled (SECURITY_HEADERS_ENABLED=false)")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(schedules_router)
app.include_router(leave_router)
app.include_router(appointments_router)


@app.get("/")
def root():
    return {"message": "DentalDesk API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
