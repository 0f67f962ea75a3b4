import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings
from .database import engine, Base
from .routes import router as check_router, admin_router
from .utils import get_client_ip
from .logging_config import setup_logging, get_logger, set_request_id, set_client_ip

# Initialize structured logging
setup_logging()
logger = get_logger(__name__)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID to each request for tracing."""

    async def dispatch(self, request: Request, call_next):
        # Processing time is measured from here
        request.state.started_at = time.perf_counter()

        # Get or generate request ID
        request_id = request.headers.get("X-Request-ID")
        rid = set_request_id(request_id)
        set_client_ip(get_client_ip(request))

        # Process request
        response = await call_next(request)

        # Add request ID to response headers
        response.headers["X-Request-ID"] = rid
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting Access Code Gate API...")

    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    yield

    # Shutdown
    logger.info("Shutting down Access Code Gate API...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Access code validation with a full audit trail",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)

# Request ID middleware for tracing
app.add_middleware(RequestIdMiddleware)

# CORS middleware - configured via environment
cors_origins = settings.CORS_ORIGINS
if cors_origins == ["*"]:
    logger.warning("CORS configured to allow all origins. Set CORS_ORIGINS for production.")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(check_router, tags=["Check"])
app.include_router(admin_router, tags=["Admin"])


@app.get("/health")
async def health_check():
    """Liveness probe. Touches no storage."""
    return {"status": "ok", "version": settings.APP_VERSION}


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code or 500,
        content={"detail": exc.detail or "HTTP error"},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error at {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "detail": [
            {"loc": list(err.get("loc", [])), "msg": err.get("msg")} for err in exc.errors()
        ]}
    )


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    logger.error(f"Server error: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("codegate.main:app", host="0.0.0.0", port=settings.PORT)
