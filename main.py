# Essential imports
import asyncio
import contextlib
import time
from fastapi import FastAPI, Request
from routers import auth, meetings, pages
from contextlib import asynccontextmanager

from core.database import SessionLocal, init_db

# Rate limiter imports
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler
from middleware.rate_limiter import RateLimiter, limiter

# Auth / error handling imports
from middleware.auth_gate import AuthGateMiddleware
from middleware.error_handler import register_exception_handlers
from services.extraction_service import ExtractionService

# Logging imports
from core.logging_config import setup_logging
from utils.logger import get_logger
from middleware import RequestIDMiddleware
from core.config import settings

# CORS imports
from fastapi.middleware.cors import CORSMiddleware

# Initialize logging
setup_logging(
    log_level=settings.LOG_LEVEL,
    log_dir=settings.LOG_DIR
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    sweeper = asyncio.create_task(app.state.rate_limiter.run_sweeper(settings.RATE_LIMIT_SWEEP_SECONDS))
    logger.info("Application startup complete", extra={"event": "startup"})
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    logger.info("Application shutting down", extra={"event": "shutdown"})


app = FastAPI(
    title="Task Management API",
    description="Accounts, sessions and meeting-notes extraction for the task manager",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Process-wide collaborators, replaced in tests
app.state.session_factory = SessionLocal
app.state.rate_limiter = RateLimiter()
app.state.extraction_service = ExtractionService()
app.state.limiter = limiter


# Request gate sits innermost so redirects and refreshes are logged with a request ID
app.add_middleware(AuthGateMiddleware)
app.add_middleware(SlowAPIMiddleware)


# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,                    # Auth travels in cookies
    allow_methods=["*"],
    allow_headers=["*"],
)


# HTTP Request Logging Middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code and duration.
    """
    start_time = time.time()

    response = await call_next(request)

    duration = (time.time() - start_time) * 1000

    client_ip = request.client.host if request.client else "unknown"

    logger.info(
        f'{client_ip} - "{request.method} {request.url.path} HTTP/1.1" {response.status_code}',
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration, 2),
            "client_ip": client_ip
        }
    )

    return response


# Add request ID middleware
app.add_middleware(RequestIDMiddleware)


# Health check
@app.get("/health")
async def health_check():
    logger.debug("Health check requested")
    return {"status": "Healthy"}


register_exception_handlers(app)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Including routers
app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(meetings.router)
