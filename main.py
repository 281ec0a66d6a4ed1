"""
MOODFIT Analytics API
Session quality reports for recorded exercise and yoga sessions.

FastAPI application entry point.
"""

import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import settings

# ============================================
# Configure Root Logger First
# ============================================
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)]
)

from analytics_service.router import router as analytics_router
from analytics_service.models import RULES
from shared.utils import setup_logger

logger = setup_logger("moodfit.main", level=logging.DEBUG if settings.DEBUG else logging.INFO)
request_logger = setup_logger("moodfit.requests", level=logging.DEBUG if settings.DEBUG else logging.INFO)


# ============================================
# Request Logging Middleware
# ============================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests and responses with timing."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        client_ip = request.client.host if request.client else "unknown"
        request_logger.info(f"{request.method} {request.url.path}")
        request_logger.debug(f"    Client: {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = (time.time() - start_time) * 1000
            request_logger.exception(
                f"{request.method} {request.url.path} -> ERROR: {type(e).__name__}: {e} ({process_time:.1f}ms)"
            )
            raise

        process_time = (time.time() - start_time) * 1000
        level = logging.INFO if response.status_code < 400 else logging.WARNING
        request_logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.1f}ms)"
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    logger.info(f"{settings.APP_NAME} starting up with {len(RULES)} activity rules")
    yield
    logger.info(f"{settings.APP_NAME} shutting down")


app = FastAPI(
    title="MOODFIT Analytics API",
    description="Batch quality analysis of recorded activity sessions",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "moodfit-analytics",
        "activities": len(RULES),
    }


app.include_router(analytics_router, prefix="/api/analytics", tags=["Analytics Service"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
