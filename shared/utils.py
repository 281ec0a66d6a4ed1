"""
MOODFIT Shared Utilities

Logging, response envelopes, and decorators.
"""

import asyncio
import logging
import sys
from typing import Any, Optional, TypeVar, Generic
from datetime import datetime, timezone
from functools import wraps
import time

from pydantic import BaseModel
from fastapi import HTTPException


# ============================================
# Logging Configuration
# ============================================

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str = "moodfit", level: int = logging.INFO) -> logging.Logger:
    """
    Set up a configured logger with console output.

    Usage:
        logger = setup_logger(__name__)
        logger.info("Hello from MOODFIT")
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(console_handler)

    return logger


# Default logger for imports
logger = setup_logger("moodfit")


# ============================================
# Response Models
# ============================================

T = TypeVar('T')


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""
    success: bool = True
    message: str = "Operation completed successfully"
    data: Optional[T] = None
    timestamp: str = ""

    def __init__(self, **data):
        if "timestamp" not in data or not data["timestamp"]:
            data["timestamp"] = get_now_iso()
        super().__init__(**data)


def success_response(data: Any = None, message: str = "Success") -> dict:
    """Create a success response dict."""
    return APIResponse(data=data, message=message).model_dump()


# ============================================
# Decorators
# ============================================

def log_execution_time(func):
    """Decorator to log function execution time."""
    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = await func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug(f"{func.__name__} executed in {elapsed:.2f}ms")
        return result

    @wraps(func)
    def sync_wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug(f"{func.__name__} executed in {elapsed:.2f}ms")
        return result

    if asyncio.iscoroutinefunction(func):
        return async_wrapper
    return sync_wrapper


def handle_exceptions(func):
    """Decorator to catch exceptions and return proper HTTP errors."""
    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except HTTPException:
            raise
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.error(f"Unhandled error in {func.__name__}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    @wraps(func)
    def sync_wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except HTTPException:
            raise
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.error(f"Unhandled error in {func.__name__}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    if asyncio.iscoroutinefunction(func):
        return async_wrapper
    return sync_wrapper


# ============================================
# Utility Functions
# ============================================

def get_now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat()
