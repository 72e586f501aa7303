"""
Uniform response helpers.

Every JSON endpoint answers {"success": bool, ...}. Business failures are
reported with HTTP 200 and a user-facing "message".
"""

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def success(**payload: Any) -> dict[str, Any]:
    return {"success": True, **payload}


def failure(message: str, **payload: Any) -> dict[str, Any]:
    return {"success": False, "message": message, **payload}


def store_errors(message: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T | dict]]]:
    """
    Degrade data store failures in an endpoint to failure(message).

    Usage:
        @router.get("/api/admin/stylists")
        @store_errors("Error fetching stylists")
        async def list_stylists(session: SessionDep): ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T | dict]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T | dict:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(
                    f"{message}: {e}",
                    extra={"error_code": "STORE_UNAVAILABLE"},
                    exc_info=True,
                )
                return failure(message)

        return wrapper

    return decorator
