"""Uniform ``{success, data, message}`` result for cascade operations."""

import functools
import logging
from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, PrivateAttr

from core.errors import AppException, TenantRequiredException

logger = logging.getLogger(__name__)


class OperationResult(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None

    _status_code: int = PrivateAttr(default=status.HTTP_200_OK)

    @classmethod
    def ok(cls, message: str, data: Any = None, status_code: int = status.HTTP_200_OK) -> "OperationResult":
        result = cls(success=True, message=message, data=data)
        result._status_code = status_code
        return result

    @classmethod
    def fail(cls, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, data: Any = None) -> "OperationResult":
        result = cls(success=False, message=message, data=data)
        result._status_code = status_code
        return result

    @property
    def status_code(self) -> int:
        return self._status_code


def operation(failure_message: str):
    """Wrap an async service function taking a ``TenantContext`` first.

    Expected business failures (``AppException``) and a missing tenant come
    back as ``success=False`` results; anything else is logged and reported
    with ``failure_message``.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(ctx, *args, **kwargs) -> OperationResult:
            extra = {"tenant_id": getattr(ctx, "tenant_id", None), "operation": func.__name__}
            if not getattr(ctx, "tenant_id", None):
                exc = TenantRequiredException()
                logger.info("%s rejected: %s", func.__name__, exc.message, extra=extra)
                return OperationResult.fail(exc.message, exc.status_code)
            try:
                return await func(ctx, *args, **kwargs)
            except AppException as exc:
                logger.info("%s rejected: %s", func.__name__, exc.message, extra=extra)
                return OperationResult.fail(exc.message, exc.status_code)
            except Exception:
                logger.exception("%s failed", func.__name__, extra=extra)
                return OperationResult.fail(failure_message, status.HTTP_500_INTERNAL_SERVER_ERROR)

        return wrapper

    return decorator


def respond(result: OperationResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=jsonable_encoder(result))
