"""
Centralized exception handling decorator for API route functions.

The :func:`handle_exceptions` decorator wraps an endpoint handler and
translates engine errors into :class:`fastapi.HTTPException` responses:
``ValidationError`` becomes ``422`` with ``{reason, field}``,
``NotFoundError`` becomes ``404``, ``LifecycleError`` becomes ``409`` and
``ConfigError`` becomes ``500``. HTTPExceptions raised by the handler are
propagated untouched, and anything else is turned into a ``500`` error with
the exception message as the detail.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import inspect
import logging
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from fastapi import HTTPException

from engine.errors import LifecycleError, NotFoundError, ValidationError

F = TypeVar("F", bound=Callable[..., Any])

log = logging.getLogger(__name__)


def to_http(exc: Exception) -> HTTPException:
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=422, detail={"reason": exc.reason, "field": exc.field})
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, LifecycleError):
        return HTTPException(status_code=409, detail=str(exc))
    log.exception("Unhandled error in route", exc_info=exc)
    return HTTPException(status_code=500, detail=str(exc))


def handle_exceptions(func: F) -> F:
    """Decorator that converts uncaught exceptions to HTTP errors.

    Works with both regular and async functions.
    """

    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except Exception as exc:
                raise to_http(exc) from exc

        return cast(F, async_wrapper)

    @wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except HTTPException:
            raise
        except Exception as exc:
            raise to_http(exc) from exc

    return cast(F, sync_wrapper)
