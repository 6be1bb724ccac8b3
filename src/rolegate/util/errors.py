"""Boundary guard turning unexpected exceptions in store mutations into failed results."""

import functools
import logging
from typing import Callable, TypeVar

from rolegate.datatypes.permission_datatypes import OperationResult

F = TypeVar("F", bound=Callable[..., OperationResult])


def guarded_operation(logger: logging.Logger, category: str, action: str) -> Callable[[F], F]:
    """
    Decorate a mutation so an unexpected exception becomes ``OperationResult.fail``.

    Expected failures (bad input, missing entries) are returned by the
    mutation itself; this only catches what escapes it, logs the traceback
    under ``category`` and hands the command layer a result it can reply with.

    Args:
        logger: Logger receiving the traceback.
        category: Audit category tag, e.g. ``TEMP_PERMISSIONS``.
        action: Gerund phrase for the log line, e.g. ``"granting temporary permission"``.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> OperationResult:
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                logger.exception("[%s] Error %s: %s", category, action, exc)
                return OperationResult.fail(str(exc))
        return wrapper  # type: ignore[return-value]
    return decorator
