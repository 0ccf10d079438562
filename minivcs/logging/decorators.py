"""
Decorators for automatic logging of repository operations.

These decorators enable traceability without cluttering the diff and merge code.
"""

import functools
import inspect
import time
from datetime import datetime, timezone
from typing import Callable, Any
from .logger import get_vcs_logger


def track_operation(operation_type: str, component: str = "system") -> Callable:
    """
    Decorator to track a repository operation.

    Logs the start, completion, and failure of the wrapped call.

    Args:
        operation_type: Type of operation (e.g., "merge", "resolve_conflict")
        component: Component the log records are bound to

    Example:
        >>> @track_operation("resolve_conflict", component="merge")
        ... def resolve_conflict(self, path, resolution):
        ...     ...
    """

    def decorator(func: Callable) -> Callable:
        sig = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            log = get_vcs_logger(component)

            bound_args = sig.bind(*args, **kwargs)
            bound_args.apply_defaults()

            operation_id = datetime.now(timezone.utc).timestamp()
            log.debug(
                f"Operation: {operation_type}",
                operation=operation_type,
                operation_id=operation_id,
                function=func.__name__,
                arguments={
                    k: str(v)[:100] for k, v in bound_args.arguments.items() if k != "self"
                },
            )

            try:
                result = func(*args, **kwargs)

                log.debug(
                    f"Operation: {operation_type}_complete",
                    operation=operation_type,
                    operation_id=operation_id,
                    function=func.__name__,
                    success=True,
                )

                return result

            except Exception as e:
                log.debug(
                    f"Operation: {operation_type}_error",
                    operation=operation_type,
                    operation_id=operation_id,
                    function=func.__name__,
                    error=str(e),
                    error_type=type(e).__name__,
                    success=False,
                )
                raise

        return wrapper

    return decorator


def performance_monitor(threshold_ms: float = 1000.0) -> Callable:
    """
    Decorator to monitor function performance.

    Logs warning if execution exceeds threshold.

    Args:
        threshold_ms: Warning threshold in milliseconds

    Example:
        >>> @performance_monitor(threshold_ms=500)
        ... def diff_versions(old_id, new_id):
        ...     ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            log = get_vcs_logger("system")

            start_time = time.perf_counter()

            try:
                result = func(*args, **kwargs)
            except Exception:
                elapsed_ms = (time.perf_counter() - start_time) * 1000
                log.debug(
                    f"Function failed: {func.__name__}",
                    function=func.__name__,
                    elapsed_ms=elapsed_ms,
                )
                raise

            elapsed_ms = (time.perf_counter() - start_time) * 1000
            if elapsed_ms > threshold_ms:
                log.warning(
                    f"Performance threshold exceeded: {func.__name__}",
                    function=func.__name__,
                    elapsed_ms=elapsed_ms,
                    threshold_ms=threshold_ms,
                )
            else:
                log.debug(
                    f"Function executed: {func.__name__}",
                    function=func.__name__,
                    elapsed_ms=elapsed_ms,
                )

            return result

        return wrapper

    return decorator
