"""
Logging infrastructure for minivcs.

Provides structured, component-bound logging and operation-tracking decorators.
"""

from .logger import (
    VCSLogger,
    get_vcs_logger,
    initialize_logging,
    get_logger_instance,
)

from .decorators import (
    track_operation,
    performance_monitor,
)

__all__ = [
    # Logger
    "VCSLogger",
    "get_vcs_logger",
    "initialize_logging",
    "get_logger_instance",
    # Decorators
    "track_operation",
    "performance_monitor",
]
