"""
Logging infrastructure for minivcs.

Provides structured logging with:
- Component-specific loggers (objects, versions, diff, merge, tracking)
- Log rotation and retention
- A dedicated merge log and error log
"""

import sys
from pathlib import Path
from typing import Optional, Any
from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# Records emitted before anything is bound still need a component
logger.configure(extra={"component": "system"})


class VCSLogger:
    """
    Logger for minivcs with component-specific sinks.

    Features:
    - Structured logging with context
    - Log rotation and retention
    - Merge activity split into its own file
    """

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        rotation: str = "100 MB",
        retention: str = "1 month",
        level: str = "INFO",
        format_string: Optional[str] = None,
        enable_file_logging: bool = True,
        enable_console_logging: bool = True,
    ):
        """
        Initialize the minivcs logger.

        Args:
            log_dir: Directory for log files
            rotation: When to rotate log files
            retention: How long to keep old logs
            level: Default log level
            format_string: Custom format string
            enable_file_logging: Whether to log to files
            enable_console_logging: Whether to log to console
        """
        self.log_dir = log_dir or Path("logs")
        self.rotation = rotation
        self.retention = retention
        self.level = level
        self.format_string = format_string or DEFAULT_FORMAT

        # Remove default handler
        logger.remove()

        if enable_console_logging:
            logger.add(
                sys.stderr,
                format=self.format_string,
                level=level,
                colorize=True,
            )

        if enable_file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._add_file_handlers()

        self.logger = logger.bind(component="system")

    def _add_file_handlers(self) -> None:
        """Add file handlers for the main, merge, and error logs."""

        # Main log file
        logger.add(
            self.log_dir / "vcs.log",
            format=self.format_string,
            level=self.level,
            rotation=self.rotation,
            retention=self.retention,
            compression="zip",
        )

        # Merge scans and resolutions
        logger.add(
            self.log_dir / "merge.log",
            format=self.format_string,
            level="DEBUG",
            rotation=self.rotation,
            retention=self.retention,
            compression="zip",
            filter=lambda record: record["extra"].get("component") == "merge",
        )

        # Error log (ERROR and above only)
        logger.add(
            self.log_dir / "errors.log",
            format=self.format_string,
            level="ERROR",
            rotation=self.rotation,
            retention=self.retention,
            compression="zip",
        )

    def get_logger(self, component: str) -> Any:
        """
        Get a logger bound to a specific component.

        Args:
            component: Component name (e.g., "objects", "merge")

        Returns:
            Logger instance bound to the component
        """
        return logger.bind(component=component)


def get_vcs_logger(component: str = "system") -> Any:
    """
    Get a component-specific logger.

    Args:
        component: Component name

    Returns:
        Logger instance

    Example:
        >>> log = get_vcs_logger("merge")
        >>> log.info("Scanning versions", source="abc", target="def")
    """
    return logger.bind(component=component)


# Global logger instance
_vcs_logger: Optional[VCSLogger] = None


def initialize_logging(
    log_dir: Optional[Path] = None, level: str = "INFO", **kwargs: Any
) -> VCSLogger:
    """
    Initialize the minivcs logging system.

    This should be called once at application startup.

    Args:
        log_dir: Directory for log files
        level: Default log level
        **kwargs: Additional configuration for VCSLogger

    Returns:
        Configured VCSLogger instance
    """
    global _vcs_logger
    _vcs_logger = VCSLogger(log_dir=log_dir, level=level, **kwargs)
    return _vcs_logger


def get_logger_instance() -> Optional[VCSLogger]:
    """Get the global logger instance."""
    return _vcs_logger
