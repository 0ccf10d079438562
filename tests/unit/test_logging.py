"""
Unit tests for logging infrastructure.

Tests VCSLogger, component loggers, and decorators.
"""

import tempfile
from pathlib import Path

import pytest
from loguru import logger

from minivcs.logging import (
    VCSLogger,
    get_logger_instance,
    get_vcs_logger,
    initialize_logging,
    performance_monitor,
    track_operation,
)


@pytest.fixture
def records():
    """Capture log records emitted during a test."""
    captured = []
    sink_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield captured
    logger.remove(sink_id)


class TestVCSLogger:
    """Tests for VCSLogger class."""

    def test_logger_initialization(self) -> None:
        """Test logger initialization."""
        with tempfile.TemporaryDirectory() as tmpdir:
            vcs_logger = VCSLogger(
                log_dir=Path(tmpdir),
                level="INFO",
                enable_file_logging=False,  # Disable for testing
            )
            assert vcs_logger.log_dir == Path(tmpdir)
            assert vcs_logger.level == "INFO"

    def test_no_log_directory_without_file_logging(self) -> None:
        """Test the log directory is only created for file logging."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_dir = Path(tmpdir) / "logs"
            VCSLogger(log_dir=log_dir, enable_file_logging=False)
            assert not log_dir.exists()

    def test_file_sinks(self) -> None:
        """Test main, merge, and error log files receive their records."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_dir = Path(tmpdir) / "logs"
            VCSLogger(log_dir=log_dir, level="INFO", enable_console_logging=False)

            get_vcs_logger("diff").info("diff message")
            get_vcs_logger("merge").info("merge message")
            get_vcs_logger("objects").error("error message")
            logger.remove()

            vcs_log = (log_dir / "vcs.log").read_text()
            merge_log = (log_dir / "merge.log").read_text()
            errors_log = (log_dir / "errors.log").read_text()

            assert "diff message" in vcs_log
            assert "merge message" in vcs_log
            assert "merge message" in merge_log
            assert "diff message" not in merge_log
            assert "error message" in errors_log
            assert "diff message" not in errors_log

        initialize_logging(enable_file_logging=False)

    def test_get_component_logger(self) -> None:
        """Test getting a component-specific logger."""
        vcs_logger = VCSLogger(enable_file_logging=False, enable_console_logging=False)
        captured = []
        sink_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")

        vcs_logger.get_logger("merge").info("scanning")
        logger.remove(sink_id)

        assert captured[-1]["extra"]["component"] == "merge"
        initialize_logging(enable_file_logging=False)


class TestGetVcsLogger:
    """Tests for get_vcs_logger function."""

    def test_binds_component(self, records) -> None:
        """Test the returned logger carries its component."""
        get_vcs_logger("diff").info("hello")
        assert records[-1]["extra"]["component"] == "diff"

    def test_unbound_records_default_to_system(self, records) -> None:
        """Test records logged without binding still have a component."""
        logger.info("plain")
        assert records[-1]["extra"]["component"] == "system"


class TestInitializeLogging:
    """Tests for initialize_logging function."""

    def test_initialize_logging_returns_instance(self) -> None:
        """Test that initialize_logging returns a VCSLogger instance."""
        with tempfile.TemporaryDirectory() as tmpdir:
            logger_instance = initialize_logging(
                log_dir=Path(tmpdir), level="INFO", enable_file_logging=False
            )
            assert isinstance(logger_instance, VCSLogger)
            assert get_logger_instance() is logger_instance


class TestTrackOperation:
    """Tests for track_operation decorator."""

    def test_returns_result(self, records) -> None:
        """Test the wrapped function's result is returned."""

        @track_operation("merge", component="merge")
        def merge(source: str, target: str) -> bool:
            return True

        assert merge("v1", "v2") is True

        messages = [r["message"] for r in records if r["extra"].get("operation") == "merge"]
        assert messages == ["Operation: merge", "Operation: merge_complete"]
        assert records[-1]["extra"]["component"] == "merge"

    def test_truncates_arguments(self, records) -> None:
        """Test long arguments are truncated in the log record."""

        @track_operation("store")
        def store(data: str) -> None:
            pass

        store("x" * 500)

        start = next(r for r in records if r["message"] == "Operation: store")
        assert start["extra"]["arguments"] == {"data": "x" * 100}

    def test_excludes_self(self, records) -> None:
        """Test the bound instance is not logged as an argument."""

        class Engine:
            @track_operation("resolve_conflict")
            def resolve(self, path: str) -> str:
                return path

        assert Engine().resolve("a.txt") == "a.txt"
        start = next(r for r in records if r["message"] == "Operation: resolve_conflict")
        assert start["extra"]["arguments"] == {"path": "a.txt"}

    def test_captures_error(self, records) -> None:
        """Test that decorator logs and re-raises errors."""

        @track_operation("invalid")
        def failing_operation() -> None:
            raise RuntimeError("Operation failed")

        with pytest.raises(RuntimeError, match="Operation failed"):
            failing_operation()

        error = next(r for r in records if r["message"] == "Operation: invalid_error")
        assert error["extra"]["error_type"] == "RuntimeError"
        assert error["extra"]["success"] is False


class TestPerformanceMonitor:
    """Tests for performance_monitor decorator."""

    def test_fast_call_logs_debug(self, records) -> None:
        """Test calls under the threshold log at debug level."""

        @performance_monitor(threshold_ms=10000.0)
        def fast() -> int:
            return 42

        assert fast() == 42
        assert records[-1]["level"].name == "DEBUG"
        assert records[-1]["message"] == "Function executed: fast"

    def test_slow_call_logs_warning(self, records) -> None:
        """Test calls over the threshold log a warning."""

        @performance_monitor(threshold_ms=0.0)
        def slow() -> None:
            sum(range(1000))

        slow()
        assert records[-1]["level"].name == "WARNING"
        assert records[-1]["message"] == "Performance threshold exceeded: slow"

    def test_reraises(self) -> None:
        """Test errors propagate."""

        @performance_monitor()
        def broken() -> None:
            raise ValueError("bad")

        with pytest.raises(ValueError):
            broken()
