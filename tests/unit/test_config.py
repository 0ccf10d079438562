"""
Unit tests for configuration system.

These tests verify that the configuration system works correctly
and can load settings from environment variables.
"""

from pathlib import Path

import pytest

from minivcs.config import Config, LogConfig, MergeConfig, RepositoryConfig


def test_config_has_defaults() -> None:
    """Test that Config initializes with sensible defaults."""
    config = Config()

    assert config.repository.vcs_dir == ".vcs"
    assert config.repository.objects_dir == "objects"
    assert config.repository.versions_dir == "versions"
    assert config.merge.similarity_threshold == 0.5
    assert config.logging.level == "INFO"


def test_repository_paths() -> None:
    """Test repository layout paths."""
    repository = RepositoryConfig()
    root = Path("/repo")

    assert repository.metadata_path(root) == Path("/repo/.vcs")
    assert repository.objects_path(root) == Path("/repo/.vcs/objects")
    assert repository.versions_path(root) == Path("/repo/.vcs/versions")
    assert repository.index_path(root) == Path("/repo/.vcs/index")


def test_default_author_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test the default author comes from VCS_AUTHOR."""
    monkeypatch.setenv("VCS_AUTHOR", "env-author")
    assert RepositoryConfig().author == "env-author"


def test_default_author_without_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test a default author is always available."""
    monkeypatch.delenv("VCS_AUTHOR", raising=False)
    assert RepositoryConfig().author


def test_log_config_defaults() -> None:
    """Test LogConfig default values."""
    log_config = LogConfig()

    assert log_config.level == "INFO"
    assert log_config.rotation == "100 MB"
    assert log_config.retention == "1 month"
    assert log_config.enable_file_logging is False
    assert log_config.enable_console_logging is True


def test_merge_threshold_range() -> None:
    """Test that the similarity threshold must be within [0, 1]."""
    MergeConfig(similarity_threshold=0.0)
    MergeConfig(similarity_threshold=1.0)

    with pytest.raises(Exception):  # Pydantic ValidationError
        MergeConfig(similarity_threshold=-0.1)

    with pytest.raises(Exception):  # Pydantic ValidationError
        MergeConfig(similarity_threshold=1.1)


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that Config.from_env() reads environment variables correctly."""
    monkeypatch.setenv("VCS_AUTHOR", "carol")
    monkeypatch.setenv("VCS_DIR", ".minivcs")
    monkeypatch.setenv("VCS_SIMILARITY_THRESHOLD", "0.75")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LOG_DIR", "custom_logs")

    config = Config.from_env()

    assert config.repository.author == "carol"
    assert config.repository.vcs_dir == ".minivcs"
    assert config.merge.similarity_threshold == 0.75
    assert config.logging.level == "DEBUG"
    assert config.logging.log_dir == "custom_logs"


def test_config_from_env_invalid_threshold(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test out-of-range thresholds from the environment are rejected."""
    monkeypatch.setenv("VCS_SIMILARITY_THRESHOLD", "2")

    with pytest.raises(Exception):  # Pydantic ValidationError
        Config.from_env()


def test_config_is_importable_from_top_level() -> None:
    """Test that config can be imported from minivcs package."""
    from minivcs import config

    assert isinstance(config, Config)
