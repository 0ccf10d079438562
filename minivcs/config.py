"""
Configuration management for minivcs.

This module provides centralized configuration for all components:
- Repository layout and default author
- Merge similarity threshold
- Logging settings
"""

import getpass
import os
from pathlib import Path
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()


def _default_author() -> str:
    """Author recorded on versions when none is given."""
    author = os.getenv("VCS_AUTHOR")
    if author:
        return author
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


class RepositoryConfig(BaseModel):
    """Configuration for the on-disk repository layout."""

    vcs_dir: str = Field(
        default=".vcs", description="Name of the metadata directory under the repo root"
    )
    objects_dir: str = Field(
        default="objects", description="Blob directory inside the metadata directory"
    )
    versions_dir: str = Field(
        default="versions",
        description="Version record directory inside the metadata directory",
    )
    index_file: str = Field(
        default="index", description="Tracked-file index inside the metadata directory"
    )
    author: str = Field(
        default_factory=_default_author,
        description="Author recorded on newly created versions",
    )

    def metadata_path(self, root: Path) -> Path:
        """Get the metadata directory for a repository root."""
        return Path(root) / self.vcs_dir

    def objects_path(self, root: Path) -> Path:
        """Get the blob directory for a repository root."""
        return self.metadata_path(root) / self.objects_dir

    def versions_path(self, root: Path) -> Path:
        """Get the version record directory for a repository root."""
        return self.metadata_path(root) / self.versions_dir

    def index_path(self, root: Path) -> Path:
        """Get the tracked-file index for a repository root."""
        return self.metadata_path(root) / self.index_file


class MergeConfig(BaseModel):
    """Configuration for merge conflict detection."""

    similarity_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Candidate blocks scoring below this similarity are conflicts",
    )


class LogConfig(BaseModel):
    """Configuration for logging system."""

    level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[component]}</cyan> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
        "<level>{message}</level>",
        description="Log message format",
    )
    rotation: str = Field(default="100 MB", description="Log file rotation size")
    retention: str = Field(default="1 month", description="Log file retention period")
    log_dir: str = Field(default="logs", description="Directory for log files")
    enable_file_logging: bool = Field(
        default=False, description="Whether to enable file logging"
    )
    enable_console_logging: bool = Field(
        default=True, description="Whether to enable console logging"
    )


class Config(BaseModel):
    """Main configuration object for minivcs."""

    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls(
            repository=RepositoryConfig(
                vcs_dir=os.getenv("VCS_DIR", ".vcs"),
                author=_default_author(),
            ),
            merge=MergeConfig(
                similarity_threshold=float(os.getenv("VCS_SIMILARITY_THRESHOLD", "0.5")),
            ),
            logging=LogConfig(
                level=cast(
                    Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                    os.getenv("LOG_LEVEL", "INFO"),
                ),
                log_dir=os.getenv("LOG_DIR", "logs"),
            ),
        )


# Global configuration instance
# This can be imported throughout the codebase
config = Config.from_env()
