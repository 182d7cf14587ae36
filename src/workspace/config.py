"""Configuration management."""

import logging
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Workspace settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="SPHERE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Layout
    workspace_dir: str = ".sniper-workspace"
    workspace_config_file: str = "config.yaml"
    memory_dir: str = "memory"

    # Per-project config, relative to each project's path
    project_config_dir: str = ".sniper"
    project_config_file: str = "config.yaml"

    # Locks
    locks_dir: str = "locks"
    lock_suffix: str = ".yaml"

    # Dependency graph
    dependency_graph_file: str = "dependency-graph.yaml"

    # Logging
    log_level: LogLevel = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    def workspace_path(self, root: str | Path) -> Path:
        return Path(root) / self.workspace_dir

    def config_path(self, root: str | Path) -> Path:
        return self.workspace_path(root) / self.workspace_config_file

    def locks_path(self, root: str | Path) -> Path:
        return self.workspace_path(root) / self.locks_dir

    def memory_path(self, root: str | Path) -> Path:
        return self.workspace_path(root) / self.memory_dir

    def graph_path(self, root: str | Path) -> Path:
        return self.workspace_path(root) / self.dependency_graph_file

    def project_config_path(self, root: str | Path, project_path: str) -> Path:
        return Path(root) / project_path / self.project_config_dir / self.project_config_file


def configure_logging(level: str = "INFO") -> None:
    """Drop log events below `level`. Called once by the entry point."""
    levels = logging.getLevelNamesMapping()
    try:
        level_no = levels[level.upper()]
    except KeyError:
        raise ValueError(
            f"Unknown log level {level!r}; expected one of DEBUG, INFO, WARNING, ERROR, CRITICAL"
        ) from None

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
    )
