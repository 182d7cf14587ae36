"""Workspace discovery and the workspace config document."""

from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, ValidationError

from .config import Settings
from .errors import ProjectExists, WorkspaceConfigError, WorkspaceNotFound

logger = structlog.get_logger()


class WorkspaceProject(BaseModel):
    """A repository participating in the workspace."""
    name: str
    path: str
    type: str | None = None


class ArchitecturalDecision(BaseModel):
    id: str
    title: str
    decision: str
    rationale: str
    date: str


class SharedConfig(BaseModel):
    conventions: list[str] = []
    anti_patterns: list[str] = []
    architectural_decisions: list[ArchitecturalDecision] = []


class MemoryConfig(BaseModel):
    directory: str | None = None


class WorkspaceConfig(BaseModel):
    name: str
    projects: list[WorkspaceProject]
    shared: SharedConfig | None = None
    memory: MemoryConfig | None = None


def find_workspace_root(start: str | Path, settings: Settings | None = None) -> Path | None:
    """Walk up from `start` to the directory holding the workspace config."""
    settings = settings or Settings()
    directory = Path(start).resolve()

    for candidate in (directory, *directory.parents):
        if settings.config_path(candidate).is_file():
            return candidate
    return None


def require_workspace_root(start: str | Path, settings: Settings | None = None) -> Path:
    root = find_workspace_root(start, settings)
    if root is None:
        raise WorkspaceNotFound(Path(start))
    return root


def init_workspace(root: str | Path, name: str, settings: Settings | None = None) -> Path:
    """Create the workspace directory tree and an empty config.

    Returns the workspace directory.
    """
    settings = settings or Settings()
    workspace = settings.workspace_path(root)

    workspace.mkdir(parents=True, exist_ok=True)
    settings.memory_path(root).mkdir(parents=True, exist_ok=True)
    settings.locks_path(root).mkdir(parents=True, exist_ok=True)

    config = WorkspaceConfig(
        name=name,
        projects=[],
        shared=SharedConfig(),
        memory=MemoryConfig(directory=f"{settings.workspace_dir}/{settings.memory_dir}"),
    )
    _write_config(settings.config_path(root), config)

    logger.info("Initialized workspace", name=name, path=str(workspace))
    return workspace


def read_workspace_config(root: str | Path, settings: Settings | None = None) -> WorkspaceConfig:
    settings = settings or Settings()
    path = settings.config_path(root)

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise WorkspaceConfigError(path, f"invalid YAML ({exc})") from exc

    if not isinstance(data, dict):
        raise WorkspaceConfigError(path, "expected an object")
    try:
        return WorkspaceConfig.model_validate(data)
    except ValidationError as exc:
        raise WorkspaceConfigError(path, str(exc)) from exc


def add_project(
    root: str | Path,
    name: str,
    path: str,
    settings: Settings | None = None,
) -> WorkspaceConfig:
    """Register a project. Raises ProjectExists on a duplicate name."""
    settings = settings or Settings()
    config = read_workspace_config(root, settings)

    if any(project.name == name for project in config.projects):
        raise ProjectExists(name)

    config.projects.append(WorkspaceProject(name=name, path=path))
    _write_config(settings.config_path(root), config)

    logger.info("Added project to workspace", project=name, path=path)
    return config


def get_shared_conventions(root: str | Path, settings: Settings | None = None) -> list[str]:
    config = read_workspace_config(root, settings)
    if config.shared is None:
        return []
    return config.shared.conventions


def sync_conventions(root: str | Path, settings: Settings | None = None) -> list[str]:
    """Registered projects that carry their own config, in registration order.

    These are the projects the shared conventions can be synced into.
    """
    settings = settings or Settings()
    config = read_workspace_config(root, settings)

    candidates = [
        project.name
        for project in config.projects
        if settings.project_config_path(root, project.path).is_file()
    ]
    logger.debug("Found convention sync candidates", projects=candidates)
    return candidates


def _write_config(path: Path, config: WorkspaceConfig) -> None:
    path.write_text(
        yaml.safe_dump(config.model_dump(exclude_none=True), sort_keys=False),
        encoding="utf-8",
    )
