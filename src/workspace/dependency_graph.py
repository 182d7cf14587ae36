"""Dependency graph - which projects are affected by a change to an exported API."""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ValidationError, field_validator

from .config import Settings
from .errors import GraphParseError

logger = structlog.get_logger()

# (exporting project, api name)
ApiRef = tuple[str, str]


def _as_text(value: Any) -> str | None:
    """Unquoted YAML scalars (2024, 1.0, true, dates) compare as text.

    Missing or nested values become None and never match anything.
    """
    if value is None or isinstance(value, (dict, list)):
        return None
    return value if isinstance(value, str) else str(value)


def _mappings(value: Any) -> list[dict]:
    """Entries of a list that are mappings; anything else reads as empty."""
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


class ApiExport(BaseModel):
    api: str | None = None
    file: str | None = None

    @field_validator("api", "file", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return _as_text(value)


class ApiImport(BaseModel):
    api: str | None = None
    from_project: str | None = None

    @field_validator("api", "from_project", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return _as_text(value)


class ProjectNode(BaseModel):
    """One project's declared exports and imports."""
    name: str | None = None
    exports: list[ApiExport] = []
    imports: list[ApiImport] = []

    @field_validator("name", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return _as_text(value)

    @field_validator("exports", "imports", mode="before")
    @classmethod
    def _entries(cls, value: Any) -> list[dict]:
        return _mappings(value)


class DependencyGraph(BaseModel):
    """Workspace-wide export/import graph. Read-only snapshot.

    Only a `projects` value that is not a list fails validation. Entries
    with missing fields load and simply never match.
    """
    projects: list[ProjectNode] = []

    @field_validator("projects", mode="before")
    @classmethod
    def _project_entries(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return _mappings(value)
        return value

    def export_index(self) -> dict[str, list[ApiRef]]:
        """Exported file -> every (project, api) it exposes."""
        index: dict[str, list[ApiRef]] = {}
        for project in self.projects:
            if project.name is None:
                continue
            for export in project.exports:
                if export.file is None or export.api is None:
                    continue
                index.setdefault(export.file, []).append((project.name, export.api))
        return index

    def exports_for_file(self, file: str) -> list[ApiRef]:
        return self.export_index().get(file, [])

    def dependents_of(self, affected: set[ApiRef]) -> list[str]:
        """Projects importing any of `affected`, each listed once."""
        if not affected:
            return []

        dependents: list[str] = []
        for project in self.projects:
            if project.name is None or project.name in dependents:
                continue
            if any((imp.from_project, imp.api) in affected for imp in project.imports):
                dependents.append(project.name)
        return dependents

    def affected_by(self, changed_files: list[str]) -> list[str]:
        """Two-hop join: changed file -> exported API -> importing project."""
        index = self.export_index()
        affected: set[ApiRef] = set()
        for file in changed_files:
            affected.update(index.get(file, []))
        return self.dependents_of(affected)

    def check_references(self) -> list[str]:
        """Describe incomplete or dangling entries. Never raises; queries ignore them."""
        names = {project.name for project in self.projects if project.name is not None}
        exported = {
            (project.name, export.api)
            for project in self.projects
            for export in project.exports
        }

        problems = []
        for project in self.projects:
            label = project.name or "<unnamed project>"
            for export in project.exports:
                if export.api is None or export.file is None:
                    problems.append(f"{label} has an export without an api or file")
            for imp in project.imports:
                if imp.api is None or imp.from_project is None:
                    problems.append(f"{label} has an import without an api or from_project")
                elif imp.from_project not in names:
                    problems.append(
                        f'{label} imports "{imp.api}" from unknown project '
                        f'"{imp.from_project}"'
                    )
                elif (imp.from_project, imp.api) not in exported:
                    problems.append(
                        f'{label} imports "{imp.api}" which '
                        f"{imp.from_project} does not export"
                    )
        return problems


def load_graph(path: str | Path) -> DependencyGraph | None:
    """Parse the graph document at `path`.

    Returns None when the document does not exist. A document that is not
    valid YAML or does not match the graph schema raises GraphParseError.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise GraphParseError(path, f"invalid YAML ({exc})") from exc

    if data is None:
        return DependencyGraph()
    if not isinstance(data, dict):
        raise GraphParseError(path, "expected a mapping with a 'projects' list")

    try:
        return DependencyGraph.model_validate(data)
    except ValidationError as exc:
        raise GraphParseError(path, str(exc)) from exc


def detect_api_changes(
    workspace_root: str | Path,
    changed_files: list[str],
    settings: Settings | None = None,
) -> list[str]:
    """Projects that import an API exported from any of `changed_files`."""
    settings = settings or Settings()
    graph = load_graph(settings.graph_path(workspace_root))
    if graph is None:
        logger.debug("No dependency graph", workspace=str(workspace_root))
        return []

    dependents = graph.affected_by(changed_files)
    logger.debug(
        "Detected API changes",
        changed_count=len(changed_files),
        dependents=dependents,
    )
    return dependents


def find_dependents(
    workspace_root: str | Path,
    api_file: str,
    settings: Settings | None = None,
) -> list[str]:
    """Projects that import an API exported from `api_file`."""
    settings = settings or Settings()
    graph = load_graph(settings.graph_path(workspace_root))
    if graph is None:
        return []

    return graph.dependents_of(set(graph.exports_for_file(api_file)))
