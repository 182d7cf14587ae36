"""Typed workspace errors."""

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.coordination.models import LockOwner


class WorkspaceError(Exception):
    """Base error carrying an optional hint for the caller."""

    def __init__(self, message: str, *, hint: str | None = None):
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        message = super().__str__()
        if self.hint:
            return f"{message}\nHint: {self.hint}"
        return message


class LockExists(WorkspaceError):
    """Another caller already holds the lock for this resource."""

    def __init__(self, file: str):
        super().__init__(
            f'Lock already exists for "{file}". '
            "Another agent may be modifying this file.",
            hint="Pick a different file or ask the holder to release it.",
        )
        self.file = file


class NotOwner(WorkspaceError):
    """Release was attempted by an identity that does not hold the lock."""

    def __init__(self, file: str, owner: str, held_by: "LockOwner"):
        super().__init__(
            f'Cannot release lock for "{file}": owned by agent "{held_by.agent}" / '
            f'project "{held_by.project}", not "{owner}"'
        )
        self.file = file
        self.owner = owner
        self.held_by = held_by

    @property
    def project(self) -> str:
        return self.held_by.project

    @property
    def agent(self) -> str:
        return self.held_by.agent


class LockParseError(WorkspaceError):
    """A lock record on disk could not be parsed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Malformed lock record {path}: {reason}",
            hint="Inspect the file and delete it if the lock is no longer held.",
        )
        self.path = path


class GraphParseError(WorkspaceError):
    """The dependency graph document is malformed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Malformed dependency graph {path}: {reason}",
            hint="Regenerate the dependency graph.",
        )
        self.path = path


class WorkspaceNotFound(WorkspaceError):
    """No workspace was found above the starting directory."""

    def __init__(self, start: Path):
        super().__init__(
            f"No workspace found in {start} or any parent directory",
            hint="Initialize one with init_workspace().",
        )
        self.start = start


class WorkspaceConfigError(WorkspaceError):
    """The workspace config document is invalid."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Invalid workspace config {path}: {reason}")
        self.path = path


class ProjectExists(WorkspaceError):
    """A project with this name is already registered."""

    def __init__(self, name: str):
        super().__init__(f'Project "{name}" already exists in workspace')
        self.name = name
