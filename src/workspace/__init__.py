"""Workspace - configuration, discovery and the cross-project dependency graph."""

from .config import Settings, configure_logging
from .dependency_graph import (
    DependencyGraph,
    detect_api_changes,
    find_dependents,
    load_graph,
)
from .manager import (
    WorkspaceConfig,
    add_project,
    find_workspace_root,
    get_shared_conventions,
    init_workspace,
    read_workspace_config,
    require_workspace_root,
    sync_conventions,
)

__all__ = [
    "DependencyGraph",
    "Settings",
    "WorkspaceConfig",
    "add_project",
    "configure_logging",
    "detect_api_changes",
    "find_dependents",
    "find_workspace_root",
    "get_shared_conventions",
    "init_workspace",
    "load_graph",
    "read_workspace_config",
    "require_workspace_root",
    "sync_conventions",
]
