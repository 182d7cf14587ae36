"""Conflict detection - cross-reference intended edits with held locks."""

import structlog

from .file_locks import LockManager
from .lock_store import canonical_path
from .models import Conflict, LockOwner

logger = structlog.get_logger()


class ConflictDetector:
    """Reports files another project has locked.

    Matching is exact on canonical paths. A locked directory does not
    cover the files inside it.
    """

    def __init__(self, locks: LockManager):
        self.locks = locks

    def check_conflicts(
        self,
        files: list[str],
        project: str,
        agent: str = "unknown",
        protocol: str = "unknown",
    ) -> list[Conflict]:
        """Conflicts between `files` and locks held by other projects."""
        wanted = {canonical_path(f) for f in files}
        requested_by = LockOwner(project=project, agent=agent, protocol=protocol)

        conflicts = []
        for lock in self.locks.list_active():
            if canonical_path(lock.file) not in wanted:
                continue
            # A project never conflicts with its own lock
            if lock.locked_by.project == project:
                continue
            conflicts.append(
                Conflict(
                    file=lock.file,
                    held_by=lock.locked_by,
                    requested_by=requested_by,
                )
            )

        logger.debug(
            "Checked conflicts",
            project=project,
            file_count=len(wanted),
            conflict_count=len(conflicts),
        )
        return conflicts
