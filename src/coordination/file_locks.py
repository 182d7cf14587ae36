"""File coordination - advisory locks over the workspace lock store."""

from datetime import datetime, timezone
from pathlib import Path

import structlog

from src.workspace.config import Settings
from src.workspace.errors import NotOwner

from .lock_store import LockStore, canonical_path
from .models import Lock, LockOwner

logger = structlog.get_logger()


class LockManager:
    """Acquire, release and enumerate advisory file locks.

    A file moves Unlocked -> Locked on `acquire` and back on `release`.
    There is no expiry: a lock lives until someone releases it.
    """

    def __init__(self, workspace_root: str | Path, settings: Settings | None = None):
        self.settings = settings or Settings()
        self.workspace_root = Path(workspace_root)
        self.store = LockStore(
            self.settings.locks_path(self.workspace_root),
            suffix=self.settings.lock_suffix,
        )

    def acquire(
        self,
        file: str,
        project: str,
        agent: str,
        protocol: str,
        reason: str | None = None,
    ) -> Lock:
        """Lock `file` for `project`. Raises LockExists if already held."""
        lock = Lock(
            file=canonical_path(file),
            locked_by=LockOwner(project=project, agent=agent, protocol=protocol),
            since=datetime.now(timezone.utc),
            reason=reason or None,
        )
        self.store.create(lock)

        logger.info(
            "Acquired file lock",
            file=lock.file,
            project=project,
            agent=agent,
            protocol=protocol,
        )
        return lock

    def release(self, file: str, owner: str | None = None) -> bool:
        """Release the lock on `file`.

        When `owner` is given it must match the holder's agent or project,
        otherwise NotOwner is raised and the lock stays in place. The check
        and the delete act on the same record. Returns False if no lock
        existed.
        """
        if owner:
            def check(lock: Lock) -> None:
                held_by = lock.locked_by
                if owner not in (held_by.agent, held_by.project):
                    logger.warning(
                        "Refused lock release",
                        file=lock.file,
                        owner=owner,
                        project=held_by.project,
                        agent=held_by.agent,
                    )
                    raise NotOwner(lock.file, owner, held_by)

            released = self.store.remove_checked(file, check)
        else:
            released = self.store.remove(file)

        if released:
            logger.info("Released file lock", file=canonical_path(file), owner=owner)
        return released

    def get(self, file: str) -> Lock | None:
        """Current lock on `file`, if any."""
        return self.store.read(file)

    def list_active(self) -> list[Lock]:
        """All well-formed locks in the workspace."""
        return self.store.list_all()
