"""Lock and conflict models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class LockOwner(BaseModel):
    """Who acquired a lock and under which workflow."""
    model_config = ConfigDict(frozen=True)

    project: str
    agent: str
    protocol: str


class Lock(BaseModel):
    """Advisory hold on a single workspace-relative file."""
    file: str
    locked_by: LockOwner
    since: datetime
    reason: str | None = None

    def to_record(self) -> dict:
        """Plain document written to the lock file."""
        return self.model_dump(mode="json", exclude_none=True)


class Conflict(BaseModel):
    """A requested file that is locked by another project. Never persisted."""
    model_config = ConfigDict(frozen=True)

    file: str
    held_by: LockOwner
    requested_by: LockOwner
