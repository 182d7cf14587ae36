"""Coordination layer - advisory file locks and conflict detection."""

from .conflicts import ConflictDetector
from .file_locks import LockManager
from .lock_store import LockStore, canonical_path, decode_key, encode_key
from .models import Conflict, Lock, LockOwner

__all__ = [
    "Conflict",
    "ConflictDetector",
    "Lock",
    "LockManager",
    "LockOwner",
    "LockStore",
    "canonical_path",
    "decode_key",
    "encode_key",
]
