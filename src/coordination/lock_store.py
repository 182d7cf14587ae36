"""Lock store - one YAML record per locked file in a shared directory."""

import os
import uuid
from collections.abc import Callable
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from src.workspace.errors import LockExists, LockParseError

from .models import Lock

logger = structlog.get_logger()

# Escape "%" first so the markers below can never be produced by input text.
_ESCAPES = (
    ("%", "%25"),
    ("/", "%2F"),
    ("\\", "%5C"),
)


def canonical_path(path: str) -> str:
    """Rewrite Windows separators to "/"."""
    return path.replace("\\", "/")


def encode_key(path: str, suffix: str = ".yaml") -> str:
    """Map a file path to a unique, flat lock file name."""
    key = canonical_path(path)
    for char, marker in _ESCAPES:
        key = key.replace(char, marker)
    return key + suffix


def decode_key(key: str, suffix: str = ".yaml") -> str:
    """Inverse of `encode_key`."""
    if suffix and key.endswith(suffix):
        key = key[: -len(suffix)]

    out = []
    i = 0
    while i < len(key):
        marker = key[i:i + 3]
        for char, escaped in _ESCAPES:
            if marker == escaped:
                out.append(char)
                i += 3
                break
        else:
            out.append(key[i])
            i += 1
    return "".join(out)


class LockStore:
    """Directory of lock records keyed by `encode_key`.

    A record is written and fsynced under a private temporary name, then
    published with `os.link`, which the filesystem applies atomically and
    refuses when the target exists. Separate processes or machines sharing
    the directory contend correctly without any in-process mutex, and a
    record is either absent or complete.
    """

    def __init__(self, directory: str | Path, suffix: str = ".yaml"):
        self.directory = Path(directory)
        self.suffix = suffix

    def key_for(self, file: str) -> str:
        return encode_key(file, self.suffix)

    def path_for(self, file: str) -> Path:
        return self.directory / self.key_for(file)

    def _scratch_path(self, path: Path, kind: str) -> Path:
        # Dot-prefixed and not ending in the suffix, so list_all ignores it.
        return path.with_name(f".{path.name}.{uuid.uuid4().hex}.{kind}")

    def create(self, lock: Lock) -> Path:
        """Write `lock` if and only if no record exists for its file."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(lock.file)
        payload = yaml.safe_dump(lock.to_record(), sort_keys=False)
        tmp = self._scratch_path(path, "tmp")

        try:
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            try:
                os.link(tmp, path)
            except FileExistsError as exc:
                raise LockExists(lock.file) from exc
        finally:
            tmp.unlink(missing_ok=True)
        return path

    def read(self, file: str) -> Lock | None:
        """Read one record strictly. Returns None if there is none."""
        path = self.path_for(file)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return self._parse(path, raw)

    def remove(self, file: str) -> bool:
        """Delete the record for `file`. False if it did not exist."""
        try:
            self.path_for(file).unlink()
        except FileNotFoundError:
            return False
        return True

    def remove_checked(self, file: str, check: Callable[[Lock], None]) -> bool:
        """Delete the record for `file` unless `check` raises.

        The record is first renamed to a private tombstone, so the lock that
        `check` sees is the one that gets deleted. If `check` raises, the
        record is linked back in place and the error propagates. While the
        check runs the file looks unlocked; a caller that acquires it in that
        window keeps its lock, and the checked record is dropped.
        """
        path = self.path_for(file)
        tombstone = self._scratch_path(path, "release")
        try:
            os.rename(path, tombstone)
        except FileNotFoundError:
            return False

        try:
            check(self._parse(path, tombstone.read_text(encoding="utf-8")))
        except BaseException:
            self._restore(tombstone, path)
            raise
        finally:
            tombstone.unlink(missing_ok=True)
        return True

    def _restore(self, tombstone: Path, path: Path) -> None:
        try:
            os.link(tombstone, path)
        except FileExistsError:
            logger.warning(
                "Lock re-acquired during release check",
                file=decode_key(path.name, self.suffix),
            )

    def list_all(self) -> list[Lock]:
        """Every parseable record in the store; malformed ones are skipped."""
        if not self.directory.is_dir():
            return []

        locks = []
        for path in sorted(self.directory.iterdir()):
            if not path.name.endswith(self.suffix) or not path.is_file():
                continue
            try:
                raw = path.read_text(encoding="utf-8")
                locks.append(self._parse(path, raw))
            except FileNotFoundError:
                # Released between listing and reading.
                continue
            except (LockParseError, UnicodeDecodeError) as exc:
                logger.warning(
                    "Skipping malformed lock record",
                    file=decode_key(path.name, self.suffix),
                    error=str(exc),
                )
        return locks

    def _parse(self, path: Path, raw: str) -> Lock:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise LockParseError(path, f"invalid YAML ({exc})") from exc
        if not isinstance(data, dict):
            raise LockParseError(path, "expected a mapping")
        try:
            return Lock.model_validate(data)
        except ValidationError as exc:
            raise LockParseError(path, str(exc)) from exc
