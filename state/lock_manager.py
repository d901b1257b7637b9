"""
Init Lock Manager
=================
Exclusive per-working-directory lock so only one migration run (and hence
one WorkflowStateManager) touches a project at a time.

Lock file ``.pkf-init.lock``:
    {"pid": int, "timestamp": epoch-ms int, "version": str}

The file is created with O_CREAT | O_EXCL, so two processes racing for the
lock cannot both win.  A lock older than one hour, or whose owning process
is gone, is stale and is replaced.
"""

import json
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

LOCK_FILE_NAME     = ".pkf-init.lock"
STALE_THRESHOLD_MS = 3_600_000
LOCK_VERSION       = "1.0.0"


class LockError(RuntimeError):
    """Raised when another live process holds the lock."""


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


class InitLockManager:
    """
    Usage:
        with InitLockManager(project_root):
            ...run the workflow...
    """

    def __init__(self, working_dir: str | Path | None = None) -> None:
        directory    = Path(working_dir) if working_dir is not None else Path.cwd()
        self.path    = directory / LOCK_FILE_NAME
        self._locked = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def acquire(self) -> None:
        existing = self._read_lock()
        if existing is not None:
            if self._is_stale(existing):
                logger.warning("Removing stale lock held by PID %s", existing.get("pid"))
                self.force_release()
            else:
                raise LockError(
                    f"PKF migration already in progress (PID: {existing.get('pid')}). "
                    f"Use --force to override."
                )

        payload = {
            "pid":       os.getpid(),
            "timestamp": int(time.time() * 1000),
            "version":   LOCK_VERSION,
        }
        try:
            fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as exc:
            raise LockError("PKF migration already in progress (lost race for lock).") from exc
        try:
            os.write(fd, json.dumps(payload, indent=2).encode("utf-8"))
        finally:
            os.close(fd)

        self._locked = True
        logger.debug("Acquired lock %s", self.path)

    def release(self) -> None:
        if not self._locked:
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        self._locked = False
        logger.debug("Released lock %s", self.path)

    def force_release(self) -> None:
        existing = self._read_lock()
        if existing is not None:
            acquired = existing.get("timestamp")
            when = (
                datetime.fromtimestamp(acquired / 1000, tz=timezone.utc).isoformat()
                if isinstance(acquired, (int, float)) else "unknown time"
            )
            logger.warning(
                "Force releasing lock held by PID %s (acquired at %s)",
                existing.get("pid"), when,
            )
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        self._locked = False

    def is_locked(self) -> bool:
        return self._locked

    def __enter__(self) -> "InitLockManager":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _read_lock(self) -> dict | None:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            # Unreadable lock files are treated as stale.
            logger.debug("Unreadable lock file %s: %s", self.path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _is_stale(self, lock: dict) -> bool:
        timestamp = lock.get("timestamp")
        pid       = lock.get("pid")
        if not isinstance(timestamp, (int, float)) or not isinstance(pid, int):
            return True
        if time.time() * 1000 - timestamp > STALE_THRESHOLD_MS:
            return True
        return not _pid_alive(pid)
