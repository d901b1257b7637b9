"""
Workflow State Manager
======================
Persists workflow progress to ``.pkf-init-state.json`` in the working
directory so an interrupted run can resume.

State file format:
    {
      "version": "1.0.0",
      "stage": "executing",
      "started_at": ISO-8601 str,
      "updated_at": ISO-8601 str,
      "checkpoints": [
        {"stage": str, "description": str, "timestamp": ISO-8601 str, "data": {...}},
        ...
      ],
      "api_call_count": int,
      "total_cost": float,
      "total_tokens": int,
      ...any other carried fields, preserved as-is
    }

Writes are atomic: the full state goes to a temp file in the same directory,
is fsync'ed, then renamed over the canonical file.  A crash at any point
leaves either the old or the new file, never a truncated one.

One manager per working directory.  save() is not safe against a second
process writing the same file; hold an InitLockManager for the duration of
the run.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

STATE_FILE_NAME = ".pkf-init-state.json"
STATE_VERSION   = "1.0.0"


class StateSaveError(OSError):
    """Raised when the temp-write-then-rename sequence fails."""


class WorkflowStage(str, Enum):
    NOT_STARTED = "not_started"
    CONFIGURING = "configuring"
    PLANNING    = "planning"
    EXECUTING   = "executing"
    VERIFYING   = "verifying"
    COMPLETE    = "complete"
    FAILED      = "failed"


# Stages a run can be resumed from.
RESUMABLE_STAGES = frozenset({
    WorkflowStage.CONFIGURING,
    WorkflowStage.PLANNING,
    WorkflowStage.EXECUTING,
    WorkflowStage.VERIFYING,
})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Checkpoint:
    stage: WorkflowStage
    description: str
    timestamp: str
    data: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "stage":       self.stage.value,
            "description": self.description,
            "timestamp":   self.timestamp,
        }
        if self.data is not None:
            entry["data"] = self.data
        return entry

    @classmethod
    def from_dict(cls, entry: dict[str, Any]) -> "Checkpoint":
        return cls(
            stage=WorkflowStage(entry["stage"]),
            description=entry.get("description", ""),
            timestamp=entry["timestamp"],
            data=entry.get("data"),
        )


@dataclass
class WorkflowState:
    stage: WorkflowStage            = WorkflowStage.NOT_STARTED
    checkpoints: list[Checkpoint]   = field(default_factory=list)
    version: str                    = STATE_VERSION
    started_at: str                 = field(default_factory=_now)
    updated_at: str                 = field(default_factory=_now)
    api_call_count: int             = 0
    total_cost: float               = 0.0
    total_tokens: int               = 0
    extra: dict[str, Any]           = field(default_factory=dict)

    _KNOWN_KEYS = (
        "stage", "checkpoints", "version", "started_at", "updated_at",
        "api_call_count", "total_cost", "total_tokens",
    )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        payload.update({
            "version":        self.version,
            "stage":          self.stage.value,
            "started_at":     self.started_at,
            "updated_at":     self.updated_at,
            "checkpoints":    [cp.to_dict() for cp in self.checkpoints],
            "api_call_count": self.api_call_count,
            "total_cost":     self.total_cost,
            "total_tokens":   self.total_tokens,
        })
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "WorkflowState":
        return cls(
            stage=WorkflowStage(payload["stage"]),
            checkpoints=[Checkpoint.from_dict(cp) for cp in payload.get("checkpoints", [])],
            version=payload.get("version", STATE_VERSION),
            started_at=payload.get("started_at", ""),
            updated_at=payload.get("updated_at", ""),
            api_call_count=payload.get("api_call_count", 0),
            total_cost=payload.get("total_cost", 0.0),
            total_tokens=payload.get("total_tokens", 0),
            extra={k: v for k, v in payload.items() if k not in cls._KNOWN_KEYS},
        )


class WorkflowStateManager:
    """
    Owns the in-memory workflow state and its file for one working directory.

    Parameters
    ----------
    working_dir : str | Path | None
        Directory holding the state file.  Defaults to the current directory.
    """

    def __init__(self, working_dir: str | Path | None = None) -> None:
        self.working_dir = Path(working_dir) if working_dir is not None else Path.cwd()
        self.path        = self.working_dir / STATE_FILE_NAME
        self._state: WorkflowState | None = None

    @property
    def state(self) -> WorkflowState | None:
        return self._state

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_initial_state(self) -> WorkflowState:
        return WorkflowState()

    def load(self) -> WorkflowState | None:
        """
        Load the state file.  Returns None when there is no file or it cannot
        be parsed; a bad file means "nothing to resume", never an error.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._state = None
            return None
        except OSError as exc:
            logger.warning("Could not read workflow state %s: %s", self.path, exc)
            self._state = None
            return None

        try:
            self._state = WorkflowState.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning(
                "Ignoring unreadable workflow state %s (%s) -- starting fresh.",
                self.path, exc,
            )
            self._state = None
            return None

        logger.info(
            "Loaded workflow state: stage=%s, %d checkpoint(s)",
            self._state.stage.value, len(self._state.checkpoints),
        )
        return self._state

    def save(self, state: WorkflowState) -> None:
        """
        Atomically persist *state*.

        Raises:
            StateSaveError -- the temp file could not be written or renamed.
                              The canonical file is left untouched.
        """
        updated_at = _now()
        payload    = state.to_dict()
        payload["updated_at"] = updated_at
        content    = json.dumps(payload, indent=2)
        tmp_path = None
        try:
            self.working_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.working_dir), prefix=f"{STATE_FILE_NAME}.", suffix=".tmp"
            )
            try:
                os.write(fd, content.encode("utf-8"))
                os.fsync(fd)
            finally:
                os.close(fd)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error("Failed to save workflow state %s: %s", self.path, exc)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StateSaveError(f"Failed to save workflow state to {self.path}: {exc}") from exc

        state.updated_at = updated_at
        self._state      = state

    def checkpoint(
        self,
        stage: WorkflowStage | str,
        description: str,
        data: dict[str, Any] | None = None,
    ) -> Checkpoint:
        """Record a checkpoint, advance the stage and save before returning."""
        stage = WorkflowStage(stage)
        if self._state is None:
            self.load()
        if self._state is None:
            self._state = self.create_initial_state()

        entry = Checkpoint(stage=stage, description=description, timestamp=_now(), data=data)
        self.save(replace(
            self._state,
            stage=stage,
            checkpoints=[*self._state.checkpoints, entry],
        ))
        logger.debug("Checkpoint [%s] %s", stage.value, description)
        return entry

    def can_resume(self) -> bool:
        return self._state is not None and self._state.stage in RESUMABLE_STAGES

    def clear(self) -> None:
        """Delete the state file.  A missing file is fine."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        self._state = None
        logger.info("Workflow state cleared: %s", self.path)
