"""
Migration Log
=============
Append-only log of every action the executor takes on a plan.  Persists to a
JSON file after each entry and can export a Markdown summary.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class MigrationLog:
    """
    Single-threaded log of migration actions; the executor only records
    from its calling thread.

    Each entry records:
        sequence      -- monotonic counter
        timestamp     -- ISO-8601 UTC
        action        -- task_completed | task_failed | task_skipped |
                         run_stopped
        source_file   -- (optional) source path
        target_file   -- (optional) target path
        document_type -- (optional)
        rationale     -- (optional) free text / error message
    """

    def __init__(self, run_id: str, log_path: str | Path | None = None) -> None:
        self.run_id   = run_id
        self.log_path = Path(log_path) if log_path else None
        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

        self._entries: list[dict[str, Any]] = []
        self._seq: int = 0
        self._status: str = "running"
        self._started_at: str = datetime.now(timezone.utc).isoformat()
        self._completed_at: str | None = None

        self._flush()

    @property
    def entries(self) -> list[dict[str, Any]]:
        return list(self._entries)

    # ------------------------------------------------------------------
    # Recording API
    # ------------------------------------------------------------------

    def record(
        self,
        action: str,
        *,
        source_file: str | None = None,
        target_file: str | None = None,
        document_type: str | None = None,
        rationale: str | None = None,
        extra: dict | None = None,
    ) -> None:
        self._seq += 1
        entry: dict[str, Any] = {
            "sequence":  self._seq,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action":    action,
        }
        if source_file:    entry["source_file"]   = source_file
        if target_file:    entry["target_file"]   = target_file
        if document_type:  entry["document_type"] = document_type
        if rationale:      entry["rationale"]     = rationale
        if extra:          entry.update(extra)

        self._entries.append(entry)
        self._flush()
        logger.debug("[LOG #%d] %s %s", self._seq, action, source_file or target_file or "")

    def task_completed(self, task, tokens: int = 0) -> None:
        self.record(
            "task_completed",
            source_file=task.source_path,
            target_file=task.target_path,
            document_type=task.document_type,
            extra={"tokens": tokens},
        )

    def task_failed(self, task, error: str) -> None:
        self.record(
            "task_failed",
            source_file=task.source_path,
            target_file=task.target_path,
            document_type=task.document_type,
            rationale=error,
        )

    def task_skipped(self, task, reason: str) -> None:
        self.record(
            "task_skipped",
            source_file=task.source_path,
            target_file=task.target_path,
            rationale=reason,
        )

    def finalize(self, status: str = "completed") -> None:
        self._status       = status
        self._completed_at = datetime.now(timezone.utc).isoformat()
        self._flush()
        logger.info("Migration log finalised, status: %s", status)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "run_id":       self.run_id,
            "started_at":   self._started_at,
            "completed_at": self._completed_at,
            "status":       self._status,
            "entries":      self._entries,
        }

    def export_markdown(self, output_path: str | Path) -> None:
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)

        lines = [
            f"# Migration Log: {self.run_id}",
            f"**Started:** {self._started_at}  ",
            f"**Completed:** {self._completed_at or 'N/A'}  ",
            f"**Status:** {self._status}  ",
            "",
            "| # | Time | Action | Source | Target | Notes |",
            "|---|------|--------|--------|--------|-------|",
        ]
        for e in self._entries:
            ts    = e.get("timestamp", "")[:19].replace("T", " ")
            notes = e.get("rationale", "")
            lines.append(
                f"| {e['sequence']} | {ts} | `{e['action']}` | `{e.get('source_file', '')}` "
                f"| `{e.get('target_file', '')}` | {notes} |"
            )

        out.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.info("Migration log markdown exported to: %s", out)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _flush(self) -> None:
        if self.log_path is None:
            return
        with open(self.log_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
