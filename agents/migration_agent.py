"""
Migration Agent
===============
Migrates one planned document.  For every ExtendedMigrationTask it:
  1. Reads the current content (source, else existing target, else empty)
  2. If the document needs frontmatter, converses with the LLM until the
     reply carries a YAML frontmatter block that parses to a mapping
  3. Writes frontmatter + body to the target path
  4. Removes the source when the task is a move

The conversation is bounded by ``orchestration.max_iterations`` replies;
running out raises IterationLimitExceeded.  Provider retries and timeouts
are configured on the LLM client, not here.

The agent is called from the executor's worker threads.  It never touches
the workflow state; it returns a TaskOutcome and the executor records it.
"""

import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from agents.llm.base import LLMMessage
from migration.config import PKFConfig
from migration.type_mapping import get_schema_for_doc_type
from prompts import load_prompt

if TYPE_CHECKING:
    from agents.llm import LLMRouter
    from migration.planner import ExtendedMigrationTask

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_FILE = "migration_system.txt"

_FRONTMATTER_RE = re.compile(r"\A\s*---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_FENCE_RE       = re.compile(r"\A\s*```[a-zA-Z]*\r?\n(.*?)\r?\n```\s*\Z", re.DOTALL)


class IterationLimitExceeded(Exception):
    """Raised when the LLM has not produced usable frontmatter within the iteration budget."""

    def __init__(self, iterations: int, source_path: str) -> None:
        super().__init__(
            f"No valid frontmatter for {source_path} after {iterations} iteration(s)"
        )
        self.iterations  = iterations
        self.source_path = source_path


@dataclass
class TaskOutcome:
    source_path: str
    target_path: str
    success: bool
    error: str | None   = None
    input_tokens: int   = 0
    output_tokens: int  = 0
    api_calls: int      = 0
    iterations: int     = 0

    @property
    def tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def split_frontmatter(text: str) -> tuple[dict[str, Any] | None, str]:
    """
    Split *text* into (frontmatter mapping, body).

    Returns (None, text) when there is no leading ``---`` block or it does not
    parse to a mapping.
    """
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return None, text
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        return None, text
    if not isinstance(data, dict):
        return None, text
    return data, text[match.end():].lstrip("\r\n")


def render_document(frontmatter: dict[str, Any], body: str) -> str:
    block = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    body  = body.strip("\n")
    return f"---\n{block}---\n\n{body}\n" if body else f"---\n{block}---\n"


class MigrationAgent:
    """
    Parameters
    ----------
    root_dir : str | Path
        Project root; task paths are relative to it.
    llm_router : LLMRouter | None
        Router used for frontmatter generation.  Tasks that need frontmatter
        fail when it is None.
    config : PKFConfig | None
        ``orchestration.max_iterations`` bounds the conversation.
    dry_run : bool
        Generate everything but write and delete nothing.
    """

    def __init__(
        self,
        root_dir: str | Path,
        llm_router: "LLMRouter | None" = None,
        config: PKFConfig | None = None,
        dry_run: bool = False,
    ) -> None:
        self.root_dir = Path(root_dir)
        self.config   = config or PKFConfig()
        self.dry_run  = dry_run
        self._router  = llm_router

        self._lock          = threading.Lock()
        self._input_tokens  = 0
        self._output_tokens = 0
        self._api_calls     = 0

    @property
    def max_iterations(self) -> int:
        return max(1, self.config.orchestration.max_iterations)

    def get_usage(self) -> dict[str, int]:
        """Token and call totals across every task this agent has run."""
        with self._lock:
            return {
                "input_tokens":  self._input_tokens,
                "output_tokens": self._output_tokens,
                "total_tokens":  self._input_tokens + self._output_tokens,
                "api_calls":     self._api_calls,
            }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def migrate(self, task: "ExtendedMigrationTask") -> TaskOutcome:
        """
        Migrate a single document.

        Raises:
            IterationLimitExceeded -- no valid frontmatter within max_iterations
            LLMProviderError       -- provider failure (incl. not configured)
            OSError                -- the document could not be read or written
        """
        outcome = TaskOutcome(
            source_path=task.source_path,
            target_path=task.target_path,
            success=False,
        )
        content = self._read_current(task)
        existing, body = split_frontmatter(content)

        if task.needs_frontmatter or existing is None:
            frontmatter, generated_body = self._generate_frontmatter(task, body, outcome)
            if existing:
                frontmatter = {**existing, **frontmatter}
            if task.needs_creation and not body.strip():
                body = generated_body or f"# {task.title or Path(task.target_path).stem}\n"
        else:
            frontmatter = existing

        self._write(task, render_document(frontmatter, body))
        outcome.success = True
        logger.info(
            "Migrated %s -> %s (%d iteration(s), %d tokens)%s",
            task.source_path, task.target_path, outcome.iterations, outcome.tokens,
            " [dry run]" if self.dry_run else "",
        )
        return outcome

    # ------------------------------------------------------------------
    # LLM conversation
    # ------------------------------------------------------------------

    def _generate_frontmatter(
        self,
        task: "ExtendedMigrationTask",
        body: str,
        outcome: TaskOutcome,
    ) -> tuple[dict[str, Any], str]:
        if self._router is None:
            from agents.llm.base import LLMNotAvailableError
            raise LLMNotAvailableError(
                f"Cannot add frontmatter to {task.source_path}: no LLM configured."
            )

        system_prompt = load_prompt(SYSTEM_PROMPT_FILE)
        messages      = [LLMMessage(role="user", content=self._build_user_message(task, body))]

        for iteration in range(1, self.max_iterations + 1):
            response = self._router.complete(system=system_prompt, messages=messages)
            outcome.iterations     = iteration
            outcome.api_calls     += 1
            outcome.input_tokens  += response.input_tokens
            outcome.output_tokens += response.output_tokens
            self._add_usage(response.input_tokens, response.output_tokens)

            reply = _strip_fence(response.text)
            frontmatter, rest = split_frontmatter(reply)
            if frontmatter is not None:
                return frontmatter, rest

            logger.debug(
                "[%s] iteration %d/%d: reply has no valid frontmatter",
                task.source_path, iteration, self.max_iterations,
            )
            messages.append(LLMMessage(role="assistant", content=response.text))
            messages.append(LLMMessage(
                role="user",
                content=(
                    "The reply did not start with a valid YAML frontmatter block. "
                    "Reply again, starting with '---', a YAML mapping, and '---'."
                ),
            ))

        raise IterationLimitExceeded(self.max_iterations, task.source_path)

    @staticmethod
    def _build_user_message(task: "ExtendedMigrationTask", body: str) -> str:
        state = "does not exist yet" if task.needs_creation else "exists"
        return (
            f"Document type: {task.document_type}\n"
            f"Schema: {get_schema_for_doc_type(task.document_type)}\n"
            f"Target path: {task.target_path}\n"
            f"Title: {task.title or Path(task.target_path).stem}\n"
            f"The document {state}.\n\n"
            f"CURRENT CONTENT:\n```markdown\n{body}\n```"
        )

    def _add_usage(self, input_tokens: int, output_tokens: int) -> None:
        with self._lock:
            self._input_tokens  += input_tokens
            self._output_tokens += output_tokens
            self._api_calls     += 1

    # ------------------------------------------------------------------
    # Filesystem
    # ------------------------------------------------------------------

    def _read_current(self, task: "ExtendedMigrationTask") -> str:
        source = self.root_dir / task.source_path
        target = self.root_dir / task.target_path
        if source.is_file():
            return source.read_text(encoding="utf-8")
        if target.is_file():
            return target.read_text(encoding="utf-8")
        return ""

    def _write(self, task: "ExtendedMigrationTask", document: str) -> None:
        source = self.root_dir / task.source_path
        target = self.root_dir / task.target_path
        if self.dry_run:
            logger.info("[DRY RUN] Would write: %s", target)
            if task.needs_move:
                logger.info("[DRY RUN] Would remove: %s", source)
            return

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(document, encoding="utf-8")
        if task.needs_move and source.exists() and source.resolve() != target.resolve():
            source.unlink()


def _strip_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    return match.group(1) if match else text
