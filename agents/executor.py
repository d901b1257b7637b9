"""
Migration Executor
==================
Runs the tasks of an approved MigrationPlan through a bounded worker pool.

  - at most ``analysis.max_parallel_inspections`` tasks run at once
  - tasks are submitted in plan order
  - results are collected on the calling thread, which is the only thread
    that checkpoints the workflow state and writes the MigrationLog
  - on resume, tasks that already have a successful ``executing``
    checkpoint are skipped
  - stop() / stop_on_error stop submitting new tasks; tasks already
    running finish and are recorded

A failing task (IterationLimitExceeded, provider error, I/O error) is
recorded and does not stop the run unless ``stop_on_error`` is set.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from agents.llm.base import LLMProviderError
from agents.migration_agent import IterationLimitExceeded, MigrationAgent, TaskOutcome
from agents.migration_log import MigrationLog
from migration.config import PKFConfig
from state.workflow_state import StateSaveError, WorkflowStage, WorkflowStateManager

if TYPE_CHECKING:
    from migration.planner import ExtendedMigrationTask, MigrationPlan

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    completed: list[str]        = field(default_factory=list)
    failed: list[dict]          = field(default_factory=list)
    skipped: list[str]          = field(default_factory=list)
    not_started: list[str]      = field(default_factory=list)
    total_tokens: int           = 0
    elapsed_seconds: float      = 0.0
    stopped: bool               = False

    @property
    def success(self) -> bool:
        return not self.failed and not self.not_started

    def to_dict(self) -> dict:
        return {
            "completed":       len(self.completed),
            "failed":          len(self.failed),
            "skipped":         len(self.skipped),
            "not_started":     len(self.not_started),
            "total_tokens":    self.total_tokens,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "stopped":         self.stopped,
            "failed_tasks":    self.failed,
        }


def completed_sources(state_manager: WorkflowStateManager) -> set[str]:
    """Source paths with a successful ``executing`` checkpoint in the current state."""
    state = state_manager.state
    if state is None:
        return set()
    done: set[str] = set()
    for cp in state.checkpoints:
        data = cp.data or {}
        if cp.stage is WorkflowStage.EXECUTING and data.get("success") and data.get("source_path"):
            done.add(data["source_path"])
    return done


class MigrationExecutor:
    """
    Parameters
    ----------
    agent : MigrationAgent
    state_manager : WorkflowStateManager
        Receives one checkpoint per finished task.
    config : PKFConfig | None
    log : MigrationLog | None
    stop_on_error : bool
        Stop submitting tasks after the first failure.
    """

    def __init__(
        self,
        agent: MigrationAgent,
        state_manager: WorkflowStateManager,
        config: PKFConfig | None = None,
        log: MigrationLog | None = None,
        stop_on_error: bool = False,
    ) -> None:
        self.agent         = agent
        self.state_manager = state_manager
        self.config        = config or PKFConfig()
        self.log           = log
        self.stop_on_error = stop_on_error
        self._stop         = threading.Event()

    @property
    def workers(self) -> int:
        return max(1, self.config.analysis.max_parallel_inspections)

    def stop(self) -> None:
        """Stop at the next task boundary."""
        self._stop.set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, plan: "MigrationPlan", resume: bool = False) -> ExecutionResult:
        started = time.monotonic()
        result  = ExecutionResult()
        usage_before = self.agent.get_usage()["total_tokens"]

        done    = completed_sources(self.state_manager) if resume else set()
        pending = []
        for task in plan.tasks:
            if task.source_path in done:
                result.skipped.append(task.source_path)
                if self.log:
                    self.log.task_skipped(task, "already migrated in a previous run")
            else:
                pending.append(task)

        if result.skipped:
            logger.info("Resuming: %d task(s) already complete, %d to go",
                        len(result.skipped), len(pending))

        queue = iter(pending)
        in_flight: dict[Future, "ExtendedMigrationTask"] = {}

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="pkf-migrate") as pool:

            def submit_next() -> bool:
                task = next(queue, None)
                if task is None:
                    return False
                in_flight[pool.submit(self._run_task, task)] = task
                return True

            while not self._stop.is_set() and len(in_flight) < self.workers and submit_next():
                pass

            while in_flight:
                finished, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in finished:
                    task    = in_flight.pop(future)
                    outcome = future.result()
                    self._record(task, outcome, result)
                    if not outcome.success and self.stop_on_error:
                        logger.warning("Stopping after failure of %s", task.source_path)
                        self._stop.set()

                while not self._stop.is_set() and len(in_flight) < self.workers and submit_next():
                    pass

        result.not_started = [task.source_path for task in queue]
        result.stopped     = self._stop.is_set()
        if result.stopped and self.log:
            self.log.record("run_stopped", rationale=f"{len(result.not_started)} task(s) not started")

        result.total_tokens    = self.agent.get_usage()["total_tokens"] - usage_before
        result.elapsed_seconds = time.monotonic() - started
        logger.info(
            "Execution finished: %d completed, %d failed, %d skipped, %d not started (%.1fs)",
            len(result.completed), len(result.failed), len(result.skipped),
            len(result.not_started), result.elapsed_seconds,
        )
        return result

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_task(self, task: "ExtendedMigrationTask") -> TaskOutcome:
        try:
            return self.agent.migrate(task)
        except IterationLimitExceeded as exc:
            logger.warning("%s", exc)
            error = str(exc)
        except LLMProviderError as exc:
            logger.error("LLM failure for %s: %s", task.source_path, exc)
            error = str(exc)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("I/O failure for %s: %s", task.source_path, exc)
            error = str(exc)
        return TaskOutcome(
            source_path=task.source_path,
            target_path=task.target_path,
            success=False,
            error=error,
        )

    def _record(
        self,
        task: "ExtendedMigrationTask",
        outcome: TaskOutcome,
        result: ExecutionResult,
    ) -> None:
        state    = self.state_manager.state
        counters = None
        if state is not None:
            planning = self.config.planning
            counters = (state.api_call_count, state.total_tokens, state.total_cost)
            state.api_call_count += outcome.api_calls
            state.total_tokens   += outcome.tokens
            state.total_cost     += (
                outcome.input_tokens / 1_000_000 * planning.input_cost_per_million
                + outcome.output_tokens / 1_000_000 * planning.output_cost_per_million
            )

        verb = "Migrated" if outcome.success else "Failed"
        try:
            self.state_manager.checkpoint(
                WorkflowStage.EXECUTING,
                f"{verb} {task.source_path}",
                data={
                    "source_path": task.source_path,
                    "target_path": task.target_path,
                    "success":     outcome.success,
                    "error":       outcome.error,
                    "tokens":      outcome.tokens,
                },
            )
        except StateSaveError:
            if counters is not None:
                state.api_call_count, state.total_tokens, state.total_cost = counters
            raise

        if outcome.success:
            result.completed.append(task.source_path)
            if self.log:
                self.log.task_completed(task, outcome.tokens)
        else:
            result.failed.append({"source_path": task.source_path, "error": outcome.error})
            if self.log:
                self.log.task_failed(task, outcome.error or "")
