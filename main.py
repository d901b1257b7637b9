#!/usr/bin/env python3
"""
PKF Migrate -- CLI Runner
=========================
Plans and executes the migration of a project's documentation into the PKF
layout described by a blueprint, with a resumable workflow state.

Usage:
    python main.py --root <project> [--blueprint <file>] [OPTIONS]

Examples:
    # Show the migration plan (no document changed, no state written)
    python main.py --root ./my-project --mode plan

    # Plan, approve interactively, migrate
    python main.py --root ./my-project --mode full

    # Continue an interrupted run
    python main.py --root ./my-project --mode full --resume

    # CI: no prompt, nothing written
    python main.py --root ./my-project --mode full --auto-approve --dry-run

Exit codes: 0 success, 1 failure, 2 plan rejected.
"""

import argparse
import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

# ---------------------------------------------------------------------------
# Ensure project root is in sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agents.approval_gate import ApprovalGate, ApprovalRejectedError
from agents.config_ingestion_agent import ConfigIngestionAgent, ConfigValidationError
from agents.executor import ExecutionResult, MigrationExecutor
from agents.migration_agent import MigrationAgent
from agents.migration_log import MigrationLog
from migration.planner import MigrationPlan, MigrationPlanner, PlanError
from migration.report import render_plan_summary
from state.lock_manager import InitLockManager, LockError
from state.workflow_state import (
    StateSaveError,
    WorkflowStage,
    WorkflowStateManager,
)

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    fmt   = "%(asctime)s [%(levelname)-8s] %(name)s -- %(message)s"
    logging.basicConfig(level=level, format=fmt, datefmt="%Y-%m-%d %H:%M:%S")
    # Silence noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)

logger = logging.getLogger("pkf-migrate")

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_BLUEPRINT_NAME = ".pkf-init-blueprint.yaml"
MIGRATION_LOG_NAME     = ".pkf-migration-log.json"
MIGRATION_REPORT_NAME  = ".pkf-migration-log.md"

# Stages after which the plan has already been approved.
_APPROVED_STAGES = {WorkflowStage.EXECUTING, WorkflowStage.VERIFYING}


def print_banner(title: str) -> None:
    width = 60
    print(f"\n{'='*width}")
    print(f"  {title}")
    print(f"{'='*width}")


def build_llm_router(args: argparse.Namespace, config):
    from agents.llm import LLMRouter
    return LLMRouter.from_cli_args(args, api_config=config.api)


# ---------------------------------------------------------------------------
# Pipeline orchestration
# ---------------------------------------------------------------------------

def run_pipeline(args: argparse.Namespace, llm_router=None) -> int:
    """
    Run the migration pipeline under the project lock.
    Returns exit code: 0 = success, 1 = failure, 2 = approval rejected.
    """
    root = Path(args.root).resolve()
    if not root.is_dir():
        logger.error("Project root not found: %s", root)
        return 1

    lock = InitLockManager(root)
    if args.force:
        lock.force_release()
    try:
        lock.acquire()
    except LockError as exc:
        logger.error("%s", exc)
        return 1

    try:
        return _run_locked(args, root, llm_router)
    except StateSaveError as exc:
        logger.error("Workflow state could not be saved: %s", exc)
        return 1
    finally:
        lock.release()


def _run_locked(args: argparse.Namespace, root: Path, llm_router) -> int:
    track  = args.mode == "full"
    states = WorkflowStateManager(root)

    # ---- Step 0: Workflow state ----
    if args.reset:
        states.clear()

    previous = states.load()
    resume   = False
    if previous is not None and states.can_resume() and track:
        if args.resume:
            resume = True
            logger.info(
                "Resuming workflow from stage '%s' (%d checkpoint(s))",
                previous.stage.value, len(previous.checkpoints),
            )
        else:
            logger.warning(
                "Discarding unfinished run at stage '%s'. Use --resume to continue it.",
                previous.stage.value,
            )
            states.clear()
    elif previous is not None and track:
        states.clear()
    if args.resume and not resume and track:
        logger.info("Nothing to resume -- starting a new run.")

    resumed_stage = previous.stage if resume else None

    # ---- Step 1: Configuration ----
    print_banner("Step 1: Configuration")
    if track:
        states.checkpoint(WorkflowStage.CONFIGURING, "Loading configuration")
    try:
        config = ConfigIngestionAgent(args.config).load_and_validate()
    except ConfigValidationError as exc:
        logger.error("Config ingestion failed: %s", exc)
        if track:
            states.checkpoint(WorkflowStage.FAILED, "Configuration invalid", data={"error": str(exc)})
        return 1

    # ---- Step 2: Planning ----
    print_banner("Step 2: Migration Plan")
    blueprint_path = Path(args.blueprint) if args.blueprint else root / DEFAULT_BLUEPRINT_NAME
    try:
        blueprint_text = blueprint_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Cannot read blueprint %s: %s", blueprint_path, exc)
        return 1

    planner = MigrationPlanner(root_dir=root, config=config)
    try:
        plan = planner.create_plan(blueprint_text)
    except PlanError as exc:
        logger.error("Planning failed: %s", exc)
        return 1

    if track:
        states.checkpoint(WorkflowStage.PLANNING, "Migration plan created", data={
            "total_files":    plan.total_files,
            "estimated_cost": plan.estimated_cost,
            "estimated_time": plan.estimated_time,
            "by_type":        dict(plan.by_type),
        })

    if args.plan_json:
        _write_plan_json(plan, Path(args.plan_json))

    summary = render_plan_summary(plan)
    if args.mode == "plan":
        print(summary)
        logger.info("Mode=plan -- stopping after planning.")
        return 0

    if plan.total_files == 0:
        logger.info("Blueprint lists no documents -- nothing to migrate.")
        states.checkpoint(WorkflowStage.COMPLETE, "Nothing to migrate")
        states.clear()
        return 0

    # ---- Step 3: Approval ----
    if resumed_stage in _APPROVED_STAGES:
        logger.info("Plan was approved in the interrupted run -- skipping approval.")
    else:
        print_banner("Step 3: Approval")
        gate = ApprovalGate(mode="auto_approve" if args.auto_approve else "cli_prompt")
        try:
            gate.request_approval(summary, Path(args.plan_json) if args.plan_json else None)
        except ApprovalRejectedError as exc:
            logger.info("Plan rejected: %s", exc)
            print(f"\n[X] Plan rejected. Reason: {exc}")
            states.clear()
            return 2

    # ---- Step 4: Execution ----
    print_banner("Step 4: Migration")
    states.checkpoint(WorkflowStage.EXECUTING, f"Executing {plan.total_files} task(s)")

    if llm_router is None:
        llm_router = build_llm_router(args, config)

    run_id = f"pkf-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M')}-{uuid.uuid4().hex[:6]}"
    log    = MigrationLog(run_id, None if args.dry_run else root / MIGRATION_LOG_NAME)
    agent  = MigrationAgent(root, llm_router=llm_router, config=config, dry_run=args.dry_run)
    result = MigrationExecutor(
        agent, states, config=config, log=log, stop_on_error=args.stop_on_error,
    ).run(plan, resume=resume)
    log.finalize("completed" if result.success else "completed_with_failures")
    if not args.dry_run:
        log.export_markdown(root / MIGRATION_REPORT_NAME)

    if not result.success:
        _print_result(result)
        for failure in result.failed:
            logger.warning("   %s: %s", failure["source_path"], failure["error"])
        logger.info("Fix the failures and continue with: python main.py --root %s --resume", root)
        return 1

    # ---- Step 5: Verification ----
    print_banner("Step 5: Verification")
    states.checkpoint(WorkflowStage.VERIFYING, "Verifying migrated documents")
    missing = [] if args.dry_run else _missing_targets(root, plan)
    if missing:
        for path in missing:
            logger.error("Expected target not found: %s", path)
        return 1

    states.checkpoint(WorkflowStage.COMPLETE, "Migration complete", data=result.to_dict())
    _print_result(result)
    states.clear()
    return 0


def _write_plan_json(plan: MigrationPlan, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(plan.to_dict(), f, indent=2)
    logger.info("[OK] Plan written to: %s", path)


def _missing_targets(root: Path, plan: MigrationPlan) -> list[str]:
    return [task.target_path for task in plan.tasks if not (root / task.target_path).is_file()]


def _print_result(result: ExecutionResult) -> None:
    print_banner("Migration Summary")
    print(f"  Completed:    {len(result.completed)}")
    print(f"  Failed:       {len(result.failed)}")
    print(f"  Skipped:      {len(result.skipped)} (already migrated)")
    print(f"  Not started:  {len(result.not_started)}")
    print(f"  Tokens used:  {result.total_tokens}")
    print(f"  Elapsed:      {result.elapsed_seconds:.1f}s")
    print()


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkf-migrate",
        description="Plan and run a resumable PKF documentation migration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--root",
        default=".",
        help="Project root the blueprint paths are relative to (default: current directory).",
    )
    parser.add_argument(
        "--blueprint",
        default=None,
        help=f"Blueprint YAML file (default: <root>/{DEFAULT_BLUEPRINT_NAME}).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="PKF migration config YAML (default: built-in defaults + PKF_* env vars).",
    )
    parser.add_argument(
        "--mode",
        choices=["plan", "full"],
        default="full",
        help="'plan' prints the plan and stops; 'full' approves and migrates (default: full).",
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Continue an interrupted run from its saved workflow state.",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete any saved workflow state before starting.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Break an existing lock held by another run.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the agents but write or delete no document.",
    )
    parser.add_argument(
        "--auto-approve",
        action="store_true",
        help="Skip the approval prompt. FOR TESTING / CI ONLY.",
    )
    parser.add_argument(
        "--stop-on-error",
        action="store_true",
        help="Stop submitting tasks after the first failed one.",
    )
    parser.add_argument(
        "--plan-json",
        default=None,
        help="Also write the plan as JSON to this path.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging.",
    )

    llm_group = parser.add_argument_group("LLM options")
    llm_group.add_argument(
        "--llm-model",
        default=None,
        help="Model id (overrides LLM_MODEL).",
    )
    llm_group.add_argument(
        "--llm-max-tokens",
        type=int,
        default=None,
        help="Max output tokens per request (overrides LLM_MAX_TOKENS).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args   = parser.parse_args(argv)

    configure_logging(verbose=args.verbose)

    if args.resume and args.reset:
        parser.error("--resume and --reset cannot be combined.")

    print_banner("PKF Migrate")
    print(f"  Root:         {Path(args.root).resolve()}")
    print(f"  Mode:         {args.mode}")
    print(f"  Resume:       {args.resume}")
    print(f"  Dry-run:      {args.dry_run}")
    print(f"  Auto-approve: {args.auto_approve}")
    print()

    return run_pipeline(args)


if __name__ == "__main__":
    sys.exit(main())
