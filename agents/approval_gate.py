"""
Plan Approval Gate
==================
Hard stop between planning and execution: the migration plan is shown to a
human, and no document is touched until it is approved.

Approval modes:
  - cli_prompt   : Interactive terminal prompt (default)
  - auto_approve : FOR TESTING / CI ONLY, skips the gate
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ApprovalRejectedError(Exception):
    """Raised when a human explicitly rejects the plan."""


class ApprovalGate:
    """
    Presents the plan summary to an approver and waits for sign-off.
    """

    VALID_APPROVE = {"y", "yes", "approve", "approved", "accept"}
    VALID_REJECT  = {"n", "no", "reject", "rejected", "decline"}
    PREVIEW_LINES = 60

    def __init__(self, mode: str = "cli_prompt") -> None:
        if mode not in ("cli_prompt", "auto_approve"):
            raise ValueError(f"Unknown approval mode: {mode!r}")
        self.mode = mode

    def request_approval(self, plan_summary: str, plan_path: Path | None = None) -> bool:
        """
        Show the plan to the approver and return True if approved.

        Raises:
            ApprovalRejectedError -- explicitly rejected, or input interrupted
        """
        logger.info("Approval gate triggered%s", f" for plan: {plan_path}" if plan_path else "")

        if self.mode == "auto_approve":
            logger.warning("AUTO-APPROVE mode active. This should only be used for testing.")
            return True

        return self._cli_prompt(plan_summary, plan_path)

    # ------------------------------------------------------------------
    # CLI prompt
    # ------------------------------------------------------------------

    def _cli_prompt(self, plan_summary: str, plan_path: Path | None) -> bool:
        separator = "=" * 72

        print(f"\n{separator}")
        print("  APPROVAL REQUIRED: PKF documentation migration")
        print(separator)
        if plan_path:
            print(f"\nPlan saved at:\n  {plan_path}\n")

        lines   = plan_summary.splitlines()
        preview = "\n".join(lines[:self.PREVIEW_LINES])
        if len(lines) > self.PREVIEW_LINES:
            preview += f"\n\n... [{len(lines) - self.PREVIEW_LINES} more lines, type 'view'] ..."
        print(preview)

        print(f"\n{separator}")
        print("[!] No document has been changed yet.")
        print(separator)

        while True:
            try:
                answer = input(
                    "\nApprove this migration plan? [yes/no, or 'view' to reprint]: "
                ).strip().lower()
            except (EOFError, KeyboardInterrupt):
                print("\nInterrupted, plan NOT approved.")
                raise ApprovalRejectedError("Approval interrupted by user (Ctrl+C / EOF).")

            if answer == "view":
                print(plan_summary)
                continue

            if answer in self.VALID_APPROVE:
                print("\n[OK] Plan APPROVED. Starting migration...\n")
                return True

            if answer in self.VALID_REJECT:
                raise ApprovalRejectedError("Plan rejected by user.")

            print(f"  Unrecognised input '{answer}'. Please type 'yes' or 'no'.")
