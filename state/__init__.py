# workflow state package
from state.lock_manager import InitLockManager, LockError
from state.workflow_state import (
    Checkpoint,
    StateSaveError,
    WorkflowStage,
    WorkflowState,
    WorkflowStateManager,
)

__all__ = [
    "InitLockManager",
    "LockError",
    "Checkpoint",
    "StateSaveError",
    "WorkflowStage",
    "WorkflowState",
    "WorkflowStateManager",
]
