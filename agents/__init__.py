# agents package
from agents.config_ingestion_agent import ConfigIngestionAgent, ConfigValidationError
from agents.migration_agent import IterationLimitExceeded, MigrationAgent, TaskOutcome
from agents.migration_log import MigrationLog
from agents.executor import ExecutionResult, MigrationExecutor
from agents.approval_gate import ApprovalGate, ApprovalRejectedError

__all__ = [
    "ConfigIngestionAgent",
    "ConfigValidationError",
    "IterationLimitExceeded",
    "MigrationAgent",
    "TaskOutcome",
    "MigrationLog",
    "ExecutionResult",
    "MigrationExecutor",
    "ApprovalGate",
    "ApprovalRejectedError",
]
