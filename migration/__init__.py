# migration planning core
from migration.blueprint import BlueprintExtractor, BlueprintShape, MigrationTask, PlanError
from migration.config import PKFConfig, get_default_config
from migration.planner import (
    CostEstimate,
    EstimationWarning,
    ExtendedMigrationTask,
    MigrationPlan,
    MigrationPlanner,
)
from migration.priority import DEFAULT_TYPE_PRIORITIES, PriorityResolver
from migration.token_estimator import TokenCache, TokenEstimator

__all__ = [
    "BlueprintExtractor",
    "BlueprintShape",
    "MigrationTask",
    "PlanError",
    "PKFConfig",
    "get_default_config",
    "CostEstimate",
    "EstimationWarning",
    "ExtendedMigrationTask",
    "MigrationPlan",
    "MigrationPlanner",
    "DEFAULT_TYPE_PRIORITIES",
    "PriorityResolver",
    "TokenCache",
    "TokenEstimator",
]
