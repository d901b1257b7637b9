"""
Migration Planner
=================
Central entry point of the planning stage: blueprint text in, ordered and
cost-estimated MigrationPlan out.

    planner = MigrationPlanner(root_dir="/path/to/project", config=config)
    plan    = planner.create_plan(blueprint_yaml)

Steps:
  1. Extract candidate documents from the blueprint (BlueprintExtractor)
  2. Read existing documents through a bounded thread pool
     (analysis.max_parallel_inspections) and estimate their tokens
  3. Assign priorities and sort by (priority, source path)
  4. Aggregate token / cost / time estimates and per-type counts

The planner only reads the filesystem.  A document that cannot be read is
estimated with the placeholder token count and reported in
``MigrationPlan.warnings``; an unusable blueprint raises PlanError.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path

from migration.blueprint import BlueprintDocument, BlueprintExtractor, MigrationTask, PlanError
from migration.config import PKFConfig
from migration.priority import PriorityResolver
from migration.token_estimator import TokenEstimator
from migration.type_mapping import normalize_doc_type

logger = logging.getLogger(__name__)

__all__ = [
    "CostEstimate",
    "EstimationWarning",
    "ExtendedMigrationTask",
    "MigrationPlan",
    "MigrationPlanner",
    "PlanError",
]


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtendedMigrationTask(MigrationTask):
    priority: int           = 0
    estimated_tokens: int   = 0
    needs_move: bool        = False
    needs_frontmatter: bool = True
    needs_creation: bool    = False
    title: str | None       = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CostEstimate:
    total_tokens: int     = 0
    total_cost: float     = 0.0      # USD
    time_minutes: float   = 0.0


@dataclass(frozen=True)
class EstimationWarning:
    """A document that could not be read for token estimation."""
    path: str
    reason: str


@dataclass(frozen=True)
class MigrationPlan:
    tasks: tuple[ExtendedMigrationTask, ...]
    total_files: int
    estimated_cost: float
    estimated_time: float
    by_type: dict[str, int]
    cost_estimate: CostEstimate                  = field(default_factory=CostEstimate)
    warnings: tuple[EstimationWarning, ...]      = ()

    def to_dict(self) -> dict:
        return {
            "tasks":          [task.to_dict() for task in self.tasks],
            "total_files":    self.total_files,
            "estimated_cost": self.estimated_cost,
            "estimated_time": self.estimated_time,
            "total_tokens":   self.cost_estimate.total_tokens,
            "by_type":        dict(self.by_type),
            "warnings":       [asdict(w) for w in self.warnings],
        }


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------

class MigrationPlanner:
    """
    Parameters
    ----------
    root_dir : str | Path
        Project root the blueprint paths are relative to.
    config : PKFConfig | None
        Planning / concurrency settings.  Defaults are used when omitted.
    estimator : TokenEstimator | None
    priority_resolver : PriorityResolver | None
    extractor : BlueprintExtractor | None
        Collaborators; each defaults to a fresh instance.
    """

    def __init__(
        self,
        root_dir: str | Path = ".",
        config: PKFConfig | None = None,
        estimator: TokenEstimator | None = None,
        priority_resolver: PriorityResolver | None = None,
        extractor: BlueprintExtractor | None = None,
    ) -> None:
        self.root_dir  = Path(root_dir)
        self.config    = config or PKFConfig()
        self.estimator = estimator or TokenEstimator()
        self.priority  = priority_resolver or PriorityResolver()
        self.extractor = extractor or BlueprintExtractor(self.root_dir)

    @property
    def workers(self) -> int:
        return max(1, self.config.analysis.max_parallel_inspections)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_plan(self, blueprint_text: str) -> MigrationPlan:
        """
        Build a MigrationPlan from blueprint YAML.

        Raises:
            PlanError -- the blueprint is not YAML or has no recognised
                         document list.
        """
        documents = self.extractor.extract(blueprint_text)
        contents  = self._read_documents(documents)

        tasks: list[ExtendedMigrationTask] = []
        warnings: list[EstimationWarning]  = []
        by_type: dict[str, int]            = {}

        for doc, (content, warning) in zip(documents, contents):
            doc_type = normalize_doc_type(doc.task.document_type) or "unknown"
            if warning is not None:
                warnings.append(warning)
                logger.warning("Token estimate degraded for %s: %s", warning.path, warning.reason)

            if content is None:
                tokens = self.config.planning.placeholder_tokens_per_doc
            else:
                tokens = self.estimator.estimate(content)

            tasks.append(ExtendedMigrationTask(
                source_path=doc.task.source_path,
                target_path=doc.task.target_path,
                document_type=doc_type,
                priority=self.priority.priority_of(doc_type, doc.task.source_path),
                estimated_tokens=tokens,
                needs_move=doc.needs_move,
                needs_frontmatter=doc.needs_frontmatter,
                needs_creation=doc.needs_creation,
                title=doc.title,
            ))
            by_type[doc_type] = by_type.get(doc_type, 0) + 1

        tasks.sort(key=PriorityResolver.sort_key)
        cost = self.estimate_costs(tasks)

        logger.info(
            "Migration plan: %d file(s), ~%d tokens, ~$%.4f, ~%.1f min",
            len(tasks), cost.total_tokens, cost.total_cost, cost.time_minutes,
        )
        return MigrationPlan(
            tasks=tuple(tasks),
            total_files=len(tasks),
            estimated_cost=cost.total_cost,
            estimated_time=cost.time_minutes,
            by_type=by_type,
            cost_estimate=cost,
            warnings=tuple(warnings),
        )

    def estimate_costs(self, tasks) -> CostEstimate:
        """Derive token, cost and time totals for *tasks* from the configured rates."""
        tasks = list(tasks)
        if not tasks:
            return CostEstimate()

        planning      = self.config.planning
        input_tokens  = sum(task.estimated_tokens for task in tasks)
        output_tokens = len(tasks) * planning.avg_output_tokens_per_doc

        total_cost = (
            input_tokens / 1_000_000 * planning.input_cost_per_million
            + output_tokens / 1_000_000 * planning.output_cost_per_million
        )
        return CostEstimate(
            total_tokens=int(input_tokens + output_tokens),
            total_cost=total_cost,
            time_minutes=len(tasks) * planning.minutes_per_doc / self.workers,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_documents(
        self, documents: list[BlueprintDocument]
    ) -> list[tuple[str | None, EstimationWarning | None]]:
        """Read every existing document, at most ``workers`` at a time."""
        if not documents:
            return []
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="pkf-inspect") as pool:
            return list(pool.map(self._read_document, documents))

    def _read_document(
        self, doc: BlueprintDocument
    ) -> tuple[str | None, EstimationWarning | None]:
        if doc.needs_creation:
            return None, None

        relative = doc.task.source_path if doc.source_exists else doc.task.target_path
        try:
            return (self.root_dir / relative).read_text(encoding="utf-8"), None
        except (OSError, UnicodeDecodeError) as exc:
            return None, EstimationWarning(path=relative, reason=str(exc))
