"""
PKF configuration model.

Loading, validation and environment overrides live in
agents.config_ingestion_agent; this module only defines the shape and the
defaults so the core components can be used without touching the filesystem.
"""

from dataclasses import asdict, dataclass, field


@dataclass
class AnalysisConfig:
    max_parallel_inspections: int = 3


@dataclass
class OrchestrationConfig:
    max_iterations: int = 5


@dataclass
class PlanningConfig:
    avg_output_tokens_per_doc: float  = 1000
    placeholder_tokens_per_doc: int   = 1000     # docs that don't exist yet / can't be read
    input_cost_per_million: float     = 0.80     # USD
    output_cost_per_million: float    = 4.00     # USD
    minutes_per_doc: float            = 0.5


@dataclass
class ApiConfig:
    max_retries: int    = 3
    retry_delay_ms: int = 1000
    timeout: int        = 1_800_000              # ms, 0 = no timeout


@dataclass
class PKFConfig:
    analysis: AnalysisConfig           = field(default_factory=AnalysisConfig)
    orchestration: OrchestrationConfig = field(default_factory=OrchestrationConfig)
    planning: PlanningConfig           = field(default_factory=PlanningConfig)
    api: ApiConfig                     = field(default_factory=ApiConfig)

    def to_dict(self) -> dict:
        return asdict(self)


def get_default_config() -> PKFConfig:
    return PKFConfig()
