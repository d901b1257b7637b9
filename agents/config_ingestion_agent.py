"""
Config Ingestion Agent
======================
Loads the PKF configuration (YAML), validates it against its JSON Schema and
applies PKF_* environment overrides.  Returns the PKFConfig used by the
planner, the executor and the migration agent.

Precedence (lowest -> highest):
    built-in defaults  ->  config file  ->  environment variables
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema import ValidationError

from migration.config import PKFConfig, get_default_config

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when a config file cannot be parsed or fails schema validation."""


# (section, snake_case attribute, camelCase file key)
_FIELDS: list[tuple[str, str, str]] = [
    ("analysis",      "max_parallel_inspections",   "maxParallelInspections"),
    ("orchestration", "max_iterations",             "maxIterations"),
    ("planning",      "avg_output_tokens_per_doc",  "avgOutputTokensPerDoc"),
    ("planning",      "placeholder_tokens_per_doc", "placeholderTokensPerDoc"),
    ("planning",      "input_cost_per_million",     "inputCostPerMillion"),
    ("planning",      "output_cost_per_million",    "outputCostPerMillion"),
    ("planning",      "minutes_per_doc",            "minutesPerDoc"),
    ("api",           "max_retries",                "maxRetries"),
    ("api",           "retry_delay_ms",             "retryDelayMs"),
    ("api",           "timeout",                    "timeout"),
]

# (env var, section, attribute, minimum accepted value)
_ENV_OVERRIDES: list[tuple[str, str, str, int]] = [
    ("PKF_MAX_PARALLEL_INSPECTIONS",  "analysis",      "max_parallel_inspections",  1),
    ("PKF_MAX_ITERATIONS",            "orchestration", "max_iterations",            1),
    ("PKF_AVG_OUTPUT_TOKENS_PER_DOC", "planning",      "avg_output_tokens_per_doc", 1),
    ("PKF_MAX_RETRIES",               "api",           "max_retries",               0),
    ("PKF_RETRY_DELAY_MS",            "api",           "retry_delay_ms",            0),
    ("PKF_API_TIMEOUT",               "api",           "timeout",                   0),
]


class ConfigIngestionAgent:
    """
    Parameters
    ----------
    config_path : str | Path | None
        YAML config file.  None, or a path that does not exist, means
        "defaults + environment only".
    environ : dict | None
        Environment mapping (defaults to os.environ); injectable for tests.
    """

    SCHEMA_PATH = Path(__file__).parent.parent / "config" / "schemas" / "pkf-config-schema.json"

    def __init__(
        self,
        config_path: str | Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> None:
        self.config_path = Path(config_path) if config_path else None
        self.environ     = os.environ if environ is None else environ

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load_and_validate(self) -> PKFConfig:
        """
        Raises:
            ConfigValidationError -- unreadable / invalid YAML or schema violation
        """
        config = get_default_config()

        file_config = self._load_file()
        if file_config:
            self._validate(file_config)
            self._merge(config, file_config)
            logger.info("Loaded configuration from: %s", self.config_path)

        self._apply_env_overrides(config)

        logger.info(
            "Config ready: parallel=%d, max_iterations=%d, avg_output_tokens=%s, retries=%d",
            config.analysis.max_parallel_inspections,
            config.orchestration.max_iterations,
            config.planning.avg_output_tokens_per_doc,
            config.api.max_retries,
        )
        return config

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_file(self) -> dict[str, Any] | None:
        if self.config_path is None:
            return None
        if not self.config_path.exists():
            logger.debug("Configuration file not found: %s -- using defaults.", self.config_path)
            return None
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigValidationError(
                f"Failed to load config from {self.config_path}: {exc}"
            ) from exc

        if data is None:
            return None
        if not isinstance(data, dict):
            raise ConfigValidationError(
                f"Invalid configuration file format: {self.config_path} (expected a mapping)"
            )
        return data

    def _validate(self, data: dict[str, Any]) -> None:
        with open(self.SCHEMA_PATH, "r", encoding="utf-8") as f:
            schema = json.load(f)
        try:
            jsonschema.validate(instance=data, schema=schema)
        except ValidationError as exc:
            raise ConfigValidationError(
                f"Config validation failed at '{exc.json_path}': {exc.message}"
            ) from exc

    @staticmethod
    def _merge(config: PKFConfig, data: dict[str, Any]) -> None:
        for section, attr, camel in _FIELDS:
            values = data.get(section)
            if not isinstance(values, dict):
                continue
            if camel in values:
                setattr(getattr(config, section), attr, values[camel])
            elif attr in values:
                setattr(getattr(config, section), attr, values[attr])

    def _apply_env_overrides(self, config: PKFConfig) -> None:
        for var, section, attr, minimum in _ENV_OVERRIDES:
            raw = self.environ.get(var)
            if not raw:
                continue
            try:
                value = int(raw)
            except ValueError:
                value = None
            if value is None or value < minimum:
                logger.warning("Invalid %s value: %s -- ignored.", var, raw)
                continue
            setattr(getattr(config, section), attr, value)
            logger.debug("Config override from env: %s=%d", attr, value)
