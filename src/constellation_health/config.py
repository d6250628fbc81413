"""Configuration loading and management for Constellation Health.

Configuration sources are merged in priority order:
    1. Defaults (defined in HealthConfig)
    2. Global config (~/.constellation-health.toml)
    3. Project config (./constellation-health.toml)
    4. Explicit config file
    5. Environment variables (CONSTELLATION_* prefix)
    6. Keyword overrides (typically CLI flags)

Example:
    >>> config = load_config(batch_size=20)
    >>> config.batch_size
    20
    >>> config.risk.weight_complexity
    0.4
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

GLOBAL_CONFIG_NAME = ".constellation-health.toml"
PROJECT_CONFIG_NAME = "constellation-health.toml"
ENV_PREFIX = "CONSTELLATION_"


@dataclass(frozen=True)
class RiskConfig:
    """Weights and category thresholds for risk scoring.

    Weights blend the three percentile axes into one score and must sum to
    1.0. Thresholds are on the 0-100 weighted-score scale:

        score >= threshold_high    -> critical
        score >= threshold_medium  -> high
        score >= threshold_low     -> medium
        otherwise                  -> low
    """

    weight_complexity: float = 0.40
    weight_churn: float = 0.35
    weight_dependencies: float = 0.25

    threshold_low: float = 40.0
    threshold_medium: float = 70.0
    threshold_high: float = 90.0

    # Display colours per category
    color_low: str = "#22c55e"
    color_medium: str = "#eab308"
    color_high: str = "#f97316"
    color_critical: str = "#ef4444"

    def __post_init__(self) -> None:
        """Validate weights and thresholds."""
        for name in ("weight_complexity", "weight_churn", "weight_dependencies"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

        weight_sum = self.weight_complexity + self.weight_churn + self.weight_dependencies
        if not 0.99 <= weight_sum <= 1.01:
            raise ValueError(f"Risk weights must sum to 1.0, got {weight_sum:.3f}")

        for name in ("threshold_low", "threshold_medium", "threshold_high"):
            if not 0.0 <= getattr(self, name) <= 100.0:
                raise ValueError(f"{name} must be between 0 and 100")

        if not self.threshold_low < self.threshold_medium < self.threshold_high:
            raise ValueError("Risk thresholds must satisfy low < medium < high")


DEFAULT_RISK = RiskConfig()


@dataclass(frozen=True)
class HealthConfig:
    """Configuration for a health analysis session.

    Attributes:
        Batch scheduling:
            batch_size: Initial number of files analyzed concurrently
            min_batch_size: Floor for adaptive batch-size reduction
            complexity_batch_size: Chunk size for complexity-only batch calls
            memory_check_interval: Sample process memory every N batches
            gc_interval: Request garbage collection every N batches
            memory_warning_mb: Resident memory that triggers a warning

        Churn:
            churn_window_days: Trailing window for commit counts
            git_timeout_seconds: Timeout for each git subprocess

        Report:
            top_risks_count: Number of files listed in topRisks

        Caching:
            complexity_ttl_seconds: TTL for per-file complexity metrics
            churn_ttl_seconds: TTL for per-file churn metrics
            analysis_ttl_seconds: TTL for whole reports
            cleanup_interval_seconds: Background sweep period (0 disables)
            report_cache_enabled: Persist whole reports across sessions
            report_cache_dir: Directory for the persistent report cache
    """

    # Batch scheduling
    batch_size: int = 50
    min_batch_size: int = 10
    complexity_batch_size: int = 10
    memory_check_interval: int = 5
    gc_interval: int = 10
    memory_warning_mb: float = 512.0

    # Churn
    churn_window_days: int = 30
    git_timeout_seconds: int = 10

    # Report
    top_risks_count: int = 5

    # Caching
    complexity_ttl_seconds: float = 7 * 24 * 3600
    churn_ttl_seconds: float = 24 * 3600
    analysis_ttl_seconds: float = 3600
    cleanup_interval_seconds: float = 300
    report_cache_enabled: bool = False
    report_cache_dir: str = ".constellation-cache"

    risk: RiskConfig = field(default_factory=RiskConfig)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.min_batch_size < 1:
            raise ValueError("min_batch_size must be at least 1")
        if self.batch_size < self.min_batch_size:
            raise ValueError("batch_size must be at least min_batch_size")
        if self.complexity_batch_size < 1:
            raise ValueError("complexity_batch_size must be at least 1")
        if self.memory_check_interval < 1:
            raise ValueError("memory_check_interval must be at least 1")
        if self.gc_interval < 1:
            raise ValueError("gc_interval must be at least 1")
        if self.memory_warning_mb <= 0:
            raise ValueError("memory_warning_mb must be positive")

        if self.churn_window_days < 1:
            raise ValueError("churn_window_days must be at least 1")
        if self.git_timeout_seconds < 1:
            raise ValueError("git_timeout_seconds must be at least 1")

        if self.top_risks_count < 1:
            raise ValueError("top_risks_count must be at least 1")

        for name in ("complexity_ttl_seconds", "churn_ttl_seconds", "analysis_ttl_seconds"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.cleanup_interval_seconds < 0:
            raise ValueError("cleanup_interval_seconds must be non-negative")

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of every setting, used for hashing."""
        data = {name: getattr(self, name) for name in self.__dataclass_fields__ if name != "risk"}
        data["risk"] = {name: getattr(self.risk, name) for name in self.risk.__dataclass_fields__}
        return data


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> HealthConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated HealthConfig instance

    Raises:
        ConfigurationError: If a config file is missing or invalid
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / GLOBAL_CONFIG_NAME
    if global_config.exists():
        try:
            merged.update(_load_toml_file(global_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / PROJECT_CONFIG_NAME
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except Exception as e:
            raise ConfigurationError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())
    merged.update(overrides)

    # [risk] table from TOML
    risk = merged.pop("risk", None)
    if risk is not None:
        if isinstance(risk, dict):
            try:
                merged["risk"] = RiskConfig(**risk)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid [risk] config: {e}")
        elif isinstance(risk, RiskConfig):
            merged["risk"] = risk

    try:
        return HealthConfig(**merged)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from CONSTELLATION_* environment variables.

    Every scalar HealthConfig field can be set, e.g. CONSTELLATION_BATCH_SIZE=20
    or CONSTELLATION_REPORT_CACHE_ENABLED=true. The nested risk settings are
    file-only.
    """
    type_hints = get_type_hints(HealthConfig)
    result: dict[str, Any] = {}

    for field_name in HealthConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Returns None for types that cannot be expressed as a single variable.
    """
    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    with open(path, "rb") as f:
        return tomllib.load(f)
