"""
Core Module - Configuration.

============================================================
PROCESS-WIDE SETTINGS
============================================================

Settings loaded once at startup:
- Catalog database URL
- Snapshot cache root
- Logging level and format
- Batch concurrency and clone depth
- Semantic-conventions registry location

Configuration can be loaded from:
- Default values
- Environment variables (METRIC_LIBRARY_*, .env supported)
- YAML config file

============================================================
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from core.exceptions import ConfigurationError


load_dotenv()

logger = logging.getLogger(__name__)

ENV_PREFIX = "METRIC_LIBRARY_"

DEFAULT_DATABASE_URL = "sqlite:///metric-library.db"
DEFAULT_CACHE_DIR = str(Path.home() / ".cache" / "metric-library" / "repos")
DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


@dataclass
class MetricLibraryConfig:
    """
    Settings shared by the orchestrator, fetcher, store and enricher.

    Attributes:
        database_url: SQLAlchemy URL of the catalog store
        cache_dir: Root directory for repository snapshots
        log_level: Root logging level name
        log_format: logging.Formatter format string
        max_concurrent_runs: Upper bound on parallel extraction runs
        fetch_depth: Shallow clone depth
        semconv_registry_path: YAML/JSON file of {name, stability} entries
        semconv_registry_url: HTTP location of the same document
        http_timeout_seconds: Timeout for registry downloads
    """
    database_url: str = DEFAULT_DATABASE_URL
    cache_dir: str = DEFAULT_CACHE_DIR
    log_level: str = "INFO"
    log_format: str = DEFAULT_LOG_FORMAT
    max_concurrent_runs: int = 4
    fetch_depth: int = 1
    semconv_registry_path: Optional[str] = None
    semconv_registry_url: Optional[str] = None
    http_timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        """Validate numeric settings."""
        if self.max_concurrent_runs < 1:
            raise ConfigurationError("max_concurrent_runs must be >= 1")
        if self.fetch_depth < 1:
            raise ConfigurationError("fetch_depth must be >= 1")
        if self.http_timeout_seconds <= 0:
            raise ConfigurationError("http_timeout_seconds must be > 0")

    @classmethod
    def from_env(cls) -> "MetricLibraryConfig":
        """Load configuration from environment variables."""
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw == "":
                continue
            values[f.name] = _coerce(f.name, raw)
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Path) -> "MetricLibraryConfig":
        """
        Load configuration from a YAML file.

        Unknown keys are ignored with a warning.

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load YAML config from {path}",
                original_error=e,
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key '{key}' in {path}")
                continue
            values[key] = value
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def _coerce(name: str, raw: str) -> Any:
    if name in ("max_concurrent_runs", "fetch_depth"):
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigurationError(f"{ENV_PREFIX}{name.upper()} must be an integer") from e
    if name == "http_timeout_seconds":
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigurationError(f"{ENV_PREFIX}{name.upper()} must be a number") from e
    return raw


# =============================================================
# GLOBAL CONFIG
# =============================================================

_default_config: Optional[MetricLibraryConfig] = None


def get_config() -> MetricLibraryConfig:
    """Get the process-wide configuration, loading it from the environment on first use."""
    global _default_config
    if _default_config is None:
        _default_config = MetricLibraryConfig.from_env()
    return _default_config


def set_config(config: MetricLibraryConfig) -> None:
    """Replace the process-wide configuration."""
    global _default_config
    _default_config = config
