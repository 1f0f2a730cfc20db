"""
Metric Adapters Package.

One adapter per upstream metric source. An adapter fetches a snapshot
of its source (usually a shallow git clone) and extracts RawMetrics
from it; the orchestrator turns those into canonical catalog records.

Usage:
    from metric_adapters import build_default_registry

    registry = build_default_registry()
    adapter = registry.require_adapter("prometheus-node")
"""

from metric_adapters.base import (
    BaseMetricAdapter,
    GitSourceAdapter,
    SourceScanAdapter,
    StaticCatalogAdapter,
    load_catalog,
)
from metric_adapters.fetcher import GitFetcher, cache_path_for
from metric_adapters.models import (
    AdapterMetadata,
    FetchOptions,
    FetchResult,
    RawMetric,
)
from metric_adapters.registry import AdapterRegistry, build_default_registry


__all__ = [
    # Models
    "AdapterMetadata",
    "FetchOptions",
    "FetchResult",
    "RawMetric",
    # Base classes
    "BaseMetricAdapter",
    "GitSourceAdapter",
    "SourceScanAdapter",
    "StaticCatalogAdapter",
    "load_catalog",
    # Fetching
    "GitFetcher",
    "cache_path_for",
    # Registry
    "AdapterRegistry",
    "build_default_registry",
]
