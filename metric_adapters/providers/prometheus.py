"""
Prometheus exporter adapters.

Go exporters declare their metrics with prometheus.NewDesc; ClickHouse
declares them in C++ tables. Instrument types of the Go exporters are
inferred from the metric name suffix.
"""

import asyncio
import logging
from pathlib import Path

from core.exceptions import ParseError
from domain.models import ComponentType, ConfidenceLevel, ExtractionMethod, RawMetric, SourceCategory
from extractors.source_scan import (
    AsyncMetricsScanner,
    CurrentMetricsScanner,
    PrometheusGoScanner,
    ProfileEventsScanner,
)
from extractors.source_scan.dedupe import by_name, deduplicate_metrics
from extractors.source_scan.scanner import SourceScanner
from metric_adapters.base import (
    GitSourceAdapter,
    SourceScanAdapter,
    read_source,
    relative_path,
    require_dir,
)
from metric_adapters.models import FetchResult


logger = logging.getLogger(__name__)


class GoPrometheusAdapter(SourceScanAdapter):
    """
    Base for Go exporters: the .go files directly under scan_root,
    test files excluded.
    """

    source_category = SourceCategory.PROMETHEUS
    confidence = ConfidenceLevel.DERIVED
    component_type = ComponentType.PLATFORM

    file_suffixes = (".go",)
    recursive = False

    def create_scanner(self, result: FetchResult, root: Path) -> PrometheusGoScanner:
        return PrometheusGoScanner()

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        return file_path.name.endswith("_test.go")


# Trimmed in this order, each at most once
NODE_FILE_SUFFIXES = (
    "_linux",
    "_darwin",
    "_bsd",
    "_freebsd",
    "_netbsd",
    "_openbsd",
    "_dragonfly",
    "_solaris",
    "_common",
)


class NodeExporterAdapter(GoPrometheusAdapter):
    """node_exporter collectors; one component per collector file."""

    name = "prometheus-node"
    repo_url = "https://github.com/prometheus/node_exporter"
    scan_root = "collector"

    def component_name_for(self, file_path: Path, root: Path) -> str:
        # cpu_linux.go -> cpu
        name = file_path.stem
        for suffix in NODE_FILE_SUFFIXES:
            if name.endswith(suffix):
                name = name[:-len(suffix)]
        return name


class KafkaExporterAdapter(GoPrometheusAdapter):
    """kafka_exporter: sources live at the repository root."""

    name = "prometheus-kafka"
    repo_url = "https://github.com/danielqsj/kafka_exporter"

    def component_name_for(self, file_path: Path, root: Path) -> str:
        name = file_path.stem
        if name.endswith("_exporter"):
            name = name[:-len("_exporter")]
        return name


class MemcachedExporterAdapter(GoPrometheusAdapter):
    """memcached_exporter; every metric belongs to the memcached component."""

    name = "prometheus-memcached"
    repo_url = "https://github.com/prometheus/memcached_exporter"
    scan_root = "pkg/exporter"

    def component_name_for(self, file_path: Path, root: Path) -> str:
        return "memcached"

    def finalize(self, metrics: list[RawMetric]) -> list[RawMetric]:
        return deduplicate_metrics(metrics, key=by_name)


# =============================================================================
# CLICKHOUSE
# =============================================================================

# (path relative to the repository, scanner, component)
CLICKHOUSE_SOURCES: tuple[tuple[str, type[SourceScanner], str], ...] = (
    ("src/Common/CurrentMetrics.cpp", CurrentMetricsScanner, "current_metrics"),
    ("src/Common/ProfileEvents.cpp", ProfileEventsScanner, "profile_events"),
    ("src/Interpreters/ServerAsynchronousMetrics.cpp", AsyncMetricsScanner, "async_metrics"),
    ("src/Common/AsynchronousMetrics.cpp", AsyncMetricsScanner, "async_metrics"),
)


class ClickHouseAdapter(GitSourceAdapter):
    """
    ClickHouse built-in metric tables.

    - CurrentMetrics.cpp: gauges (system.metrics)
    - ProfileEvents.cpp: counters (system.events)
    - the two asynchronous metric sources: gauges
      (system.asynchronous_metrics), deduplicated across both files

    Missing source files are skipped.
    """

    name = "prometheus-clickhouse"
    source_category = SourceCategory.PROMETHEUS
    confidence = ConfidenceLevel.AUTHORITATIVE
    extraction_method = ExtractionMethod.AST
    repo_url = "https://github.com/ClickHouse/ClickHouse"

    async def extract(self, result: FetchResult) -> list[RawMetric]:
        require_dir(Path(result.repo_path), self.name)
        return await asyncio.to_thread(self._extract_sync, result)

    def _extract_sync(self, result: FetchResult) -> list[RawMetric]:
        metrics: list[RawMetric] = []
        for rel_path, scanner_cls, component_name in CLICKHOUSE_SOURCES:
            file_path = Path(result.repo_path, rel_path)
            if not file_path.is_file():
                logger.debug(f"[{self.name}] {rel_path} not present, skipping")
                continue
            try:
                content = read_source(file_path)
            except ParseError as e:
                logger.debug(f"[{self.name}] Skipping unparseable file {file_path}: {e}")
                continue

            for metric in scanner_cls().scan(content):
                metric.component_type = ComponentType.PLATFORM.value
                metric.component_name = component_name
                metric.source_location = str(file_path)
                metric.path = relative_path(file_path, result.repo_path)
                metrics.append(metric)
        return deduplicate_metrics(metrics)
