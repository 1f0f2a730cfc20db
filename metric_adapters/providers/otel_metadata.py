"""
OpenTelemetry manifest adapters.

- otel-collector-contrib: metadata.yaml of every collector component
- otel-semconv: metric groups of the semantic-conventions model

Both sources are authoritative: metrics are declared, not inferred.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from core.exceptions import ParseError
from domain.models import (
    ComponentType,
    ConfidenceLevel,
    ExtractionMethod,
    RawMetric,
    SourceCategory,
)
from extractors.metadata.discovery import MetadataDiscovery
from extractors.metadata.parser import MetadataParser
from extractors.metadata.semconv import component_name_for, load_model_dir
from extractors.source_scan.dedupe import deduplicate_metrics
from metric_adapters.base import GitSourceAdapter, relative_path, require_dir
from metric_adapters.fetcher import GitFetcher
from metric_adapters.models import FetchResult


logger = logging.getLogger(__name__)


class OtelCollectorContribAdapter(GitSourceAdapter):
    """
    OpenTelemetry Collector contrib components.

    Component type and name come from the manifest location
    (receiver/mysqlreceiver/metadata.yaml -> receiver, mysqlreceiver).
    Manifests that fail to parse are skipped.
    """

    name = "otel-collector-contrib"
    source_category = SourceCategory.OTEL
    confidence = ConfidenceLevel.AUTHORITATIVE
    extraction_method = ExtractionMethod.METADATA
    repo_url = "https://github.com/open-telemetry/opentelemetry-collector-contrib"

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        fetcher: Optional[GitFetcher] = None,
    ) -> None:
        super().__init__(cache_dir, fetcher)
        self.discovery = MetadataDiscovery()
        self.parser = MetadataParser()

    async def extract(self, result: FetchResult) -> list[RawMetric]:
        require_dir(Path(result.repo_path), self.name)
        return await asyncio.to_thread(self._extract_sync, result)

    def _extract_sync(self, result: FetchResult) -> list[RawMetric]:
        metrics: list[RawMetric] = []
        files = self.discovery.find_metadata_files(result.repo_path)

        for file in files:
            try:
                metadata = self.parser.parse_file(file.path)
            except ParseError as e:
                logger.debug(f"[{self.name}] Skipping {file.path}: {e}")
                continue

            rel_path = relative_path(file.path, result.repo_path)
            for metric in metadata.to_raw_metrics():
                metric.component_type = file.component_type
                metric.component_name = file.component_name
                metric.source_location = str(file.path)
                metric.path = rel_path
                metrics.append(metric)

        logger.info(f"[{self.name}] Parsed {len(files)} manifests, {len(metrics)} metrics")
        return metrics


MODEL_DIR = "model"


class OtelSemconvAdapter(GitSourceAdapter):
    """
    OpenTelemetry semantic conventions.

    Every `type: metric` group under model/**/metrics.yaml. The component
    name is the model sub-directory (model/http/metrics.yaml -> http,
    nested directories joined with '.'), "general" at the model root.
    """

    name = "otel-semconv"
    source_category = SourceCategory.OTEL
    confidence = ConfidenceLevel.AUTHORITATIVE
    extraction_method = ExtractionMethod.METADATA
    repo_url = "https://github.com/open-telemetry/semantic-conventions"

    async def extract(self, result: FetchResult) -> list[RawMetric]:
        model_dir = Path(result.repo_path, MODEL_DIR)
        require_dir(model_dir, self.name)
        return await asyncio.to_thread(self._extract_sync, result, model_dir)

    def _extract_sync(self, result: FetchResult, model_dir: Path) -> list[RawMetric]:
        metrics = []
        for path, definition in load_model_dir(model_dir):
            metric = definition.to_raw_metric()
            metric.component_type = ComponentType.INSTRUMENTATION.value
            metric.component_name = component_name_for(path, model_dir)
            metric.source_location = str(path)
            metric.path = relative_path(path, result.repo_path)
            metrics.append(metric)
        return deduplicate_metrics(metrics)
