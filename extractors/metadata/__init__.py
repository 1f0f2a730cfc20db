"""
Structured-Metadata Extractors - Metrics declared in YAML manifests.

- discovery: locates collector component manifests
- parser: reads metadata.yaml documents into RawMetrics
- semconv: reads semantic-conventions metric groups
"""

from extractors.metadata.discovery import COMPONENT_DIRS, MetadataDiscovery, MetadataFile
from extractors.metadata.parser import Metadata, MetadataParser, MetricDefinition
from extractors.metadata.semconv import (
    SemconvMetricDefinition,
    load_model_dir,
    parse_semconv_metrics,
)


__all__ = [
    "COMPONENT_DIRS",
    "MetadataDiscovery",
    "MetadataFile",
    "Metadata",
    "MetadataParser",
    "MetricDefinition",
    "SemconvMetricDefinition",
    "load_model_dir",
    "parse_semconv_metrics",
]
