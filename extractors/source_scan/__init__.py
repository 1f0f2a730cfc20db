"""
Source-Scan Extractors - Metric definitions recovered from source code.

One scanner per language family. Every scanner maps file content to
RawMetrics carrying (name, instrument type, unit, description); the
adapter that drives it stamps component and location fields.

Scanners:
- GoOtelScanner: meter.Int64Counter(...) and friends
- PrometheusGoScanner: prometheus.NewDesc(...), including BuildFQName
- KsmScanner: kube-state-metrics family generators
- CadvisorScanner: cAdvisor containerMetric tables
- CSharpScanner: Meter.Create*<T>(...)
- PythonScanner: meter.create_*(...)
- JavaScriptScanner: meter.create*(...) plus semconv_metrics() for
  METRIC_* export modules
- RustScanner: meter.f64_histogram(...).build() chains
- JavaScanner: meter.counterBuilder(...).build() chains
- CurrentMetricsScanner / ProfileEventsScanner / AsyncMetricsScanner:
  ClickHouse C++ tables
- CodexNamesScanner / GeminiTelemetryScanner: coding-agent telemetry
"""

from extractors.source_scan.cadvisor import CadvisorScanner
from extractors.source_scan.clickhouse import (
    AsyncMetricsScanner,
    CurrentMetricsScanner,
    ProfileEventsScanner,
)
from extractors.source_scan.coding_agents import CodexNamesScanner, GeminiTelemetryScanner
from extractors.source_scan.csharp import CSharpScanner
from extractors.source_scan.dedupe import deduplicate_metrics
from extractors.source_scan.go_otel import GoOtelScanner
from extractors.source_scan.java import JavaScanner
from extractors.source_scan.javascript import JavaScriptScanner, semconv_metrics
from extractors.source_scan.ksm import KsmScanner
from extractors.source_scan.prometheus_go import PrometheusGoScanner
from extractors.source_scan.python import PythonScanner
from extractors.source_scan.rust import RustScanner
from extractors.source_scan.scanner import SourceScanner


__all__ = [
    "SourceScanner",
    "deduplicate_metrics",
    # Go
    "GoOtelScanner",
    "PrometheusGoScanner",
    "KsmScanner",
    "CadvisorScanner",
    # Other languages
    "CSharpScanner",
    "PythonScanner",
    "JavaScriptScanner",
    "semconv_metrics",
    "RustScanner",
    "JavaScanner",
    # ClickHouse
    "CurrentMetricsScanner",
    "ProfileEventsScanner",
    "AsyncMetricsScanner",
    # Coding agents
    "CodexNamesScanner",
    "GeminiTelemetryScanner",
]
