"""
ClickHouse C++ metric tables.

ClickHouse declares its Prometheus-exported metrics in macro tables:

- src/Common/CurrentMetrics.cpp:   M(Query, "description")            -> gauge
- src/Common/ProfileEvents.cpp:    M(ReadBytes, "desc", ValueType::X) -> counter
- *AsynchronousMetrics.cpp:        new_values["Uptime"] = { v, "desc" } -> gauge

Async metrics with computed keys (new_values[fmt::format(...)]) are
skipped; only static string keys produce a metric.
"""

import re

from domain.models import InstrumentType, RawMetric
from extractors.source_scan.scanner import SourceScanner


CURRENT_METRIC = re.compile(r'M\((\w+),\s*"([^"]+)"\)')
PROFILE_EVENT = re.compile(r'M\((\w+),\s*"([^"]+)",\s*ValueType::(\w+)\)')
ASYNC_METRIC = re.compile(r'new_values\["(\w+)"\]')
ASYNC_METRIC_WITH_DESCRIPTION = re.compile(r'new_values\["(\w+)"\]\s*=\s*\{[^}]*?"([^"]+)"\s*\}')

CURRENT_METRICS_PREFIX = "ClickHouseMetrics_"
PROFILE_EVENTS_PREFIX = "ClickHouseProfileEvents_"
ASYNC_METRICS_PREFIX = "ClickHouseAsyncMetrics_"

VALUE_TYPE_UNITS = {
    "Bytes": "bytes",
    "Microseconds": "microseconds",
    "Milliseconds": "milliseconds",
    "Nanoseconds": "nanoseconds",
}


class CurrentMetricsScanner(SourceScanner):
    """CurrentMetrics table (system.metrics)."""

    language = "cpp"

    def scan(self, content: str) -> list[RawMetric]:
        return [
            RawMetric(
                name=CURRENT_METRICS_PREFIX + m.group(1),
                instrument_type=InstrumentType.GAUGE,
                description=m.group(2),
            )
            for m in CURRENT_METRIC.finditer(content)
        ]


class ProfileEventsScanner(SourceScanner):
    """ProfileEvents table (system.events); ValueType gives the unit."""

    language = "cpp"

    def scan(self, content: str) -> list[RawMetric]:
        return [
            RawMetric(
                name=PROFILE_EVENTS_PREFIX + m.group(1),
                instrument_type=InstrumentType.COUNTER,
                description=m.group(2),
                unit=VALUE_TYPE_UNITS.get(m.group(3).strip(), ""),
            )
            for m in PROFILE_EVENT.finditer(content)
        ]


class AsyncMetricsScanner(SourceScanner):
    """Asynchronous metrics (system.asynchronous_metrics)."""

    language = "cpp"

    def scan(self, content: str) -> list[RawMetric]:
        descriptions = {
            m.group(1): m.group(2)
            for m in ASYNC_METRIC_WITH_DESCRIPTION.finditer(content)
        }
        seen = set()
        metrics = []
        for match in ASYNC_METRIC.finditer(content):
            name = match.group(1)
            if name in seen:
                continue
            seen.add(name)
            metrics.append(RawMetric(
                name=ASYNC_METRICS_PREFIX + name,
                instrument_type=InstrumentType.GAUGE,
                description=descriptions.get(name, ""),
            ))
        return metrics
