"""
Bundled metric source providers.

PROVIDER_CLASSES lists every provider in registration order; the
default registry instantiates each with the shared cache directory.
"""

from metric_adapters.providers.coding_agents import (
    ClaudeCodeAdapter,
    CodexAdapter,
    GeminiCliAdapter,
)
from metric_adapters.providers.kubernetes import CadvisorAdapter, KubeStateMetricsAdapter
from metric_adapters.providers.llm import OpenLitAdapter, OpenLLMetryAdapter
from metric_adapters.providers.otel import (
    OtelDotnetAdapter,
    OtelGoAdapter,
    OtelJavaAdapter,
    OtelJsAdapter,
    OtelPythonAdapter,
    OtelRustAdapter,
)
from metric_adapters.providers.otel_metadata import (
    OtelCollectorContribAdapter,
    OtelSemconvAdapter,
)
from metric_adapters.providers.prometheus import (
    ClickHouseAdapter,
    KafkaExporterAdapter,
    MemcachedExporterAdapter,
    NodeExporterAdapter,
)


PROVIDER_CLASSES = (
    # OpenTelemetry
    OtelCollectorContribAdapter,
    OtelSemconvAdapter,
    OtelGoAdapter,
    OtelDotnetAdapter,
    OtelPythonAdapter,
    OtelJsAdapter,
    OtelRustAdapter,
    OtelJavaAdapter,
    # Prometheus
    NodeExporterAdapter,
    KafkaExporterAdapter,
    MemcachedExporterAdapter,
    ClickHouseAdapter,
    # Kubernetes
    KubeStateMetricsAdapter,
    CadvisorAdapter,
    # LLM SDKs
    OpenLLMetryAdapter,
    OpenLitAdapter,
    # Coding agents
    ClaudeCodeAdapter,
    CodexAdapter,
    GeminiCliAdapter,
)


__all__ = [
    "PROVIDER_CLASSES",
    "OtelCollectorContribAdapter",
    "OtelSemconvAdapter",
    "OtelGoAdapter",
    "OtelDotnetAdapter",
    "OtelPythonAdapter",
    "OtelJsAdapter",
    "OtelRustAdapter",
    "OtelJavaAdapter",
    "NodeExporterAdapter",
    "KafkaExporterAdapter",
    "MemcachedExporterAdapter",
    "ClickHouseAdapter",
    "KubeStateMetricsAdapter",
    "CadvisorAdapter",
    "OpenLLMetryAdapter",
    "OpenLitAdapter",
    "ClaudeCodeAdapter",
    "CodexAdapter",
    "GeminiCliAdapter",
]
