"""
Shared fixtures for the metric-library test suite.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

from domain.models import (
    Attribute,
    CanonicalMetric,
    ComponentType,
    ConfidenceLevel,
    ExtractionMethod,
    InstrumentType,
    SourceCategory,
)
from storage.store import SqlMetricStore


EXTRACTED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def store():
    """In-memory SQLite catalog store."""
    store = SqlMetricStore.from_url("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def make_metric() -> Callable[..., CanonicalMetric]:
    """Factory for canonical metrics with the identity already assigned."""

    def factory(metric_name: str = "http.server.request.duration", **overrides) -> CanonicalMetric:
        values = dict(
            metric_name=metric_name,
            instrument_type=InstrumentType.HISTOGRAM,
            component_type=ComponentType.INSTRUMENTATION,
            component_name="net/http",
            source_category=SourceCategory.OTEL,
            source_name="otel-go",
            extraction_method=ExtractionMethod.AST,
            source_confidence=ConfidenceLevel.DERIVED,
            description="Duration of HTTP server requests.",
            unit="s",
            attributes=[
                Attribute(name="http.request.method", type="string", required=True),
                Attribute(name="http.response.status_code", type="int"),
            ],
            repo_url="https://github.com/open-telemetry/opentelemetry-go-contrib",
            path="instrumentation/net/http/otelhttp/handler.go",
            commit="abc123",
            extracted_at=EXTRACTED_AT,
        )
        values.update(overrides)
        metric = CanonicalMetric(**values)
        metric.ensure_id()
        return metric

    return factory


@pytest.fixture
def write_tree() -> Callable[[Path, dict[str, str]], Path]:
    """Write {relative path: content} under a root directory."""

    def writer(root: Path, files: dict[str, str]) -> Path:
        for rel_path, content in files.items():
            path = root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return writer
