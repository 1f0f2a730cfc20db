"""
Tests for the canonical metric model.

============================================================
PURPOSE
============================================================
Covers:
1. Metric identity
2. Enumerations and parse_enum
3. Validation of required fields and enum values
4. Dictionary round trips of records

============================================================
"""

import hashlib
from datetime import datetime, timezone

import pytest

from core.exceptions import ValidationError
from domain.identity import generate_metric_id
from domain.models import (
    Attribute,
    CanonicalMetric,
    ComponentType,
    ExtractionRun,
    InstrumentType,
    RawMetric,
    RunStatus,
    SemconvMatch,
    SourceCategory,
    parse_enum,
)
from domain.query import DEFAULT_SEARCH_LIMIT, SearchQuery
from domain.validation import is_valid, validate_metric


# ============================================================
# IDENTITY TESTS
# ============================================================

class TestMetricIdentity:
    """Tests for content-derived metric ids."""

    def test_id_is_truncated_sha256(self):
        """Test the id is the hex of the first 16 bytes of the digest."""
        expected = hashlib.sha256(b"otel:otel-go:net/http:http.server.request.duration").digest()[:16].hex()

        assert generate_metric_id("otel", "otel-go", "net/http", "http.server.request.duration") == expected
        assert len(expected) == 32

    def test_id_is_stable_and_field_sensitive(self):
        """Test the same tuple gives the same id and any change gives another."""
        base = generate_metric_id("prometheus", "prometheus-node", "cpu", "node_cpu_seconds_total")

        assert base == generate_metric_id("prometheus", "prometheus-node", "cpu", "node_cpu_seconds_total")
        assert base != generate_metric_id("prometheus", "prometheus-node", "cpufreq", "node_cpu_seconds_total")
        assert base != generate_metric_id("prometheus", "prometheus-kafka", "cpu", "node_cpu_seconds_total")

    def test_ensure_id_uses_enum_values(self, make_metric):
        """Test CanonicalMetric.ensure_id hashes the category wire value."""
        metric = make_metric()

        assert metric.id == generate_metric_id(
            "otel", "otel-go", "net/http", "http.server.request.duration"
        )


# ============================================================
# ENUMERATION TESTS
# ============================================================

class TestEnumerations:
    """Tests for closed enumerations."""

    def test_wire_values(self):
        """Test the enum wire values."""
        assert [m.value for m in InstrumentType] == [
            "counter", "up-down-counter", "gauge", "histogram", "summary",
        ]
        assert SourceCategory.CODING_AGENT.value == "coding-agent"
        assert [m.value for m in SemconvMatch] == ["exact", "prefix", "none"]

    def test_parse_enum(self):
        """Test parse_enum accepts members and values and rejects others."""
        assert parse_enum(InstrumentType, "counter") is InstrumentType.COUNTER
        assert parse_enum(InstrumentType, InstrumentType.GAUGE) is InstrumentType.GAUGE
        assert parse_enum(InstrumentType, "timer") is None
        assert parse_enum(ComponentType, "") is None

    def test_run_status_terminal(self):
        """Test only completed and failed are terminal."""
        assert not RunStatus.RUNNING.is_terminal
        assert RunStatus.COMPLETED.is_terminal
        assert RunStatus.FAILED.is_terminal


# ============================================================
# VALIDATION TESTS
# ============================================================

class TestValidation:
    """Tests for canonical metric validation."""

    def test_valid_metric(self, make_metric):
        """Test a complete metric validates."""
        metric = make_metric()

        validate_metric(metric)
        assert is_valid(metric)

    @pytest.mark.parametrize("field", ["metric_name", "component_name", "source_name"])
    def test_required_fields(self, make_metric, field):
        """Test empty required fields are rejected."""
        metric = make_metric(**{field: "  "})

        with pytest.raises(ValidationError) as exc_info:
            validate_metric(metric)

        assert exc_info.value.field == field

    def test_out_of_set_enum(self, make_metric):
        """Test an unknown instrument type is rejected."""
        metric = make_metric(instrument_type="timer")

        with pytest.raises(ValidationError) as exc_info:
            validate_metric(metric)

        assert exc_info.value.field == "instrument_type"
        assert "timer" in str(exc_info.value)
        assert not is_valid(metric)

    def test_enum_values_as_strings_are_accepted(self, make_metric):
        """Test plain wire values validate like members."""
        metric = make_metric(component_type="platform", source_category="coding-agent")

        assert is_valid(metric)


# ============================================================
# RECORD TESTS
# ============================================================

class TestRecords:
    """Tests for record serialisation."""

    def test_canonical_metric_round_trip(self, make_metric):
        """Test to_dict/from_dict preserve every field."""
        metric = make_metric(
            attributes=[Attribute(name="state", type="string", enum=["idle", "used"])],
            semconv_match=SemconvMatch.PREFIX,
            semconv_name="http.server",
            semconv_stability="stable",
        )

        data = metric.to_dict()
        restored = CanonicalMetric.from_dict(data)

        assert data["instrument_type"] == "histogram"
        assert data["extracted_at"] == "2024-05-01T12:00:00+00:00"
        assert restored == metric
        assert restored.attributes[0].enum == ["idle", "used"]

    def test_raw_metric_to_dict_accepts_enum_members(self):
        """Test RawMetric.to_dict flattens enum members."""
        raw = RawMetric(
            name="node_load1",
            instrument_type=InstrumentType.GAUGE,
            component_type=ComponentType.PLATFORM,
        )

        data = raw.to_dict()

        assert data["instrument_type"] == "gauge"
        assert data["component_type"] == "platform"
        assert raw.dedup_key() == ("node_load1", "")

    def test_extraction_run_transitions(self):
        """Test complete/fail set status and completion time."""
        run = ExtractionRun(id="r1", adapter_name="otel-go", started_at=datetime.now(timezone.utc))

        run.complete(12)
        assert run.status is RunStatus.COMPLETED
        assert run.metrics_count == 12
        assert run.completed_at is not None

        failed = ExtractionRun(id="r2", adapter_name="otel-go", started_at=datetime.now(timezone.utc))
        failed.fail("boom")
        assert failed.to_dict()["status"] == "failed"
        assert failed.error_message == "boom"

    def test_search_query_normalisation(self):
        """Test non-positive limits fall back to the default and offsets clamp at 0."""
        query = SearchQuery(limit=0, offset=-5)

        assert query.normalized_limit() == DEFAULT_SEARCH_LIMIT
        assert query.normalized_offset() == 0
