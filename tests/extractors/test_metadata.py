"""
Tests for the structured-metadata extractors.

============================================================
PURPOSE
============================================================
Covers:
1. Manifest discovery over the collector layout
2. metadata.yaml parsing and instrument mapping
3. Semantic-conventions model parsing

============================================================
"""

from pathlib import Path

import pytest

from core.exceptions import ParseError
from domain.models import InstrumentType
from extractors.metadata import MetadataDiscovery, MetadataParser, load_model_dir, parse_semconv_metrics
from extractors.metadata.semconv import component_name_for, requirement_level


MYSQL_METADATA = """
type: mysql
status:
  class: receiver
  stability:
    beta: [metrics]
  codeowners:
    active: [alice]
attributes:
  buffer_pool_data:
    description: The status of buffer pool data.
    type: string
    enum: [dirty, clean]
  schema:
    description: The schema of the object.
    type: string
metrics:
  mysql.buffer_pool.pages:
    enabled: true
    description: The number of pages in the InnoDB buffer pool.
    unit: "{pages}"
    sum:
      value_type: int
      monotonic: false
    attributes: [buffer_pool_data]
  mysql.operations:
    enabled: true
    description: The number of InnoDB operations.
    unit: "1"
    sum:
      value_type: int
      monotonic: true
    attributes: [schema, operation]
  mysql.buffer_pool.usage:
    description: The number of bytes in the InnoDB buffer pool.
    unit: By
    gauge:
      value_type: int
  mysql.query.duration:
    enabled: true
    description: Query latency.
    unit: s
    histogram:
      value_type: double
  mysql.uptime:
    enabled: true
    description: Server uptime.
"""


# ============================================================
# DISCOVERY TESTS
# ============================================================

class TestMetadataDiscovery:
    """Tests for manifest discovery."""

    def test_finds_manifests_in_layout_order(self, tmp_path, write_tree):
        """Test ordering by component directory, then component name."""
        write_tree(tmp_path, {
            "receiver/redisreceiver/metadata.yaml": "type: redis",
            "receiver/mysqlreceiver/metadata.yaml": "type: mysql",
            "exporter/kafkaexporter/metadata.yaml": "type: kafka",
            "receiver/nometadata/README.md": "nothing",
            "pkg/stanza/metadata.yaml": "type: stanza",
        })

        files = MetadataDiscovery().find_metadata_files(tmp_path)

        assert [(f.component_type, f.component_name) for f in files] == [
            ("receiver", "mysqlreceiver"),
            ("receiver", "redisreceiver"),
            ("exporter", "kafkaexporter"),
        ]
        assert files[0].path == tmp_path / "receiver" / "mysqlreceiver" / "metadata.yaml"

    def test_missing_directories_are_not_errors(self, tmp_path):
        """Test an empty checkout yields no manifests."""
        assert MetadataDiscovery().find_metadata_files(tmp_path) == []


# ============================================================
# PARSER TESTS
# ============================================================

class TestMetadataParser:
    """Tests for metadata.yaml parsing."""

    def test_parse_document(self):
        """Test type, status and dictionaries are read."""
        metadata = MetadataParser().parse(MYSQL_METADATA)

        assert metadata.type == "mysql"
        assert metadata.status.class_ == "receiver"
        assert metadata.status.stability == {"beta": ["metrics"]}
        assert metadata.attributes["buffer_pool_data"].enum == ["dirty", "clean"]
        assert list(metadata.metrics) == [
            "mysql.buffer_pool.pages",
            "mysql.operations",
            "mysql.buffer_pool.usage",
            "mysql.query.duration",
            "mysql.uptime",
        ]

    def test_instrument_mapping(self):
        """Test sum/gauge/histogram mapping and the gauge default."""
        metadata = MetadataParser().parse(MYSQL_METADATA)
        metrics = {m.name: m for m in metadata.to_raw_metrics()}

        assert metrics["mysql.buffer_pool.pages"].instrument_type == InstrumentType.UP_DOWN_COUNTER
        assert metrics["mysql.operations"].instrument_type == InstrumentType.COUNTER
        assert metrics["mysql.buffer_pool.usage"].instrument_type == InstrumentType.GAUGE
        assert metrics["mysql.query.duration"].instrument_type == InstrumentType.HISTOGRAM
        assert metrics["mysql.uptime"].instrument_type == InstrumentType.GAUGE

    def test_attributes_resolved_in_order(self):
        """Test attribute joins keep declaration order; unknown names stay name-only."""
        metadata = MetadataParser().parse(MYSQL_METADATA)
        operations = {m.name: m for m in metadata.to_raw_metrics()}["mysql.operations"]

        assert [a.name for a in operations.attributes] == ["schema", "operation"]
        assert operations.attributes[0].description == "The schema of the object."
        assert operations.attributes[1].type == ""

    def test_enabled_defaults_to_false(self):
        """Test a metric without enabled is disabled by default."""
        metadata = MetadataParser().parse(MYSQL_METADATA)
        metrics = {m.name: m for m in metadata.to_raw_metrics()}

        assert metrics["mysql.buffer_pool.usage"].enabled_by_default is False
        assert metrics["mysql.uptime"].enabled_by_default is True

    def test_empty_document(self):
        """Test empty input parses to an empty manifest."""
        metadata = MetadataParser().parse("   \n")

        assert metadata.type == ""
        assert metadata.to_raw_metrics() == []

    def test_invalid_documents(self):
        """Test malformed YAML and non-mapping roots raise ParseError."""
        parser = MetadataParser()

        with pytest.raises(ParseError):
            parser.parse("metrics: [unclosed")
        with pytest.raises(ParseError):
            parser.parse("- just\n- a list\n")

    def test_parse_file_records_path(self, tmp_path):
        """Test parse errors from a file carry its path."""
        path = tmp_path / "metadata.yaml"
        path.write_text("metrics: [unclosed", encoding="utf-8")

        with pytest.raises(ParseError) as exc_info:
            MetadataParser().parse_file(path)

        assert exc_info.value.file_path == str(path)


# ============================================================
# SEMCONV MODEL TESTS
# ============================================================

HTTP_METRICS = """
groups:
  - id: metric.http.server.request.duration
    type: metric
    metric_name: http.server.request.duration
    brief: "Duration of HTTP server requests."
    instrument: histogram
    unit: "s"
    stability: stable
    attributes:
      - ref: http.request.method
        requirement_level: required
      - ref: error.type
        requirement_level:
          conditionally_required: If request has ended with an error.
  - id: metric.http.server.active_requests
    type: metric
    metric_name: http.server.active_requests
    brief: "Number of active HTTP server requests."
    instrument: updowncounter
    unit: "{request}"
    stability: development
  - id: registry.http
    type: attribute_group
    brief: Not a metric.
"""


class TestSemconvModel:
    """Tests for the semantic-conventions model parser."""

    def test_parse_metric_groups(self):
        """Test only metric groups are read."""
        definitions = parse_semconv_metrics(HTTP_METRICS)

        assert [d.name for d in definitions] == [
            "http.server.request.duration",
            "http.server.active_requests",
        ]
        assert definitions[0].stability == "stable"
        assert definitions[1].instrument_type == InstrumentType.UP_DOWN_COUNTER

    def test_requirement_levels(self):
        """Test string and mapping requirement levels."""
        assert requirement_level("required") == "required"
        assert requirement_level({"conditionally_required": "when"}) == "conditionally_required"
        assert requirement_level(None) == ""

        raw = parse_semconv_metrics(HTTP_METRICS)[0].to_raw_metric()
        assert [(a.name, a.required) for a in raw.attributes] == [
            ("http.request.method", True),
            ("error.type", False),
        ]
        assert raw.description == "Duration of HTTP server requests."

    def test_load_model_dir(self, tmp_path, write_tree):
        """Test metrics files are found recursively and bad files skipped."""
        write_tree(tmp_path, {
            "model/http/metrics.yaml": HTTP_METRICS,
            "model/metrics.yaml": "groups:\n  - type: metric\n    metric_name: general.up\n",
            "model/db/client/metrics.yaml": "groups: [unclosed",
            "model/http/registry.yaml": HTTP_METRICS,
        })
        model_dir = tmp_path / "model"

        found = load_model_dir(model_dir)

        names = [d.name for _, d in found]
        assert sorted(names) == ["general.up", "http.server.active_requests", "http.server.request.duration"]
        components = {d.name: component_name_for(path, model_dir) for path, d in found}
        assert components["general.up"] == "general"
        assert components["http.server.request.duration"] == "http"

    def test_nested_component_name(self):
        """Test nested model directories join with dots."""
        model_dir = Path("/repo/model")

        assert component_name_for(model_dir / "db" / "client" / "metrics.yaml", model_dir) == "db.client"
