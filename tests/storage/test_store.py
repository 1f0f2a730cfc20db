"""
Tests for the SQL catalog store.

============================================================
PURPOSE
============================================================
Covers:
1. Upsert / get round trips and replace-by-identity
2. Deletion by source
3. Faceted search (text, filters, attributes, paging)
4. Facet histograms
5. Extraction run audit trail and immutability
6. Concurrent readers and writers sharing one store

============================================================
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from domain.models import (
    Attribute,
    ComponentType,
    ExtractionRun,
    InstrumentType,
    RunStatus,
    SemconvMatch,
    SourceCategory,
)
from domain.query import FacetFilter, SearchQuery
from storage.database import Database
from storage.repositories.metrics import MetricRepository
from storage.repositories.exceptions import ImmutableRecordError, RecordNotFoundError


@pytest.fixture
def catalog(store, make_metric):
    """Store seeded with metrics from three sources."""
    store.upsert_metrics([
        make_metric("http.server.request.duration"),
        make_metric(
            "http.client.request.duration",
            description="Duration of HTTP client requests.",
            attributes=[Attribute(name="server.address", type="string")],
        ),
        make_metric(
            "node_load1",
            instrument_type=InstrumentType.GAUGE,
            component_type=ComponentType.PLATFORM,
            component_name="loadavg",
            source_category=SourceCategory.PROMETHEUS,
            source_name="prometheus-node",
            description="1m load average per request queue.",
            unit="",
            attributes=[],
        ),
        make_metric(
            "kube_pod_info",
            instrument_type=InstrumentType.GAUGE,
            component_type=ComponentType.PLATFORM,
            component_name="pod",
            source_category=SourceCategory.KUBERNETES,
            source_name="kube-state-metrics",
            description="Information about pod.",
            unit="",
            attributes=[Attribute(name="namespace"), Attribute(name="pod")],
            semconv_match=SemconvMatch.NONE,
        ),
    ])
    return store


# ============================================================
# WRITE TESTS
# ============================================================

class TestUpsert:
    """Tests for upsert_metrics and get_metric."""

    def test_round_trip(self, store, make_metric):
        """Test every field survives a write and read."""
        metric = make_metric(
            attributes=[
                Attribute(name="http.request.method", type="string", required=True, enum=["GET", "POST"]),
                Attribute(name="url.scheme", type="string"),
            ],
            semconv_match=SemconvMatch.EXACT,
            semconv_name="http.server.request.duration",
            semconv_stability="stable",
        )

        assert store.upsert_metrics([metric]) == 1
        stored = store.get_metric(metric.id)

        assert stored.metric_name == metric.metric_name
        assert stored.instrument_type is InstrumentType.HISTOGRAM
        assert stored.extracted_at == metric.extracted_at
        assert stored.extracted_at.tzinfo is not None
        assert [a.name for a in stored.attributes] == ["http.request.method", "url.scheme"]
        assert stored.attributes[0].enum == ["GET", "POST"]
        assert stored.attributes[0].required is True
        assert stored.semconv_match is SemconvMatch.EXACT
        assert stored.created_at is not None

    def test_attribute_order_is_preserved(self, store, make_metric):
        """Test attributes come back in insertion order, not alphabetical."""
        metric = make_metric(attributes=[Attribute(name="z"), Attribute(name="a"), Attribute(name="m")])
        store.upsert_metrics([metric])

        assert [a.name for a in store.get_metric(metric.id).attributes] == ["z", "a", "m"]

    def test_replace_by_identity(self, store, make_metric):
        """Test a second upsert replaces scalars and attributes."""
        store.upsert_metrics([make_metric()])
        updated = make_metric(
            description="Updated description.",
            attributes=[Attribute(name="http.request.method", type="string")],
            commit="def456",
        )

        store.upsert_metrics([updated])
        stored = store.get_metric(updated.id)

        assert stored.description == "Updated description."
        assert stored.commit == "def456"
        assert [a.name for a in stored.attributes] == ["http.request.method"]
        assert store.search(SearchQuery()).total == 1

    def test_duplicate_ids_in_one_batch(self, store, make_metric):
        """Test the later metric of a batch wins and is counted once."""
        first = make_metric(description="first")
        second = make_metric(description="second")

        assert store.upsert_metrics([first, second]) == 1
        assert store.get_metric(first.id).description == "second"

    def test_empty_batch(self, store):
        """Test an empty batch writes nothing."""
        assert store.upsert_metrics([]) == 0

    def test_missing_metric(self, store):
        """Test unknown ids return None."""
        assert store.get_metric("0" * 32) is None

    def test_delete_by_source(self, catalog):
        """Test only the given source is removed."""
        assert catalog.delete_metrics_by_source("otel-go") == 2

        result = catalog.search(SearchQuery())
        assert {m.source_name for m in result.metrics} == {"prometheus-node", "kube-state-metrics"}
        assert catalog.delete_metrics_by_source("otel-go") == 0


# ============================================================
# SEARCH TESTS
# ============================================================

class TestSearch:
    """Tests for faceted search."""

    def test_no_filters_orders_by_name(self, catalog):
        """Test an empty query returns everything by metric name."""
        result = catalog.search(SearchQuery())

        assert result.total == 4
        assert [m.metric_name for m in result.metrics] == [
            "http.client.request.duration",
            "http.server.request.duration",
            "kube_pod_info",
            "node_load1",
        ]
        assert result.took >= 0

    def test_name_matches_rank_before_description_matches(self, catalog):
        """Test name hits come first, then description-only hits."""
        result = catalog.search(SearchQuery(text="request"))

        assert [m.metric_name for m in result.metrics] == [
            "http.client.request.duration",
            "http.server.request.duration",
            "node_load1",
        ]

    def test_text_is_case_sensitive_by_default(self, catalog):
        """Test case matters unless case_insensitive is set."""
        assert catalog.search(SearchQuery(text="HTTP.server")).total == 0
        assert catalog.search(SearchQuery(text="HTTP.server", case_insensitive=True)).total == 1

    def test_text_does_not_match_attributes(self, catalog):
        """Test attribute names are not part of free-text search."""
        assert catalog.search(SearchQuery(text="server.address")).total == 0

    @pytest.mark.parametrize("text, expected", [
        ("_", 2),
        ("%", 0),
        ("kube_pod", 1),
    ])
    def test_like_wildcards_are_literal(self, catalog, text, expected):
        """Test % and _ in the query are matched literally."""
        assert catalog.search(SearchQuery(text=text)).total == expected

    def test_set_filters(self, catalog):
        """Test IN-set filters combine with AND."""
        result = catalog.search(SearchQuery(
            instrument_types=["gauge"],
            source_categories=["prometheus", "kubernetes"],
            component_names=["pod"],
        ))

        assert [m.metric_name for m in result.metrics] == ["kube_pod_info"]

    def test_filters_accept_enum_members(self, catalog):
        """Test enum members filter like their wire values."""
        result = catalog.search(SearchQuery(instrument_types=[InstrumentType.HISTOGRAM]))

        assert result.total == 2

    def test_attribute_filter(self, catalog):
        """Test the attribute filter requires any listed attribute."""
        result = catalog.search(SearchQuery(attribute_names=["pod", "server.address"]))

        assert [m.metric_name for m in result.metrics] == ["http.client.request.duration", "kube_pod_info"]

    def test_paging(self, catalog):
        """Test limit and offset page through results; total is unpaged."""
        first = catalog.search(SearchQuery(limit=2))
        second = catalog.search(SearchQuery(limit=2, offset=2))

        assert first.total == second.total == 4
        assert [m.metric_name for m in second.metrics] == ["kube_pod_info", "node_load1"]

    def test_non_positive_limit_uses_default(self, catalog):
        """Test limit 0 falls back to the default page size."""
        assert len(catalog.search(SearchQuery(limit=0, offset=-3)).metrics) == 4


# ============================================================
# FACET TESTS
# ============================================================

class TestFacets:
    """Tests for facet histograms."""

    def test_facet_counts(self, catalog):
        """Test histograms over the whole catalog; empty units are skipped."""
        counts = catalog.get_facet_counts()

        assert counts.instrument_types == {"gauge": 2, "histogram": 2}
        assert counts.source_names == {"kube-state-metrics": 1, "otel-go": 2, "prometheus-node": 1}
        assert counts.units == {"s": 2}
        assert counts.semconv_matches == {"none": 4}

    def test_filtered_facets_keep_source_names_unfiltered(self, catalog):
        """Test the source filter narrows every histogram but source_names."""
        counts = catalog.get_filtered_facet_counts(FacetFilter(source_names=["prometheus-node"]))

        assert counts.instrument_types == {"gauge": 1}
        assert counts.component_names == {"loadavg": 1}
        assert counts.units == {}
        assert sum(counts.source_names.values()) == 4

    def test_semconv_metrics(self, store, make_metric):
        """Test only the semantic-conventions source is returned."""
        store.upsert_metrics([
            make_metric("http.server.request.duration", source_name="otel-semconv", component_name="http"),
            make_metric("node_load1", source_name="prometheus-node"),
        ])

        assert [m.metric_name for m in store.get_semconv_metrics()] == ["http.server.request.duration"]


# ============================================================
# EXTRACTION RUN TESTS
# ============================================================

class TestExtractionRuns:
    """Tests for the extraction run audit trail."""

    @staticmethod
    def _run(run_id, adapter_name="otel-go", minutes=0):
        started = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes)
        return ExtractionRun(id=run_id, adapter_name=adapter_name, started_at=started)

    def test_create_and_complete(self, store):
        """Test a run moves from running to completed."""
        run = self._run("otel-go-1")
        store.create_extraction_run(run)
        assert store.get_extraction_run("otel-go-1").status is RunStatus.RUNNING

        run.commit = "abc123"
        run.complete(42)
        store.update_extraction_run(run)
        stored = store.get_extraction_run("otel-go-1")

        assert stored.status is RunStatus.COMPLETED
        assert stored.metrics_count == 42
        assert stored.commit == "abc123"
        assert stored.completed_at is not None

    def test_terminal_runs_are_immutable(self, store):
        """Test a finished run cannot be updated again."""
        run = self._run("otel-go-1")
        store.create_extraction_run(run)
        run.fail("fetch failed")
        store.update_extraction_run(run)

        run.metrics_count = 5
        with pytest.raises(ImmutableRecordError):
            store.update_extraction_run(run)
        assert store.get_extraction_run("otel-go-1").error_message == "fetch failed"

    def test_update_unknown_run(self, store):
        """Test updating a run that was never created fails."""
        with pytest.raises(RecordNotFoundError):
            store.update_extraction_run(self._run("missing"))

    def test_latest_and_listing(self, store):
        """Test most-recent-first ordering and adapter filtering."""
        store.create_extraction_run(self._run("a-1", "otel-go", minutes=0))
        store.create_extraction_run(self._run("a-2", "otel-go", minutes=5))
        store.create_extraction_run(self._run("b-1", "prometheus-node", minutes=10))

        assert store.get_latest_extraction_run("otel-go").id == "a-2"
        assert store.get_latest_extraction_run("unknown") is None
        assert [r.id for r in store.list_extraction_runs()] == ["b-1", "a-2", "a-1"]
        assert [r.id for r in store.list_extraction_runs("otel-go", limit=1)] == ["a-2"]


# ============================================================
# CONCURRENCY TESTS
# ============================================================

class TestConcurrentAccess:
    """Tests for one store shared by several threads."""

    def test_in_memory_database_shares_connection(self, store, tmp_path):
        """Test only the single-connection engine is flagged as shared."""
        file_db = Database(f"sqlite:///{tmp_path / 'catalog.db'}")
        try:
            assert store.database.shares_connection
            assert not file_db.shares_connection
        finally:
            file_db.close()

    def test_read_during_write_waits_for_commit(self, store, make_metric, monkeypatch):
        """Test a search issued mid-upsert neither sees nor undoes the open batch."""
        original_upsert = MetricRepository.upsert
        reader_started = threading.Event()
        seen = {}

        def read_catalog():
            reader_started.set()
            seen["total"] = store.search(SearchQuery()).total

        reader = threading.Thread(target=read_catalog)

        def upsert_with_concurrent_reader(repository, metrics):
            count = original_upsert(repository, metrics)
            reader.start()
            reader_started.wait(timeout=5)
            # Give the reader time to reach the store before the commit
            threading.Event().wait(0.05)
            return count

        monkeypatch.setattr(MetricRepository, "upsert", upsert_with_concurrent_reader)

        written = store.upsert_metrics([make_metric("http.server.request.duration")])
        reader.join(timeout=5)

        assert written == 1
        assert seen["total"] == 1
        assert store.get_metric(make_metric("http.server.request.duration").ensure_id()) is not None

    def test_parallel_writers_and_readers(self, store, make_metric):
        """Test concurrent batches are all committed while searches run."""
        def write(i):
            return store.upsert_metrics([make_metric(f"app.requests.{i}"), make_metric(f"app.errors.{i}")])

        def read(_):
            return store.search(SearchQuery(text="app.")).total

        with ThreadPoolExecutor(max_workers=8) as pool:
            writes = [pool.submit(write, i) for i in range(20)]
            reads = [pool.submit(read, i) for i in range(20)]
            written = sum(f.result() for f in writes)
            totals = [f.result() for f in reads]

        assert written == 40
        assert all(0 <= total <= 40 and total % 2 == 0 for total in totals)
        assert store.search(SearchQuery(text="app.", limit=100)).total == 40
