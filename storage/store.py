"""
Metric Store - Catalog persistence contract and its SQL implementation.

============================================================
RESPONSIBILITY
============================================================
- MetricStore: the abstract contract consumed by the orchestrator
  (and by any read-side caller)
- SqlMetricStore: SQLAlchemy implementation over storage.database

============================================================
GUARANTEES
============================================================
- upsert_metrics is atomic for the batch: a failure leaves nothing
  from the batch visible
- Writes are serialised by a process-level lock, so one store may be
  shared by concurrent runs (SQLite allows a single writer)
- When all sessions share one connection (in-memory SQLite), reads
  take the same lock so they never observe or roll back a write
  in progress
- Timestamps come back as aware UTC datetimes

All methods are blocking; async callers use asyncio.to_thread.
============================================================
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager, nullcontext
from typing import Generator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.models import CanonicalMetric, ExtractionRun
from domain.query import FacetCounts, FacetFilter, SearchQuery, SearchResult
from storage.database import Database
from storage.repositories.exceptions import RepositoryException, TransactionError
from storage.repositories.extraction_runs import (
    DEFAULT_RUN_LIST_LIMIT,
    ExtractionRunRepository,
    record_to_run,
)
from storage.repositories.metrics import MetricRepository, record_to_metric


logger = logging.getLogger(__name__)


class MetricStore(ABC):
    """
    Catalog store contract.

    Implementations must be safe for concurrent use by several
    extraction runs.
    """

    # ─────────────────────────────────────────────────────────
    # Metrics
    # ─────────────────────────────────────────────────────────

    @abstractmethod
    def upsert_metrics(self, metrics: list[CanonicalMetric]) -> int:
        """Replace-by-identity, atomic for the batch. Returns rows written."""
        pass

    @abstractmethod
    def delete_metrics_by_source(self, source_name: str) -> int:
        pass

    @abstractmethod
    def get_metric(self, metric_id: str) -> Optional[CanonicalMetric]:
        pass

    @abstractmethod
    def search(self, query: SearchQuery) -> SearchResult:
        pass

    @abstractmethod
    def get_facet_counts(self) -> FacetCounts:
        pass

    @abstractmethod
    def get_filtered_facet_counts(self, facet_filter: FacetFilter) -> FacetCounts:
        pass

    @abstractmethod
    def get_semconv_metrics(self) -> list[CanonicalMetric]:
        """Metrics extracted from the semantic-conventions source."""
        pass

    # ─────────────────────────────────────────────────────────
    # Extraction runs
    # ─────────────────────────────────────────────────────────

    @abstractmethod
    def create_extraction_run(self, run: ExtractionRun) -> None:
        pass

    @abstractmethod
    def update_extraction_run(self, run: ExtractionRun) -> None:
        """Only allowed while the stored run is running."""
        pass

    @abstractmethod
    def get_extraction_run(self, run_id: str) -> Optional[ExtractionRun]:
        pass

    @abstractmethod
    def get_latest_extraction_run(self, adapter_name: str) -> Optional[ExtractionRun]:
        pass

    @abstractmethod
    def list_extraction_runs(
        self,
        adapter_name: Optional[str] = None,
        limit: int = DEFAULT_RUN_LIST_LIMIT,
    ) -> list[ExtractionRun]:
        pass

    # ─────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────

    def create_schema(self) -> None:
        pass

    def close(self) -> None:
        pass


class SqlMetricStore(MetricStore):
    """
    SQLAlchemy-backed store.

    Args:
        database: Database to use; one is created from the configured
            database_url when omitted
    """

    def __init__(self, database: Optional[Database] = None) -> None:
        self.database = database or Database()
        self._write_lock = threading.RLock()

    @classmethod
    def from_url(cls, url: str) -> "SqlMetricStore":
        store = cls(Database(url))
        store.create_schema()
        return store

    @contextmanager
    def _read(self) -> Generator[Session, None, None]:
        """Read session; on a shared connection it waits for the running write."""
        guard = self._write_lock if self.database.shares_connection else nullcontext()
        with guard:
            with self.database.session_scope() as session:
                yield session

    @contextmanager
    def _write(self, operation: str) -> Generator[Session, None, None]:
        """Serialised write transaction; commit failures become TransactionError."""
        with self._write_lock:
            try:
                with self.database.transaction_scope() as session:
                    yield session
            except RepositoryException:
                raise
            except SQLAlchemyError as e:
                raise TransactionError(
                    repository_name="SqlMetricStore",
                    operation=operation,
                    original_error=str(e),
                ) from e

    # ─────────────────────────────────────────────────────────
    # Metrics
    # ─────────────────────────────────────────────────────────

    def upsert_metrics(self, metrics: list[CanonicalMetric]) -> int:
        if not metrics:
            return 0
        with self._write("upsert_metrics") as session:
            count = MetricRepository(session).upsert(metrics)
        logger.info(f"Stored {count} metrics")
        return count

    def delete_metrics_by_source(self, source_name: str) -> int:
        with self._write("delete_metrics_by_source") as session:
            return MetricRepository(session).delete_by_source(source_name)

    def get_metric(self, metric_id: str) -> Optional[CanonicalMetric]:
        with self._read() as session:
            record = MetricRepository(session).get(metric_id)
            return record_to_metric(record) if record is not None else None

    def search(self, query: SearchQuery) -> SearchResult:
        started = time.perf_counter()
        with self._read() as session:
            records, total = MetricRepository(session).search(query)
            metrics = [record_to_metric(r) for r in records]
        return SearchResult(
            metrics=metrics,
            total=total,
            took=time.perf_counter() - started,
        )

    def get_facet_counts(self) -> FacetCounts:
        with self._read() as session:
            return MetricRepository(session).facet_counts()

    def get_filtered_facet_counts(self, facet_filter: FacetFilter) -> FacetCounts:
        with self._read() as session:
            return MetricRepository(session).facet_counts(facet_filter.source_names)

    def get_semconv_metrics(self) -> list[CanonicalMetric]:
        with self._read() as session:
            return [record_to_metric(r) for r in MetricRepository(session).get_semconv_metrics()]

    # ─────────────────────────────────────────────────────────
    # Extraction runs
    # ─────────────────────────────────────────────────────────

    def create_extraction_run(self, run: ExtractionRun) -> None:
        with self._write("create_extraction_run") as session:
            ExtractionRunRepository(session).create(run)

    def update_extraction_run(self, run: ExtractionRun) -> None:
        with self._write("update_extraction_run") as session:
            ExtractionRunRepository(session).update(run)

    def get_extraction_run(self, run_id: str) -> Optional[ExtractionRun]:
        with self._read() as session:
            record = ExtractionRunRepository(session).get(run_id)
            return record_to_run(record) if record is not None else None

    def get_latest_extraction_run(self, adapter_name: str) -> Optional[ExtractionRun]:
        with self._read() as session:
            record = ExtractionRunRepository(session).get_latest(adapter_name)
            return record_to_run(record) if record is not None else None

    def list_extraction_runs(
        self,
        adapter_name: Optional[str] = None,
        limit: int = DEFAULT_RUN_LIST_LIMIT,
    ) -> list[ExtractionRun]:
        with self._read() as session:
            records = ExtractionRunRepository(session).list_runs(adapter_name, limit)
            return [record_to_run(r) for r in records]

    # ─────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────

    def create_schema(self) -> None:
        self.database.create_schema()

    def close(self) -> None:
        self.database.close()
