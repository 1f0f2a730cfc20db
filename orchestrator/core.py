"""
Orchestrator - Core.

============================================================
RESPONSIBILITY
============================================================
Runs one adapter end to end and records the run.

1. Create an ExtractionRun in state running
2. adapter.fetch()
3. adapter.extract()
4. Convert RawMetrics to CanonicalMetrics, validate, deduplicate
   on identity, enrich with semantic conventions
5. Upsert the batch through the store
6. Finalise the run as completed with the stored count

Every terminal error (fetch, extract, store, cancellation) finalises
the run as failed with the error text. Invalid records are skipped and
never fail the run.

============================================================
ARCHITECTURAL POSITION
============================================================
- The orchestrator has no extraction logic of its own
- It never retries; a failed run is simply recorded
- Store calls are blocking and run in worker threads

============================================================
"""

import asyncio
import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Optional

from core.exceptions import (
    ExtractionCancelledError,
    MetricLibraryError,
    ValidationError,
)
from domain.models import (
    CanonicalMetric,
    ComponentType,
    ExtractionRun,
    InstrumentType,
    RawMetric,
    parse_enum,
)
from domain.validation import validate_metric
from enricher.semconv import SemconvEnricher
from metric_adapters.base import BaseMetricAdapter
from metric_adapters.models import FetchResult
from orchestrator.models import RunOptions, RunResult
from storage.repositories.exceptions import RepositoryException
from storage.store import MetricStore


logger = logging.getLogger(__name__)


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    run_label: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: Log level name
        log_format: "json", "text", or a logging.Formatter format string
        run_label: Label included in every line (e.g. a batch id)

    Returns:
        The orchestrator logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
                "run": run_label or "",
            })
        )
    elif log_format == "text":
        formatter = logging.Formatter(
            f"%(asctime)s | %(levelname)-8s | %(name)s | {run_label or ''} | %(message)s"
        )
    else:
        formatter = logging.Formatter(log_format)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("orchestrator")


# ============================================================
# ORCHESTRATOR
# ============================================================

class ExtractionOrchestrator:
    """
    Executes extraction runs against a shared store.

    Usage:
        orchestrator = ExtractionOrchestrator(store, enricher)
        result = await orchestrator.run(registry.require_adapter("prometheus-node"))
        if not result.succeeded:
            print(result.error_message)
    """

    def __init__(
        self,
        store: MetricStore,
        enricher: Optional[SemconvEnricher] = None,
    ) -> None:
        self._store = store
        self._enricher = enricher

    @property
    def store(self) -> MetricStore:
        return self._store

    # ─────────────────────────────────────────────────────────
    # Run
    # ─────────────────────────────────────────────────────────

    async def run(
        self,
        adapter: BaseMetricAdapter,
        options: Optional[RunOptions] = None,
    ) -> RunResult:
        """
        Run one adapter and persist its metrics.

        Returns a RunResult whose run is completed or failed. Errors
        from the adapter or the store are recorded on the run, not
        raised.

        Raises:
            RepositoryException: If the run record itself cannot be created
            asyncio.CancelledError: After the run is finalised as failed
        """
        options = options or RunOptions()
        run = ExtractionRun(
            id=f"{adapter.name}-{time.time_ns()}",
            adapter_name=adapter.name,
            started_at=datetime.now(timezone.utc),
        )
        await asyncio.to_thread(self._store.create_extraction_run, run)
        logger.info(f"[{adapter.name}] Extraction run {run.id} started")

        result = RunResult(run=run)
        stage = "fetch"
        try:
            fetched = await adapter.fetch(options.to_fetch_options())
            run.commit = fetched.commit

            stage = "extract"
            raw_metrics = await adapter.extract(fetched)
            result.extracted_count = len(raw_metrics)

            stage = "convert"
            metrics = self._convert_all(adapter, fetched, raw_metrics, result)
            if self._enricher is not None:
                metrics = self._enricher.enrich_all(metrics)

            stage = "store"
            result.stored_count = await asyncio.to_thread(self._store.upsert_metrics, metrics)
        except asyncio.CancelledError:
            error = ExtractionCancelledError(adapter_name=adapter.name, stage=stage)
            await self._finalise_failed(run, error.message)
            raise
        except (MetricLibraryError, RepositoryException) as e:
            logger.error(f"[{adapter.name}] Extraction run {run.id} failed during {stage}: {e}")
            await self._finalise_failed(run, str(e))
            return result
        except Exception as e:
            logger.error(
                f"[{adapter.name}] Unexpected error in run {run.id} during {stage}: {e}",
                exc_info=True,
            )
            await self._finalise_failed(run, str(e))
            raise

        run.complete(result.stored_count)
        await asyncio.to_thread(self._store.update_extraction_run, run)
        logger.info(
            f"[{adapter.name}] Extraction run {run.id} completed: "
            f"{result.stored_count} stored, {result.skipped_count} skipped"
        )
        return result

    async def _finalise_failed(self, run: ExtractionRun, error_message: str) -> None:
        run.fail(error_message)
        try:
            await asyncio.to_thread(self._store.update_extraction_run, run)
        except RepositoryException as e:
            logger.error(f"[{run.adapter_name}] Could not record failure of run {run.id}: {e}")

    # ─────────────────────────────────────────────────────────
    # Conversion
    # ─────────────────────────────────────────────────────────

    def _convert_all(
        self,
        adapter: BaseMetricAdapter,
        fetched: FetchResult,
        raw_metrics: list[RawMetric],
        result: RunResult,
    ) -> list[CanonicalMetric]:
        by_id: dict[str, CanonicalMetric] = {}
        for raw in raw_metrics:
            metric = to_canonical(adapter, fetched, raw)
            try:
                validate_metric(metric)
            except ValidationError as e:
                result.skipped_count += 1
                logger.warning(f"[{adapter.name}] Skipping invalid metric {raw.name!r}: {e}")
                continue

            metric_id = metric.ensure_id()
            existing = by_id.get(metric_id)
            if existing is None or (not existing.description and metric.description):
                by_id[metric_id] = metric
        return list(by_id.values())


def to_canonical(
    adapter: BaseMetricAdapter,
    fetched: FetchResult,
    raw: RawMetric,
) -> CanonicalMetric:
    """
    Stamp adapter-derived fields onto a raw metric.

    Out-of-set instrument or component types are carried through
    unchanged so that validation reports them.
    """
    return CanonicalMetric(
        metric_name=raw.name,
        instrument_type=parse_enum(InstrumentType, raw.instrument_type) or raw.instrument_type,
        description=raw.description,
        unit=raw.unit,
        attributes=list(raw.attributes),
        enabled_by_default=raw.enabled_by_default,
        component_type=parse_enum(ComponentType, raw.component_type) or raw.component_type,
        component_name=raw.component_name,
        source_category=adapter.source_category,
        source_name=adapter.name,
        source_location=raw.source_location,
        extraction_method=adapter.extraction_method,
        source_confidence=adapter.confidence,
        repo_url=adapter.repo_url,
        path=raw.path,
        commit=fetched.commit,
        extracted_at=fetched.timestamp,
    )
