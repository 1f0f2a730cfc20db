"""
Orchestrator Package - Extraction Run Coordination.

============================================================
PACKAGE OVERVIEW
============================================================
Drives adapters against the catalog store and keeps the audit trail
of extraction runs.

============================================================
ARCHITECTURE
============================================================

    +-----------------------------------------------------+
    |                    BatchRunner                      |
    |   (asyncio.gather, bounded by a Semaphore)          |
    +-----------------------------------------------------+
                             |
    +-----------------------------------------------------+
    |               ExtractionOrchestrator                |
    |-----------------------------------------------------|
    |  fetch -> extract -> convert/validate -> enrich     |
    |  -> upsert -> finalise ExtractionRun                |
    +-----------------------------------------------------+
           |                 |                  |
     metric_adapters      enricher           storage

============================================================
USAGE
============================================================

    from metric_adapters import build_default_registry
    from orchestrator import BatchRunner, ExtractionOrchestrator, setup_logging
    from storage import SqlMetricStore

    setup_logging("INFO")
    store = SqlMetricStore.from_url("sqlite:///metric-library.db")
    store.create_schema()

    orchestrator = ExtractionOrchestrator(store)
    outcomes = await BatchRunner(orchestrator).run_all(build_default_registry())

============================================================
"""

from orchestrator.batch import BatchRunner
from orchestrator.core import ExtractionOrchestrator, setup_logging, to_canonical
from orchestrator.models import BatchOutcome, RunOptions, RunResult


__all__ = [
    "ExtractionOrchestrator",
    "BatchRunner",
    "setup_logging",
    "to_canonical",
    "RunOptions",
    "RunResult",
    "BatchOutcome",
]
