"""
Orchestrator - Models.

============================================================
RESPONSIBILITY
============================================================
Defines the values exchanged with the extraction orchestrator.

- Per-run options (commit pin, forced re-clone, cache override)
- Per-run result (the finalised ExtractionRun plus counters)
- Per-adapter outcome of a batch

============================================================
"""

from dataclasses import dataclass
from typing import Any, Optional

from domain.models import ExtractionRun, RunStatus
from metric_adapters.models import FetchOptions


# ============================================================
# RUN OPTIONS
# ============================================================

@dataclass
class RunOptions:
    """Options for a single extraction run."""
    commit: str = ""
    """Commit to pin; empty means the latest upstream head."""

    force: bool = False
    """Discard any cached snapshot and clone again."""

    cache_dir: str = ""
    """Snapshot cache override; empty uses the adapter's fetcher default."""

    def to_fetch_options(self) -> FetchOptions:
        return FetchOptions(commit=self.commit, force=self.force, cache_dir=self.cache_dir)


# ============================================================
# RUN RESULT
# ============================================================

@dataclass
class RunResult:
    """Outcome of a single extraction run."""
    run: ExtractionRun
    extracted_count: int = 0
    """RawMetrics returned by the adapter."""

    skipped_count: int = 0
    """Records dropped by validation."""

    stored_count: int = 0

    @property
    def succeeded(self) -> bool:
        return self.run.status == RunStatus.COMPLETED

    @property
    def error_message(self) -> str:
        return self.run.error_message

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "run": self.run.to_dict(),
            "extracted_count": self.extracted_count,
            "skipped_count": self.skipped_count,
            "stored_count": self.stored_count,
        }


# ============================================================
# BATCH OUTCOME
# ============================================================

@dataclass
class BatchOutcome:
    """
    Outcome of one adapter within a batch.

    result is None only when the run could not be started at all
    (for example the run record could not be created); error then
    carries the reason.
    """
    adapter_name: str
    result: Optional[RunResult] = None
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.result.succeeded

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "adapter_name": self.adapter_name,
            "succeeded": self.succeeded,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }
