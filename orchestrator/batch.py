"""
Orchestrator - Batch Runner.

Runs several adapters concurrently, bounded by max_concurrent_runs.
One adapter failing never aborts the others; outcomes come back in the
order the adapters were given.
"""

import asyncio
import logging
from typing import Iterable, Optional

from core.config import get_config
from metric_adapters.base import BaseMetricAdapter
from orchestrator.core import ExtractionOrchestrator
from orchestrator.models import BatchOutcome, RunOptions
from storage.repositories.exceptions import RepositoryException


logger = logging.getLogger(__name__)


class BatchRunner:
    """
    Usage:
        runner = BatchRunner(orchestrator, max_concurrent_runs=4)
        outcomes = await runner.run_all(registry)
    """

    def __init__(
        self,
        orchestrator: ExtractionOrchestrator,
        max_concurrent_runs: Optional[int] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._max_concurrent_runs = max_concurrent_runs or get_config().max_concurrent_runs

    @property
    def max_concurrent_runs(self) -> int:
        return self._max_concurrent_runs

    async def run_all(
        self,
        adapters: Iterable[BaseMetricAdapter],
        options: Optional[RunOptions] = None,
    ) -> list[BatchOutcome]:
        adapters = list(adapters)
        semaphore = asyncio.Semaphore(self._max_concurrent_runs)
        logger.info(
            f"[batch] Running {len(adapters)} adapters, "
            f"at most {self._max_concurrent_runs} at a time"
        )

        outcomes = await asyncio.gather(
            *(self._run_one(semaphore, adapter, options) for adapter in adapters)
        )

        failed = [o.adapter_name for o in outcomes if not o.succeeded]
        if failed:
            logger.warning(f"[batch] {len(failed)} of {len(outcomes)} runs failed: {', '.join(failed)}")
        else:
            logger.info(f"[batch] All {len(outcomes)} runs completed")
        return list(outcomes)

    async def _run_one(
        self,
        semaphore: asyncio.Semaphore,
        adapter: BaseMetricAdapter,
        options: Optional[RunOptions],
    ) -> BatchOutcome:
        async with semaphore:
            try:
                result = await self._orchestrator.run(adapter, options)
            except RepositoryException as e:
                logger.error(f"[{adapter.name}] Run could not be started: {e}")
                return BatchOutcome(adapter_name=adapter.name, error=str(e))
            except Exception as e:
                # The run is already finalised as failed by the orchestrator
                logger.error(f"[{adapter.name}] Run aborted: {e}")
                return BatchOutcome(adapter_name=adapter.name, error=str(e))
        return BatchOutcome(
            adapter_name=adapter.name,
            result=result,
            error=result.error_message,
        )
