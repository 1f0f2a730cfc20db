"""
Extraction Run Repository.

============================================================
DATA LIFECYCLE
============================================================
- Created in state running when an orchestrator run starts
- Updated exactly once, to completed or failed
- Immutable afterwards (updates raise ImmutableRecordError)

============================================================
"""

from typing import Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.models import ExtractionRun, RunStatus
from storage.models.metrics import ExtractionRunRecord
from storage.repositories.base import BaseRepository
from storage.repositories.exceptions import ImmutableRecordError
from storage.repositories.metrics import to_utc


DEFAULT_RUN_LIST_LIMIT = 50


def record_to_run(record: ExtractionRunRecord) -> ExtractionRun:
    return ExtractionRun(
        id=record.id,
        adapter_name=record.adapter_name,
        commit=record.commit,
        started_at=to_utc(record.started_at),
        completed_at=to_utc(record.completed_at),
        metrics_count=record.metrics_count,
        status=RunStatus(record.status),
        error_message=record.error_message,
    )


class ExtractionRunRepository(BaseRepository[ExtractionRunRecord]):
    """Repository for the extraction run audit trail."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, ExtractionRunRecord, "ExtractionRunRepository")

    def create(self, run: ExtractionRun) -> ExtractionRunRecord:
        entity = ExtractionRunRecord(
            id=run.id,
            adapter_name=run.adapter_name,
            commit=run.commit,
            started_at=to_utc(run.started_at),
            completed_at=to_utc(run.completed_at),
            metrics_count=run.metrics_count,
            status=run.status.value,
            error_message=run.error_message,
        )
        return self._add(entity)

    def update(self, run: ExtractionRun) -> ExtractionRunRecord:
        """
        Write the mutable fields of a run.

        Raises:
            RecordNotFoundError: If the run was never created
            ImmutableRecordError: If the stored run is no longer running
        """
        entity = self._get_by_id_or_raise(run.id)
        if entity.status != RunStatus.RUNNING.value:
            raise ImmutableRecordError(
                repository_name=self._repository_name,
                record_id=run.id,
                status=entity.status,
            )

        entity.commit = run.commit
        entity.completed_at = to_utc(run.completed_at)
        entity.metrics_count = run.metrics_count
        entity.status = run.status.value
        entity.error_message = run.error_message
        try:
            self._session.flush()
        except SQLAlchemyError as e:
            self._handle_db_error(e, "update", {"id": run.id})
        return entity

    def get(self, run_id: str) -> Optional[ExtractionRunRecord]:
        return self._get_by_id(run_id)

    def get_latest(self, adapter_name: str) -> Optional[ExtractionRunRecord]:
        stmt = (
            select(ExtractionRunRecord)
            .where(ExtractionRunRecord.adapter_name == adapter_name)
            .order_by(desc(ExtractionRunRecord.started_at), desc(ExtractionRunRecord.id))
            .limit(1)
        )
        return self._execute_first(stmt, "get_latest")

    def list_runs(
        self,
        adapter_name: Optional[str] = None,
        limit: int = DEFAULT_RUN_LIST_LIMIT,
    ) -> list[ExtractionRunRecord]:
        """Most recent first."""
        stmt = select(ExtractionRunRecord)
        if adapter_name:
            stmt = stmt.where(ExtractionRunRecord.adapter_name == adapter_name)
        stmt = stmt.order_by(desc(ExtractionRunRecord.started_at), desc(ExtractionRunRecord.id))
        if limit > 0:
            stmt = stmt.limit(limit)
        return self._execute_query(stmt, "list_runs")
