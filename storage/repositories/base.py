"""
Base Repository Class.

============================================================
PURPOSE
============================================================
Common functionality for the catalog repositories:
- Error wrapping (SQLAlchemy -> repository exceptions)
- Primary-key lookup and statement execution
- Per-repository loggers

Sessions are injected; repositories never commit. The transaction
boundary belongs to the caller (storage.store).

============================================================
"""

import logging
from abc import ABC
from typing import Any, Generic, NoReturn, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from storage.models.base import Base
from storage.repositories.exceptions import (
    DuplicateRecordError,
    QueryError,
    RecordNotFoundError,
    StoreUnavailableError,
)


T = TypeVar("T", bound=Base)


class BaseRepository(ABC, Generic[T]):
    """
    Session-bound base for the catalog repositories.

    Every SQLAlchemy failure is translated through _handle_db_error.

    Usage:
        class MetricRepository(BaseRepository[MetricRecord]):
            def __init__(self, session: Session):
                super().__init__(session, MetricRecord, "MetricRepository")
    """

    def __init__(
        self,
        session: Session,
        model_class: Type[T],
        repository_name: str
    ) -> None:
        self._session = session
        self._model_class = model_class
        self._repository_name = repository_name
        self._logger = logging.getLogger(f"repository.{repository_name}")

    # =========================================================
    # PROTECTED HELPER METHODS
    # =========================================================

    def _handle_db_error(
        self,
        error: Exception,
        operation: str,
        context: Optional[dict] = None
    ) -> NoReturn:
        """
        Wrap a database error in the matching repository exception.

        Raises:
            StoreUnavailableError: Backend unreachable or locked
            DuplicateRecordError: Unique or primary key violation
            QueryError: Anything else
        """
        self._logger.error(
            f"[{self._repository_name}] {operation} failed: {error}",
            extra={"context": context or {}},
            exc_info=True
        )

        if isinstance(error, OperationalError):
            raise StoreUnavailableError(self._repository_name, operation, str(error)) from error
        if isinstance(error, IntegrityError) and "unique" in str(error).lower():
            raise DuplicateRecordError(self._repository_name, operation, str(error)) from error
        raise QueryError(self._repository_name, operation, str(error)) from error

    def _add(self, entity: T) -> T:
        try:
            self._session.add(entity)
            self._session.flush()
            self._logger.debug(f"[{self._repository_name}] Added {entity!r}")
            return entity
        except SQLAlchemyError as e:
            self._handle_db_error(e, "add", {"entity": str(entity)})

    def _get_by_id(self, record_id: Any) -> Optional[T]:
        try:
            return self._session.get(self._model_class, record_id)
        except SQLAlchemyError as e:
            self._handle_db_error(e, "get_by_id", {"id": str(record_id)})

    def _get_by_id_or_raise(self, record_id: Any, id_field: str = "id") -> T:
        """
        Raises:
            RecordNotFoundError: If entity does not exist
        """
        entity = self._get_by_id(record_id)
        if entity is None:
            raise RecordNotFoundError(
                repository_name=self._repository_name,
                record_id=record_id,
                id_field=id_field
            )
        return entity

    def _execute_query(self, stmt: Any, operation: str) -> list[T]:
        try:
            return list(self._session.scalars(stmt).all())
        except SQLAlchemyError as e:
            self._handle_db_error(e, operation)

    def _execute_first(self, stmt: Any, operation: str) -> Optional[T]:
        try:
            return self._session.scalars(stmt).first()
        except SQLAlchemyError as e:
            self._handle_db_error(e, operation)

    def _execute_rows(self, stmt: Any, operation: str) -> list[Any]:
        try:
            return list(self._session.execute(stmt).all())
        except SQLAlchemyError as e:
            self._handle_db_error(e, operation)
