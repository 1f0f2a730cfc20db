"""
Catalog Store Exceptions.

============================================================
PURPOSE
============================================================
SQLAlchemy errors never leave the storage layer unwrapped. The
orchestrator catches RepositoryException to record a failed run
without knowing which backend the store runs on.

============================================================
HIERARCHY
============================================================
RepositoryException
├── RecordNotFoundError        run or metric id does not exist
├── DuplicateRecordError       id reused on insert
├── ImmutableRecordError       terminal extraction run modified
├── StoreUnavailableError      backend unreachable or locked
├── QueryError                 statement failed
└── TransactionError           batch commit failed, batch rolled back

============================================================
"""

from typing import Any, Optional


class RepositoryException(Exception):
    """Base for store failures; str() reads "[<repository>] <operation>: <message>"."""

    def __init__(
        self,
        message: str,
        repository_name: str,
        operation: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.repository_name = repository_name
        self.operation = operation
        self.details = details or {}
        super().__init__(f"[{repository_name}] {operation}: {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for run records and logs."""
        return {
            "error_type": type(self).__name__,
            "repository": self.repository_name,
            "operation": self.operation,
            "message": self.message,
            "details": self.details,
        }


class RecordNotFoundError(RepositoryException):

    def __init__(self, repository_name: str, record_id: Any, id_field: str = "id") -> None:
        super().__init__(
            f"no record with {id_field}={record_id}",
            repository_name=repository_name,
            operation="get",
            details={id_field: str(record_id)},
        )
        self.record_id = record_id
        self.id_field = id_field


class DuplicateRecordError(RepositoryException):

    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            f"record already exists: {original_error}",
            repository_name=repository_name,
            operation=operation,
        )


class ImmutableRecordError(RepositoryException):
    """A completed or failed extraction run cannot change state again."""

    def __init__(self, repository_name: str, record_id: Any, status: str) -> None:
        super().__init__(
            f"run {record_id} is already {status}",
            repository_name=repository_name,
            operation="update",
            details={"record_id": str(record_id), "status": status},
        )
        self.record_id = record_id
        self.status = status


class StoreUnavailableError(RepositoryException):

    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            f"database unavailable: {original_error}",
            repository_name=repository_name,
            operation=operation,
        )


class QueryError(RepositoryException):

    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            f"query failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
        )


class TransactionError(RepositoryException):
    """Nothing written inside the failed transaction is visible to readers."""

    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            f"commit failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
        )
