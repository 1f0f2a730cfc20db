"""
Storage Repositories Package.

Data access layer of the catalog. Repositories take an injected
session and never commit; storage.store owns transactions.

Usage:
    from storage.repositories import MetricRepository

    with database.transaction_scope() as session:
        MetricRepository(session).upsert(metrics)
"""

from storage.repositories.base import BaseRepository
from storage.repositories.exceptions import (
    DuplicateRecordError,
    ImmutableRecordError,
    QueryError,
    RecordNotFoundError,
    RepositoryException,
    StoreUnavailableError,
    TransactionError,
)
from storage.repositories.extraction_runs import ExtractionRunRepository
from storage.repositories.metrics import MetricRepository


__all__ = [
    # Base
    "BaseRepository",
    # Exceptions
    "RepositoryException",
    "RecordNotFoundError",
    "DuplicateRecordError",
    "ImmutableRecordError",
    "StoreUnavailableError",
    "QueryError",
    "TransactionError",
    # Repositories
    "MetricRepository",
    "ExtractionRunRepository",
]
