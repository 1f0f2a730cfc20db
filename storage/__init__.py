"""
Storage Package.

Persistence of the metric catalog and the extraction run audit trail.

Modules:
- database: engine and session management
- models/: ORM models
- repositories/: data access layer
- store: MetricStore contract and SqlMetricStore
"""

from storage.database import Database, DatabaseError
from storage.store import MetricStore, SqlMetricStore


__all__ = [
    "Database",
    "DatabaseError",
    "MetricStore",
    "SqlMetricStore",
]
