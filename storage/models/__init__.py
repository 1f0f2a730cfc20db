"""
Storage Models Package.

ORM models of the metric catalog database.

============================================================
MODEL ORGANIZATION
============================================================
- base.py: Base, TimestampMixin
- metrics.py: MetricRecord, MetricAttributeRecord,
  AttributeEnumValueRecord, ExtractionRunRecord

============================================================
"""

from storage.models.base import Base, TimestampMixin
from storage.models.metrics import (
    AttributeEnumValueRecord,
    ExtractionRunRecord,
    MetricAttributeRecord,
    MetricRecord,
)


__all__ = [
    "Base",
    "TimestampMixin",
    "MetricRecord",
    "MetricAttributeRecord",
    "AttributeEnumValueRecord",
    "ExtractionRunRecord",
]
