"""
Metric Catalog Repository.

============================================================
PURPOSE
============================================================
Data access for canonical metrics and their attributes:

- replace-by-identity upserts
- deletion by source
- faceted search with free text over name and description
- facet histograms

============================================================
SEARCH ORDERING
============================================================
With free text, rows whose metric_name contains the text come before
rows matching only in description; each group is ordered by
metric_name, then id. Without text, by metric_name, then id.

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import String, case, delete, exists, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import InstrumentedAttribute, Session

from domain.models import (
    Attribute,
    CanonicalMetric,
    ComponentType,
    ConfidenceLevel,
    ExtractionMethod,
    InstrumentType,
    SemconvMatch,
    SourceCategory,
)
from domain.query import FacetCounts, SearchQuery
from storage.models.metrics import (
    AttributeEnumValueRecord,
    MetricAttributeRecord,
    MetricRecord,
)
from storage.repositories.base import BaseRepository


SEMCONV_SOURCE_NAME = "otel-semconv"

# FacetCounts field -> column
FACET_COLUMNS: tuple[tuple[str, InstrumentedAttribute], ...] = (
    ("instrument_types", MetricRecord.instrument_type),
    ("component_types", MetricRecord.component_type),
    ("component_names", MetricRecord.component_name),
    ("source_categories", MetricRecord.source_category),
    ("source_names", MetricRecord.source_name),
    ("confidence_levels", MetricRecord.source_confidence),
    ("semconv_matches", MetricRecord.semconv_match),
    ("units", MetricRecord.unit),
)


# ============================================================
# CONVERSION
# ============================================================

def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise to aware UTC; naive values (as read back from SQLite) are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _value(value: Any) -> str:
    return str(getattr(value, "value", value))


def build_attribute_records(attributes: Iterable[Attribute]) -> list[MetricAttributeRecord]:
    return [
        MetricAttributeRecord(
            position=position,
            attribute_name=attribute.name,
            attribute_type=attribute.type,
            description=attribute.description,
            required=attribute.required,
            enum_values=[
                AttributeEnumValueRecord(position=i, value=value)
                for i, value in enumerate(attribute.enum)
            ],
        )
        for position, attribute in enumerate(attributes)
    ]


def apply_metric(record: MetricRecord, metric: CanonicalMetric) -> None:
    """Copy every scalar field of metric onto record (attributes excluded)."""
    record.metric_name = metric.metric_name
    record.instrument_type = _value(metric.instrument_type)
    record.description = metric.description
    record.unit = metric.unit
    record.enabled_by_default = metric.enabled_by_default
    record.component_type = _value(metric.component_type)
    record.component_name = metric.component_name
    record.source_category = _value(metric.source_category)
    record.source_name = metric.source_name
    record.source_location = metric.source_location
    record.extraction_method = _value(metric.extraction_method)
    record.source_confidence = _value(metric.source_confidence)
    record.repo_url = metric.repo_url
    record.path = metric.path
    record.commit = metric.commit
    record.extracted_at = to_utc(metric.extracted_at)
    record.semconv_match = _value(metric.semconv_match)
    record.semconv_name = metric.semconv_name
    record.semconv_stability = metric.semconv_stability


def record_to_metric(record: MetricRecord) -> CanonicalMetric:
    return CanonicalMetric(
        id=record.id,
        metric_name=record.metric_name,
        instrument_type=InstrumentType(record.instrument_type),
        description=record.description,
        unit=record.unit,
        attributes=[
            Attribute(
                name=a.attribute_name,
                type=a.attribute_type,
                description=a.description,
                required=a.required,
                enum=[e.value for e in a.enum_values],
            )
            for a in record.attributes
        ],
        enabled_by_default=record.enabled_by_default,
        component_type=ComponentType(record.component_type),
        component_name=record.component_name,
        source_category=SourceCategory(record.source_category),
        source_name=record.source_name,
        source_location=record.source_location,
        extraction_method=ExtractionMethod(record.extraction_method),
        source_confidence=ConfidenceLevel(record.source_confidence),
        repo_url=record.repo_url,
        path=record.path,
        commit=record.commit,
        extracted_at=to_utc(record.extracted_at),
        semconv_match=SemconvMatch(record.semconv_match),
        semconv_name=record.semconv_name,
        semconv_stability=record.semconv_stability,
        created_at=to_utc(record.created_at),
        updated_at=to_utc(record.updated_at),
    )


# ============================================================
# REPOSITORY
# ============================================================

class MetricRepository(BaseRepository[MetricRecord]):
    """Repository for MetricRecord and its owned attribute rows."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, MetricRecord, "MetricRepository")

    # =========================================================
    # WRITES
    # =========================================================

    def upsert(self, metrics: Iterable[CanonicalMetric]) -> int:
        """
        Insert or replace metrics by identity.

        Existing rows are updated in place (created_at is kept) and
        their attribute rows replaced. Within one call a later metric
        with the same id wins. Returns the number of distinct ids written.
        """
        batch: dict[str, CanonicalMetric] = {}
        for metric in metrics:
            batch[metric.id or metric.compute_id()] = metric

        try:
            for metric_id, metric in batch.items():
                record = self._session.get(MetricRecord, metric_id)
                if record is None:
                    record = MetricRecord(id=metric_id)
                    apply_metric(record, metric)
                    record.attributes = build_attribute_records(metric.attributes)
                    self._session.add(record)
                    continue

                apply_metric(record, metric)
                # Flush the removals first: names are unique per metric.
                record.attributes.clear()
                self._session.flush()
                record.attributes = build_attribute_records(metric.attributes)

            self._session.flush()
        except SQLAlchemyError as e:
            self._handle_db_error(e, "upsert", {"batch_size": len(batch)})

        self._logger.debug(f"Upserted {len(batch)} metrics")
        return len(batch)

    def delete_by_source(self, source_name: str) -> int:
        """Delete every metric of a source; attributes cascade."""
        try:
            result = self._session.execute(
                delete(MetricRecord).where(MetricRecord.source_name == source_name)
            )
        except SQLAlchemyError as e:
            self._handle_db_error(e, "delete_by_source", {"source_name": source_name})
        self._logger.info(f"Deleted {result.rowcount} metrics of source {source_name}")
        return result.rowcount or 0

    # =========================================================
    # READS
    # =========================================================

    def get(self, metric_id: str) -> Optional[MetricRecord]:
        return self._get_by_id(metric_id)

    def list_by_source(self, source_name: str) -> list[MetricRecord]:
        stmt = (
            select(MetricRecord)
            .where(MetricRecord.source_name == source_name)
            .order_by(MetricRecord.metric_name, MetricRecord.id)
        )
        return self._execute_query(stmt, "list_by_source")

    def get_semconv_metrics(self) -> list[MetricRecord]:
        return self.list_by_source(SEMCONV_SOURCE_NAME)

    def search(self, query: SearchQuery) -> tuple[list[MetricRecord], int]:
        """Return (page of records, total matching rows)."""
        conditions = self._search_conditions(query)

        total_stmt = select(func.count(MetricRecord.id)).where(*conditions)
        rows = self._execute_rows(total_stmt, "search_count")
        total = rows[0][0] if rows else 0

        stmt = select(MetricRecord).where(*conditions)
        if query.text:
            name_match = self._text_match(MetricRecord.metric_name, query)
            stmt = stmt.order_by(case((name_match, 0), else_=1))
        stmt = (
            stmt.order_by(MetricRecord.metric_name, MetricRecord.id)
            .limit(query.normalized_limit())
            .offset(query.normalized_offset())
        )
        return self._execute_query(stmt, "search"), total

    def facet_counts(self, source_names: Optional[list[str]] = None) -> FacetCounts:
        """
        Per-field histograms.

        With source_names, every histogram except source_names itself
        is restricted to those sources. Empty units are not counted.
        """
        counts = FacetCounts()
        for field_name, column in FACET_COLUMNS:
            stmt = select(column, func.count(MetricRecord.id)).group_by(column).order_by(column)
            if field_name == "units":
                stmt = stmt.where(MetricRecord.unit != "")
            if source_names and field_name != "source_names":
                stmt = stmt.where(MetricRecord.source_name.in_(source_names))
            rows = self._execute_rows(stmt, f"facet_{field_name}")
            setattr(counts, field_name, {value: count for value, count in rows})
        return counts

    # =========================================================
    # QUERY BUILDING
    # =========================================================

    @staticmethod
    def _text_match(column: InstrumentedAttribute, query: SearchQuery) -> Any:
        if query.case_insensitive:
            return func.lower(column, type_=String).contains(query.text.lower(), autoescape=True)
        return column.contains(query.text, autoescape=True)

    def _search_conditions(self, query: SearchQuery) -> list[Any]:
        conditions: list[Any] = []
        if query.text:
            conditions.append(or_(
                self._text_match(MetricRecord.metric_name, query),
                self._text_match(MetricRecord.description, query),
            ))

        set_filters = (
            (MetricRecord.instrument_type, query.instrument_types),
            (MetricRecord.component_type, query.component_types),
            (MetricRecord.component_name, query.component_names),
            (MetricRecord.source_category, query.source_categories),
            (MetricRecord.source_name, query.source_names),
            (MetricRecord.source_confidence, query.confidence_levels),
            (MetricRecord.semconv_match, query.semconv_matches),
            (MetricRecord.unit, query.units),
        )
        for column, values in set_filters:
            if values:
                conditions.append(column.in_([_value(v) for v in values]))

        if query.attribute_names:
            conditions.append(exists().where(
                MetricAttributeRecord.metric_id == MetricRecord.id,
                MetricAttributeRecord.attribute_name.in_(query.attribute_names),
            ))
        return conditions
