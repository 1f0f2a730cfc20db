"""
Metric Catalog ORM Models.

============================================================
PURPOSE
============================================================
Persisted shape of the catalog: canonical metrics, their ordered
attributes and enumerated attribute values, and the audit trail of
extraction runs.

============================================================
DATA LIFECYCLE
============================================================
- metrics: replaced by identity on every upsert (last writer wins)
- metric_attributes / attribute_enum_values: owned by their metric,
  deleted with it (ON DELETE CASCADE)
- extraction_runs: append-only once terminal

============================================================
MODELS
============================================================
- MetricRecord
- MetricAttributeRecord
- AttributeEnumValueRecord
- ExtractionRunRecord

============================================================
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storage.models.base import Base, TimestampMixin


class MetricRecord(Base, TimestampMixin):
    """
    One canonical metric.

    The primary key is the content-derived identity
    (hex of the first 16 bytes of sha256(category:source:component:name)).
    """

    __tablename__ = "metrics"

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        comment="Content-derived metric identity"
    )

    metric_name: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        comment="Metric name as published upstream"
    )

    instrument_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="counter, up-down-counter, gauge, histogram, summary"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Free-text description"
    )

    unit: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default="",
        comment="Unit string, empty when unknown"
    )

    enabled_by_default: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the metric is emitted without opt-in"
    )

    component_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="receiver, exporter, processor, extension, connector, instrumentation, platform"
    )

    component_name: Mapped[str] = mapped_column(
        String(256),
        nullable=False,
        comment="Sub-unit within the source"
    )

    source_category: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="otel, prometheus, kubernetes, cloud, vendor, coding-agent"
    )

    source_name: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Adapter name"
    )

    source_location: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Absolute path the metric was recovered from"
    )

    extraction_method: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="metadata, ast, scrape, hybrid"
    )

    source_confidence: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="authoritative, derived, documented, vendor-claimed"
    )

    repo_url: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        default="",
        comment="Upstream repository URL"
    )

    path: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Repository-relative file path"
    )

    commit: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
        comment="Upstream commit the metric was extracted at"
    )

    extracted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Commit timestamp of the snapshot"
    )

    semconv_match: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="none",
        comment="exact, prefix, none"
    )

    semconv_name: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        default="",
        comment="Matched registry entry"
    )

    semconv_stability: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="",
        comment="Stability of the matched registry entry"
    )

    attributes: Mapped[list["MetricAttributeRecord"]] = relationship(
        back_populates="metric",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="MetricAttributeRecord.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_metrics_name", "metric_name"),
        Index("idx_metrics_source_name", "source_name"),
        Index("idx_metrics_source_category", "source_category"),
        Index("idx_metrics_component", "component_type", "component_name"),
        Index("idx_metrics_instrument_type", "instrument_type"),
        Index("idx_metrics_semconv_match", "semconv_match"),
    )

    def __repr__(self) -> str:
        return f"<MetricRecord {self.source_name}/{self.component_name}/{self.metric_name}>"


class MetricAttributeRecord(Base):
    """A metric dimension, kept in upstream declaration order."""

    __tablename__ = "metric_attributes"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    metric_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("metrics.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning metric"
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Declaration order within the metric"
    )

    attribute_name: Mapped[str] = mapped_column(
        String(256),
        nullable=False,
    )

    attribute_type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    required: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    metric: Mapped[MetricRecord] = relationship(back_populates="attributes")

    enum_values: Mapped[list["AttributeEnumValueRecord"]] = relationship(
        back_populates="attribute",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="AttributeEnumValueRecord.position",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("metric_id", "attribute_name", name="uq_metric_attribute_name"),
        Index("idx_metric_attributes_name", "attribute_name"),
    )


class AttributeEnumValueRecord(Base):
    """One allowed value of an enumerated attribute."""

    __tablename__ = "attribute_enum_values"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    attribute_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("metric_attributes.id", ondelete="CASCADE"),
        nullable=False,
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    value: Mapped[str] = mapped_column(
        String(256),
        nullable=False,
    )

    attribute: Mapped[MetricAttributeRecord] = relationship(back_populates="enum_values")


class ExtractionRunRecord(Base):
    """
    Audit record of one orchestrator run against one adapter.

    Rows are written as running and updated exactly once to a
    terminal state.
    """

    __tablename__ = "extraction_runs"

    id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="<adapter-name>-<start time in ns>"
    )

    adapter_name: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    commit: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    metrics_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="running, completed, failed"
    )

    error_message: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    __table_args__ = (
        Index("idx_extraction_runs_adapter_started", "adapter_name", "started_at"),
    )
