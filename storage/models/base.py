"""
Declarative Base for the Catalog Tables.

Every datetime column is timezone-aware. SQLite drops the offset on
read, so repositories re-attach UTC when converting rows back into
domain objects (see storage.repositories.metrics.to_utc).
"""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """
    Row bookkeeping stamped by the database.

    created_at survives upserts of the same metric id; updated_at
    moves whenever a later run rewrites the row.
    """

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        comment="First time this metric id was stored",
    )

    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last run that rewrote this row",
    )
