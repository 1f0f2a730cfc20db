"""
Canonical Metric Validation.

Checks run in a fixed order so the first failure reported is stable:
required text fields first, then each enum-valued field.
"""

from enum import Enum
from typing import Any, Type

from core.exceptions import ValidationError
from domain.models import (
    CanonicalMetric,
    ComponentType,
    ConfidenceLevel,
    ExtractionMethod,
    InstrumentType,
    SemconvMatch,
    SourceCategory,
    parse_enum,
)


REQUIRED_FIELDS = ("metric_name", "component_name", "source_name")

ENUM_FIELDS: tuple[tuple[str, Type[Enum]], ...] = (
    ("instrument_type", InstrumentType),
    ("component_type", ComponentType),
    ("source_category", SourceCategory),
    ("extraction_method", ExtractionMethod),
    ("source_confidence", ConfidenceLevel),
    ("semconv_match", SemconvMatch),
)


def validate_metric(metric: CanonicalMetric) -> None:
    """
    Validate a canonical metric.

    Raises:
        ValidationError: On the first missing required field or out-of-set enum value
    """
    for name in REQUIRED_FIELDS:
        value = getattr(metric, name)
        if not value or not str(value).strip():
            raise ValidationError(name, "is required", metric_name=metric.metric_name)

    for name, enum_cls in ENUM_FIELDS:
        value = getattr(metric, name)
        if parse_enum(enum_cls, value) is None:
            raise ValidationError(
                name,
                f"{value!r} is not one of {_allowed(enum_cls)}",
                metric_name=metric.metric_name,
            )


def is_valid(metric: CanonicalMetric) -> bool:
    try:
        validate_metric(metric)
    except ValidationError:
        return False
    return True


def _allowed(enum_cls: Type[Enum]) -> list[Any]:
    return [member.value for member in enum_cls]
