"""
Domain Package - Canonical metric model.

Defines the normalized metric record every adapter's output is
converted into, its closed enumerations, identity and validation
rules, and the query types answered by the catalog store.
"""

from domain.identity import generate_metric_id
from domain.models import (
    Attribute,
    CanonicalMetric,
    ComponentType,
    ConfidenceLevel,
    ExtractionMethod,
    ExtractionRun,
    InstrumentType,
    RunStatus,
    SemconvEntry,
    SemconvMatch,
    SourceCategory,
    RawMetric,
    parse_enum,
)
from domain.query import (
    DEFAULT_SEARCH_LIMIT,
    FacetCounts,
    FacetFilter,
    SearchQuery,
    SearchResult,
)
from domain.validation import is_valid, validate_metric


__all__ = [
    # Enumerations
    "InstrumentType",
    "ComponentType",
    "SourceCategory",
    "ExtractionMethod",
    "ConfidenceLevel",
    "SemconvMatch",
    "RunStatus",
    "parse_enum",
    # Records
    "Attribute",
    "CanonicalMetric",
    "RawMetric",
    "ExtractionRun",
    "SemconvEntry",
    # Identity / validation
    "generate_metric_id",
    "validate_metric",
    "is_valid",
    # Queries
    "SearchQuery",
    "SearchResult",
    "FacetFilter",
    "FacetCounts",
    "DEFAULT_SEARCH_LIMIT",
]
