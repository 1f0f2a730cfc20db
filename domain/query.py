"""
Catalog Query Types - Search and facet request/response values.
"""

from dataclasses import dataclass, field
from typing import Any

from domain.models import CanonicalMetric


DEFAULT_SEARCH_LIMIT = 20


@dataclass
class SearchQuery:
    """
    Faceted search request.

    Free text is matched only against metric name and description.
    Every list filter is an IN-set; empty lists do not filter.
    """
    text: str = ""
    instrument_types: list[str] = field(default_factory=list)
    component_types: list[str] = field(default_factory=list)
    component_names: list[str] = field(default_factory=list)
    source_categories: list[str] = field(default_factory=list)
    source_names: list[str] = field(default_factory=list)
    confidence_levels: list[str] = field(default_factory=list)
    semconv_matches: list[str] = field(default_factory=list)
    units: list[str] = field(default_factory=list)
    attribute_names: list[str] = field(default_factory=list)
    limit: int = DEFAULT_SEARCH_LIMIT
    offset: int = 0
    case_insensitive: bool = False

    def normalized_limit(self) -> int:
        return self.limit if self.limit > 0 else DEFAULT_SEARCH_LIMIT

    def normalized_offset(self) -> int:
        return max(self.offset, 0)


@dataclass
class SearchResult:
    """One page of search results plus the unpaged total."""
    metrics: list[CanonicalMetric]
    total: int
    took: float
    """Elapsed query time in seconds."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "metrics": [m.to_dict() for m in self.metrics],
            "total": self.total,
            "took": self.took,
        }


@dataclass
class FacetFilter:
    """Restricts facet histograms to the given sources."""
    source_names: list[str] = field(default_factory=list)


@dataclass
class FacetCounts:
    """Per-field histograms over the catalog."""
    instrument_types: dict[str, int] = field(default_factory=dict)
    component_types: dict[str, int] = field(default_factory=dict)
    component_names: dict[str, int] = field(default_factory=dict)
    source_categories: dict[str, int] = field(default_factory=dict)
    source_names: dict[str, int] = field(default_factory=dict)
    confidence_levels: dict[str, int] = field(default_factory=dict)
    semconv_matches: dict[str, int] = field(default_factory=dict)
    units: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, dict[str, int]]:
        """Convert to dictionary."""
        return {
            "instrument_types": dict(self.instrument_types),
            "component_types": dict(self.component_types),
            "component_names": dict(self.component_names),
            "source_categories": dict(self.source_categories),
            "source_names": dict(self.source_names),
            "confidence_levels": dict(self.confidence_levels),
            "semconv_matches": dict(self.semconv_matches),
            "units": dict(self.units),
        }
