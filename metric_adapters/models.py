"""
Adapter Data Models - Values exchanged between adapters and the orchestrator.

RawMetric (defined in domain.models so that extractors depend on the
domain package only) is the adapter-produced intermediate: it lives
only for the duration of one extract() call before being converted to
a CanonicalMetric.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from domain.models import (
    ConfidenceLevel,
    ExtractionMethod,
    RawMetric,
    SourceCategory,
)


__all__ = [
    "AdapterMetadata",
    "FetchOptions",
    "FetchResult",
    "RawMetric",
]


@dataclass
class FetchOptions:
    """
    Options for acquiring a source snapshot.

    commit: pin to this revision when non-empty, else HEAD
    force: discard any cached snapshot
    cache_dir: root for snapshots (adapter default when empty)
    """
    commit: str = ""
    force: bool = False
    cache_dir: str = ""


@dataclass
class FetchResult:
    """Snapshot descriptor: local path, resolved commit, commit timestamp."""
    repo_path: str
    commit: str
    timestamp: datetime


@dataclass(frozen=True)
class AdapterMetadata:
    """Static description of an adapter, used for listings and logging."""
    name: str
    source_category: SourceCategory
    confidence: ConfidenceLevel
    extraction_method: ExtractionMethod
    repo_url: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "source_category": self.source_category.value,
            "confidence": self.confidence.value,
            "extraction_method": self.extraction_method.value,
            "repo_url": self.repo_url,
        }
