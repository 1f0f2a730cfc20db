"""
Enricher Package - Semantic-conventions classification of metrics.
"""

from enricher.semconv import (
    SemconvEnricher,
    SemconvRegistry,
    load_registry,
    load_registry_from_url,
)


__all__ = [
    "SemconvEnricher",
    "SemconvRegistry",
    "load_registry",
    "load_registry_from_url",
]
