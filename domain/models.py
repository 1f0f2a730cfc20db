"""
Canonical Metric Model - The normalized record persisted in the catalog.

Every upstream source, whatever its format, ends up as CanonicalMetric
records. Identity is content-derived so that re-extracting the same
(category, source, component, metric) tuple replaces the previous record.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from domain.identity import generate_metric_id


E = TypeVar("E", bound=Enum)


# ============================================================
# ENUMERATIONS
# ============================================================

class InstrumentType(str, Enum):
    """Kind of metric instrument."""
    COUNTER = "counter"
    UP_DOWN_COUNTER = "up-down-counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"


class ComponentType(str, Enum):
    """Sub-unit kind within an upstream source."""
    RECEIVER = "receiver"
    EXPORTER = "exporter"
    PROCESSOR = "processor"
    EXTENSION = "extension"
    CONNECTOR = "connector"
    INSTRUMENTATION = "instrumentation"
    PLATFORM = "platform"


class SourceCategory(str, Enum):
    """Family an upstream source belongs to."""
    OTEL = "otel"
    PROMETHEUS = "prometheus"
    KUBERNETES = "kubernetes"
    CLOUD = "cloud"
    VENDOR = "vendor"
    CODING_AGENT = "coding-agent"


class ExtractionMethod(str, Enum):
    """How metrics were recovered from the source."""
    METADATA = "metadata"
    AST = "ast"
    SCRAPE = "scrape"
    HYBRID = "hybrid"


class ConfidenceLevel(str, Enum):
    """Epistemic weight of the source."""
    AUTHORITATIVE = "authoritative"
    DERIVED = "derived"
    DOCUMENTED = "documented"
    VENDOR_CLAIMED = "vendor-claimed"


class SemconvMatch(str, Enum):
    """Outcome of classifying a metric against the semconv registry."""
    EXACT = "exact"
    PREFIX = "prefix"
    NONE = "none"


class RunStatus(str, Enum):
    """Lifecycle state of an extraction run."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


def parse_enum(enum_cls: Type[E], value: Any) -> Optional[E]:
    """Return the enum member for value, or None when value is outside the set."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


# ============================================================
# ATTRIBUTE
# ============================================================

@dataclass
class Attribute:
    """A dimension attached to a metric, in upstream declaration order."""
    name: str
    type: str = ""
    description: str = ""
    required: bool = False
    enum: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "required": self.required,
            "enum": list(self.enum),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Attribute":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            type=data.get("type") or "",
            description=data.get("description") or "",
            required=bool(data.get("required", False)),
            enum=[str(v) for v in data.get("enum") or []],
        )


# ============================================================
# RAW METRIC
# ============================================================

@dataclass
class RawMetric:
    """
    Metric definition as recovered from an upstream source.

    instrument_type and component_type hold the enum wire values
    (InstrumentType / ComponentType members are accepted as-is); they
    are validated when converted to a CanonicalMetric.
    """
    name: str
    instrument_type: str = InstrumentType.GAUGE.value
    description: str = ""
    unit: str = ""
    attributes: list[Attribute] = field(default_factory=list)
    enabled_by_default: bool = True
    component_type: str = ""
    component_name: str = ""
    source_location: str = ""
    """Absolute file path the metric was recovered from."""
    path: str = ""
    """Repository-relative file path."""

    def dedup_key(self) -> tuple[str, str]:
        return (self.name, self.component_name)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "instrument_type": str(getattr(self.instrument_type, "value", self.instrument_type)),
            "description": self.description,
            "unit": self.unit,
            "attributes": [a.to_dict() for a in self.attributes],
            "enabled_by_default": self.enabled_by_default,
            "component_type": str(getattr(self.component_type, "value", self.component_type)),
            "component_name": self.component_name,
            "source_location": self.source_location,
            "path": self.path,
        }


# ============================================================
# CANONICAL METRIC
# ============================================================

@dataclass
class CanonicalMetric:
    """
    Normalized metric record owned by the store.

    created_at/updated_at are assigned by the store and are excluded
    from equality so that a stored record compares equal to the record
    that was written.
    """
    metric_name: str
    instrument_type: InstrumentType
    component_type: ComponentType
    component_name: str
    source_category: SourceCategory
    source_name: str
    extraction_method: ExtractionMethod
    source_confidence: ConfidenceLevel
    id: str = ""
    description: str = ""
    unit: str = ""
    attributes: list[Attribute] = field(default_factory=list)
    enabled_by_default: bool = True
    source_location: str = ""
    repo_url: str = ""
    path: str = ""
    commit: str = ""
    extracted_at: Optional[datetime] = None
    semconv_match: SemconvMatch = SemconvMatch.NONE
    semconv_name: str = ""
    semconv_stability: str = ""
    created_at: Optional[datetime] = field(default=None, compare=False)
    updated_at: Optional[datetime] = field(default=None, compare=False)

    def compute_id(self) -> str:
        """Derive the identity from (category, source, component, metric)."""
        return generate_metric_id(
            _enum_value(self.source_category),
            self.source_name,
            self.component_name,
            self.metric_name,
        )

    def ensure_id(self) -> str:
        """Assign the derived identity and return it."""
        self.id = self.compute_id()
        return self.id

    def attribute_names(self) -> list[str]:
        return [a.name for a in self.attributes]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with enum values and ISO timestamps."""
        return {
            "id": self.id,
            "metric_name": self.metric_name,
            "instrument_type": _enum_value(self.instrument_type),
            "description": self.description,
            "unit": self.unit,
            "attributes": [a.to_dict() for a in self.attributes],
            "enabled_by_default": self.enabled_by_default,
            "component_type": _enum_value(self.component_type),
            "component_name": self.component_name,
            "source_category": _enum_value(self.source_category),
            "source_name": self.source_name,
            "source_location": self.source_location,
            "extraction_method": _enum_value(self.extraction_method),
            "source_confidence": _enum_value(self.source_confidence),
            "repo_url": self.repo_url,
            "path": self.path,
            "commit": self.commit,
            "extracted_at": _isoformat(self.extracted_at),
            "semconv_match": _enum_value(self.semconv_match),
            "semconv_name": self.semconv_name,
            "semconv_stability": self.semconv_stability,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CanonicalMetric":
        """Create from dictionary produced by to_dict()."""
        return cls(
            id=data.get("id", ""),
            metric_name=data["metric_name"],
            instrument_type=InstrumentType(data["instrument_type"]),
            description=data.get("description", ""),
            unit=data.get("unit", ""),
            attributes=[Attribute.from_dict(a) for a in data.get("attributes", [])],
            enabled_by_default=data.get("enabled_by_default", True),
            component_type=ComponentType(data["component_type"]),
            component_name=data["component_name"],
            source_category=SourceCategory(data["source_category"]),
            source_name=data["source_name"],
            source_location=data.get("source_location", ""),
            extraction_method=ExtractionMethod(data["extraction_method"]),
            source_confidence=ConfidenceLevel(data["source_confidence"]),
            repo_url=data.get("repo_url", ""),
            path=data.get("path", ""),
            commit=data.get("commit", ""),
            extracted_at=_parse_datetime(data.get("extracted_at")),
            semconv_match=SemconvMatch(data.get("semconv_match") or SemconvMatch.NONE.value),
            semconv_name=data.get("semconv_name", ""),
            semconv_stability=data.get("semconv_stability", ""),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


# ============================================================
# EXTRACTION RUN
# ============================================================

@dataclass
class ExtractionRun:
    """Audit record of one orchestrator invocation against one adapter."""
    id: str
    adapter_name: str
    started_at: datetime
    status: RunStatus = RunStatus.RUNNING
    commit: str = ""
    completed_at: Optional[datetime] = None
    metrics_count: int = 0
    error_message: str = ""

    def complete(self, metrics_count: int) -> None:
        """Move a running record to completed."""
        self.status = RunStatus.COMPLETED
        self.metrics_count = metrics_count
        self.completed_at = datetime.now(timezone.utc)

    def fail(self, error_message: str) -> None:
        """Move a running record to failed."""
        self.status = RunStatus.FAILED
        self.error_message = error_message
        self.completed_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "adapter_name": self.adapter_name,
            "commit": self.commit,
            "started_at": _isoformat(self.started_at),
            "completed_at": _isoformat(self.completed_at),
            "metrics_count": self.metrics_count,
            "status": self.status.value,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class SemconvEntry:
    """A well-known metric name from the semantic-conventions registry."""
    name: str
    stability: str = ""


# ============================================================
# HELPERS
# ============================================================

def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)
