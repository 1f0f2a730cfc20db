"""
Metadata Parser - Reads collector component manifests (metadata.yaml).

Document shape:

    type: mysql
    status:
      class: receiver
      stability: {beta: [metrics]}
      codeowners: {active: [...]}
    attributes:
      buffer_pool_data:
        description: The status of buffer pool data.
        type: string
        enum: [dirty, clean]
    metrics:
      mysql.buffer_pool.pages:
        enabled: true
        description: The number of pages in the InnoDB buffer pool.
        unit: "{pages}"
        sum: {value_type: int, monotonic: false}
        attributes: [buffer_pool_data]

Instrument mapping: sum+monotonic -> counter, sum -> up-down-counter,
gauge -> gauge, histogram -> histogram, nothing -> gauge.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from core.exceptions import ParseError
from domain.models import Attribute, InstrumentType, RawMetric


# ============================================================
# DOCUMENT MODEL
# ============================================================

@dataclass
class AttributeDefinition:
    description: str = ""
    type: str = ""
    enum: list[str] = field(default_factory=list)


@dataclass
class StatusDefinition:
    class_: str = ""
    stability: dict[str, list[str]] = field(default_factory=dict)
    codeowners: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class MetricDefinition:
    """One entry of the metrics mapping."""
    enabled: bool = False
    description: str = ""
    unit: str = ""
    sum: Optional[dict[str, Any]] = None
    gauge: Optional[dict[str, Any]] = None
    histogram: Optional[dict[str, Any]] = None
    attributes: list[str] = field(default_factory=list)

    @property
    def instrument_type(self) -> InstrumentType:
        if self.sum is not None:
            if self.sum.get("monotonic"):
                return InstrumentType.COUNTER
            return InstrumentType.UP_DOWN_COUNTER
        if self.gauge is not None:
            return InstrumentType.GAUGE
        if self.histogram is not None:
            return InstrumentType.HISTOGRAM
        return InstrumentType.GAUGE

    @property
    def value_type(self) -> str:
        for definition in (self.sum, self.gauge, self.histogram):
            if definition is not None:
                return str(definition.get("value_type", ""))
        return ""


@dataclass
class Metadata:
    """Parsed metadata.yaml document."""
    type: str = ""
    status: StatusDefinition = field(default_factory=StatusDefinition)
    attributes: dict[str, AttributeDefinition] = field(default_factory=dict)
    metrics: dict[str, MetricDefinition] = field(default_factory=dict)

    def resolve_attributes(self, names: list[str]) -> list[Attribute]:
        """Join attribute names against the attribute dictionary; unknown names stay name-only."""
        resolved = []
        for name in names:
            definition = self.attributes.get(name)
            if definition is None:
                resolved.append(Attribute(name=name))
                continue
            resolved.append(Attribute(
                name=name,
                type=definition.type,
                description=definition.description,
                enum=list(definition.enum),
            ))
        return resolved

    def to_raw_metrics(self) -> list[RawMetric]:
        """One RawMetric per metrics entry, in document order."""
        return [
            RawMetric(
                name=name,
                instrument_type=definition.instrument_type,
                description=definition.description,
                unit=definition.unit,
                attributes=self.resolve_attributes(definition.attributes),
                enabled_by_default=definition.enabled,
            )
            for name, definition in self.metrics.items()
        ]


# ============================================================
# PARSER
# ============================================================

class MetadataParser:
    """YAML -> Metadata. Empty documents parse to an empty Metadata."""

    def parse(self, content: Union[str, bytes]) -> Metadata:
        if not content or not content.strip():
            return Metadata()
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ParseError("failed to parse YAML", original_error=e)

        if data is None:
            return Metadata()
        if not isinstance(data, dict):
            raise ParseError(f"expected a mapping at document root, got {type(data).__name__}")
        return self._build(data)

    def parse_file(self, path: Union[str, Path]) -> Metadata:
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            raise ParseError("failed to read file", file_path=str(path), original_error=e)
        try:
            return self.parse(content)
        except ParseError as e:
            e.file_path = str(path)
            e.context["file_path"] = str(path)
            raise

    def _build(self, data: dict[str, Any]) -> Metadata:
        status = _mapping(data.get("status"))
        metadata = Metadata(
            type=str(data.get("type") or ""),
            status=StatusDefinition(
                class_=str(status.get("class") or ""),
                stability={k: _string_list(v) for k, v in _mapping(status.get("stability")).items()},
                codeowners={k: _string_list(v) for k, v in _mapping(status.get("codeowners")).items()},
            ),
        )

        for name, spec in _mapping(data.get("attributes")).items():
            spec = _mapping(spec)
            metadata.attributes[str(name)] = AttributeDefinition(
                description=str(spec.get("description") or ""),
                type=str(spec.get("type") or ""),
                enum=_string_list(spec.get("enum")),
            )

        for name, spec in _mapping(data.get("metrics")).items():
            spec = _mapping(spec)
            metadata.metrics[str(name)] = MetricDefinition(
                enabled=bool(spec.get("enabled", False)),
                description=str(spec.get("description") or ""),
                unit=str(spec.get("unit") or ""),
                sum=_optional_mapping(spec, "sum"),
                gauge=_optional_mapping(spec, "gauge"),
                histogram=_optional_mapping(spec, "histogram"),
                attributes=_string_list(spec.get("attributes")),
            )
        return metadata


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_mapping(spec: dict[str, Any], key: str) -> Optional[dict[str, Any]]:
    if key not in spec:
        return None
    return _mapping(spec[key])


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]
