"""
Semantic-Conventions Model Parser.

Reads metric groups from the semantic-conventions `model/` tree:

    groups:
      - id: metric.http.server.request.duration
        type: metric
        metric_name: http.server.request.duration
        brief: "Duration of HTTP server requests."
        instrument: histogram
        unit: "s"
        stability: stable
        attributes:
          - ref: http.request.method
            requirement_level: required
          - ref: error.type
            requirement_level:
              conditionally_required: If request has ended with an error.

Groups of any other type are ignored.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import yaml

from core.exceptions import ParseError
from domain.models import Attribute, InstrumentType, RawMetric


logger = logging.getLogger(__name__)


METRICS_FILENAME = "metrics.yaml"
ROOT_COMPONENT = "general"

INSTRUMENTS = {
    "counter": InstrumentType.COUNTER,
    "updowncounter": InstrumentType.UP_DOWN_COUNTER,
    "gauge": InstrumentType.GAUGE,
    "histogram": InstrumentType.HISTOGRAM,
}


@dataclass
class AttributeRef:
    ref: str
    requirement_level: str = ""


@dataclass
class SemconvMetricDefinition:
    """One `type: metric` group."""
    name: str
    brief: str = ""
    instrument: str = ""
    unit: str = ""
    stability: str = ""
    attributes: list[AttributeRef] = field(default_factory=list)

    @property
    def instrument_type(self) -> InstrumentType:
        return INSTRUMENTS.get(self.instrument, InstrumentType.GAUGE)

    def to_raw_metric(self) -> RawMetric:
        return RawMetric(
            name=self.name,
            instrument_type=self.instrument_type,
            description=self.brief,
            unit=self.unit,
            attributes=[
                Attribute(
                    name=a.ref,
                    type="string",
                    required=a.requirement_level == "required",
                )
                for a in self.attributes
            ],
        )


def requirement_level(value: Any) -> str:
    """requirement_level is either a plain string or a single-key mapping."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and value:
        return str(next(iter(value)))
    return ""


def parse_semconv_metrics(content: Union[str, bytes]) -> list[SemconvMetricDefinition]:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ParseError("failed to parse semconv YAML", original_error=e)
    if not isinstance(data, dict):
        return []

    definitions = []
    for group in data.get("groups") or []:
        if not isinstance(group, dict) or group.get("type") != "metric":
            continue
        definitions.append(SemconvMetricDefinition(
            name=str(group.get("metric_name") or ""),
            brief=str(group.get("brief") or "").strip(),
            instrument=str(group.get("instrument") or ""),
            unit=str(group.get("unit") or ""),
            stability=str(group.get("stability") or ""),
            attributes=[
                AttributeRef(
                    ref=str(attr.get("ref") or ""),
                    requirement_level=requirement_level(attr.get("requirement_level")),
                )
                for attr in group.get("attributes") or []
                if isinstance(attr, dict) and attr.get("ref")
            ],
        ))
    return definitions


def parse_semconv_file(path: Union[str, Path]) -> list[SemconvMetricDefinition]:
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        raise ParseError("failed to read file", file_path=str(path), original_error=e)
    return parse_semconv_metrics(content)


def component_name_for(file_path: Path, model_dir: Path) -> str:
    """Model sub-directory joined with '.', 'general' at the model root."""
    parent = file_path.parent.relative_to(model_dir)
    if not parent.parts:
        return ROOT_COMPONENT
    return ".".join(parent.parts)


def find_metrics_files(model_dir: Union[str, Path]) -> list[Path]:
    return sorted(Path(model_dir).rglob(METRICS_FILENAME))


def load_model_dir(model_dir: Union[str, Path]) -> list[tuple[Path, SemconvMetricDefinition]]:
    """
    Every metric definition under a model tree, paired with its file.

    Unparseable files are logged and skipped.
    """
    model_dir = Path(model_dir)
    found = []
    for path in find_metrics_files(model_dir):
        try:
            definitions = parse_semconv_file(path)
        except ParseError as e:
            logger.debug(f"[semconv] Skipping {path}: {e}")
            continue
        found.extend((path, d) for d in definitions if d.name)
    return found
