"""
Coding-agent telemetry scanners.

- CodexNamesScanner: the Rust names table of the Codex CLI
  (pub const X: &str = "codex.turn.duration_ms";). Names carry no
  instrument information, so a _ms suffix means histogram in ms and
  anything else a counter.
- GeminiTelemetryScanner: meter.createCounter / meter.createHistogram
  calls of the Gemini CLI with a literal name, description and unit
  read from the options object that follows it.
"""

import re

from domain.models import InstrumentType, RawMetric
from extractors.source_scan.javascript import argument_list, object_properties, string_property
from extractors.source_scan.scanner import SourceScanner, string_literal_value


NAME_CONST = re.compile(r'pub\s+const\s+\w+:\s*&str\s*=\s*"([^"]+)"')
DURATION_SUFFIX = "_ms"

GEMINI_CREATE_CALL = re.compile(r'\bmeter\.create(Counter|Histogram)\s*\(')
DEFAULT_UNIT = "count"


def describe_name(name: str) -> str:
    """codex.tool.call_count -> "Tool Call Count"; single-segment names are returned as-is."""
    parts = name.split(".")
    if len(parts) < 2:
        return name
    words = " ".join(parts[1:]).replace("_", " ").split(" ")
    return " ".join(word.capitalize() for word in words)


class CodexNamesScanner(SourceScanner):

    language = "rust"

    def scan(self, content: str) -> list[RawMetric]:
        metrics = []
        for match in NAME_CONST.finditer(content):
            name = match.group(1)
            if name.endswith(DURATION_SUFFIX):
                instrument_type, unit = InstrumentType.HISTOGRAM, "ms"
            else:
                instrument_type, unit = InstrumentType.COUNTER, DEFAULT_UNIT
            metrics.append(RawMetric(
                name=name,
                instrument_type=instrument_type,
                description=describe_name(name),
                unit=unit,
            ))
        return metrics


class GeminiTelemetryScanner(SourceScanner):

    language = "typescript"

    def scan(self, content: str) -> list[RawMetric]:
        metrics = []
        for match in GEMINI_CREATE_CALL.finditer(content):
            args = argument_list(content, match.end() - 1)
            if not args:
                continue
            name = string_literal_value(args[0])
            if not name:
                continue

            options = object_properties(args[1]) if len(args) > 1 else {}
            if match.group(1) == "Histogram":
                instrument_type = InstrumentType.HISTOGRAM
            else:
                instrument_type = InstrumentType.COUNTER
            metrics.append(RawMetric(
                name=name,
                instrument_type=instrument_type,
                description=string_property(options, "description"),
                unit=string_property(options, "unit") or DEFAULT_UNIT,
            ))
        return metrics
