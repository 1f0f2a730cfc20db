"""
Go OpenTelemetry scanner.

Recognises meter.{Int64,Float64}[Observable]{Counter,UpDownCounter,
Histogram,Gauge}("name", metric.WithUnit("u"), metric.WithDescription("d")).
"""

import re

from domain.models import RawMetric
from extractors.source_scan.brackets import GO_RULES, find_closing
from extractors.source_scan.inference import instrument_from_stem
from extractors.source_scan.scanner import (
    SourceScanner,
    collect_constants,
    match_group,
    resolve_reference,
)


INSTRUMENT_CALL = re.compile(
    r'(?:\w+\.)?[mM]eter\s*\.\s*'
    r'((?:Int64|Float64)(?:Observable)?(?:Counter|UpDownCounter|Histogram|Gauge))'
    r'\s*\(\s*(?:"([^"]+)"|([A-Za-z_][\w.]*))'
)
DESCRIPTION = re.compile(r'metric\.WithDescription\s*\(\s*"([^"]+)"')
UNIT = re.compile(r'metric\.WithUnit\s*\(\s*"([^"]+)"')
STRING_CONST = re.compile(r'\b(\w+)(?:\s+string)?\s*=\s*"([^"]+)"')

# Bound for calls whose closing paren cannot be found.
FALLBACK_WINDOW = 500


class GoOtelScanner(SourceScanner):
    """Scanner for go.opentelemetry.io/otel/metric instrument constructors."""

    language = "go"

    def scan(self, content: str) -> list[RawMetric]:
        constants = collect_constants(STRING_CONST, content)
        metrics = []
        for match in INSTRUMENT_CALL.finditer(content):
            name = match.group(2) or resolve_reference(match.group(3) or "", constants)
            if not name:
                continue

            open_paren = content.index("(", match.start(1))
            end = find_closing(content, open_paren, GO_RULES)
            if end is None:
                end = min(match.end() + FALLBACK_WINDOW, len(content))
            call = content[match.start():end]

            metrics.append(RawMetric(
                name=name,
                instrument_type=instrument_from_stem(match.group(1)),
                description=match_group(DESCRIPTION, call),
                unit=match_group(UNIT, call),
            ))
        return metrics
