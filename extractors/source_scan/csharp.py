"""
C# System.Diagnostics.Metrics scanner.

Recognises meter.Create[Observable]{Counter,UpDownCounter,Histogram,Gauge}[<T>](
name | CONSTANT, unit: "u", description: "d"). Positional unit and
description arguments follow the Meter API order (name, unit, description).
"""

import re

from domain.models import RawMetric
from extractors.source_scan.brackets import CSHARP_RULES, find_closing, split_arguments
from extractors.source_scan.inference import instrument_from_stem
from extractors.source_scan.scanner import (
    SourceScanner,
    collect_constants,
    match_group,
    resolve_reference,
    string_literal_value,
)


INSTRUMENT_CALL = re.compile(
    r'(?:\w*[mM]eter(?:Instance)?!?|this)\s*\.\s*'
    r'(Create(?:Observable)?(?:Counter|UpDownCounter|Histogram|Gauge))'
    r'(?:<[^>]+>)?\s*\(\s*(?:name:\s*)?(?:"([^"]+)"|([A-Za-z_][\w.]*))'
)
DESCRIPTION = re.compile(r'description:\s*"([^"]+)"')
UNIT = re.compile(r'unit:\s*"([^"]+)"')
STRING_CONST = re.compile(r'(?:const|static\s+readonly)\s+string\s+(\w+)\s*=\s*"([^"]+)"')
NAMED_ARGUMENT = re.compile(r'^\w+\s*:')

FALLBACK_WINDOW = 500


class CSharpScanner(SourceScanner):
    """Scanner for .NET Meter instrument factories."""

    language = "csharp"

    def scan(self, content: str) -> list[RawMetric]:
        constants = collect_constants(STRING_CONST, content)
        metrics = []
        for match in INSTRUMENT_CALL.finditer(content):
            name = match.group(2)
            if name is None:
                name = resolve_reference(match.group(3), constants)
            if not name:
                continue

            open_paren = content.index("(", match.end(1))
            end = find_closing(content, open_paren, CSHARP_RULES)
            if end is None:
                end = min(match.end() + FALLBACK_WINDOW, len(content))
            call = content[match.start():end]
            args = split_arguments(content[open_paren + 1:end - 1], CSHARP_RULES)

            unit = match_group(UNIT, call).strip()
            description = match_group(DESCRIPTION, call).strip()
            positional = [a for a in args[1:3] if not NAMED_ARGUMENT.match(a)]
            if not unit and len(positional) >= 1:
                unit = string_literal_value(positional[0]) or ""
            if not description and len(positional) >= 2:
                description = string_literal_value(positional[1]) or ""

            metrics.append(RawMetric(
                name=name,
                instrument_type=instrument_from_stem(match.group(1)),
                description=description,
                unit=unit,
            ))
        return metrics
