"""
JavaScript / TypeScript OpenTelemetry scanners.

Two shapes are recognised:

1. Semconv modules exporting metric names:

       /** Total CPU seconds broken down by different states. */
       export const METRIC_SYSTEM_CPU_TIME = 'system.cpu.time' as const;

   The preceding JSDoc block becomes the description; instrument type
   and unit are inferred from the dotted name.

2. Instrument factory calls:

       this._meter.createObservableCounter(METRIC_SYSTEM_CPU_TIME, {
         description: 'Cpu time in seconds', unit: 's' });

   The name is a literal or a METRIC_* constant resolved from the file
   itself or a sibling semconv module.
"""

import re
from dataclasses import dataclass
from typing import Optional

from domain.models import RawMetric
from extractors.source_scan.brackets import JS_RULES, call_arguments, split_arguments
from extractors.source_scan.inference import (
    infer_dotted_instrument,
    infer_dotted_unit,
    instrument_from_stem,
)
from extractors.source_scan.scanner import SourceScanner, string_literal_value


METRIC_EXPORT = re.compile(
    r'export\s+const\s+(METRIC_\w+)\s*=\s*[\'"]([^\'"]+)[\'"]\s*as\s+const'
)
CREATE_CALL = re.compile(r'(?:this\._?meter|\bmeter)\.(create\w+)\s*\(')
OBJECT_PROPERTY = re.compile(r'^[\'"]?(\w+)[\'"]?\s*:(.*)$', re.S)

INSTRUMENT_METHODS = frozenset({
    "createCounter",
    "createUpDownCounter",
    "createHistogram",
    "createGauge",
    "createObservableCounter",
    "createObservableUpDownCounter",
    "createObservableGauge",
})


@dataclass
class SemconvExport:
    """One METRIC_* export of a semconv module."""
    constant: str
    name: str
    description: str = ""


def parse_semconv_exports(content: str) -> list[SemconvExport]:
    exports = []
    for match in METRIC_EXPORT.finditer(content):
        exports.append(SemconvExport(
            constant=match.group(1),
            name=match.group(2),
            description=preceding_jsdoc(content, match.start()),
        ))
    return exports


def metric_constants(content: str) -> dict[str, str]:
    return {m.group(1): m.group(2) for m in METRIC_EXPORT.finditer(content)}


def preceding_jsdoc(content: str, position: int) -> str:
    """
    Description text of the JSDoc block immediately before position.

    Only whitespace may separate the block from the declaration.
    Leading '*' and annotation lines (@example, @experimental...) are
    dropped and the remaining lines joined with single spaces.
    """
    before = content[:position]
    block_end = before.rfind("*/")
    if block_end == -1 or before[block_end + 2:].strip():
        return ""
    block_start = before.rfind("/**", 0, block_end)
    if block_start == -1:
        return ""

    parts = []
    for line in content[block_start + 3:block_end].splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        if not line or line.startswith("@"):
            continue
        parts.append(line)
    return " ".join(parts)


def semconv_metrics(content: str) -> list[RawMetric]:
    """RawMetrics for every export of a semconv module."""
    return [
        RawMetric(
            name=export.name,
            instrument_type=infer_dotted_instrument(export.name),
            description=export.description,
            unit=infer_dotted_unit(export.name),
        )
        for export in parse_semconv_exports(content)
    ]


class JavaScriptScanner(SourceScanner):
    """
    Scanner for meter.create* call sites.

    Args:
        constants: METRIC_* values visible to the file, typically from a
            sibling semconv module. Exports in the scanned file itself
            are always added.
    """

    language = "javascript"

    def __init__(self, constants: Optional[dict[str, str]] = None) -> None:
        self._constants = dict(constants or {})

    def scan(self, content: str) -> list[RawMetric]:
        constants = {**self._constants, **metric_constants(content)}
        metrics = []
        for match in CREATE_CALL.finditer(content):
            method = match.group(1)
            if method not in INSTRUMENT_METHODS:
                continue

            args = argument_list(content, match.end() - 1)
            if not args:
                continue
            name = self._metric_name(args[0], constants)
            if not name:
                continue

            options = object_properties(args[1]) if len(args) > 1 else {}
            metrics.append(RawMetric(
                name=name,
                instrument_type=instrument_from_stem(method),
                description=string_property(options, "description"),
                unit=string_property(options, "unit"),
            ))
        return metrics

    @staticmethod
    def _metric_name(expr: str, constants: dict[str, str]) -> str:
        literal = string_literal_value(expr)
        if literal is not None:
            return literal
        return constants.get(expr.strip(), "")


def argument_list(content: str, open_paren: int) -> Optional[list[str]]:
    """Top-level arguments of the call whose "(" is at open_paren; None when unbalanced."""
    args = call_arguments(content, open_paren, JS_RULES)
    if args is None:
        return None
    return split_arguments(args, JS_RULES)


def object_properties(expr: str) -> dict[str, str]:
    """Property expressions of an object literal ({ unit: 's', ... }); {} for anything else."""
    expr = expr.strip()
    if not (expr.startswith("{") and expr.endswith("}")):
        return {}
    properties = {}
    for part in split_arguments(expr[1:-1], JS_RULES):
        match = OBJECT_PROPERTY.match(part)
        if match:
            properties[match.group(1)] = match.group(2).strip()
    return properties


def string_property(properties: dict[str, str], key: str) -> str:
    return string_literal_value(properties.get(key, "")) or ""
