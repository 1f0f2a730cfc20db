"""
Prometheus client_golang scanner.

Recognises prometheus.NewDesc(name, help, labels, constLabels) where the
name is a literal, a string constant, a concatenation of those, or
prometheus.BuildFQName(namespace, subsystem, name). Labels come from
[]string{...} literals or from slice variables declared in the file.
"""

import re
from typing import Optional

from domain.models import Attribute, RawMetric
from extractors.source_scan.brackets import GO_RULES, call_arguments, split_arguments
from extractors.source_scan.inference import infer_prometheus_instrument
from extractors.source_scan.scanner import (
    SourceScanner,
    resolve_reference,
    string_literal_value,
)


NEW_DESC = re.compile(r'\bprometheus\s*\.\s*NewDesc\s*\(')
BUILD_FQ_NAME = re.compile(r'^prometheus\s*\.\s*BuildFQName\s*\(', re.S)
SINGLE_DECL = re.compile(r'\b(?:const|var)\s+(\w+)(?:\s+string)?\s*=\s*(?:"([^"]*)"|`([^`]*)`)')
DECL_BLOCK = re.compile(r'\b(?:const|var)\s*\(([^)]*)\)', re.S)
BLOCK_ENTRY = re.compile(r'^\s*(\w+)(?:\s+string)?\s*=\s*(?:"([^"]*)"|`([^`]*)`)', re.M)
STRING_SLICE = re.compile(r'\b(\w+)\s*(?::=|=)\s*\[\]string\s*\{([^}]*)\}', re.S)
SLICE_LITERAL = re.compile(r'^\[\]string\s*\{(.*)\}$', re.S)
IDENTIFIER = re.compile(r'^[A-Za-z_][\w.]*$')


def go_string_constants(content: str) -> dict[str, str]:
    """const/var string declarations, single-line and grouped."""
    constants: dict[str, str] = {}
    for match in SINGLE_DECL.finditer(content):
        constants[match.group(1)] = _first(match.group(2), match.group(3))
    for block in DECL_BLOCK.finditer(content):
        for entry in BLOCK_ENTRY.finditer(block.group(1)):
            constants[entry.group(1)] = _first(entry.group(2), entry.group(3))
    return constants


def go_string_slices(content: str) -> dict[str, list[str]]:
    return {
        m.group(1): parse_string_list(m.group(2))
        for m in STRING_SLICE.finditer(content)
    }


def parse_string_list(body: str) -> list[str]:
    values = []
    for element in split_arguments(body, GO_RULES):
        value = string_literal_value(element)
        if value is not None:
            values.append(value)
    return values


def resolve_go_string(expr: str, constants: dict[str, str]) -> Optional[str]:
    """
    Resolve a Go string expression.

    Supports literals, constant references and '+' concatenation.
    Returns None when any part cannot be resolved.
    """
    expr = expr.strip()
    if not expr:
        return None
    literal = string_literal_value(expr)
    if literal is not None:
        return literal
    if IDENTIFIER.match(expr):
        return resolve_reference(expr, constants)
    if "+" in expr:
        parts = [resolve_go_string(p, constants) for p in _split_concat(expr)]
        if len(parts) > 1 and all(p is not None for p in parts):
            return "".join(parts)
    return None


def resolve_metric_name(expr: str, constants: dict[str, str]) -> Optional[str]:
    """Resolve a NewDesc name argument, including BuildFQName calls."""
    expr = expr.strip()
    fq = BUILD_FQ_NAME.match(expr)
    if fq:
        args = call_arguments(expr, fq.end() - 1, GO_RULES)
        if args is None:
            return None
        parts = [resolve_go_string(a, constants) or "" for a in split_arguments(args, GO_RULES)]
        name = "_".join(p for p in parts if p)
        return name or None
    return resolve_go_string(expr, constants)


def resolve_labels(expr: str, slices: dict[str, list[str]]) -> list[str]:
    expr = expr.strip()
    if not expr or expr == "nil":
        return []
    literal = SLICE_LITERAL.match(expr)
    if literal:
        return parse_string_list(literal.group(1))
    return list(slices.get(expr, []))


def labels_to_attributes(labels: list[str]) -> list[Attribute]:
    return [Attribute(name=label, type="string") for label in labels]


class PrometheusGoScanner(SourceScanner):
    """Scanner for prometheus.NewDesc metric descriptors."""

    language = "go"

    def scan(self, content: str) -> list[RawMetric]:
        constants = go_string_constants(content)
        slices = go_string_slices(content)
        metrics = []
        for match in NEW_DESC.finditer(content):
            args_text = call_arguments(content, match.end() - 1, GO_RULES)
            if args_text is None:
                continue
            args = split_arguments(args_text, GO_RULES)
            if not args:
                continue

            name = resolve_metric_name(args[0], constants)
            if not name:
                continue
            help_text = resolve_go_string(args[1], constants) if len(args) > 1 else None
            labels = resolve_labels(args[2], slices) if len(args) > 2 else []

            metrics.append(RawMetric(
                name=name,
                instrument_type=infer_prometheus_instrument(name),
                description=help_text or "",
                attributes=labels_to_attributes(labels),
            ))
        return metrics


def _first(*values: Optional[str]) -> str:
    for value in values:
        if value is not None:
            return value
    return ""


def _split_concat(expr: str) -> list[str]:
    parts = []
    current = []
    quote = ""
    for c in expr:
        if quote:
            current.append(c)
            if c == quote:
                quote = ""
            continue
        if c in '"`':
            quote = c
            current.append(c)
        elif c == "+":
            parts.append("".join(current))
            current = []
        else:
            current.append(c)
    parts.append("".join(current))
    return [p.strip() for p in parts]
