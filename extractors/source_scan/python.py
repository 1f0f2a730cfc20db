"""
Python OpenTelemetry scanner.

Recognises meter.create_{counter,up_down_counter,histogram,gauge,
observable_*}(...) with keyword arguments (name=, unit=, description=)
or positional ones (name, unit, description). Names may be string
literals or dotted constant references such as Meters.LLM_TOKEN_USAGE,
resolved against a semconv constants table or declarations in the
same file.
"""

import re
from typing import Optional

from domain.models import RawMetric
from extractors.source_scan.brackets import PYTHON_RULES, find_closing, split_arguments
from extractors.source_scan.inference import instrument_from_stem
from extractors.source_scan.scanner import (
    SourceScanner,
    collect_constants,
    resolve_reference,
    string_literal_value,
)


CREATE_CALL = re.compile(r'(?:\bmeter|self\._meter|self\.meter)\.(create_\w+)\s*\(')
MODULE_CONSTANT = re.compile(r'^\s*([A-Za-z_]\w*)\s*(?::\s*str)?\s*=\s*["\']([^"\']+)["\']', re.M)
KEYWORD_ARGUMENT = re.compile(r"^(\w+)\s*=(?!=)(.*)$", re.S)
DOTTED_REFERENCE = re.compile(r'^[A-Za-z_]\w*(?:\.\w+)*$')

INSTRUMENT_METHODS = frozenset({
    "create_counter",
    "create_up_down_counter",
    "create_histogram",
    "create_gauge",
    "create_observable_counter",
    "create_observable_up_down_counter",
    "create_observable_gauge",
})


def load_python_constants(content: str) -> dict[str, str]:
    """NAME = "value" assignments at any indentation (module or class level)."""
    return collect_constants(MODULE_CONSTANT, content)


class PythonScanner(SourceScanner):
    """
    Scanner for opentelemetry-api meter calls in Python sources.

    Args:
        constants: Shared constants table consulted before file-local
            declarations (e.g. a semconv_ai module)
    """

    language = "python"

    def __init__(self, constants: Optional[dict[str, str]] = None) -> None:
        self._constants = dict(constants or {})

    def scan(self, content: str) -> list[RawMetric]:
        local_constants = None
        metrics = []
        for match in CREATE_CALL.finditer(content):
            method = match.group(1)
            if method not in INSTRUMENT_METHODS:
                continue

            open_paren = match.end() - 1
            end = find_closing(content, open_paren, PYTHON_RULES)
            if end is None:
                continue
            args = split_arguments(content[open_paren + 1:end - 1], PYTHON_RULES)

            if local_constants is None:
                local_constants = load_python_constants(content)
            name, unit, description = self._read_arguments(args, local_constants)
            if not name:
                continue

            metrics.append(RawMetric(
                name=name,
                instrument_type=instrument_from_stem(method),
                description=description,
                unit=unit,
            ))
        return metrics

    def _resolve(self, reference: str, local_constants: dict[str, str]) -> Optional[str]:
        return resolve_reference(reference, self._constants) or resolve_reference(
            reference, local_constants
        )

    def _name_value(self, expr: str, local_constants: dict[str, str]) -> str:
        literal = string_literal_value(expr)
        if literal is not None:
            return literal
        if DOTTED_REFERENCE.match(expr):
            return self._resolve(expr, local_constants) or ""
        return ""

    def _read_arguments(
        self,
        args: list[str],
        local_constants: dict[str, str],
    ) -> tuple[str, str, str]:
        positional: list[str] = []
        keywords: dict[str, str] = {}
        for arg in args:
            keyword = KEYWORD_ARGUMENT.match(arg)
            if keyword:
                keywords[keyword.group(1)] = keyword.group(2).strip()
            elif not keywords:
                positional.append(arg)

        def argument(index: int, keyword: str) -> str:
            if keyword in keywords:
                return keywords[keyword]
            return positional[index] if index < len(positional) else ""

        name = self._name_value(argument(0, "name"), local_constants)
        if not name:
            return "", "", ""
        unit = string_literal_value(argument(1, "unit")) or ""
        description = string_literal_value(argument(2, "description")) or ""
        return name, unit, description
