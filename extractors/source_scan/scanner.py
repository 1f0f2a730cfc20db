"""
Source Scanner - Common interface of the per-language metric scanners.

A scanner turns the text of one source file into RawMetrics carrying
name, instrument type, unit, description and attributes. Adapters
stamp component and location fields afterwards.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional, Pattern

from domain.models import RawMetric


class SourceScanner(ABC):
    """
    Abstract base for language scanners.

    Implementations must not raise on malformed input: call sites they
    cannot interpret are skipped. Constants tables are file-local
    unless a table is handed in at construction time.
    """

    language: str = ""

    @abstractmethod
    def scan(self, content: str) -> list[RawMetric]:
        """Return every metric definition recognised in content."""
        pass


# ============================================================
# SHARED REGEX HELPERS
# ============================================================

def match_group(pattern: Pattern[str], text: str, group: int = 1) -> str:
    """Return the first match's group, or empty string."""
    match = pattern.search(text)
    if match is None:
        return ""
    return match.group(group) or ""


def collect_constants(pattern: Pattern[str], content: str) -> dict[str, str]:
    """Build a name -> value map from a two-group declaration pattern."""
    return {m.group(1): m.group(2) for m in pattern.finditer(content)}


def resolve_reference(
    reference: str,
    constants: dict[str, str],
) -> Optional[str]:
    """
    Resolve a (possibly dotted) constant reference.

    Meters.HTTP_DURATION resolves through its last segment.
    """
    reference = reference.strip()
    if reference in constants:
        return constants[reference]
    last = reference.rsplit(".", 1)[-1]
    return constants.get(last)


_STRING_LITERAL = re.compile(r'^(?:"((?:[^"\\]|\\.)*)"|\'((?:[^\'\\]|\\.)*)\'|`([^`]*)`)$', re.S)


def string_literal_value(expr: str) -> Optional[str]:
    """Return the value of a quoted literal expression, None if expr is not one."""
    match = _STRING_LITERAL.match(expr.strip())
    if match is None:
        return None
    for group in match.groups():
        if group is not None:
            return group
    return ""
