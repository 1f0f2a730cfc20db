"""
Java OpenTelemetry scanner.

Recognises meter.{counter,histogram,gauge,upDownCounter}Builder("name")
chains with .setDescription("d") and .setUnit("u"), ending at .build(),
.buildObserver() or .buildWithCallback(...).
"""

import re

from domain.models import RawMetric
from extractors.source_scan.brackets import JAVA_RULES, find_closing, iter_code
from extractors.source_scan.inference import instrument_from_stem
from extractors.source_scan.scanner import SourceScanner, match_group


BUILDER_CALL = re.compile(r'meter\s*\.\s*(counter|histogram|gauge|upDownCounter)Builder\s*\(\s*"([^"]+)"')
BUILD_CALL = re.compile(r'\.build(?:Observer|WithCallback)?\s*\(')
DESCRIPTION = re.compile(r'\.setDescription\s*\(\s*"([^"]+)"')
UNIT = re.compile(r'\.setUnit\s*\(\s*"([^"]+)"')


def find_chain_end(content: str, start: int, limit: int) -> int:
    """End of a builder chain: past the build call, else the first ';' outside strings."""
    build = BUILD_CALL.search(content, start, limit)
    if build:
        end = find_closing(content, build.end() - 1, JAVA_RULES)
        if end is not None:
            return end
    for index, char in iter_code(content, start, JAVA_RULES):
        if index >= limit:
            break
        if char == ";":
            return index
    return limit


class JavaScanner(SourceScanner):
    """Scanner for opentelemetry-java instrument builders."""

    language = "java"

    def scan(self, content: str) -> list[RawMetric]:
        matches = list(BUILDER_CALL.finditer(content))
        metrics = []
        for i, match in enumerate(matches):
            # A chain never extends into the next builder call.
            limit = matches[i + 1].start() if i + 1 < len(matches) else len(content)
            chain = content[match.start():find_chain_end(content, match.end(), limit)]
            metrics.append(RawMetric(
                name=match.group(2),
                instrument_type=instrument_from_stem(match.group(1)),
                description=match_group(DESCRIPTION, chain).strip(),
                unit=match_group(UNIT, chain).strip(),
            ))
        return metrics
