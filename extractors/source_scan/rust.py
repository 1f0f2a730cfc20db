"""
Rust OpenTelemetry scanner.

Recognises meter.{u64,i64,f64}_[observable_]{counter,up_down_counter,
histogram,gauge}(name) builder chains with .with_description("d") and
.with_unit("u"). Names may be literals (optionally wrapped in Cow::from)
or `const NAME: &str = "..."` constants declared in the same file;
unresolved constants are skipped.
"""

import re
from typing import Optional

from domain.models import RawMetric
from extractors.source_scan.brackets import RUST_RULES, iter_code
from extractors.source_scan.inference import instrument_from_stem
from extractors.source_scan.scanner import SourceScanner, collect_constants, match_group


INSTRUMENT_CALL = re.compile(
    r'(?:\w+\.)?meter\s*\.\s*'
    r'([uif]64_(?:observable_)?(?:counter|up_down_counter|histogram|gauge))'
    r'\s*\(\s*(?:Cow::from\()?(?:"([^"]+)"|([A-Z_][A-Z0-9_]*))\)?'
)
STR_CONST = re.compile(r'const\s+([A-Z_][A-Z0-9_]*)\s*:\s*&(?:\'static\s+)?str\s*=\s*"([^"]+)"')
DESCRIPTION = re.compile(r'\.with_description\s*\(\s*"([^"]+)"')
UNIT = re.compile(r'\.with_unit\s*\(\s*"([^"]+)"')

CHAIN_WINDOW = 500


def find_chain_end(content: str, start: int) -> int:
    """
    End of the builder chain starting at start.

    The chain ends after .build(), or before a ';' or a following
    let/const statement. Bounded to CHAIN_WINDOW characters.
    """
    limit = min(start + CHAIN_WINDOW, len(content))
    for index, char in iter_code(content, start, RUST_RULES):
        if index >= limit:
            break
        if content.startswith(".build()", index):
            return index + len(".build()")
        if char == ";":
            return index
        if content.startswith(("let ", "const "), index) and _at_word_start(content, index):
            return index
    return limit


def _at_word_start(content: str, index: int) -> bool:
    return index == 0 or not (content[index - 1].isalnum() or content[index - 1] == "_")


class RustScanner(SourceScanner):
    """Scanner for opentelemetry-rust meter builders."""

    language = "rust"

    def scan(self, content: str) -> list[RawMetric]:
        constants = collect_constants(STR_CONST, content)
        metrics = []
        for match in INSTRUMENT_CALL.finditer(content):
            name = self._metric_name(match, constants)
            if not name:
                continue

            chain = content[match.start():find_chain_end(content, match.end())]
            metrics.append(RawMetric(
                name=name,
                instrument_type=instrument_from_stem(match.group(1)),
                description=match_group(DESCRIPTION, chain).strip(),
                unit=match_group(UNIT, chain).strip(),
            ))
        return metrics

    @staticmethod
    def _metric_name(match: re.Match, constants: dict[str, str]) -> Optional[str]:
        if match.group(2) is not None:
            return match.group(2)
        return constants.get(match.group(3))
