"""
cAdvisor scanner.

Recognises containerMetric{...} / machineMetric{...} composite literals,
including untyped elements of a []containerMetric{...} slice, that
carry name:, help:, valueType: and extraLabels: fields.
"""

import re
from typing import Optional

from domain.models import InstrumentType, RawMetric
from extractors.source_scan.brackets import GO_RULES, find_closing, iter_code, split_arguments
from extractors.source_scan.prometheus_go import SLICE_LITERAL, labels_to_attributes, parse_string_list
from extractors.source_scan.scanner import SourceScanner, string_literal_value


TYPED_PREFIX = re.compile(r'(?:containerMetric|machineMetric)\s*$')
KEY_VALUE = re.compile(r'^(\w+)\s*:\s*(.*)$', re.S)


class CadvisorScanner(SourceScanner):
    """Scanner for cAdvisor's metric table literals."""

    language = "go"

    def scan(self, content: str) -> list[RawMetric]:
        metrics = []
        for index, char in iter_code(content, 0, GO_RULES):
            if char != "{":
                continue
            preceding = content[max(0, index - 40):index].rstrip()
            typed = bool(TYPED_PREFIX.search(preceding))
            if not typed and not preceding.endswith((",", "{")):
                continue

            end = find_closing(content, index, GO_RULES, "{", "}")
            if end is None:
                continue
            metric = self._parse_literal(content[index + 1:end - 1], typed)
            if metric is not None:
                metrics.append(metric)
        return metrics

    def _parse_literal(self, body: str, typed: bool) -> Optional[RawMetric]:
        fields = {}
        for element in split_arguments(body, GO_RULES):
            match = KEY_VALUE.match(element)
            if match:
                fields[match.group(1)] = match.group(2).strip()

        if "name" not in fields or not (typed or "valueType" in fields):
            return None
        name = string_literal_value(fields["name"])
        if not name:
            return None

        value_type = re.sub(r"\s+", "", fields.get("valueType", ""))
        instrument = (
            InstrumentType.COUNTER
            if value_type == "prometheus.CounterValue"
            else InstrumentType.GAUGE
        )

        labels = []
        labels_literal = SLICE_LITERAL.match(fields.get("extraLabels", ""))
        if labels_literal:
            labels = parse_string_list(labels_literal.group(1))

        return RawMetric(
            name=name,
            instrument_type=instrument,
            description=string_literal_value(fields.get("help", "")) or "",
            attributes=labels_to_attributes(labels),
        )
