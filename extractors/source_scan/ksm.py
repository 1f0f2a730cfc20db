"""
kube-state-metrics scanner.

Recognises generator.NewFamilyGeneratorWithStability("name", "help",
metric.Gauge, ...). The instrument type is the third argument.
"""

import re

from domain.models import InstrumentType, RawMetric
from extractors.source_scan.brackets import GO_RULES, call_arguments, split_arguments
from extractors.source_scan.scanner import SourceScanner, string_literal_value


FAMILY_GENERATOR = re.compile(r'\bgenerator\s*\.\s*NewFamilyGeneratorWithStability\s*\(')

METRIC_TYPES = {
    "metric.Counter": InstrumentType.COUNTER,
    "metric.Gauge": InstrumentType.GAUGE,
    "metric.Histogram": InstrumentType.HISTOGRAM,
    "metric.Summary": InstrumentType.SUMMARY,
}


class KsmScanner(SourceScanner):
    """Scanner for kube-state-metrics family generators."""

    language = "go"

    def scan(self, content: str) -> list[RawMetric]:
        metrics = []
        for match in FAMILY_GENERATOR.finditer(content):
            args_text = call_arguments(content, match.end() - 1, GO_RULES)
            if args_text is None:
                continue
            args = split_arguments(args_text, GO_RULES)
            if len(args) < 3:
                continue

            name = string_literal_value(args[0])
            if not name:
                continue
            help_text = string_literal_value(args[1]) or ""
            metric_type = re.sub(r"\s+", "", args[2])

            metrics.append(RawMetric(
                name=name,
                instrument_type=METRIC_TYPES.get(metric_type, InstrumentType.GAUGE),
                description=help_text,
            ))
        return metrics
