"""
LLM observability SDK adapters: OpenLLMetry and OpenLIT.

Both SDKs create their instruments with constants from a semantic
conventions module of their own, so the scanner is seeded with that
module's NAME = "value" table. Metrics are deduplicated by name across
the whole SDK.
"""

import logging
from pathlib import Path

from core.exceptions import ParseError
from domain.models import ConfidenceLevel, RawMetric, SourceCategory
from extractors.source_scan import PythonScanner
from extractors.source_scan.dedupe import by_name, deduplicate_metrics
from extractors.source_scan.python import load_python_constants
from metric_adapters.base import SourceScanAdapter, first_path_part, read_source
from metric_adapters.models import FetchResult


logger = logging.getLogger(__name__)

# opentelemetry.semconv._incubating.metrics.gen_ai_metrics
GEN_AI_METRIC_CONSTANTS = {
    "GEN_AI_SERVER_TIME_TO_FIRST_TOKEN": "gen_ai.server.time_to_first_token",
    "GEN_AI_CLIENT_TOKEN_USAGE": "gen_ai.client.token.usage",
    "GEN_AI_CLIENT_OPERATION_DURATION": "gen_ai.client.operation.duration",
}


class LlmSdkAdapter(SourceScanAdapter):
    """Base for Python LLM SDKs seeded with a semantic-conventions table."""

    source_category = SourceCategory.VENDOR
    confidence = ConfidenceLevel.DERIVED

    file_suffixes = (".py",)
    constants_file: str = ""
    """Path of the constants module, relative to scan_root."""

    def create_scanner(self, result: FetchResult, root: Path) -> PythonScanner:
        return PythonScanner(self.load_constants(root))

    def load_constants(self, root: Path) -> dict[str, str]:
        constants: dict[str, str] = {}
        path = root / self.constants_file
        if path.is_file():
            try:
                constants.update(load_python_constants(read_source(path)))
            except ParseError as e:
                logger.warning(f"[{self.name}] Cannot read constants module {path}: {e}")
        else:
            logger.warning(f"[{self.name}] Constants module {path} not found")
        return constants

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        return "/tests/" in file_path.as_posix() or file_path.name.endswith("_test.py")

    def finalize(self, metrics: list[RawMetric]) -> list[RawMetric]:
        return deduplicate_metrics(metrics, key=by_name)


OPENLLMETRY_PACKAGE_PREFIX = "opentelemetry-instrumentation-"
OPENLLMETRY_SEMCONV_PREFIX = "opentelemetry-semantic-conventions-"


class OpenLLMetryAdapter(LlmSdkAdapter):
    """
    traceloop/openllmetry instrumentation packages.

    opentelemetry-instrumentation-openai -> openai; the semantic
    conventions package is reported as semconv-ai.
    """

    name = "openllmetry"
    repo_url = "https://github.com/traceloop/openllmetry"
    scan_root = "packages"
    constants_file = "opentelemetry-semantic-conventions-ai/opentelemetry/semconv_ai/__init__.py"

    def load_constants(self, root: Path) -> dict[str, str]:
        constants = super().load_constants(root)
        constants.update(GEN_AI_METRIC_CONSTANTS)
        return constants

    def component_name_for(self, file_path: Path, root: Path) -> str:
        package = first_path_part(file_path, root)
        if package.startswith(OPENLLMETRY_PACKAGE_PREFIX):
            return package[len(OPENLLMETRY_PACKAGE_PREFIX):]
        if package.startswith(OPENLLMETRY_SEMCONV_PREFIX):
            return "semconv-ai"
        return file_path.parent.name


OPENLIT_METRICS_FILE = "otel/metrics.py"
OPENLIT_INSTRUMENTATION_DIR = "instrumentation"


class OpenLitAdapter(LlmSdkAdapter):
    """
    openlit Python SDK.

    The SDK-wide instruments in otel/metrics.py belong to the openlit
    component; per-integration instruments are named after their
    directory under instrumentation/.
    """

    name = "openlit"
    repo_url = "https://github.com/openlit/openlit"
    scan_root = "sdk/python/src/openlit"
    constants_file = "semcov/__init__.py"

    def collect_files(self, root: Path) -> list[Path]:
        files = []
        metrics_file = root / OPENLIT_METRICS_FILE
        if metrics_file.is_file():
            files.append(metrics_file)
        instrumentation_dir = root / OPENLIT_INSTRUMENTATION_DIR
        if instrumentation_dir.is_dir():
            files.extend(super().collect_files(instrumentation_dir))
        return files

    def component_name_for(self, file_path: Path, root: Path) -> str:
        if file_path == root / OPENLIT_METRICS_FILE:
            return "openlit"
        return first_path_part(file_path, root / OPENLIT_INSTRUMENTATION_DIR)
