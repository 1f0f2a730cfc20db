"""
Coding-agent telemetry adapters.

- codingagent-claude-code: documented metrics, bundled as a static catalog
- codingagent-codex: the Rust metric names table of the Codex CLI
- codingagent-gemini: meter.create* calls of the Gemini CLI telemetry package
"""

import asyncio
import logging
from pathlib import Path

from core.exceptions import AdapterErrorKind, ExtractError, ParseError
from domain.models import ComponentType, ConfidenceLevel, RawMetric, SourceCategory
from extractors.source_scan import CodexNamesScanner, GeminiTelemetryScanner
from metric_adapters.base import SourceScanAdapter, StaticCatalogAdapter, read_source, require_dir
from metric_adapters.models import FetchResult


logger = logging.getLogger(__name__)

CATALOG_DIR = Path(__file__).parent / "catalogs"


class ClaudeCodeAdapter(StaticCatalogAdapter):
    """Claude Code metrics as documented in the monitoring guide."""

    name = "codingagent-claude-code"
    source_category = SourceCategory.CODING_AGENT
    repo_url = "https://github.com/anthropics/claude-code-monitoring-guide"
    catalog_path = CATALOG_DIR / "claude_code.yaml"


class CodingAgentScanAdapter(SourceScanAdapter):
    """Base for coding-agent CLIs; every metric belongs to one platform component."""

    source_category = SourceCategory.CODING_AGENT
    confidence = ConfidenceLevel.AUTHORITATIVE
    component_type = ComponentType.PLATFORM

    recursive = False
    platform_name: str = ""

    def component_name_for(self, file_path: Path, root: Path) -> str:
        return self.platform_name


CODEX_NAMES_FILE = "names.rs"


class CodexAdapter(CodingAgentScanAdapter):
    """
    openai/codex CLI.

    Every metric name is a constant in codex-rs/otel/src/metrics/names.rs;
    that file is required.
    """

    name = "codingagent-codex"
    repo_url = "https://github.com/openai/codex"
    scan_root = "codex-rs/otel/src/metrics"
    platform_name = "codex"

    def create_scanner(self, result: FetchResult, root: Path) -> CodexNamesScanner:
        return CodexNamesScanner()

    async def extract(self, result: FetchResult) -> list[RawMetric]:
        root = self.resolve_root(result)
        require_dir(root, self.name)
        names_file = root / CODEX_NAMES_FILE
        try:
            content = await asyncio.to_thread(read_source, names_file)
        except ParseError as e:
            raise ExtractError(
                f"cannot read {names_file}",
                adapter_name=self.name,
                kind=AdapterErrorKind.IO_ERROR,
                original_error=e,
            ) from e

        found = CodexNamesScanner().scan(content)
        logger.debug(f"[{self.name}] Found {len(found)} metric names in {names_file}")
        return self.finalize(self.stamp(found, names_file, result, self.platform_name))


class GeminiCliAdapter(CodingAgentScanAdapter):
    """google-gemini/gemini-cli telemetry package (packages/core/src/telemetry/*.ts)."""

    name = "codingagent-gemini"
    repo_url = "https://github.com/google-gemini/gemini-cli"
    scan_root = "packages/core/src/telemetry"
    file_suffixes = (".ts",)
    platform_name = "gemini-cli"

    def create_scanner(self, result: FetchResult, root: Path) -> GeminiTelemetryScanner:
        return GeminiTelemetryScanner()

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        return file_path.name.endswith((".test.ts", ".spec.ts"))
