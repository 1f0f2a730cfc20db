"""
OpenTelemetry language contrib adapters.

Each adapter scans one contrib repository for metric instrument
creation call sites:

- otel-go: opentelemetry-go-contrib, instrumentation/**/*.go
- otel-dotnet: opentelemetry-dotnet-contrib, src/**/*.cs
- otel-python: opentelemetry-python-contrib, instrumentation/**/*.py
- otel-js: opentelemetry-js-contrib, packages/**/*.ts
- otel-rust: opentelemetry-rust-contrib, **/*.rs
- otel-java: opentelemetry-java-instrumentation, instrumentation/**/*.java
  plus the semantic-convention helpers of instrumentation-api-incubator
"""

import asyncio
import logging
from pathlib import Path

from core.exceptions import ParseError
from extractors.source_scan import (
    CSharpScanner,
    GoOtelScanner,
    JavaScanner,
    JavaScriptScanner,
    PythonScanner,
    RustScanner,
)
from extractors.source_scan.javascript import metric_constants, semconv_metrics
from metric_adapters.base import SourceScanAdapter, first_path_part, read_source, require_dir
from metric_adapters.models import FetchResult, RawMetric


logger = logging.getLogger(__name__)


def strip_prefixes(value: str, prefixes: tuple[str, ...]) -> str:
    """Remove the first matching prefix."""
    for prefix in prefixes:
        if value.startswith(prefix):
            return value[len(prefix):]
    return value


# =============================================================================
# GO
# =============================================================================

class OtelGoAdapter(SourceScanAdapter):
    """opentelemetry-go-contrib instrumentation packages."""

    name = "otel-go"
    repo_url = "https://github.com/open-telemetry/opentelemetry-go-contrib"

    scan_root = "instrumentation"
    file_suffixes = (".go",)
    skip_dirs = frozenset({"test", "testdata", "vendor", "example", "examples", ".git"})

    def create_scanner(self, result: FetchResult, root: Path) -> GoOtelScanner:
        return GoOtelScanner()

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        return file_path.name.endswith("_test.go")

    def component_name_for(self, file_path: Path, root: Path) -> str:
        # Dotted directories keep their last segment: go.mongodb.org/... -> org
        component = first_path_part(file_path, root)
        if "." in component:
            component = component.rsplit(".", 1)[-1]
        return component.lower()


# =============================================================================
# .NET
# =============================================================================

DOTNET_PROJECT_PREFIXES = (
    "OpenTelemetry.Instrumentation.",
    "OpenTelemetry.Extensions.",
    "OpenTelemetry.ResourceDetectors.",
)


class OtelDotnetAdapter(SourceScanAdapter):
    """opentelemetry-dotnet-contrib projects."""

    name = "otel-dotnet"
    repo_url = "https://github.com/open-telemetry/opentelemetry-dotnet-contrib"

    scan_root = "src"
    file_suffixes = (".cs",)
    skip_dirs = frozenset({"test", "tests", "obj", "bin", ".git"})

    def create_scanner(self, result: FetchResult, root: Path) -> CSharpScanner:
        return CSharpScanner()

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        path = file_path.as_posix()
        return ".Tests" in path or ".Test." in path

    def component_name_for(self, file_path: Path, root: Path) -> str:
        project = first_path_part(file_path, root)
        return strip_prefixes(project, DOTNET_PROJECT_PREFIXES).lower()


# =============================================================================
# PYTHON
# =============================================================================

PYTHON_PACKAGE_PREFIX = "opentelemetry-instrumentation-"


class OtelPythonAdapter(SourceScanAdapter):
    """opentelemetry-python-contrib instrumentation packages."""

    name = "otel-python"
    repo_url = "https://github.com/open-telemetry/opentelemetry-python-contrib"

    scan_root = "instrumentation"
    file_suffixes = (".py",)

    def create_scanner(self, result: FetchResult, root: Path) -> PythonScanner:
        return PythonScanner()

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        return "/tests/" in file_path.as_posix() or file_path.name.endswith("_test.py")

    def component_name_for(self, file_path: Path, root: Path) -> str:
        package = first_path_part(file_path, root)
        if package.startswith(PYTHON_PACKAGE_PREFIX):
            return package[len(PYTHON_PACKAGE_PREFIX):]
        return file_path.parent.name


# =============================================================================
# JAVASCRIPT / TYPESCRIPT
# =============================================================================

SEMCONV_FILENAME = "semconv.ts"
JS_PACKAGE_PREFIXES = ("instrumentation-", "opentelemetry-")
JS_TEST_MARKERS = ("/test/", ".test.", ".spec.", "node_modules")


class OtelJsAdapter(SourceScanAdapter):
    """
    opentelemetry-js-contrib packages.

    Two sources per package:
    1. semconv.ts exports (METRIC_* constants with JSDoc descriptions)
    2. meter.create* call sites, whose METRIC_* references resolve
       through the sibling semconv.ts

    Call sites are collected before semconv exports so that, for the
    same (name, component), a call-site description is kept over the
    JSDoc text. Call sites lacking a description or unit take them from
    the semconv export of the same name.
    """

    name = "otel-js"
    repo_url = "https://github.com/open-telemetry/opentelemetry-js-contrib"

    scan_root = "packages"
    file_suffixes = (".ts",)

    def create_scanner(self, result: FetchResult, root: Path) -> JavaScriptScanner:
        return JavaScriptScanner()

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        path = file_path.as_posix()
        return any(marker in path for marker in JS_TEST_MARKERS)

    def component_name_for(self, file_path: Path, root: Path) -> str:
        try:
            parts = file_path.relative_to(root).parts
        except ValueError:
            return ""
        if not parts:
            return ""
        return strip_prefixes(parts[0], JS_PACKAGE_PREFIXES)

    async def extract(self, result: FetchResult) -> list[RawMetric]:
        root = self.resolve_root(result)
        require_dir(root, self.name)

        files = await asyncio.to_thread(self.collect_files, root)
        semconv_files = [f for f in files if f.name == SEMCONV_FILENAME]
        call_site_files = [f for f in files if f.name != SEMCONV_FILENAME]
        logger.debug(
            f"[{self.name}] Scanning {len(call_site_files)} sources and "
            f"{len(semconv_files)} semconv modules under {root}"
        )

        known = await asyncio.to_thread(self._semconv_index, semconv_files)

        metrics: list[RawMetric] = []
        for file_path in call_site_files:
            metrics.extend(
                await asyncio.to_thread(self._scan_call_sites, file_path, root, result, known)
            )
        for file_path in semconv_files:
            metrics.extend(
                await asyncio.to_thread(self._scan_semconv, file_path, root, result)
            )
        return self.finalize(metrics)

    def _semconv_index(self, semconv_files: list[Path]) -> dict[str, RawMetric]:
        index: dict[str, RawMetric] = {}
        for file_path in semconv_files:
            try:
                content = read_source(file_path)
            except ParseError as e:
                logger.debug(f"[{self.name}] Skipping unreadable semconv module {file_path}: {e}")
                continue
            for metric in semconv_metrics(content):
                index[metric.name] = metric
        return index

    def _scan_call_sites(
        self,
        file_path: Path,
        root: Path,
        result: FetchResult,
        known: dict[str, RawMetric],
    ) -> list[RawMetric]:
        component_name = self.component_name_for(file_path, root)
        if not component_name:
            return []
        try:
            content = read_source(file_path)
        except ParseError as e:
            logger.debug(f"[{self.name}] Skipping unparseable file {file_path}: {e}")
            return []

        constants: dict[str, str] = {}
        sibling = file_path.with_name(SEMCONV_FILENAME)
        if sibling.is_file():
            try:
                constants = metric_constants(read_source(sibling))
            except ParseError as e:
                logger.debug(f"[{self.name}] Ignoring unreadable {sibling}: {e}")

        found = JavaScriptScanner(constants).scan(content)
        for metric in found:
            semconv = known.get(metric.name)
            if semconv is None:
                continue
            if not metric.description:
                metric.description = semconv.description
            if not metric.unit:
                metric.unit = semconv.unit
        return self.stamp(found, file_path, result, component_name)

    def _scan_semconv(self, file_path: Path, root: Path, result: FetchResult) -> list[RawMetric]:
        component_name = self.component_name_for(file_path, root)
        if not component_name:
            return []
        try:
            content = read_source(file_path)
        except ParseError as e:
            logger.debug(f"[{self.name}] Skipping unparseable file {file_path}: {e}")
            return []
        return self.stamp(semconv_metrics(content), file_path, result, component_name)


# =============================================================================
# RUST
# =============================================================================

RUST_CRATE_PREFIXES = ("opentelemetry-instrumentation-", "opentelemetry-")


class OtelRustAdapter(SourceScanAdapter):
    """opentelemetry-rust-contrib crates."""

    name = "otel-rust"
    repo_url = "https://github.com/open-telemetry/opentelemetry-rust-contrib"

    file_suffixes = (".rs",)
    skip_dirs = frozenset({"target", "tests", "benches", ".git"})

    def create_scanner(self, result: FetchResult, root: Path) -> RustScanner:
        return RustScanner()

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        return file_path.name.endswith("_test.rs")

    def component_name_for(self, file_path: Path, root: Path) -> str:
        crate = first_path_part(file_path, root)
        return strip_prefixes(crate, RUST_CRATE_PREFIXES).lower()


# =============================================================================
# JAVA
# =============================================================================

JAVA_API_DIR = "instrumentation-api-incubator"
JAVA_API_DEFAULT_COMPONENT = "api"


class OtelJavaAdapter(SourceScanAdapter):
    """
    opentelemetry-java-instrumentation.

    Library instrumentations are named after their top-level directory
    (kafka/kafka-clients/... -> kafka). Helpers under
    instrumentation-api-incubator are named after the directory
    following "semconv" (.../semconv/db/... -> db-semconv).
    """

    name = "otel-java"
    repo_url = "https://github.com/open-telemetry/opentelemetry-java-instrumentation"

    scan_root = "instrumentation"
    file_suffixes = (".java",)

    def create_scanner(self, result: FetchResult, root: Path) -> JavaScanner:
        return JavaScanner()

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        path = file_path.as_posix()
        return "/test/" in path or "/jmh/" in path

    def component_name_for(self, file_path: Path, root: Path) -> str:
        if root.name == JAVA_API_DIR:
            return api_component_name(file_path)
        return first_path_part(file_path, root)

    async def extract(self, result: FetchResult) -> list[RawMetric]:
        root = self.resolve_root(result)
        require_dir(root, self.name)
        metrics = await self.scan_tree(result, root)

        api_root = Path(result.repo_path, JAVA_API_DIR)
        if api_root.is_dir():
            metrics.extend(await self.scan_tree(result, api_root))
        return self.finalize(metrics)


def api_component_name(file_path: Path) -> str:
    parts = file_path.parent.parts
    for i in range(len(parts) - 1, -1, -1):
        if parts[i] == "semconv" and i + 1 < len(parts):
            return f"{parts[i + 1]}-semconv"
    return JAVA_API_DEFAULT_COMPONENT
