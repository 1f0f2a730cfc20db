"""
Base Metric Adapter - Abstract interface for all upstream metric sources.

All adapters MUST:
- Expose a stable name (used as the catalog source_name)
- Declare source category, confidence, extraction method and repo URL
- Fetch a snapshot, then extract raw metrics from it
- Never crash on malformed input: unparseable files are skipped
- Keep no state between calls
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import yaml

from core.config import get_config
from core.exceptions import (
    AdapterError,
    AdapterErrorKind,
    ExtractError,
    FetchError,
    ParseError,
)
from domain.models import (
    Attribute,
    ComponentType,
    ConfidenceLevel,
    ExtractionMethod,
    InstrumentType,
    SourceCategory,
)
from extractors.source_scan.dedupe import deduplicate_metrics
from extractors.source_scan.scanner import SourceScanner
from metric_adapters.fetcher import GitFetcher
from metric_adapters.models import (
    AdapterMetadata,
    FetchOptions,
    FetchResult,
    RawMetric,
)


logger = logging.getLogger(__name__)


class BaseMetricAdapter(ABC):
    """
    Abstract base class for all metric adapters.

    Each adapter must provide:
    1. name, source_category, confidence, extraction_method, repo_url
    2. fetch() - Produce a local snapshot of the source
    3. extract() - Recover RawMetrics from that snapshot

    Subclasses usually satisfy the identity properties with plain class
    attributes:

        class NodeExporterAdapter(GoPrometheusAdapter):
            name = "prometheus-node"
            repo_url = "https://github.com/prometheus/node_exporter"
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this adapter, used as source_name."""
        pass

    @property
    @abstractmethod
    def source_category(self) -> SourceCategory:
        pass

    @property
    @abstractmethod
    def confidence(self) -> ConfidenceLevel:
        pass

    @property
    @abstractmethod
    def extraction_method(self) -> ExtractionMethod:
        pass

    @property
    @abstractmethod
    def repo_url(self) -> str:
        pass

    @abstractmethod
    async def fetch(self, options: FetchOptions) -> FetchResult:
        """
        Acquire a snapshot of the upstream source.

        Raises:
            FetchError: If the snapshot cannot be acquired
        """
        pass

    @abstractmethod
    async def extract(self, result: FetchResult) -> list[RawMetric]:
        """
        Recover raw metric definitions from a snapshot.

        Raises:
            ExtractError: On systemic failures (e.g. missing source tree)
        """
        pass

    def describe(self) -> AdapterMetadata:
        """Return static metadata for listings."""
        return AdapterMetadata(
            name=self.name,
            source_category=self.source_category,
            confidence=self.confidence,
            extraction_method=self.extraction_method,
            repo_url=self.repo_url,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class GitSourceAdapter(BaseMetricAdapter):
    """Adapter whose snapshot is a shallow clone of repo_url."""

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        fetcher: Optional[GitFetcher] = None,
    ) -> None:
        if fetcher is None:
            config = get_config()
            fetcher = GitFetcher(cache_dir or config.cache_dir, depth=config.fetch_depth)
        self._fetcher = fetcher

    @property
    def fetcher(self) -> GitFetcher:
        return self._fetcher

    async def fetch(self, options: FetchOptions) -> FetchResult:
        """Clone or update repo_url in the snapshot cache."""
        logger.info(f"[{self.name}] Fetching {self.repo_url}")
        try:
            return await self._fetcher.fetch(
                self.repo_url,
                commit=options.commit,
                force=options.force,
                cache_dir=options.cache_dir or None,
            )
        except FetchError as e:
            if e.adapter_name is None:
                e.adapter_name = self.name
            raise


class SourceScanAdapter(GitSourceAdapter):
    """
    Adapter that scans source files under scan_root with a language scanner.

    Subclasses configure:
    - scan_root: directory relative to the snapshot (empty = whole repo)
    - file_suffixes: file name endings to consider
    - skip_dirs: directory names never descended into
    - recursive: False to read only the files directly under scan_root
    - component_type: stamped on every metric
    and implement create_scanner() and component_name_for().
    """

    source_category = SourceCategory.OTEL
    confidence = ConfidenceLevel.DERIVED
    extraction_method = ExtractionMethod.AST

    scan_root: str = ""
    file_suffixes: tuple[str, ...] = ()
    skip_dirs: frozenset[str] = frozenset({"node_modules", "vendor", ".git"})
    recursive: bool = True
    component_type: ComponentType = ComponentType.INSTRUMENTATION

    @abstractmethod
    def create_scanner(self, result: FetchResult, root: Path) -> SourceScanner:
        """Build the per-run scanner (constants tables are loaded here)."""
        pass

    @abstractmethod
    def component_name_for(self, file_path: Path, root: Path) -> str:
        pass

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        """Return True for test or generated files."""
        return False

    def resolve_root(self, result: FetchResult) -> Path:
        return Path(result.repo_path, self.scan_root) if self.scan_root else Path(result.repo_path)

    async def extract(self, result: FetchResult) -> list[RawMetric]:
        """Scan every in-scope file; one unparseable file never fails the run."""
        root = self.resolve_root(result)
        require_dir(root, self.name)
        return self.finalize(await self.scan_tree(result, root))

    async def scan_tree(self, result: FetchResult, root: Path) -> list[RawMetric]:
        """Scan every file under root, yielding to the event loop between files."""
        scanner = await asyncio.to_thread(self.create_scanner, result, root)
        files = await asyncio.to_thread(self.collect_files, root)
        logger.debug(f"[{self.name}] Scanning {len(files)} files under {root}")

        metrics: list[RawMetric] = []
        for file_path in files:
            metrics.extend(
                await asyncio.to_thread(self.scan_file, scanner, file_path, root, result)
            )
        return metrics

    def collect_files(self, root: Path) -> list[Path]:
        """Walk root in sorted order, pruning skip_dirs."""
        files = []
        for dirpath, dirnames, filenames in os.walk(root):
            if not self.recursive:
                dirnames[:] = []
            dirnames[:] = sorted(d for d in dirnames if d not in self.skip_dirs)
            for filename in sorted(filenames):
                if self.file_suffixes and not filename.endswith(self.file_suffixes):
                    continue
                file_path = Path(dirpath, filename)
                if self.should_skip_file(file_path, root):
                    continue
                files.append(file_path)
        return files

    def scan_file(
        self,
        scanner: SourceScanner,
        file_path: Path,
        root: Path,
        result: FetchResult,
    ) -> list[RawMetric]:
        """Scan one file and stamp component and location fields."""
        try:
            content = read_source(file_path)
            found = scanner.scan(content)
        except ParseError as e:
            logger.debug(f"[{self.name}] Skipping unparseable file {file_path}: {e}")
            return []

        component_name = self.component_name_for(file_path, root)
        if not component_name:
            return []
        return self.stamp(found, file_path, result, component_name)

    def stamp(
        self,
        metrics: Iterable[RawMetric],
        file_path: Path,
        result: FetchResult,
        component_name: str,
    ) -> list[RawMetric]:
        rel_path = relative_path(file_path, result.repo_path)
        stamped = []
        for metric in metrics:
            metric.component_type = self.component_type
            metric.component_name = component_name
            metric.source_location = str(file_path)
            metric.path = rel_path
            stamped.append(metric)
        return stamped

    def finalize(self, metrics: list[RawMetric]) -> list[RawMetric]:
        """Collapse duplicates on (name, component)."""
        return deduplicate_metrics(metrics)


class StaticCatalogAdapter(BaseMetricAdapter):
    """
    Adapter whose metrics are declared in a packaged YAML catalog.

    Catalog layout:

        component_type: platform
        component_name: claude-code
        metrics:
          - name: claude_code.session.count
            instrument_type: counter
            description: Number of sessions started
            unit: count
            attributes:
              - {name: model, type: string, description: Model used}

    There is no snapshot to acquire: fetch reports today's date
    (YYYY-MM-DD) as the commit.
    """

    extraction_method = ExtractionMethod.METADATA
    confidence = ConfidenceLevel.DOCUMENTED

    catalog_path: Path

    def __init__(self, cache_dir: Optional[str] = None, catalog_path: Optional[Path] = None) -> None:
        if catalog_path is not None:
            self.catalog_path = Path(catalog_path)

    async def fetch(self, options: FetchOptions) -> FetchResult:
        now = datetime.now(timezone.utc)
        return FetchResult(
            repo_path="",
            commit=now.strftime("%Y-%m-%d"),
            timestamp=now,
        )

    async def extract(self, result: FetchResult) -> list[RawMetric]:
        try:
            metrics = await asyncio.to_thread(load_catalog, self.catalog_path)
        except AdapterError as e:
            if e.adapter_name is None:
                e.adapter_name = self.name
            raise
        logger.debug(f"[{self.name}] Loaded {len(metrics)} catalog metrics")
        return metrics


def load_catalog(path: Path) -> list[RawMetric]:
    """
    Parse a static catalog file.

    Raises:
        ExtractError: If the file cannot be read (io-error)
        ParseError: If the document is not a valid catalog
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ExtractError(
            f"cannot read catalog {path}",
            kind=AdapterErrorKind.IO_ERROR,
            original_error=e,
        ) from e

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ParseError("invalid catalog YAML", file_path=str(path), original_error=e) from e
    if not isinstance(data, dict) or not isinstance(data.get("metrics", []), list):
        raise ParseError("catalog must be a mapping with a metrics list", file_path=str(path))

    component_type = str(data.get("component_type") or ComponentType.PLATFORM.value)
    component_name = str(data.get("component_name") or "")
    metrics = []
    for entry in data.get("metrics") or []:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        metrics.append(RawMetric(
            name=str(entry["name"]),
            instrument_type=str(entry.get("instrument_type") or InstrumentType.COUNTER.value),
            description=str(entry.get("description") or ""),
            unit=str(entry.get("unit") or ""),
            attributes=[Attribute.from_dict(a) for a in entry.get("attributes") or [] if isinstance(a, dict)],
            enabled_by_default=bool(entry.get("enabled_by_default", True)),
            component_type=component_type,
            component_name=str(entry.get("component_name") or component_name),
            source_location=str(path),
            path=Path(path).name,
        ))
    return metrics


# ============================================================
# HELPERS
# ============================================================

def read_source(file_path: Path) -> str:
    """
    Read a source file as UTF-8.

    Raises:
        ParseError: If the file cannot be read or decoded
    """
    try:
        return file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(
            f"cannot read {file_path}",
            file_path=str(file_path),
            original_error=e,
        ) from e


def relative_path(file_path: Path, repo_path: str) -> str:
    try:
        return Path(file_path).relative_to(repo_path).as_posix()
    except ValueError:
        return Path(file_path).as_posix()


def first_path_part(file_path: Path, root: Path) -> str:
    """First directory component of file_path below root."""
    try:
        parts = Path(file_path).relative_to(root).parts
    except ValueError:
        parts = ()
    if len(parts) > 1:
        return parts[0]
    return Path(file_path).parent.name


def require_dir(path: Path, adapter_name: str) -> None:
    """
    Raises:
        ExtractError: If path is not a directory (parse-failed)
    """
    if not path.is_dir():
        raise ExtractError(
            f"source directory {path} does not exist",
            adapter_name=adapter_name,
            kind=AdapterErrorKind.PARSE_FAILED,
        )
