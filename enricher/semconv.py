"""
Semconv Enricher - Classifies metrics against the semantic-conventions registry.

============================================================
RESPONSIBILITY
============================================================
Given an in-memory index of well-known metric names, tag each
CanonicalMetric with:

- exact:  the name (underscores read as dots) is a registry entry
- prefix: the name extends a registry entry by '.' or '_'
- none:   otherwise

When several entries are prefixes of a name, the longest wins.

============================================================
REGISTRY SOURCES
============================================================
- explicit entries
- a YAML/JSON list of {name, stability}
- a semantic-conventions model/ tree
- metrics previously stored for the otel-semconv source
- a URL serving a YAML/JSON list (fetched with aiohttp)

The index is built once; reload() swaps it atomically.
============================================================
"""

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

import aiohttp
import yaml

from core.config import get_config
from core.exceptions import ConfigurationError, FetchError
from domain.models import CanonicalMetric, SemconvEntry, SemconvMatch
from extractors.metadata.semconv import load_model_dir

if TYPE_CHECKING:
    from storage.store import MetricStore


logger = logging.getLogger(__name__)


SEMCONV_SOURCE_NAME = "otel-semconv"
DEFAULT_STABILITY = "stable"


def normalize(name: str) -> str:
    return name.replace("_", ".")


# ============================================================
# REGISTRY
# ============================================================

class SemconvRegistry:
    """
    Immutable-after-load index of semconv entries.

    Lookups read a single (exact, ordered) snapshot, so reload() from
    another thread never exposes a half-built index.
    """

    def __init__(self, entries: Iterable[SemconvEntry] = ()) -> None:
        self._lock = threading.Lock()
        self._index = self._build(entries)

    @staticmethod
    def _build(
        entries: Iterable[SemconvEntry],
    ) -> tuple[dict[str, SemconvEntry], list[tuple[str, SemconvEntry]]]:
        exact: dict[str, SemconvEntry] = {}
        for entry in entries:
            if entry.name:
                exact[normalize(entry.name)] = entry
        # Longest first so the first prefix hit is the most specific one.
        ordered = sorted(exact.items(), key=lambda item: (-len(item[0]), item[0]))
        return exact, ordered

    # ─────────────────────────────────────────────────────────
    # Constructors
    # ─────────────────────────────────────────────────────────

    @classmethod
    def from_entries(cls, entries: Iterable[Union[SemconvEntry, dict[str, Any]]]) -> "SemconvRegistry":
        return cls(_coerce_entry(e) for e in entries)

    @classmethod
    def from_yaml_file(cls, path: Union[str, Path]) -> "SemconvRegistry":
        """Load a list of {name, stability} mappings (YAML or JSON)."""
        try:
            content = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read semconv registry file {path}",
                original_error=e,
            )
        return cls.from_entries(_parse_entry_list(content, source=str(path)))

    @classmethod
    def from_model_dir(cls, model_dir: Union[str, Path]) -> "SemconvRegistry":
        """Index every metric group of a semantic-conventions model/ tree."""
        return cls(
            SemconvEntry(name=d.name, stability=d.stability)
            for _, d in load_model_dir(model_dir)
        )

    @classmethod
    def from_store(cls, store: "MetricStore") -> "SemconvRegistry":
        """Index the metrics stored for the otel-semconv source."""
        return cls(
            SemconvEntry(
                name=m.metric_name,
                stability=m.semconv_stability or DEFAULT_STABILITY,
            )
            for m in store.get_semconv_metrics()
        )

    # ─────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────

    def reload(self, entries: Iterable[SemconvEntry]) -> None:
        index = self._build(entries)
        with self._lock:
            self._index = index
        logger.info(f"[semconv] Registry reloaded with {len(index[0])} entries")

    def entries(self) -> list[SemconvEntry]:
        return list(self._index[0].values())

    def __len__(self) -> int:
        return len(self._index[0])

    def __contains__(self, name: str) -> bool:
        return normalize(name) in self._index[0]

    def match(self, metric_name: str) -> tuple[SemconvMatch, Optional[SemconvEntry]]:
        exact, ordered = self._index
        normalized = normalize(metric_name)

        entry = exact.get(normalized)
        if entry is not None:
            return SemconvMatch.EXACT, entry

        for key, entry in ordered:
            if normalized.startswith(key + ".") or normalized.startswith(key + "_"):
                return SemconvMatch.PREFIX, entry

        return SemconvMatch.NONE, None


# ============================================================
# ENRICHER
# ============================================================

class SemconvEnricher:
    """Sets semconv_match / semconv_name / semconv_stability on metrics."""

    def __init__(self, registry: SemconvRegistry) -> None:
        self.registry = registry

    def enrich(self, metric: CanonicalMetric) -> CanonicalMetric:
        match, entry = self.registry.match(metric.metric_name)
        metric.semconv_match = match
        if entry is None:
            metric.semconv_name = ""
            metric.semconv_stability = ""
        else:
            metric.semconv_name = entry.name
            metric.semconv_stability = entry.stability
        return metric

    def enrich_all(self, metrics: Iterable[CanonicalMetric]) -> list[CanonicalMetric]:
        return [self.enrich(m) for m in metrics]


# ============================================================
# REMOTE REGISTRY
# ============================================================

async def load_registry_from_url(
    url: str,
    timeout_seconds: Optional[float] = None,
) -> SemconvRegistry:
    """
    Fetch a registry document (YAML or JSON list of {name, stability}).

    Raises:
        FetchError: on transport errors, timeouts or a non-200 response
    """
    if timeout_seconds is None:
        timeout_seconds = get_config().http_timeout_seconds
    timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    raise FetchError(
                        f"semconv registry request failed with HTTP {response.status}",
                        repo_url=url,
                    )
                body = await response.text()
    except asyncio.TimeoutError as e:
        logger.warning(f"[semconv] Registry request to {url} timed out after {timeout_seconds}s")
        raise FetchError(
            f"semconv registry request timed out after {timeout_seconds}s",
            repo_url=url,
            original_error=e,
        ) from e
    except aiohttp.ClientError as e:
        raise FetchError("semconv registry request failed", repo_url=url, original_error=e) from e

    registry = SemconvRegistry.from_entries(_parse_entry_list(body, source=url))
    logger.info(f"[semconv] Loaded {len(registry)} entries from {url}")
    return registry


async def load_registry(store: Optional["MetricStore"] = None) -> SemconvRegistry:
    """
    Build the registry from configuration.

    Precedence: semconv_registry_path, semconv_registry_url, then the
    store's otel-semconv metrics, then an empty registry.
    """
    config = get_config()
    if config.semconv_registry_path:
        return SemconvRegistry.from_yaml_file(config.semconv_registry_path)
    if config.semconv_registry_url:
        return await load_registry_from_url(config.semconv_registry_url)
    if store is not None:
        return SemconvRegistry.from_store(store)
    return SemconvRegistry()


# ============================================================
# HELPERS
# ============================================================

def _coerce_entry(value: Union[SemconvEntry, dict[str, Any]]) -> SemconvEntry:
    if isinstance(value, SemconvEntry):
        return value
    return SemconvEntry(
        name=str(value.get("name") or ""),
        stability=str(value.get("stability") or ""),
    )


def _parse_entry_list(content: str, source: str) -> list[dict[str, Any]]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid semconv registry document from {source}", original_error=e)

    if isinstance(data, dict):
        data = data.get("metrics") or data.get("entries") or []
    if not isinstance(data, list):
        raise ConfigurationError(f"Semconv registry document from {source} is not a list")
    return [item for item in data if isinstance(item, dict)]
