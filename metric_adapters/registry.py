"""
Metric Adapter Registry - Named lookup of the bundled metric sources.

Features:
- Adapter registration and discovery
- Deterministic listing order (registration order)
- Default registry with every bundled provider
"""

import logging
from typing import Iterator, Optional

from core.exceptions import AdapterNotFoundError
from metric_adapters.base import BaseMetricAdapter
from metric_adapters.providers import PROVIDER_CLASSES


logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Central registry for metric adapters.

    Usage:
        registry = AdapterRegistry()
        registry.register(NodeExporterAdapter())
        registry.register(OtelPythonAdapter())

        adapter = registry.require_adapter("prometheus-node")
    """

    def __init__(self) -> None:
        self._adapters: dict[str, BaseMetricAdapter] = {}
        self._adapter_order: list[str] = []

    def register(self, adapter: BaseMetricAdapter) -> None:
        """Register an adapter; an existing adapter of the same name is replaced in place."""
        name = adapter.name

        if name in self._adapters:
            logger.warning(f"Adapter '{name}' already registered, replacing")

        self._adapters[name] = adapter
        if name not in self._adapter_order:
            self._adapter_order.append(name)

        logger.debug(f"Registered metric adapter '{name}'")

    def unregister(self, name: str) -> Optional[BaseMetricAdapter]:
        """Unregister an adapter."""
        if name in self._adapters:
            adapter = self._adapters.pop(name)
            if name in self._adapter_order:
                self._adapter_order.remove(name)
            logger.info(f"Unregistered adapter '{name}'")
            return adapter
        return None

    def get_adapter(self, name: str) -> Optional[BaseMetricAdapter]:
        """Get a specific adapter by name."""
        return self._adapters.get(name)

    def require_adapter(self, name: str) -> BaseMetricAdapter:
        """
        Get a specific adapter by name.

        Raises:
            AdapterNotFoundError: If no adapter of that name is registered
        """
        adapter = self._adapters.get(name)
        if adapter is None:
            raise AdapterNotFoundError(name)
        return adapter

    def list_adapters(self) -> list[str]:
        """List all registered adapter names in registration order."""
        return self._adapter_order.copy()

    def adapters(self) -> list[BaseMetricAdapter]:
        return [self._adapters[name] for name in self._adapter_order]

    def __iter__(self) -> Iterator[BaseMetricAdapter]:
        return iter(self.adapters())

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, name: object) -> bool:
        return name in self._adapters


def build_default_registry(cache_dir: Optional[str] = None) -> AdapterRegistry:
    """
    Registry with every bundled provider.

    Args:
        cache_dir: Snapshot cache root shared by the git-backed adapters;
            the configured cache_dir when omitted
    """
    registry = AdapterRegistry()
    for provider_cls in PROVIDER_CLASSES:
        registry.register(provider_cls(cache_dir=cache_dir))
    logger.info(f"Default registry built with {len(registry)} adapters")
    return registry
