"""Collapsing of duplicate raw metrics recovered within one extraction."""

from typing import Callable, Hashable, Iterable

from domain.models import RawMetric


def deduplicate_metrics(
    metrics: Iterable[RawMetric],
    key: Callable[[RawMetric], Hashable] = RawMetric.dedup_key,
) -> list[RawMetric]:
    """
    Keep one metric per key, in first-seen order.

    A later duplicate replaces the kept one only when it has a
    description and the kept one does not.
    """
    kept: dict[Hashable, RawMetric] = {}
    for metric in metrics:
        k = key(metric)
        existing = kept.get(k)
        if existing is None:
            kept[k] = metric
        elif metric.description and not existing.description:
            kept[k] = metric
    return list(kept.values())


def by_name(metric: RawMetric) -> Hashable:
    return metric.name
