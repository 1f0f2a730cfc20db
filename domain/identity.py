"""Content-derived identity for canonical metrics."""

import hashlib


ID_BYTES = 16


def generate_metric_id(
    source_category: str,
    source_name: str,
    component_name: str,
    metric_name: str,
) -> str:
    """
    Return the stable identity of a metric.

    Lowercase hex of the first 16 bytes of
    SHA-256("<category>:<source>:<component>:<metric>").
    """
    key = f"{source_category}:{source_name}:{component_name}:{metric_name}"
    return hashlib.sha256(key.encode("utf-8")).digest()[:ID_BYTES].hex()
