"""
Extractors Package - Turn upstream source snapshots into RawMetrics.

- metadata: declarative manifests (collector metadata.yaml, semconv model)
- source_scan: metric-definition call sites in source code
"""
