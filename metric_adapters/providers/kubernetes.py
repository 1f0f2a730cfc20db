"""
Kubernetes adapters: kube-state-metrics and cAdvisor.
"""

from pathlib import Path

from domain.models import ComponentType, ConfidenceLevel, SourceCategory
from extractors.source_scan import CadvisorScanner, KsmScanner
from metric_adapters.base import SourceScanAdapter
from metric_adapters.models import FetchResult


class KubernetesGoAdapter(SourceScanAdapter):
    """Base for Kubernetes Go sources scanned one directory deep."""

    source_category = SourceCategory.KUBERNETES
    confidence = ConfidenceLevel.AUTHORITATIVE
    component_type = ComponentType.PLATFORM

    file_suffixes = (".go",)
    recursive = False
    skip_files: frozenset[str] = frozenset()

    def should_skip_file(self, file_path: Path, root: Path) -> bool:
        return file_path.name.endswith("_test.go") or file_path.name in self.skip_files


class KubeStateMetricsAdapter(KubernetesGoAdapter):
    """
    kube-state-metrics family generators in internal/store.

    One component per resource file (pod.go -> pod).
    """

    name = "kubernetes-ksm"
    repo_url = "https://github.com/kubernetes/kube-state-metrics"
    scan_root = "internal/store"
    skip_files = frozenset({"builder.go", "utils.go"})

    def create_scanner(self, result: FetchResult, root: Path) -> KsmScanner:
        return KsmScanner()

    def component_name_for(self, file_path: Path, root: Path) -> str:
        return file_path.stem


CADVISOR_DEFAULT_COMPONENT = "container"


class CadvisorAdapter(KubernetesGoAdapter):
    """
    cAdvisor Prometheus collector in metrics/.

    prometheus.go holds the container metrics; prometheus_machine.go
    the machine metrics.
    """

    name = "kubernetes-cadvisor"
    repo_url = "https://github.com/google/cadvisor"
    scan_root = "metrics"
    skip_files = frozenset({"prometheus_fake.go"})

    def create_scanner(self, result: FetchResult, root: Path) -> CadvisorScanner:
        return CadvisorScanner()

    def component_name_for(self, file_path: Path, root: Path) -> str:
        name = file_path.stem
        for prefix in ("prometheus_", "prometheus"):
            if name.startswith(prefix):
                name = name[len(prefix):]
                break
        return name or CADVISOR_DEFAULT_COMPONENT
