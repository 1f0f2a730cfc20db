"""
Metadata Discovery - Locate component manifests in a collector checkout.

Walks the conventional layout

    {receiver,processor,exporter,extension,connector}/<component>/metadata.yaml

and yields one MetadataFile per manifest. Missing top-level directories
are not an error.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from domain.models import ComponentType


logger = logging.getLogger(__name__)


COMPONENT_DIRS: tuple[str, ...] = (
    ComponentType.RECEIVER.value,
    ComponentType.PROCESSOR.value,
    ComponentType.EXPORTER.value,
    ComponentType.EXTENSION.value,
    ComponentType.CONNECTOR.value,
)

METADATA_FILENAME = "metadata.yaml"


@dataclass(frozen=True)
class MetadataFile:
    """A discovered manifest and the component it describes."""
    path: Path
    component_name: str
    component_type: str


class MetadataDiscovery:
    """
    Finds metadata.yaml manifests under a repository root.

    Results are ordered by component directory (in COMPONENT_DIRS order),
    then by component name.
    """

    def __init__(self, component_dirs: tuple[str, ...] = COMPONENT_DIRS) -> None:
        self.component_dirs = component_dirs

    def find_metadata_files(self, repo_path: Union[str, Path]) -> list[MetadataFile]:
        root = Path(repo_path)
        files: list[MetadataFile] = []

        for component_dir in self.component_dirs:
            dir_path = root / component_dir
            if not dir_path.is_dir():
                continue

            try:
                entries = sorted(dir_path.iterdir())
            except OSError as e:
                logger.warning(f"[discovery] Cannot list {dir_path}: {e}")
                continue

            for entry in entries:
                if not entry.is_dir():
                    continue
                metadata_path = entry / METADATA_FILENAME
                if metadata_path.is_file():
                    files.append(MetadataFile(
                        path=metadata_path,
                        component_name=entry.name,
                        component_type=component_dir,
                    ))

        logger.debug(f"[discovery] Found {len(files)} metadata files under {root}")
        return files
