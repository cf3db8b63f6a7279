"""Client contract the gateway expects from a MinFS filesystem backend."""

from __future__ import annotations

from typing import BinaryIO, List, Optional, Protocol

from ..models import StatRecord, TopologySnapshot


class FileSystemClient(Protocol):
    def mkdir(self, path: str) -> bool:
        ...

    def create(self, path: str) -> BinaryIO:
        ...

    def open(self, path: str) -> BinaryIO:
        ...

    def delete(self, path: str) -> bool:
        ...

    def stat(self, path: str) -> Optional[StatRecord]:
        ...

    def list_directory(self, path: str) -> List[StatRecord]:
        ...

    def cluster_topology(self) -> TopologySnapshot:
        ...


def normalize_path(path: str) -> str:
    """Collapses a cluster path to ``/a/b`` form, rejecting ``..`` segments."""
    parts = []
    for part in (path or "").replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise ValueError(f"Path escapes the namespace root: {path}")
        parts.append(part)
    return "/" + "/".join(parts)
