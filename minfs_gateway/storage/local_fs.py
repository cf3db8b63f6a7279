from __future__ import annotations

import copy
import shutil
from pathlib import Path
from typing import BinaryIO, List, Optional

from ..models import FileType, ReplicaRecord, StatRecord, TopologySnapshot
from .base import normalize_path


class LocalFileSystem:
    """Directory-backed filesystem for development and tests.

    Cluster paths map below ``base_path``; the topology is a static snapshot
    supplied by configuration.
    """

    def __init__(self, base_path: str, topology: Optional[TopologySnapshot] = None):
        self.base_path = Path(base_path).expanduser().resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.topology = topology or TopologySnapshot()

    def _resolve(self, path: str) -> Path:
        relative = normalize_path(path).lstrip("/")
        return self.base_path / relative if relative else self.base_path

    def _cluster_path(self, target: Path) -> str:
        relative = target.relative_to(self.base_path).as_posix()
        return "/" if relative == "." else f"/{relative}"

    def mkdir(self, path: str) -> bool:
        target = self._resolve(path)
        if target.exists() and not target.is_dir():
            return False
        target.mkdir(parents=True, exist_ok=True)
        return True

    def create(self, path: str) -> BinaryIO:
        target = self._resolve(path)
        if target == self.base_path or target.is_dir():
            raise IsADirectoryError(f"Cannot write to directory: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        return target.open("wb")

    def open(self, path: str) -> BinaryIO:
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"File not found or not a file: {path}")
        return target.open("rb")

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if target == self.base_path or not target.exists():
            return False
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
        return True

    def stat(self, path: str) -> Optional[StatRecord]:
        target = self._resolve(path)
        if not target.exists():
            return None
        return self._stat_entry(target)

    def list_directory(self, path: str) -> List[StatRecord]:
        target = self._resolve(path)
        if not target.is_dir():
            raise NotADirectoryError(f"Not a directory: {path}")
        return [self._stat_entry(child) for child in sorted(target.iterdir())]

    def cluster_topology(self) -> TopologySnapshot:
        return copy.deepcopy(self.topology)

    def _stat_entry(self, target: Path) -> StatRecord:
        info = target.stat()
        cluster_path = self._cluster_path(target)
        if target.is_dir():
            return StatRecord(path=cluster_path, size=0, mtime=int(info.st_mtime * 1000), type=FileType.DIRECTORY)
        replicas = []
        if self.topology.data_servers:
            node = self.topology.data_servers[0]
            replicas.append(ReplicaRecord(id=f"{cluster_path}#0", ds_node=f"{node.host}:{node.port}", path=cluster_path))
        return StatRecord(
            path=cluster_path,
            size=info.st_size,
            mtime=int(info.st_mtime * 1000),
            type=FileType.FILE,
            replicas=replicas,
        )
