"""Namespace operations passed through to the filesystem client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..errors import FileOperationError, PathNotFoundError
from ..models import StatRecord, TopologySnapshot
from ..storage.base import FileSystemClient
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass
class FileOperations(BaseService):
    filesystem: FileSystemClient

    def mkdir(self, path: str) -> bool:
        try:
            created = self.filesystem.mkdir(path)
        except Exception as exc:
            raise FileOperationError(f"Failed to create directory: {exc}") from exc
        if created:
            self.emit_event("directory_created", path=path)
        return created

    def delete(self, path: str) -> bool:
        try:
            deleted = self.filesystem.delete(path)
        except Exception as exc:
            raise FileOperationError(f"Failed to delete: {exc}") from exc
        if deleted:
            self.emit_event("path_deleted", path=path)
        return deleted

    def stat(self, path: str) -> Optional[StatRecord]:
        try:
            return self.filesystem.stat(path)
        except Exception as exc:
            raise FileOperationError(f"Failed to get file info: {exc}") from exc

    def require_stat(self, path: str) -> StatRecord:
        info = self.stat(path)
        if info is None:
            raise PathNotFoundError("File or directory does not exist")
        return info

    def list(self, path: str) -> List[StatRecord]:
        try:
            return self.filesystem.list_directory(path)
        except Exception as exc:
            raise FileOperationError(f"Failed to list directory: {exc}") from exc

    def exists(self, path: str) -> bool:
        # Any client failure counts as "does not exist".
        try:
            return self.filesystem.stat(path) is not None
        except Exception as exc:
            logger.debug("Existence check for %s failed: %s", path, exc)
            return False

    def size(self, path: str) -> int:
        """Returns the size in bytes, or -1 when the path is missing or unreadable."""
        try:
            info = self.filesystem.stat(path)
        except Exception as exc:
            logger.debug("Size lookup for %s failed: %s", path, exc)
            return -1
        return info.size if info is not None else -1

    def cluster_info(self) -> TopologySnapshot:
        try:
            return self.filesystem.cluster_topology()
        except Exception as exc:
            raise FileOperationError(f"Failed to get cluster info: {exc}") from exc

    def health(self) -> str:
        try:
            self.filesystem.stat("/")
        except Exception as exc:
            raise FileOperationError(f"MinFS connection error: {exc}") from exc
        return "MinFS connection OK"
