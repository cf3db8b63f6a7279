"""HTTP client for a remote MinFS metadata server and its data servers."""

from __future__ import annotations

import logging
import tempfile
from typing import Any, Dict, List, Optional

import requests

from ..models import FileType, ReplicaRecord, ServerNode, StatRecord, TopologySnapshot
from .base import normalize_path

logger = logging.getLogger(__name__)

_SPOOL_LIMIT = 8 * 1024 * 1024


def _parse_replicas(items: Optional[List[Dict[str, Any]]]) -> List[ReplicaRecord]:
    return [
        ReplicaRecord(id=str(item.get("id", "")), ds_node=str(item.get("dsNode", "")), path=str(item.get("path", "")))
        for item in items or []
    ]


def _parse_stat(payload: Dict[str, Any]) -> StatRecord:
    raw_type = payload.get("type", FileType.FILE.value)
    try:
        file_type = FileType(raw_type)
    except ValueError:
        file_type = FileType.FILE
    return StatRecord(
        path=str(payload.get("path", "")),
        size=int(payload.get("size", 0)),
        mtime=int(payload.get("mtime", 0)),
        type=file_type,
        replicas=_parse_replicas(payload.get("replicaData")),
    )


def _parse_node(payload: Optional[Dict[str, Any]]) -> Optional[ServerNode]:
    if not payload:
        return None
    return ServerNode(
        host=str(payload.get("host", "")),
        port=int(payload.get("port", 0)),
        capacity=int(payload.get("capacity", 0)),
        used=int(payload.get("useCapacity", 0)),
        file_total=int(payload.get("fileTotal", 0)),
    )


class ReplicaWriteStream:
    """Spools written bytes locally and pushes them to every replica on close."""

    def __init__(self, client: "HttpFileSystemClient", path: str, replicas: List[ReplicaRecord]):
        self._client = client
        self.path = path
        self.replicas = replicas
        self._spool = tempfile.SpooledTemporaryFile(max_size=_SPOOL_LIMIT)
        self.closed = False

    def write(self, data: bytes) -> int:
        if self.closed:
            raise ValueError("write to closed stream")
        return self._spool.write(data)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            for replica in self.replicas:
                self._spool.seek(0)
                self._client.push_replica(replica, self.path, self._spool)
        finally:
            self._spool.close()

    def __enter__(self) -> "ReplicaWriteStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ReplicaReadStream:
    def __init__(self, response: Any):
        self._response = response
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        return self._response.raw.read(size)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._response.close()

    def __enter__(self) -> "ReplicaReadStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class HttpFileSystemClient:
    def __init__(
        self,
        meta_url: str,
        namespace: str = "default",
        *,
        timeout: float = 30.0,
        http_client: Any = requests,
    ) -> None:
        self.meta_url = meta_url.rstrip("/")
        self.namespace = namespace
        self.timeout = timeout
        self.http_client = http_client

    def _meta(self, suffix: str) -> str:
        return f"{self.meta_url}{suffix}"

    def _body(self, path: str, **extra: Any) -> Dict[str, Any]:
        return {"path": normalize_path(path), "fileSystemName": self.namespace, **extra}

    def mkdir(self, path: str) -> bool:
        response = self.http_client.post(self._meta("/directory/create"), json=self._body(path), timeout=self.timeout)
        if response.status_code != 200:
            logger.error("Failed to create directory %s: %s", path, response.text)
        return response.status_code == 200

    def create(self, path: str) -> ReplicaWriteStream:
        response = self.http_client.post(self._meta("/file/create"), json=self._body(path), timeout=self.timeout)
        response.raise_for_status()
        replicas = _parse_replicas(response.json().get("replicaData"))
        if not replicas:
            raise RuntimeError(f"Metadata server assigned no replicas for {path}")
        return ReplicaWriteStream(self, normalize_path(path), replicas)

    def open(self, path: str) -> ReplicaReadStream:
        info = self.stat(path)
        if info is None or not info.is_file:
            raise FileNotFoundError(f"File not found or not a file: {path}")
        last_error: Optional[Exception] = None
        for replica in info.replicas:
            try:
                response = self.http_client.get(
                    f"http://{replica.ds_node}/file/read",
                    params={"path": replica.path or info.path, "fileSystemName": self.namespace},
                    timeout=self.timeout,
                    stream=True,
                )
                response.raise_for_status()
                return ReplicaReadStream(response)
            except requests.RequestException as exc:
                logger.warning("Replica %s unavailable for %s: %s", replica.ds_node, path, exc)
                last_error = exc
        raise OSError(f"No readable replica for {path}") from last_error

    def delete(self, path: str) -> bool:
        response = self.http_client.delete(
            self._meta("/file/delete"),
            json=self._body(path, recursive=True),
            timeout=self.timeout,
        )
        if response.status_code != 200:
            logger.error("Failed to delete %s: %s", path, response.text)
        return response.status_code == 200

    def stat(self, path: str) -> Optional[StatRecord]:
        response = self.http_client.get(
            self._meta("/file/stats"),
            params={"path": normalize_path(path), "fileSystemName": self.namespace},
            timeout=self.timeout,
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return _parse_stat(response.json())

    def list_directory(self, path: str) -> List[StatRecord]:
        response = self.http_client.get(
            self._meta("/directory/list"),
            params={"path": normalize_path(path), "fileSystemName": self.namespace},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return [_parse_stat(item) for item in response.json().get("items", [])]

    def cluster_topology(self) -> TopologySnapshot:
        response = self.http_client.get(self._meta("/cluster/info"), timeout=self.timeout)
        response.raise_for_status()
        payload = response.json()
        return TopologySnapshot(
            master_meta=_parse_node(payload.get("masterMetaServer")),
            slave_meta=[node for node in map(_parse_node, payload.get("slaveMetaServer") or []) if node],
            data_servers=[node for node in map(_parse_node, payload.get("dataServer") or []) if node],
        )

    def push_replica(self, replica: ReplicaRecord, path: str, data: Any) -> None:
        response = self.http_client.put(
            f"http://{replica.ds_node}/file/write",
            params={"path": replica.path or path, "fileSystemName": self.namespace},
            data=data,
            timeout=self.timeout,
        )
        response.raise_for_status()
