"""Data models shared across gateway services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union


class ServerRole(str, Enum):
    META = "meta"
    DATA = "data"


class ControlAction(str, Enum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    STATUS = "status"


class FileType(str, Enum):
    FILE = "File"
    DIRECTORY = "Directory"
    VOLUME = "Volume"


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: str

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class ServerNode:
    host: str
    port: int
    capacity: int = 0
    used: int = 0
    file_total: int = 0

    def endpoint(self) -> Endpoint:
        return Endpoint(host=self.host, port=str(self.port))


@dataclass
class TopologySnapshot:
    master_meta: Optional[ServerNode] = None
    slave_meta: List[ServerNode] = field(default_factory=list)
    data_servers: List[ServerNode] = field(default_factory=list)


@dataclass(frozen=True)
class DefaultPort:
    role: ServerRole


@dataclass(frozen=True)
class LiteralPort:
    role: ServerRole
    port: str


@dataclass(frozen=True)
class TopologyReference:
    role: ServerRole
    identifier: str


ServerReference = Union[DefaultPort, LiteralPort, TopologyReference]


@dataclass(frozen=True)
class EndpointResolution:
    endpoint: Endpoint
    source: str  # literal | default | topology | fallback

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


@dataclass(frozen=True)
class ControlOutcome:
    exit_code: int
    output: str


@dataclass
class ControlResult:
    role: ServerRole
    action: ControlAction
    endpoint: Endpoint
    source: str
    output: str


@dataclass
class ReplicaRecord:
    id: str
    ds_node: str
    path: str

    @property
    def host(self) -> str:
        return self.ds_node.split(":", 1)[0] if ":" in self.ds_node else self.ds_node

    @property
    def port(self) -> str:
        if ":" in self.ds_node:
            return self.ds_node.split(":", 1)[1]
        return ""


@dataclass
class StatRecord:
    path: str
    size: int
    mtime: int
    type: FileType
    replicas: List[ReplicaRecord] = field(default_factory=list)

    @property
    def is_file(self) -> bool:
        return self.type == FileType.FILE


@dataclass
class TransferSession:
    path: str
    total_bytes: int
    bytes_moved: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    def advance(self, count: int) -> None:
        if count < 0:
            raise ValueError("bytes moved cannot decrease")
        self.bytes_moved += count

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at or datetime.now(timezone.utc)
        return max(0.0, (end - self.started_at).total_seconds())


@dataclass
class TransferResult:
    path: str
    bytes_moved: int
    elapsed_seconds: float

    @property
    def throughput_bytes_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return float(self.bytes_moved)
        return self.bytes_moved / self.elapsed_seconds


@dataclass
class DownloadPayload:
    path: str
    file_name: str
    content: bytes

    @property
    def content_length(self) -> int:
        return len(self.content)


@dataclass
class ObservabilityEvent:
    event_type: str
    message: str
    attributes: Optional[dict] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
