"""Configuration primitives for the MinFS management gateway."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models import ServerNode, TopologySnapshot

MiB = 1024 * 1024


def _validated_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown display timezone: {name!r}") from exc
    return name


def _default_topology() -> TopologySnapshot:
    return TopologySnapshot(
        master_meta=ServerNode(host="localhost", port=9090),
        slave_meta=[ServerNode(host="localhost", port=9091), ServerNode(host="localhost", port=9092)],
        data_servers=[ServerNode(host="localhost", port=port) for port in (8001, 8002, 8003, 8004)],
    )


@dataclass
class FileSystemConfig:
    backend: str = "local"
    local_root: str = field(default_factory=lambda: str(Path.cwd() / "data" / "minfs"))
    meta_url: str = "http://localhost:9090"
    namespace: str = "default"
    request_timeout: float = 30.0
    static_topology: TopologySnapshot = field(default_factory=_default_topology)


@dataclass
class TransferPolicyConfig:
    max_upload_bytes: int = 500 * MiB
    upload_chunk_size: int = 64 * 1024
    download_chunk_size: int = 8 * 1024
    progress_threshold_bytes: int = 10 * MiB
    progress_interval_bytes: int = 10 * MiB


@dataclass
class ControlConfig:
    script_dir: str = field(default_factory=lambda: str(Path.cwd() / "scripts"))
    interpreter: Optional[str] = "bash"
    local_host: str = "localhost"
    default_ports: Dict[str, str] = field(default_factory=lambda: {"meta": "9090", "data": "8001"})
    timeout_seconds: Optional[float] = 120.0
    scripts: Dict[str, Dict[str, str]] = field(default_factory=lambda: {
        "meta": {
            "start": "start_metaServer.sh",
            "stop": "stop_metaServer.sh",
            "restart": "restart_metaServer.sh",
            "status": "status_metaServer.sh",
        },
        "data": {
            "start": "start_dataServer.sh",
            "stop": "stop_dataServer.sh",
            "restart": "restart_dataServer.sh",
            "status": "status_dataServer.sh",
        },
    })


@dataclass
class ObservabilityConfig:
    log_level: str = "INFO"
    display_timezone: str = "Asia/Shanghai"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    max_buffered: int = 1000


@dataclass
class GatewayConfig:
    filesystem: FileSystemConfig
    transfer: TransferPolicyConfig
    control: ControlConfig
    observability: ObservabilityConfig

    @staticmethod
    def default() -> "GatewayConfig":
        return GatewayConfig(
            filesystem=FileSystemConfig(),
            transfer=TransferPolicyConfig(),
            control=ControlConfig(),
            observability=ObservabilityConfig(),
        )

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "GatewayConfig":
        """Builds the default config and applies ``MINFS_GATEWAY_*`` overrides."""
        env = os.environ if environ is None else environ
        cfg = GatewayConfig.default()

        fs = cfg.filesystem
        fs.backend = env.get("MINFS_GATEWAY_BACKEND", fs.backend).strip().lower()
        fs.local_root = env.get("MINFS_GATEWAY_LOCAL_ROOT", fs.local_root)
        fs.meta_url = env.get("MINFS_GATEWAY_META_URL", fs.meta_url)
        fs.namespace = env.get("MINFS_GATEWAY_NAMESPACE", fs.namespace)
        if "MINFS_GATEWAY_REQUEST_TIMEOUT" in env:
            fs.request_timeout = float(env["MINFS_GATEWAY_REQUEST_TIMEOUT"])

        if "MINFS_GATEWAY_MAX_UPLOAD_MB" in env:
            cfg.transfer.max_upload_bytes = int(float(env["MINFS_GATEWAY_MAX_UPLOAD_MB"]) * MiB)

        control = cfg.control
        control.script_dir = env.get("MINFS_GATEWAY_SCRIPT_DIR", control.script_dir)
        if "MINFS_GATEWAY_SCRIPT_INTERPRETER" in env:
            # An empty value runs the scripts directly.
            control.interpreter = env["MINFS_GATEWAY_SCRIPT_INTERPRETER"].strip() or None
        if "MINFS_GATEWAY_CONTROL_TIMEOUT" in env:
            raw = env["MINFS_GATEWAY_CONTROL_TIMEOUT"].strip().lower()
            control.timeout_seconds = None if raw in {"", "none", "off", "0"} else float(raw)

        obs = cfg.observability
        obs.log_level = env.get("MINFS_GATEWAY_LOG_LEVEL", obs.log_level).upper()
        obs.display_timezone = _validated_timezone(env.get("MINFS_GATEWAY_TIMEZONE", obs.display_timezone))
        if "MINFS_GATEWAY_TELEMETRY_BUFFER" in env:
            obs.max_buffered = int(env["MINFS_GATEWAY_TELEMETRY_BUFFER"])
        if "MINFS_GATEWAY_CORS_ORIGINS" in env:
            origins = [origin.strip() for origin in env["MINFS_GATEWAY_CORS_ORIGINS"].split(",") if origin.strip()]
            obs.cors_origins = origins or ["*"]
        return cfg
