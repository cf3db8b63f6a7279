"""Runtime wiring for the gateway services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import FileSystemConfig, GatewayConfig
from .services.control_executor import ScriptExecutor, SubprocessScriptExecutor
from .services.file_service import FileOperations
from .services.lifecycle_service import LifecycleDispatcher
from .services.transfer_service import TransferProxy
from .storage.base import FileSystemClient
from .storage.http_fs import HttpFileSystemClient
from .storage.local_fs import LocalFileSystem
from .telemetry import TelemetryCollector


def build_filesystem(config: FileSystemConfig) -> FileSystemClient:
    if config.backend == "local":
        return LocalFileSystem(config.local_root, topology=config.static_topology)
    if config.backend == "http":
        return HttpFileSystemClient(config.meta_url, config.namespace, timeout=config.request_timeout)
    raise ValueError(f"Unknown filesystem backend: {config.backend}")


@dataclass
class GatewayRuntime:
    config: GatewayConfig
    telemetry: TelemetryCollector
    filesystem: FileSystemClient
    file_operations: FileOperations
    transfer_proxy: TransferProxy
    lifecycle_dispatcher: LifecycleDispatcher

    @classmethod
    def bootstrap(
        cls,
        config: Optional[GatewayConfig] = None,
        *,
        filesystem: Optional[FileSystemClient] = None,
        executor: Optional[ScriptExecutor] = None,
    ) -> "GatewayRuntime":
        cfg = config or GatewayConfig.from_env()
        telemetry = TelemetryCollector(cfg.observability)
        fs = filesystem if filesystem is not None else build_filesystem(cfg.filesystem)
        script_executor = executor or SubprocessScriptExecutor(
            interpreter=cfg.control.interpreter,
            timeout_seconds=cfg.control.timeout_seconds,
        )
        return cls(
            config=cfg,
            telemetry=telemetry,
            filesystem=fs,
            file_operations=FileOperations(config=cfg, telemetry=telemetry, filesystem=fs),
            transfer_proxy=TransferProxy(config=cfg, telemetry=telemetry, filesystem=fs),
            lifecycle_dispatcher=LifecycleDispatcher(
                config=cfg,
                telemetry=telemetry,
                filesystem=fs,
                executor=script_executor,
            ),
        )
