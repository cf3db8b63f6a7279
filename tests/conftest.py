from __future__ import annotations

import os
import tempfile

import pytest

# The API module bootstraps a runtime at import time; keep its local backend out of the checkout.
os.environ.setdefault("MINFS_GATEWAY_LOCAL_ROOT", tempfile.mkdtemp(prefix="minfs-gateway-tests-"))

from minfs_gateway.config import GatewayConfig  # noqa: E402
from minfs_gateway.storage.local_fs import LocalFileSystem  # noqa: E402
from minfs_gateway.telemetry import TelemetryCollector  # noqa: E402


@pytest.fixture
def gateway_config(tmp_path) -> GatewayConfig:
    cfg = GatewayConfig.default()
    cfg.filesystem.local_root = str(tmp_path / "fs")
    cfg.control.script_dir = str(tmp_path / "scripts")
    return cfg


@pytest.fixture
def telemetry(gateway_config: GatewayConfig) -> TelemetryCollector:
    return TelemetryCollector(gateway_config.observability)


@pytest.fixture
def local_fs(gateway_config: GatewayConfig) -> LocalFileSystem:
    return LocalFileSystem(gateway_config.filesystem.local_root, topology=gateway_config.filesystem.static_topology)
