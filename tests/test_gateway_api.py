"""FastAPI integration tests for the file and server-control endpoints."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

from minfs_gateway.api import server as api_server
from minfs_gateway.models import ControlOutcome
from minfs_gateway.runtime import GatewayRuntime


class _ScriptedExecutor:
    def __init__(self):
        self.calls = []
        self.outcome = None

    def run(self, script, host, port):
        self.calls.append((script.name, host, port))
        return self.outcome or ControlOutcome(exit_code=0, output="")


@pytest.fixture
def executor():
    return _ScriptedExecutor()


@pytest.fixture
def client(gateway_config, executor) -> TestClient:
    # Re-bootstrap runtime each test for isolation.
    api_server.runtime = GatewayRuntime.bootstrap(gateway_config, executor=executor)
    return TestClient(api_server.app)


def _upload(client: TestClient, path: str, content: bytes, name: str = "file.bin"):
    return client.post("/api/fs/upload", params={"path": path}, files={"file": (name, content, "application/octet-stream")})


def test_file_round_trip_flow(client: TestClient):
    mkdir_resp = client.post("/api/fs/mkdir", params={"path": "/docs"})
    assert mkdir_resp.status_code == 200
    body = mkdir_resp.json()
    assert body["code"] == 200
    assert body["data"] is True
    assert body["requestId"]

    assert client.get("/api/fs/exists", params={"path": "/docs/readme.md"}).json()["data"] is False

    content = os.urandom(70 * 1024)
    upload_resp = _upload(client, "/docs/readme.md", content, "readme.md")
    assert upload_resp.status_code == 200
    assert upload_resp.json()["message"].startswith("File uploaded successfully (size: 70.00 KB")
    assert "throughput: " in upload_resp.json()["message"]

    assert client.get("/api/fs/exists", params={"path": "/docs/readme.md"}).json()["data"] is True
    assert client.get("/api/fs/size", params={"path": "/docs/readme.md"}).json()["data"] == len(content)

    download_resp = client.get("/api/fs/download", params={"path": "/docs/readme.md"})
    assert download_resp.status_code == 200
    assert download_resp.content == content
    assert download_resp.headers["content-length"] == str(len(content))
    assert 'filename="readme.md"' in download_resp.headers["content-disposition"]

    info = client.get("/api/fs/info", params={"path": "/docs/readme.md"}).json()["data"]
    assert info["type"] == "File"
    assert info["replicaCount"] == 1
    assert info["replicaData"][0]["host"] == "localhost"
    assert info["formattedSize"] == "70.00 KB"

    listing = client.get("/api/fs/list", params={"path": "/docs"}).json()["data"]
    assert [entry["path"] for entry in listing] == ["/docs/readme.md"]

    delete_resp = client.delete("/api/fs/delete", params={"path": "/docs"})
    assert delete_resp.json()["data"] is True
    assert client.get("/api/fs/exists", params={"path": "/docs"}).json()["data"] is False


def test_request_ids_are_unique(client: TestClient):
    first = client.get("/api/fs/health").json()
    second = client.get("/api/fs/health").json()
    assert first["code"] == 200
    assert first["requestId"] != second["requestId"]


def test_oversize_upload_is_rejected_with_limit(client: TestClient, gateway_config):
    gateway_config.transfer.max_upload_bytes = 1024
    resp = _upload(client, "/big.bin", b"x" * 4096)
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == 400
    assert "1.00 KB" in body["message"] and "4.00 KB" in body["message"]
    assert "data" not in body
    assert client.get("/api/fs/exists", params={"path": "/big.bin"}).json()["data"] is False


def test_empty_upload_is_rejected(client: TestClient):
    resp = _upload(client, "/empty.bin", b"")
    assert resp.json()["code"] == 400


def test_missing_paths_report_failures(client: TestClient):
    info = client.get("/api/fs/info", params={"path": "/ghost"})
    assert info.status_code == 404
    assert info.json()["message"] == "File or directory does not exist"

    size = client.get("/api/fs/size", params={"path": "/ghost"})
    assert size.json()["code"] == 404

    download = client.get("/api/fs/download", params={"path": "/ghost"})
    assert download.status_code == 500
    assert download.json()["message"].startswith("Download failed")


def test_missing_query_parameter_uses_envelope(client: TestClient):
    resp = client.post("/api/fs/mkdir")
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid request")


def test_cluster_info_shape(client: TestClient):
    data = client.get("/api/fs/cluster").json()["data"]
    assert data["masterMetaServer"]["address"] == "localhost:9090"
    assert data["totalMetaServers"] == 3
    assert data["totalDataServers"] == 4
    assert data["dataServers"][0]["usagePercentage"] == "0%"


def test_server_start_with_port(client: TestClient, executor: _ScriptedExecutor):
    resp = client.post("/api/fs/server/meta/start", params={"serverId": "9091"})
    body = resp.json()
    assert body["code"] == 200
    assert body["data"] == "operation completed successfully"
    assert executor.calls == [("start_metaServer.sh", "localhost", "9091")]


def test_server_status_and_restart_routes(client: TestClient, executor: _ScriptedExecutor):
    executor.outcome = ControlOutcome(exit_code=0, output="DataServer running on 8002\n")
    status = client.get("/api/fs/server/status", params={"serverType": "data", "serverId": "8002"})
    assert status.json()["data"] == "DataServer running on 8002"

    client.post("/api/fs/server/restart", params={"serverType": "data"})
    assert executor.calls[-1] == ("restart_dataServer.sh", "localhost", "8001")


def test_server_failure_carries_script_output(client: TestClient, executor: _ScriptedExecutor):
    executor.outcome = ControlOutcome(exit_code=1, output="port in use")
    body = client.post("/api/fs/server/data/stop", params={"serverId": "8003"}).json()
    assert body["code"] == 500
    assert body["message"].endswith("port in use")
    assert "exit code: 1" in body["message"]


def test_unknown_server_type_is_rejected(client: TestClient, executor: _ScriptedExecutor):
    body = client.post("/api/fs/server/name/start").json()
    assert body["code"] == 400
    assert executor.calls == []


def test_unresolvable_topology_index(client: TestClient, executor: _ScriptedExecutor):
    body = client.post("/api/fs/server/data/start", params={"serverId": "7", "addressing": "topology"}).json()
    assert body["code"] == 500
    assert "out of range" in body["message"]
    assert executor.calls == []


def test_unexpected_errors_use_the_failure_envelope(gateway_config, executor):
    gateway_config.observability.display_timezone = "Not/AZone"
    api_server.runtime = GatewayRuntime.bootstrap(gateway_config, executor=executor)
    api_server.runtime.file_operations.mkdir("/d")
    client = TestClient(api_server.app, raise_server_exceptions=False)

    resp = client.get("/api/fs/info", params={"path": "/d"})
    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/json")
    body = resp.json()
    assert body["code"] == 500
    assert body["message"].startswith("Internal error")
    assert body["requestId"]


def test_telemetry_stays_bounded_under_load(gateway_config, executor):
    gateway_config.observability.max_buffered = 20
    api_server.runtime = GatewayRuntime.bootstrap(gateway_config, executor=executor)
    client = TestClient(api_server.app)
    for index in range(30):
        client.get("/api/fs/server/status", params={"serverType": "meta"})
        _upload(client, f"/load/{index}.bin", b"payload")

    telemetry = api_server.runtime.telemetry
    assert len(telemetry.metrics) == 20
    assert len(telemetry.events) <= 20


def test_envelope_accepts_field_names_and_dumps_camel_case():
    result = api_server.ApiResult(request_id="req-1", code=404, message="missing")
    assert result.model_dump(by_alias=True, exclude_none=True) == {"code": 404, "message": "missing", "requestId": "req-1"}
