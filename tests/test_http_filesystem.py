from __future__ import annotations

import io

import pytest
import requests

from minfs_gateway.models import FileType
from minfs_gateway.storage.http_fs import HttpFileSystemClient


class _DummyResponse:
    def __init__(self, payload=None, status_code=200, body=b""):
        self._payload = payload or {}
        self.status_code = status_code
        self.text = str(payload)
        self.raw = io.BytesIO(body)
        self.closed = False

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def close(self):
        self.closed = True


class _StubHTTP:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.uploads = {}

    def _respond(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        handler = self.routes.get((method, url))
        if handler is None:
            raise requests.ConnectionError(f"no route for {method} {url}")
        return handler(**kwargs) if callable(handler) else handler

    def get(self, url, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._respond("POST", url, **kwargs)

    def delete(self, url, **kwargs):
        return self._respond("DELETE", url, **kwargs)

    def put(self, url, data=None, **kwargs):
        self.uploads[url] = data.read()
        return self._respond("PUT", url, **kwargs)


META = "http://meta:9090"
REPLICAS = [
    {"id": "r1", "dsNode": "10.0.0.5:8001", "path": "/docs/a.bin"},
    {"id": "r2", "dsNode": "10.0.0.6:8002", "path": "/docs/a.bin"},
]
STAT = {"path": "/docs/a.bin", "size": 4, "mtime": 1700000000000, "type": "File", "replicaData": REPLICAS}


def _client(routes):
    http = _StubHTTP(routes)
    return HttpFileSystemClient(META, "default", http_client=http), http


def test_create_pushes_spooled_content_to_every_replica():
    client, http = _client(
        {
            ("POST", f"{META}/file/create"): _DummyResponse({"replicaData": REPLICAS}),
            ("PUT", "http://10.0.0.5:8001/file/write"): _DummyResponse(),
            ("PUT", "http://10.0.0.6:8002/file/write"): _DummyResponse(),
        }
    )
    with client.create("docs/a.bin") as stream:
        stream.write(b"ab")
        stream.write(b"cd")
    assert http.uploads == {
        "http://10.0.0.5:8001/file/write": b"abcd",
        "http://10.0.0.6:8002/file/write": b"abcd",
    }
    assert http.calls[0][2]["json"] == {"path": "/docs/a.bin", "fileSystemName": "default"}


def test_replica_push_failure_surfaces_on_close():
    client, _ = _client(
        {
            ("POST", f"{META}/file/create"): _DummyResponse({"replicaData": REPLICAS[:1]}),
            ("PUT", "http://10.0.0.5:8001/file/write"): _DummyResponse(status_code=503),
        }
    )
    stream = client.create("/docs/a.bin")
    stream.write(b"data")
    with pytest.raises(requests.HTTPError):
        stream.close()


def test_open_reads_from_first_reachable_replica():
    client, _ = _client(
        {
            ("GET", f"{META}/file/stats"): _DummyResponse(STAT),
            ("GET", "http://10.0.0.6:8002/file/read"): _DummyResponse(body=b"abcd"),
        }
    )
    with client.open("/docs/a.bin") as stream:
        assert stream.read(2) == b"ab"
        assert stream.read(10) == b"cd"
        assert stream.read(10) == b""


def test_stat_maps_missing_to_none_and_parses_records():
    client, _ = _client({("GET", f"{META}/file/stats"): _DummyResponse(status_code=404)})
    assert client.stat("/nope") is None

    client, _ = _client({("GET", f"{META}/file/stats"): _DummyResponse(STAT)})
    info = client.stat("/docs/a.bin")
    assert info.type == FileType.FILE
    assert [replica.host for replica in info.replicas] == ["10.0.0.5", "10.0.0.6"]
    assert info.replicas[1].port == "8002"


def test_mkdir_and_delete_report_status():
    client, http = _client(
        {
            ("POST", f"{META}/directory/create"): _DummyResponse(),
            ("DELETE", f"{META}/file/delete"): _DummyResponse(status_code=500),
        }
    )
    assert client.mkdir("/docs") is True
    assert client.delete("/docs") is False
    assert http.calls[-1][2]["json"]["recursive"] is True


def test_cluster_topology_parses_all_roles():
    client, _ = _client(
        {
            ("GET", f"{META}/cluster/info"): _DummyResponse(
                {
                    "masterMetaServer": {"host": "m", "port": 9090},
                    "slaveMetaServer": [{"host": "s1", "port": 9091}],
                    "dataServer": [{"host": "d1", "port": 8001, "capacity": 1024, "useCapacity": 256, "fileTotal": 3}],
                }
            )
        }
    )
    topology = client.cluster_topology()
    assert topology.master_meta.host == "m"
    assert [node.port for node in topology.slave_meta] == [9091]
    assert topology.data_servers[0].used == 256
    assert topology.data_servers[0].file_total == 3


def test_list_directory_parses_items():
    client, _ = _client(
        {
            ("GET", f"{META}/directory/list"): _DummyResponse(
                {"items": [STAT, {"path": "/docs/sub", "size": 0, "mtime": 0, "type": "Directory"}]}
            )
        }
    )
    entries = client.list_directory("/docs")
    assert [entry.type for entry in entries] == [FileType.FILE, FileType.DIRECTORY]
