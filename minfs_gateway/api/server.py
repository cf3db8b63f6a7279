"""FastAPI gateway exposing MinFS file and cluster administration operations."""

from __future__ import annotations

import argparse
import logging
import os
import uuid
from typing import Any, Iterable, Optional
from urllib.parse import quote

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from ..errors import FileOperationError, GatewayError
from ..formatting import format_file_size, format_timestamp, usage_percentage
from ..models import ControlResult, FileType, ServerNode, StatRecord, TopologySnapshot
from ..runtime import GatewayRuntime

runtime = GatewayRuntime.bootstrap()
logger = logging.getLogger(__name__)

app = FastAPI(title="MinFS Gateway", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=runtime.config.observability.cors_origins or ["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

_TYPE_NAMES = {
    FileType.FILE: "File",
    FileType.DIRECTORY: "Directory",
    FileType.VOLUME: "Volume",
}

_ACTION_TEXT = {
    "start": "Start",
    "stop": "Stop",
    "restart": "Restart",
    "status": "Status query for",
}


class _CamelAliasModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ApiResult(_CamelAliasModel):
    code: int = 200
    message: str = "ok"
    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="requestId")
    data: Any = None

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.code, content=self.model_dump(by_alias=True, exclude_none=True))


def _success(data: Any = None, message: str = "ok") -> JSONResponse:
    return ApiResult(data=data, message=message).to_response()


def _failure(message: str, code: int = 500) -> JSONResponse:
    return ApiResult(code=code, message=message).to_response()


@app.exception_handler(GatewayError)
async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _failure(exc.message, exc.code)


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}" for error in exc.errors()
    )
    return _failure(f"Invalid request: {problems}", 400)


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s raised an unexpected error", request.method, request.url.path, exc_info=exc)
    return _failure(f"Internal error: {exc}")


@app.post("/api/fs/mkdir")
def create_directory(path: str):
    if not runtime.file_operations.mkdir(path):
        return _failure("Directory creation failed")
    return _success(True, "Directory created")


@app.post("/api/fs/upload")
def upload_file(path: str, file: UploadFile = File(...)):
    size_bytes = _declared_size(file)
    logger.info("Upload request for %s (%s, %s)", path, file.filename, format_file_size(size_bytes))
    result = runtime.transfer_proxy.upload(path, file.file, size_bytes)
    message = (
        f"File uploaded successfully (size: {format_file_size(result.bytes_moved)}, "
        f"elapsed: {result.elapsed_seconds:.2f}s, throughput: {format_file_size(int(result.throughput_bytes_per_second))}/s)"
    )
    return _success(True, message)


@app.get("/api/fs/download")
def download_file(path: str):
    payload = runtime.transfer_proxy.download(path)
    return Response(
        content=payload.content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": _content_disposition(payload.file_name)},
    )


@app.delete("/api/fs/delete")
def delete_path(path: str):
    if not runtime.file_operations.delete(path):
        return _failure("Delete failed")
    return _success(True, "Deleted")


@app.get("/api/fs/info")
def get_file_info(path: str):
    info = runtime.file_operations.require_stat(path)
    return _success(_serialize_file_info(info))


@app.get("/api/fs/list")
def list_directory(path: str):
    return _success([_serialize_file_info(entry) for entry in runtime.file_operations.list(path)])


@app.get("/api/fs/exists")
def path_exists(path: str):
    return _success(runtime.file_operations.exists(path))


@app.get("/api/fs/size")
def get_file_size(path: str):
    size = runtime.file_operations.size(path)
    if size < 0:
        return _failure("File does not exist or its size is unavailable", 404)
    return _success(size)


@app.get("/api/fs/cluster")
def get_cluster_info():
    return _success(_serialize_cluster(runtime.file_operations.cluster_info()))


@app.get("/api/fs/health")
def health():
    try:
        message = runtime.file_operations.health()
    except FileOperationError as exc:
        return _failure(exc.message)
    return _success(message)


@app.post("/api/fs/server/restart")
def restart_server(serverType: str, serverId: Optional[str] = None, addressing: str = "port"):
    return _run_control(serverType, "restart", serverId, addressing)


@app.get("/api/fs/server/status")
def server_status(serverType: str, serverId: Optional[str] = None, addressing: str = "port"):
    return _run_control(serverType, "status", serverId, addressing)


@app.post("/api/fs/server/{server_type}/{action}")
def control_server(server_type: str, action: str, serverId: Optional[str] = None, addressing: str = "port"):
    return _run_control(server_type, action, serverId, addressing)


def _run_control(server_type: str, action: str, server_id: Optional[str], addressing: str) -> JSONResponse:
    label = f"{_ACTION_TEXT.get(action, action)} {server_type} server"
    try:
        result = runtime.lifecycle_dispatcher.execute(server_type, action, server_id, addressing=addressing)
    except GatewayError as exc:
        return _failure(f"{label} failed: {exc.message}", exc.code)
    return _success(result.output, _control_message(result))


def _control_message(result: ControlResult) -> str:
    if result.source == "fallback":
        return f"ok (cluster topology unavailable, used fallback endpoint {result.endpoint})"
    return "ok"


def _declared_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    stream = upload.file
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def _content_disposition(file_name: str) -> str:
    fallback = file_name.encode("ascii", "replace").decode("ascii").replace('"', "'")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name)}"


def _serialize_file_info(info: StatRecord) -> dict:
    tz_name = runtime.config.observability.display_timezone
    # Directories carry no replica data.
    replicas = info.replicas if info.is_file else []
    return {
        "path": info.path,
        "size": info.size,
        "mtime": info.mtime,
        "uploadTime": info.mtime,
        "type": info.type.value,
        "typeName": _TYPE_NAMES.get(info.type, "Unknown"),
        "formattedSize": format_file_size(info.size),
        "formattedTime": format_timestamp(info.mtime, tz_name),
        "replicaData": [
            {"id": replica.id, "dsNode": replica.ds_node, "path": replica.path, "host": replica.host, "port": replica.port}
            for replica in replicas
        ],
        "replicaCount": len(replicas),
    }


def _serialize_meta_server(node: ServerNode) -> dict:
    return {
        "address": f"{node.host}:{node.port}",
        "status": "Active",
        "host": node.host,
        "port": node.port,
    }


def _serialize_data_server(node: ServerNode) -> dict:
    return {
        **_serialize_meta_server(node),
        "capacity": node.capacity,
        "used": node.used,
        "fileTotal": node.file_total,
        "usagePercentage": usage_percentage(node.used, node.capacity),
    }


def _serialize_cluster(topology: TopologySnapshot) -> dict:
    master = _serialize_meta_server(topology.master_meta) if topology.master_meta else None
    slaves = [_serialize_meta_server(node) for node in topology.slave_meta]
    return {
        "masterMetaServer": master,
        "slaveMetaServers": slaves,
        "dataServers": [_serialize_data_server(node) for node in topology.data_servers],
        "totalMetaServers": len(slaves) + (1 if master else 0),
        "totalDataServers": len(topology.data_servers),
    }


def main(argv: Optional[Iterable[str]] = None) -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the MinFS management gateway")
    parser.add_argument("--host", default=os.environ.get("MINFS_GATEWAY_HOST", "0.0.0.0"), help="Interface to bind")
    parser.add_argument("--port", type=int, default=int(os.environ.get("MINFS_GATEWAY_PORT", "8080")), help="Port to listen on")
    parser.add_argument("--log-level", default=runtime.config.observability.log_level, help="Logging level")
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=args.log_level.upper(), format="[%(asctime)s] %(levelname)s %(message)s")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
