"""Chunked upload/download proxy between request bodies and cluster streams."""

from __future__ import annotations

import io
import logging
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO

from ..errors import InputValidationError, TransferFailedError
from ..formatting import format_file_size
from ..models import DownloadPayload, TransferResult, TransferSession
from ..storage.base import FileSystemClient
from .base import BaseService

logger = logging.getLogger(__name__)


def _close_quietly(stream: object, label: str) -> None:
    try:
        stream.close()
    except Exception as exc:
        logger.warning("Failed to close %s stream: %s", label, exc)


@dataclass
class TransferProxy(BaseService):
    filesystem: FileSystemClient

    def check_upload_size(self, size_bytes: int) -> None:
        if size_bytes <= 0:
            raise InputValidationError("Upload content must not be empty")
        limit = self.config.transfer.max_upload_bytes
        if size_bytes > limit:
            raise InputValidationError(
                f"File size exceeds the upload limit (max {format_file_size(limit)}), "
                f"current file size: {format_file_size(size_bytes)}"
            )

    def upload(self, path: str, source: BinaryIO, size_bytes: int) -> TransferResult:
        """Streams ``source`` into a new file at ``path``.

        The declared ``size_bytes`` gates the size policy and drives progress
        reporting. Both streams are closed on every exit path; any stream
        failure surfaces as :class:`TransferFailedError` and no partial result
        is returned.
        """
        self.check_upload_size(size_bytes)
        session = TransferSession(path=path, total_bytes=size_bytes)
        logger.info("Starting upload to %s (%s)", path, format_file_size(size_bytes))

        destination = None
        try:
            destination = self.filesystem.create(path)
            self._pump(source, destination, session)
            # Remote clients flush on close, so a failing close fails the upload.
            destination.close()
        except Exception as exc:
            self.emit_event("upload_failed", path=path, bytes_moved=str(session.bytes_moved))
            raise TransferFailedError(f"Upload failed: {exc}") from exc
        finally:
            if destination is not None:
                _close_quietly(destination, "destination")
            _close_quietly(source, "source")

        session.finished_at = datetime.now(timezone.utc)
        result = TransferResult(path=path, bytes_moved=session.bytes_moved, elapsed_seconds=session.elapsed_seconds)
        self.emit_metric("transfer.upload.bytes", result.bytes_moved, path=path)
        self.emit_metric("transfer.upload.seconds", result.elapsed_seconds, path=path)
        self.emit_metric("transfer.upload.throughput", result.throughput_bytes_per_second, path=path)
        logger.info(
            "Upload to %s complete: %d bytes in %.2fs (%s/s)",
            path,
            result.bytes_moved,
            result.elapsed_seconds,
            format_file_size(int(result.throughput_bytes_per_second)),
        )
        return result

    def upload_bytes(self, path: str, data: bytes) -> TransferResult:
        return self.upload(path, io.BytesIO(data), len(data))

    def download(self, path: str) -> DownloadPayload:
        chunk_size = self.config.transfer.download_chunk_size
        session = TransferSession(path=path, total_bytes=0)
        try:
            with closing(self.filesystem.open(path)) as stream, io.BytesIO() as buffer:
                while True:
                    chunk = stream.read(chunk_size)
                    if not chunk:
                        break
                    buffer.write(chunk)
                    session.advance(len(chunk))
                content = buffer.getvalue()
        except Exception as exc:
            raise TransferFailedError(f"Download failed: {exc}") from exc
        session.finished_at = datetime.now(timezone.utc)
        self.emit_metric("transfer.download.bytes", session.bytes_moved, path=path)
        file_name = path.rstrip("/").rsplit("/", 1)[-1]
        return DownloadPayload(path=path, file_name=file_name, content=content)

    def _pump(self, source: BinaryIO, destination: BinaryIO, session: TransferSession) -> None:
        policy = self.config.transfer
        report_progress = session.total_bytes > policy.progress_threshold_bytes
        next_mark = policy.progress_interval_bytes
        while True:
            chunk = source.read(policy.upload_chunk_size)
            if not chunk:
                break
            destination.write(chunk)
            session.advance(len(chunk))
            if report_progress and session.bytes_moved >= next_mark:
                self._report_progress(session)
                while next_mark <= session.bytes_moved:
                    next_mark += policy.progress_interval_bytes

    def _report_progress(self, session: TransferSession) -> None:
        percent = session.bytes_moved * 100.0 / session.total_bytes
        logger.info(
            "Upload progress for %s: %.1f%% (%d/%d bytes)",
            session.path,
            percent,
            session.bytes_moved,
            session.total_bytes,
        )
        self.emit_event(
            "upload_progress",
            path=session.path,
            percent=f"{percent:.1f}",
            bytes_moved=str(session.bytes_moved),
            total_bytes=str(session.total_bytes),
        )
