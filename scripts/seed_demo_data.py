"""Seed a MinFS cluster with sample files through the gateway REST API."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Sequence

import requests

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_DATA_DIR = REPO_ROOT / "sample_data"


def _api_request(method: str, api_base: str, path: str, **kwargs) -> dict:
    url = f"{api_base.rstrip('/')}{path}"
    resp = requests.request(method, url, timeout=kwargs.pop("timeout", 60), **kwargs)
    body = resp.json()
    if body.get("code") != 200:
        raise RuntimeError(f"{method.upper()} {path} failed ({body.get('code')}): {body.get('message')}")
    return body


def _discover_files(data_dir: Path) -> list[Path]:
    if not data_dir.exists():
        raise FileNotFoundError(f"Sample data directory not found: {data_dir}")
    return [path for path in sorted(data_dir.rglob("*")) if path.is_file()]


def _upload_file(api_base: str, target_dir: str, data_dir: Path, file_path: Path) -> None:
    relative = file_path.relative_to(data_dir).as_posix()
    target = f"{target_dir.rstrip('/')}/{relative}"
    with file_path.open("rb") as handle:
        body = _api_request(
            "post",
            api_base,
            "/api/fs/upload",
            params={"path": target},
            files={"file": (file_path.name, handle, "application/octet-stream")},
        )
    print(f" -> {target}: {body['message']}")


def seed(api_base: str, data_dir: Path, data_files: Sequence[Path], env_label: str) -> None:
    target_dir = f"/{env_label}-seed"
    _api_request("post", api_base, "/api/fs/mkdir", params={"path": target_dir})
    print(f"Created directory {target_dir}")

    for path in data_files:
        print(f"Uploading {path.name} ({path.stat().st_size} bytes)")
        _upload_file(api_base, target_dir, data_dir, path)

    listing = _api_request("get", api_base, "/api/fs/list", params={"path": target_dir})["data"]
    print(f"{target_dir} now holds {len(listing)} entries")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed MinFS demo data")
    parser.add_argument("--env", default="local", help="Label used in directory naming")
    parser.add_argument(
        "--api-base",
        default=os.environ.get("MINFS_GATEWAY_URL", "http://localhost:8080"),
        help="Gateway base URL",
    )
    parser.add_argument("--data-dir", type=Path, default=DEFAULT_DATA_DIR, help="Directory of sample files")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    files = _discover_files(args.data_dir)
    if not files:
        raise SystemExit(f"No files found in {args.data_dir}")
    seed(args.api_base, args.data_dir, files, args.env)


if __name__ == "__main__":
    main()
