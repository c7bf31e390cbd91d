"""Pytest fixtures for meshgate tests."""

import io
import sys
import tarfile
import zipfile
from pathlib import Path
from typing import Callable, Dict

import httpx
import pytest

# Ensure project root is in path for package imports
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from meshgate.config.settings import Settings, load_settings  # noqa: E402

# Above the locator's 1 MiB floor
BIG = 2 * 1024 * 1024


def script_bytes(body: str, size: int = BIG) -> bytes:
    """A /bin/sh script padded with a trailing comment so it passes as a release binary."""
    head = f"#!/bin/sh\n{body}\n".encode()
    return head + b"#" + b"x" * max(0, size - len(head) - 2) + b"\n"


def zip_bytes(files: Dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buf.getvalue()


def tar_gz_bytes(files: Dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


MESH_URL = "https://downloads.test/easytier.zip"
PROXY_URL = "https://downloads.test/sing-box.tar.gz"


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Factory: Settings rooted in tmp_path, no real env, builtin extraction, short start delay."""

    def _make(config: dict = None, env: dict = None) -> Settings:
        base = {
            "work_dir": str(tmp_path / "sys_run"),
            "web": {"static_dir": str(tmp_path / "static")},
            "mesh": {"url": MESH_URL},
            "proxy": {"url": PROXY_URL},
            "supervisor": {"start_delay": 0.2, "extract_method": "builtin"},
        }
        for key, value in (config or {}).items():
            if isinstance(value, dict):
                base.setdefault(key, {}).update(value)
            else:
                base[key] = value
        return load_settings(base, env=env or {})

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def release_archives() -> Dict[str, bytes]:
    """URL -> archive bytes laid out like the upstream mesh/proxy releases."""
    mesh_zip = zip_bytes(
        {
            "easytier-linux-x86_64/easytier-core": script_bytes("exec sleep 30"),
            "easytier-linux-x86_64/easytier-cli": script_bytes("exit 0"),
            "easytier-linux-x86_64/README.md": b"readme",
        }
    )
    proxy_tgz = tar_gz_bytes(
        {
            "sing-box-1.9.0-linux-amd64/sing-box": script_bytes("exec sleep 30"),
            "sing-box-1.9.0-linux-amd64/LICENSE": b"license",
        }
    )
    return {MESH_URL: mesh_zip, PROXY_URL: proxy_tgz}


@pytest.fixture
def request_log() -> list:
    return []


@pytest.fixture
def release_transport(release_archives, request_log) -> httpx.MockTransport:
    """Serves release_archives; 404 for anything else. Records every requested URL."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        request_log.append(url)
        if url in release_archives:
            return httpx.Response(200, content=release_archives[url])
        return httpx.Response(404)

    return httpx.MockTransport(handler)
