"""REST-boundary tests for the bootstrap endpoints."""

from __future__ import annotations

import struct
import threading
import time
import zipfile
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from chainboot.app.context import create_context, release_context
from chainboot.app.settings import BootstrapSettings
from chainboot.domain.errors import CancelledError
from chainboot.domain.network import NetworkParams
from chainboot.usecases.verify_snapshot import display_hash, double_sha256
from rest_api import app as app_module

MAGIC = b"\x0b\x11\x09\x07"
HEADER = bytes(80)
NETWORK = NetworkParams(
    name="apitest",
    magic=MAGIC,
    genesis_hash=display_hash(double_sha256(HEADER)),
    bootstrap_url="https://bootstrap.example/api.zip",
    expected_chain_size=1024,
)


def _build_snapshot(path: Path) -> Path:
    block = HEADER + b"\x00" * 8
    with zipfile.ZipFile(path, "w") as bundle:
        bundle.writestr("blocks/blk00000.dat", MAGIC + struct.pack("<I", len(block)) + block)
        bundle.writestr("chainstate/CURRENT", b"MANIFEST-000001\n")
        bundle.writestr("chainboot.conf", b"addnode=5.6.7.8\n")
    return path


class _Downloader:
    def __init__(self, payload: bytes, gate: Optional[threading.Event] = None) -> None:
        self.payload = payload
        self.gate = gate
        self.started = threading.Event()

    def download_to_file(self, url, target, progress) -> None:
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)
        target.write_bytes(self.payload)
        if not progress(len(self.payload), len(self.payload)):
            raise CancelledError("Bootstrap download cancelled")


@pytest.fixture(autouse=True)
def _clean_context():
    release_context()
    yield
    release_context()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "node"
    path.mkdir()
    return path


@pytest.fixture
def make_client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, data_dir: Path):
    def _make(*, downloader=None, free: int = 10**12, api_key: str = "") -> TestClient:
        settings = BootstrapSettings(data_dir=data_dir, network=NETWORK, api_key=api_key)
        payload = _build_snapshot(tmp_path / "served.zip").read_bytes()
        monkeypatch.setattr(
            app_module,
            "CONTEXT_FACTORY",
            lambda: create_context(
                settings,
                downloader=downloader or _Downloader(payload),
                free_space=lambda _path: free,
            ),
        )
        return TestClient(app_module.app)

    return _make


def _wait_idle(client: TestClient) -> dict:
    snapshot = {}
    for _ in range(100):
        snapshot = client.get("/bootstrap").json()
        if not snapshot["running"]:
            break
        time.sleep(0.05)
    return snapshot


def test_status_defaults(make_client) -> None:
    with make_client() as client:
        response = client.get("/bootstrap")
    assert response.status_code == 200
    payload = response.json()
    assert payload["mode"] == "cloud"
    assert payload["running"] is False
    assert payload["install_prepared"] is False


def test_stage_then_install(make_client, data_dir: Path) -> None:
    (data_dir / "chainboot.conf").write_text("addnode=1.2.3.4\nlisten=1\n", encoding="utf-8")
    with make_client() as client:
        started = client.post("/bootstrap/stage")
        assert started.status_code == 202
        assert started.json()["ok"] is True

        staged = _wait_idle(client)
        assert staged["last_error"] == ""
        assert staged["install_prepared"] is True

        assert client.post("/bootstrap/install").status_code == 202
        installed = _wait_idle(client)

    assert installed["last_error"] == ""
    assert installed["config_merged"] is True
    assert (data_dir / "blocks" / "blk00000.dat").is_file()
    assert (data_dir / "chainboot.conf").read_text(encoding="utf-8").splitlines() == [
        "listen=1",
        "addnode=5.6.7.8",
    ]


def test_second_stage_request_conflicts(make_client, tmp_path: Path) -> None:
    gate = threading.Event()
    downloader = _Downloader(_build_snapshot(tmp_path / "g.zip").read_bytes(), gate=gate)
    with make_client(downloader=downloader) as client:
        assert client.post("/bootstrap/stage").status_code == 202
        assert downloader.started.wait(5)

        conflict = client.post("/bootstrap/stage")
        assert conflict.status_code == 409
        assert conflict.json()["code"] == "bootstrap.running"
        assert client.put("/bootstrap/mode", json={"mode": "file"}).status_code == 409

        gate.set()
        assert _wait_idle(client)["last_error"] == ""


def test_low_space_is_insufficient_storage(make_client, data_dir: Path) -> None:
    with make_client(free=10) as client:
        response = client.post("/bootstrap/stage")
    assert response.status_code == 507
    body = response.json()
    assert body["code"] == "bootstrap.resource"
    assert body["hint"].startswith("Required")
    assert list(data_dir.iterdir()) == []


def test_invalid_mode_is_unprocessable(make_client) -> None:
    with make_client() as client:
        assert client.put("/bootstrap/mode", json={"mode": "torrent"}).status_code == 422
        response = client.put("/bootstrap/mode", json={"mode": "file"})
    assert response.status_code == 200
    assert response.json()["status"]["mode"] == "file"


def test_missing_file_is_rejected(make_client, tmp_path: Path) -> None:
    with make_client() as client:
        response = client.put("/bootstrap/file", json={"path": str(tmp_path / "none.zip")})
        assert response.status_code == 422
        assert response.json()["code"] == "bootstrap.configuration"

        archive = _build_snapshot(tmp_path / "manual.zip")
        accepted = client.put("/bootstrap/file", json={"path": str(archive)})
    assert accepted.status_code == 200
    assert accepted.json()["status"]["file_path"] == str(archive)


def test_cancel_and_cleanup(make_client, data_dir: Path) -> None:
    (data_dir / "bootstrap").mkdir()
    (data_dir / "bootstrap.zip").write_bytes(b"PK")
    with make_client() as client:
        cancelled = client.post("/bootstrap/cancel")
        assert cancelled.status_code == 202
        assert cancelled.json()["status"]["cancelled"] is True

        cleaned = client.delete("/bootstrap/staging")
    assert cleaned.status_code == 200
    assert not (data_dir / "bootstrap").exists()
    assert not (data_dir / "bootstrap.zip").exists()


def test_api_key_required_when_configured(make_client) -> None:
    with make_client(api_key="s3cret") as client:
        assert client.get("/bootstrap").status_code == 401
        response = client.get("/bootstrap", headers={"X-API-Key": "s3cret"})
    assert response.status_code == 200
