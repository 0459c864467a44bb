from __future__ import annotations

import struct
import threading
import zipfile
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

import pytest

from chainboot.domain.layout import DataDirLayout
from chainboot.domain.network import NetworkParams
from chainboot.usecases.verify_snapshot import display_hash, double_sha256

UNIT_MAGIC = bytes((0xFA, 0xBF, 0xB5, 0xDA))
GENESIS_HEADER = bytes(range(80))
SNAPSHOT_URL = "https://bootstrap.example/snapshot.zip"


def genesis_record(magic: bytes = UNIT_MAGIC, header: bytes = GENESIS_HEADER) -> bytes:
    """Serialize one block-file record: magic, little-endian size, block bytes."""
    block = header + b"\x01\x00\x00\x00"
    return magic + struct.pack("<I", len(block)) + block


def snapshot_files(
    *,
    entries: Sequence[str] = ("blocks", "chainstate"),
    magic: bytes = UNIT_MAGIC,
    header: bytes = GENESIS_HEADER,
    config_lines: Optional[Iterable[str]] = None,
) -> dict:
    files = {}
    if "blocks" in entries:
        files["blocks/blk00000.dat"] = genesis_record(magic, header)
    if "chainstate" in entries:
        files["chainstate/CURRENT"] = b"MANIFEST-000001\n"
    if config_lines is not None:
        files["chainboot.conf"] = "".join(f"{line}\n" for line in config_lines).encode()
    return files


class FakeDownloader:
    """``DownloadPort`` double that serves bytes from memory in small chunks."""

    def __init__(
        self,
        payload: bytes = b"",
        *,
        chunk_size: int = 16,
        gate: Optional[threading.Event] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.payload = payload
        self.chunk_size = chunk_size
        self.gate = gate
        self.error = error
        self.calls: List[str] = []
        self.started = threading.Event()

    def download_to_file(self, url: str, target: Path, progress) -> None:
        from chainboot.domain.errors import CancelledError

        self.calls.append(url)
        with target.open("wb") as handle:
            self.started.set()
            if not progress(len(self.payload), 0):
                raise CancelledError("Bootstrap download cancelled")
            if self.gate is not None:
                self.gate.wait(5)
            for offset in range(0, len(self.payload), self.chunk_size):
                chunk = self.payload[offset : offset + self.chunk_size]
                handle.write(chunk)
                if not progress(len(self.payload), offset + len(chunk)):
                    raise CancelledError("Bootstrap download cancelled")
                if self.error is not None:
                    raise self.error


@pytest.fixture
def network() -> NetworkParams:
    return NetworkParams(
        name="unit",
        magic=UNIT_MAGIC,
        genesis_hash=display_hash(double_sha256(GENESIS_HEADER)),
        bootstrap_url=SNAPSHOT_URL,
        expected_chain_size=1024,
    )


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "node"
    path.mkdir()
    return path


@pytest.fixture
def layout(data_dir: Path) -> DataDirLayout:
    return DataDirLayout(data_dir)


@pytest.fixture
def write_tree() -> Callable[..., Path]:
    def _write(root: Path, **kwargs) -> Path:
        for name, content in snapshot_files(**kwargs).items():
            target = root / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        return root

    return _write


@pytest.fixture
def build_archive() -> Callable[..., Path]:
    def _build(path: Path, **kwargs) -> Path:
        with zipfile.ZipFile(path, "w") as bundle:
            for name, content in snapshot_files(**kwargs).items():
                bundle.writestr(name, content)
        return path

    return _build


@pytest.fixture
def archive_bytes(tmp_path: Path, build_archive) -> bytes:
    return build_archive(tmp_path / "source.zip").read_bytes()


@pytest.fixture
def fake_downloader_cls():
    return FakeDownloader
