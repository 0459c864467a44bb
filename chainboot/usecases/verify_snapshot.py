"""Snapshot verification: container signature, completeness, network identity.

The checks are plain functions so stage I can run them in sequence and tests
can exercise each one against a hand-built staging directory.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
import struct
from typing import Iterable

from chainboot.domain.errors import (
    BootstrapIOError,
    ConfigurationError,
    FormatError,
    IdentityError,
)
from chainboot.domain.layout import FIRST_BLOCK_FILE, REQUIRED_ENTRIES
from chainboot.domain.network import (
    MAX_BLOCK_RECORD_SIZE,
    MIN_BLOCK_RECORD_SIZE,
    NetworkParams,
)
from chainboot.domain.ports import BlockHashFn
from chainboot.utils.fs import compute_file_sha256

log = logging.getLogger("chainboot.verify")

ZIP_SIGNATURE = b"PK"
BLOCK_HEADER_SIZE = 80
_RECORD_PREFIX = struct.Struct("<4sI")


def double_sha256(data: bytes) -> bytes:
    """Return SHA256(SHA256(data)), the block header hash primitive."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def display_hash(digest: bytes) -> str:
    """Render a raw block hash the way block explorers show it (byte-reversed hex)."""
    return digest[::-1].hex()


def verify_container(path: Path) -> None:
    """Reject files that do not start with the ZIP local-header signature."""
    try:
        with path.open("rb") as handle:
            head = handle.read(len(ZIP_SIGNATURE))
    except OSError as exc:
        raise BootstrapIOError(f"Failed to open path {path}", str(exc)) from exc
    if head != ZIP_SIGNATURE:
        raise FormatError(f"File {path} is not a valid .zip archive")


def verify_completeness(staging_dir: Path, required: Iterable[str] = REQUIRED_ENTRIES) -> None:
    """Ensure every required top-level entry exists; report the first missing one."""
    for name in required:
        if not (staging_dir / name).exists():
            raise FormatError(
                f"Missing {name} in bootstrap archive",
                f"Expected {staging_dir / name} after extraction.",
            )


def verify_network_identity(
    staging_dir: Path,
    network: NetworkParams,
    block_hash: BlockHashFn = double_sha256,
) -> str:
    """Check that the staged chain starts with this network's genesis block.

    Reads the first record of ``blocks/blk00000.dat``: 4 magic bytes, a 4 byte
    little-endian record size, then the serialized block whose first 80 bytes
    are the header. Returns the genesis hash found in the snapshot.
    """
    if not network.genesis_hash:
        raise ConfigurationError(
            f"Network '{network.name}' has no genesis hash configured",
            "Snapshots cannot be verified for this network.",
        )

    block_file = staging_dir / REQUIRED_ENTRIES[0] / FIRST_BLOCK_FILE
    if not block_file.is_file():
        raise FormatError(
            f"Missing {REQUIRED_ENTRIES[0]}/{FIRST_BLOCK_FILE} in bootstrap archive",
            "The genesis block file is required to check the network.",
        )
    try:
        with block_file.open("rb") as handle:
            prefix = handle.read(_RECORD_PREFIX.size)
            if len(prefix) != _RECORD_PREFIX.size:
                raise IdentityError(
                    f"Invalid block file header in {block_file}",
                    f"Expected {_RECORD_PREFIX.size} bytes, read {len(prefix)}.",
                )
            magic, size = _RECORD_PREFIX.unpack(prefix)
            if magic != network.magic:
                raise IdentityError(
                    "Invalid network magic number",
                    f"Expected {network.magic.hex()}, found {magic.hex()}.",
                )
            if size < MIN_BLOCK_RECORD_SIZE or size > MAX_BLOCK_RECORD_SIZE:
                raise IdentityError(
                    "Invalid block size in genesis record",
                    f"Expected {MIN_BLOCK_RECORD_SIZE}..{MAX_BLOCK_RECORD_SIZE} bytes, found {size}.",
                )
            record = handle.read(size)
    except OSError as exc:
        raise BootstrapIOError(f"Failed to open path {block_file}", str(exc)) from exc

    if len(record) != size:
        raise IdentityError(
            "Truncated genesis record",
            f"Expected {size} bytes, read {len(record)}.",
        )

    actual = display_hash(block_hash(record[:BLOCK_HEADER_SIZE]))
    if actual != network.genesis_hash:
        raise IdentityError(
            "Invalid genesis block",
            f"Expected {network.genesis_hash}, found {actual}.",
        )
    log.debug("Genesis block %s matches network %s", actual, network.name)
    return actual


def archive_digest(archive: Path) -> str:
    """Whole-archive SHA256 persisted in the verified marker."""
    return compute_file_sha256(archive)


__all__ = [
    "BLOCK_HEADER_SIZE",
    "ZIP_SIGNATURE",
    "archive_digest",
    "display_hash",
    "double_sha256",
    "verify_completeness",
    "verify_container",
    "verify_network_identity",
]
