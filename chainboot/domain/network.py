"""Static network identity table consumed by bootstrap verification.

Each entry pins the values a snapshot must match before it is trusted: the
four magic bytes that prefix every record in the block files, the genesis block
hash, and the official bootstrap archive URL.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from .errors import ConfigurationError

GB_BYTES = 1_000_000_000
MAX_BLOCK_RECORD_SIZE = 2_000_000
MIN_BLOCK_RECORD_SIZE = 80


@dataclass(frozen=True)
class NetworkParams:
    """Identity tuple and bootstrap source of one chain network."""

    name: str
    magic: bytes
    genesis_hash: str
    bootstrap_url: str = ""
    dns_seeds: Tuple[str, ...] = ()
    default_port: int = 0
    expected_chain_size: int = 1 * GB_BYTES

    def __post_init__(self) -> None:
        if len(self.magic) != 4:
            raise ConfigurationError(
                f"Network '{self.name}' magic must be 4 bytes",
                f"Got {len(self.magic)} bytes.",
            )
        normalized = str(self.genesis_hash or "").strip().lower()
        if normalized.startswith("0x"):
            normalized = normalized[2:]
        object.__setattr__(self, "genesis_hash", normalized)

    @property
    def required_free_space(self) -> int:
        """Free bytes needed in the data directory before a run may start."""
        return self.expected_chain_size * 2

    def with_bootstrap_url(self, url: Optional[str]) -> "NetworkParams":
        """Return a copy using ``url`` as bootstrap source when it is non-empty."""
        text = str(url or "").strip()
        if not text:
            return self
        return replace(self, bootstrap_url=text)


MAINNET = NetworkParams(
    name="main",
    magic=bytes((0x4C, 0xAF, 0x2C, 0xE9)),
    genesis_hash="e2aacf31ce196903e00157a50d207d04a152176b4eb83ecbb0b75b0c9455d1fd",
    bootstrap_url="https://bs.scryptachain.org/latest.zip",
    dns_seeds=tuple(f"seed{index:02d}.scryptachain.org" for index in range(1, 11)),
    default_port=42222,
)

TESTNET = NetworkParams(
    name="test",
    magic=bytes((0x45, 0x76, 0x65, 0xBA)),
    genesis_hash="d07464ddcf6a6d7e7f48de12d9e824bc1a874965d5f52b300d9962ca489bb8e3",
    bootstrap_url="https://galilel.org/bootstrap/v3/testnet",
    dns_seeds=tuple(f"testseed{index:02d}.scryptachain.org" for index in range(1, 7)),
    default_port=32222,
)

# Regtest genesis is mined locally, so there is no pinned hash and no snapshot source.
REGTEST = NetworkParams(
    name="regtest",
    magic=bytes((0xA1, 0xCF, 0x7E, 0xAC)),
    genesis_hash="",
    default_port=51476,
)

NETWORKS: Dict[str, NetworkParams] = {
    params.name: params for params in (MAINNET, TESTNET, REGTEST)
}


def get_network(name: str) -> NetworkParams:
    """Resolve a network entry by name."""
    key = str(name or "").strip().lower()
    if key in ("mainnet", ""):
        key = "main"
    elif key == "testnet":
        key = "test"
    params = NETWORKS.get(key)
    if params is None:
        raise ConfigurationError(
            f"Unknown network '{name}'",
            f"Choose one of: {', '.join(sorted(NETWORKS))}.",
        )
    return params


__all__ = [
    "GB_BYTES",
    "MAINNET",
    "MAX_BLOCK_RECORD_SIZE",
    "MIN_BLOCK_RECORD_SIZE",
    "NETWORKS",
    "NetworkParams",
    "REGTEST",
    "TESTNET",
    "get_network",
]
