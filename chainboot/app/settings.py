"""Environment-driven settings for the bootstrap service."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Mapping, Optional

from chainboot.adapters.http_client import HttpConfig
from chainboot.domain.errors import ConfigurationError
from chainboot.domain.layout import DEFAULT_CONFIG_NAME, DataDirLayout
from chainboot.domain.models import BootstrapMode, coerce_mode
from chainboot.domain.network import NetworkParams, get_network

ENV_DATA_DIR = "CHAINBOOT_DATA_DIR"
ENV_NETWORK = "CHAINBOOT_NETWORK"
ENV_BOOTSTRAP_URL = "CHAINBOOT_BOOTSTRAP_URL"
ENV_CONFIG_FILE = "CHAINBOOT_CONFIG_FILE"
ENV_MODE = "CHAINBOOT_MODE"
ENV_API_KEY = "CHAINBOOT_API_KEY"
ENV_REQUEST_TIMEOUT = "CHAINBOOT_REQUEST_TIMEOUT_S"
ENV_DOWNLOAD_TIMEOUT = "CHAINBOOT_DOWNLOAD_TIMEOUT_S"


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = str(environ.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid integer in {name}: {raw!r}",
            f"Set {name} to a positive number of seconds.",
        ) from exc
    if value <= 0:
        raise ConfigurationError(
            f"Invalid value in {name}: {value}",
            f"Set {name} to a positive number of seconds.",
        )
    return value


@dataclass(frozen=True)
class BootstrapSettings:
    """Resolved configuration consumed by ``AppContext``."""

    data_dir: Path
    network: NetworkParams
    config_file: Optional[Path] = None
    mode: BootstrapMode = "cloud"
    api_key: str = ""
    http: HttpConfig = field(default_factory=HttpConfig)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BootstrapSettings":
        """Build settings from ``CHAINBOOT_*`` environment variables."""
        env = os.environ if environ is None else environ
        raw_dir = str(env.get(ENV_DATA_DIR, "") or "").strip()
        if not raw_dir:
            raise ConfigurationError(
                "Data directory is not configured",
                f"Set environment variable '{ENV_DATA_DIR}'.",
            )
        data_dir = Path(raw_dir).expanduser().resolve()
        if not data_dir.is_dir():
            raise ConfigurationError(f"Path does not exist {data_dir}")

        network = get_network(env.get(ENV_NETWORK, "main"))
        network = network.with_bootstrap_url(env.get(ENV_BOOTSTRAP_URL))

        raw_config = str(env.get(ENV_CONFIG_FILE, "") or "").strip()
        config_file = Path(raw_config).expanduser() if raw_config else None

        try:
            mode = coerce_mode(env.get(ENV_MODE) or "cloud")
        except ValueError as exc:
            raise ConfigurationError(str(exc), f"Set {ENV_MODE} to 'cloud' or 'file'.") from exc

        http = HttpConfig(
            request_timeout_s=_env_int(env, ENV_REQUEST_TIMEOUT, HttpConfig.request_timeout_s),
            download_timeout_s=_env_int(env, ENV_DOWNLOAD_TIMEOUT, HttpConfig.download_timeout_s),
        )
        return cls(
            data_dir=data_dir,
            network=network,
            config_file=config_file,
            mode=mode,
            api_key=str(env.get(ENV_API_KEY, "") or ""),
            http=http,
        )

    def layout(self) -> DataDirLayout:
        """Return the data-directory layout; a relative config file is resolved in it."""
        if self.config_file is None:
            return DataDirLayout(self.data_dir)
        if self.config_file.is_absolute():
            return DataDirLayout(
                self.data_dir,
                config_name=self.config_file.name,
                live_config_override=self.config_file,
            )
        return DataDirLayout(self.data_dir, config_name=str(self.config_file) or DEFAULT_CONFIG_NAME)


__all__ = ["BootstrapSettings"]
