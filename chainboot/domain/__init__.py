"""Domain package exports for bootstrap value objects and errors."""

from .errors import (
    BootstrapError,
    BootstrapIOError,
    CancelledError,
    ConcurrencyError,
    ConfigurationError,
    FormatError,
    IdentityError,
    ResourceError,
    TransportError,
)
from .layout import DataDirLayout
from .models import BootstrapMode, BootstrapStatus, CommandResult, RunState
from .network import NetworkParams, get_network

__all__ = [
    "BootstrapError",
    "BootstrapIOError",
    "BootstrapMode",
    "BootstrapStatus",
    "CancelledError",
    "CommandResult",
    "ConcurrencyError",
    "ConfigurationError",
    "DataDirLayout",
    "FormatError",
    "IdentityError",
    "NetworkParams",
    "ResourceError",
    "RunState",
    "TransportError",
    "get_network",
]
