"""Domain-level error types for bootstrap workflows.

Every failure inside a bootstrap run is raised as one of these typed errors and
captured by the orchestrator as the last-run error text. Each error carries a
stable ``code`` for API mapping, a human-readable ``message`` and an optional
``hint`` telling the operator what to correct before re-invoking.
"""

from __future__ import annotations


class BootstrapError(RuntimeError):
    """Base bootstrap error with stable code/message/hint values."""

    code = "bootstrap.error"

    def __init__(self, message: str, hint: str = "", *, code: str = "") -> None:
        super().__init__(message)
        self.code = str(code or type(self).code)
        self.message = str(message)
        self.hint = str(hint or "")

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\n{self.hint}"
        return self.message


class ConfigurationError(BootstrapError):
    """Network parameters, bootstrap source or data directory are missing."""

    code = "bootstrap.configuration"


class ConcurrencyError(BootstrapError):
    """A bootstrap task is already running."""

    code = "bootstrap.running"


class ResourceError(BootstrapError):
    """Not enough free space in the data directory."""

    code = "bootstrap.resource"


class BootstrapIOError(BootstrapError):
    """Open, create, remove or rename failed on the filesystem."""

    code = "bootstrap.io"


class FormatError(BootstrapError):
    """Bad container signature, unsafe archive entry or missing required entry."""

    code = "bootstrap.format"


class IdentityError(BootstrapError):
    """Snapshot network magic or genesis record does not match configuration."""

    code = "bootstrap.identity"


class TransportError(BootstrapError):
    """Download failed or the server answered with a non-success status."""

    code = "bootstrap.transport"


class CancelledError(BootstrapError):
    """The operator requested the running acquisition to stop."""

    code = "bootstrap.cancelled"


__all__ = [
    "BootstrapError",
    "BootstrapIOError",
    "CancelledError",
    "ConcurrencyError",
    "ConfigurationError",
    "FormatError",
    "IdentityError",
    "ResourceError",
    "TransportError",
]
