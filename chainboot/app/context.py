"""Process-wide application context owning the single bootstrap orchestrator.

Exactly one orchestrator may exist per process. ``AppContext`` holds that slot
explicitly; creating a second orchestrator while the first is alive raises
``ContextError`` at construction time instead of failing later.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from chainboot.adapters.http_client import HttpSnapshotDownloader, RetryingSession
from chainboot.adapters.zip_archive import ZipArchiveExtractor
from chainboot.domain.ports import ArchivePort, DownloadPort
from chainboot.utils.fs import free_space_bytes

from .orchestrator import BootstrapHooks, BootstrapOrchestrator
from .settings import BootstrapSettings

log = logging.getLogger("chainboot.context")


class ContextError(RuntimeError):
    """Raised when the single-instance contract of the context is violated."""


class AppContext:
    """Wire settings and adapters into at most one live orchestrator."""

    def __init__(
        self,
        settings: BootstrapSettings,
        *,
        downloader: Optional[DownloadPort] = None,
        extractor: Optional[ArchivePort] = None,
        free_space: Callable[[Path], int] = free_space_bytes,
    ) -> None:
        self.settings = settings
        self._downloader = downloader
        self._extractor = extractor
        self._free_space = free_space
        self._orchestrator: Optional[BootstrapOrchestrator] = None
        self._lock = threading.Lock()

    @property
    def orchestrator(self) -> Optional[BootstrapOrchestrator]:
        return self._orchestrator

    def create_orchestrator(self, hooks: Optional[BootstrapHooks] = None) -> BootstrapOrchestrator:
        """Construct the orchestrator; fail if one is already alive."""
        with self._lock:
            if self._orchestrator is not None:
                raise ContextError("A bootstrap orchestrator already exists in this context")
            self._orchestrator = self._build(hooks)
        log.debug("Bootstrap orchestrator created for %s", self.settings.data_dir)
        return self._orchestrator

    def get_orchestrator(self) -> BootstrapOrchestrator:
        """Return the live orchestrator, creating it on first use."""
        with self._lock:
            if self._orchestrator is None:
                self._orchestrator = self._build(None)
            return self._orchestrator

    def release(self, orchestrator: BootstrapOrchestrator) -> None:
        with self._lock:
            if self._orchestrator is orchestrator:
                self._orchestrator = None

    def close(self) -> None:
        orchestrator = self._orchestrator
        if orchestrator is not None:
            orchestrator.close()

    def _build(self, hooks: Optional[BootstrapHooks]) -> BootstrapOrchestrator:
        settings = self.settings
        downloader = self._downloader or HttpSnapshotDownloader(RetryingSession(settings.http))
        return BootstrapOrchestrator(
            layout=settings.layout(),
            network=settings.network,
            downloader=downloader,
            extractor=self._extractor or ZipArchiveExtractor(),
            hooks=hooks,
            free_space=self._free_space,
            mode=settings.mode,
            on_close=self.release,
        )


_CONTEXT: Optional[AppContext] = None
_CONTEXT_LOCK = threading.Lock()


def create_context(settings: BootstrapSettings, **kwargs) -> AppContext:
    """Install the process-wide context; fail if one is already installed."""
    global _CONTEXT
    with _CONTEXT_LOCK:
        if _CONTEXT is not None:
            raise ContextError("Application context already created")
        _CONTEXT = AppContext(settings, **kwargs)
        return _CONTEXT


def get_context() -> AppContext:
    if _CONTEXT is None:
        raise ContextError("Application context has not been created")
    return _CONTEXT


def release_context() -> None:
    """Close the live orchestrator and drop the process-wide context."""
    global _CONTEXT
    with _CONTEXT_LOCK:
        context, _CONTEXT = _CONTEXT, None
    if context is not None:
        context.close()


__all__ = [
    "AppContext",
    "ContextError",
    "create_context",
    "get_context",
    "release_context",
]
