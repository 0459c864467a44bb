"""Bootstrap orchestrator: run state, single-run guard and background worker.

The orchestrator sequences stage I (acquire, verify, stage) and stage II
(install, merge config, cleanup) on one daemon worker thread per run. Public
commands never raise; they return ``(ok, message)`` and every failure inside a
worker is captured as the last-run error.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import threading
from typing import Callable, Optional, Union

from chainboot.domain.errors import (
    BootstrapError,
    BootstrapIOError,
    CancelledError,
    ConcurrencyError,
    ConfigurationError,
    ResourceError,
)
from chainboot.domain.layout import DataDirLayout
from chainboot.domain.models import (
    BootstrapMode,
    BootstrapStage,
    BootstrapStatus,
    CommandResult,
    RunState,
    coerce_mode,
)
from chainboot.domain.network import NetworkParams
from chainboot.domain.ports import ArchivePort, BlockHashFn, DownloadPort
from chainboot.usecases.acquire_snapshot import AcquireFromCloud, AcquireFromFile
from chainboot.usecases.install_snapshot import InstallSnapshot
from chainboot.usecases.merge_config import MergeConfig
from chainboot.usecases.stage_snapshot import StageSnapshot
from chainboot.usecases.verify_snapshot import double_sha256
from chainboot.utils.fs import free_space_bytes, human_readable_size, path_exists, remove_path

log = logging.getLogger("chainboot.orchestrator")

WORKER_NAMES = {"stage_one": "chainboot-stage1", "stage_two": "chainboot-stage2"}
RUNNING_MESSAGE = "Bootstrap is running"


def _noop(*_: object, **__: object) -> None:
    """Default no-op callback used for hooks."""


@dataclass
class BootstrapHooks:
    """Optional callbacks fired on orchestrator events.

    Stage completion hooks run on the worker thread after the run state has
    been finalized, so ``is_running`` is already ``False`` inside them.
    """

    on_state_changed: Callable[[], None] = _noop
    on_progress: Callable[[str, int], None] = _noop
    on_stage_one_completed: Callable[[bool, str], None] = _noop
    on_stage_two_completed: Callable[[bool, str], None] = _noop

    def __post_init__(self) -> None:
        self.on_state_changed = self.on_state_changed or _noop
        self.on_progress = self.on_progress or _noop
        self.on_stage_one_completed = self.on_stage_one_completed or _noop
        self.on_stage_two_completed = self.on_stage_two_completed or _noop


class BootstrapOrchestrator:
    """Drive snapshot bootstrap runs for one node data directory."""

    def __init__(
        self,
        *,
        layout: DataDirLayout,
        network: NetworkParams,
        downloader: DownloadPort,
        extractor: ArchivePort,
        hooks: Optional[BootstrapHooks] = None,
        merge_config: Optional[MergeConfig] = None,
        block_hash: BlockHashFn = double_sha256,
        free_space: Callable[[Path], int] = free_space_bytes,
        mode: BootstrapMode = "cloud",
        on_close: Optional[Callable[["BootstrapOrchestrator"], None]] = None,
    ) -> None:
        self.layout = layout
        self.network = network
        self.hooks = hooks or BootstrapHooks()
        self._downloader = downloader
        self._extractor = extractor
        self._merge_config = merge_config or MergeConfig()
        self._block_hash = block_hash
        self._free_space = free_space
        self._on_close = on_close

        self._mode: BootstrapMode = coerce_mode(mode)
        self._file_path: Optional[Path] = None
        self._state = RunState()
        self._running = False
        self._closed = False
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def progress(self) -> int:
        return self._state.progress

    @property
    def status_text(self) -> str:
        return self._state.status_text

    @property
    def mode(self) -> BootstrapMode:
        return self._mode

    @property
    def file_path(self) -> Optional[Path]:
        return self._file_path

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_config_merged(self) -> bool:
        return self._state.config_merged

    @property
    def is_cancelled(self) -> bool:
        return self._state.cancel_requested

    @property
    def last_error(self) -> str:
        return self._state.last_error

    def file_path_ok(self) -> bool:
        """Return whether the selected archive path exists."""
        return self._file_path is not None and self._file_path.exists()

    def is_install_prepared(self) -> bool:
        """Return whether a verified staging area is waiting for stage II."""
        return self.layout.marker_path.is_file()

    def is_stage_one_possible(self) -> CommandResult:
        return self._as_result(self._check_can_start)

    def is_stage_two_possible(self) -> CommandResult:
        return self._as_result(self._check_can_start)

    def last_run_result(self) -> CommandResult:
        """Wait for the active run and return ``(ok, error_text)``."""
        self.wait()
        error = self._state.last_error
        return (not error, error)

    def status(self) -> BootstrapStatus:
        return BootstrapStatus(
            mode=self._mode,
            file_path=str(self._file_path or ""),
            running=self._running,
            stage=self._state.stage,
            progress=self._state.progress,
            status_text=self._state.status_text,
            cancelled=self._state.cancel_requested,
            config_merged=self._state.config_merged,
            install_prepared=self.is_install_prepared(),
            last_error=self._state.last_error,
        )

    # ------------------------------------------------------------------
    # Commands returning (ok, message)
    # ------------------------------------------------------------------
    def set_mode(self, mode: Union[BootstrapMode, str]) -> CommandResult:
        return self._as_result(lambda: self.change_mode(mode), "Bootstrap mode set")

    def set_file_path(self, path: Union[Path, str, None]) -> CommandResult:
        return self._as_result(lambda: self.change_file_path(path), "Bootstrap file selected")

    def start_acquire_and_stage(self) -> CommandResult:
        return self._as_result(lambda: self.start("stage_one"), "Bootstrap stage I started")

    def start_install(self) -> CommandResult:
        return self._as_result(lambda: self.start("stage_two"), "Bootstrap stage II started")

    def cleanup(self) -> CommandResult:
        return self._as_result(self.clear_staging, "Bootstrap staging removed")

    def cancel(self) -> None:
        """Latch the cooperative cancel flag; only the download observes it."""
        if not self._state.cancel_requested:
            log.info("Bootstrap cancel requested")
        self._state.cancel_requested = True
        self._emit("on_state_changed")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the active worker exits; return ``False`` on timeout."""
        worker = self._worker
        if worker is None or worker is threading.current_thread():
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def close(self) -> None:
        """Cancel and wait for the active run, then release the context slot."""
        if self._closed:
            return
        self.cancel()
        self.wait()
        self._closed = True
        if self._on_close is not None:
            self._on_close(self)
        log.debug("Bootstrap orchestrator closed")

    # ------------------------------------------------------------------
    # Commands raising BootstrapError
    # ------------------------------------------------------------------
    def change_mode(self, mode: Union[BootstrapMode, str]) -> None:
        try:
            value = coerce_mode(mode)
        except ValueError as exc:
            raise ConfigurationError(str(exc), "Use 'cloud' or 'file'.") from exc
        with self._lock:
            self._ensure_idle_locked()
            self._mode = value
        log.info("Bootstrap mode set to %s", value)
        self._emit("on_state_changed")

    def change_file_path(self, path: Union[Path, str, None]) -> None:
        text = str(path or "").strip()
        with self._lock:
            self._ensure_idle_locked()
            self._file_path = Path(text).expanduser() if text else None
        log.info("Bootstrap file path set to %s", self._file_path)
        self._emit("on_state_changed")

    def clear_staging(self) -> None:
        with self._lock:
            self._ensure_idle_locked()
            self._remove_stale_locked(keep_archive=False)
        self._emit("on_state_changed")

    def start(self, stage: BootstrapStage) -> None:
        """Check preconditions, reset run state and spawn the stage worker."""
        target = self._run_stage_one if stage == "stage_one" else self._run_stage_two
        with self._lock:
            self._check_can_start_locked()
            if stage == "stage_one":
                self._remove_stale_locked(keep_archive=self._archive_is_selected_file())
            self._state.reset(stage)
            self._running = True
            worker = threading.Thread(target=target, name=WORKER_NAMES[stage], daemon=True)
            try:
                worker.start()
            except RuntimeError as exc:
                self._running = False
                self._state.last_error = f"Failed to start bootstrap worker: {exc}"
                log.exception("Failed to start bootstrap %s worker", stage)
                raise BootstrapIOError(self._state.last_error) from exc
            self._worker = worker
        log.info("Bootstrap %s started (mode=%s, network=%s)", stage, self._mode, self.network.name)
        self._emit("on_state_changed")

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------
    def _check_can_start(self) -> None:
        with self._lock:
            self._check_can_start_locked()

    def _check_can_start_locked(self) -> None:
        if self._closed:
            raise ConfigurationError("Bootstrap orchestrator is closed")
        self._ensure_idle_locked()
        data_dir = self.layout.data_dir
        if not data_dir.is_dir():
            raise ConfigurationError(f"Path does not exist {data_dir}")
        try:
            available = int(self._free_space(data_dir))
        except OSError as exc:
            raise ResourceError(f"Failed to query free space of {data_dir}", str(exc)) from exc
        required = self.network.required_free_space
        if available < required:
            raise ResourceError(
                f"Not enough free space in {data_dir}",
                f"Required {human_readable_size(required)}, available {human_readable_size(available)}.",
            )

    def _ensure_idle_locked(self) -> None:
        if self._running:
            raise ConcurrencyError(RUNNING_MESSAGE, "Wait for the active bootstrap to finish.")

    def _archive_is_selected_file(self) -> bool:
        if self._mode != "file" or self._file_path is None:
            return False
        try:
            return self._file_path.resolve() == self.layout.archive_path.resolve()
        except OSError:
            return False

    def _remove_stale_locked(self, *, keep_archive: bool) -> None:
        targets = [self.layout.staging_dir]
        if not keep_archive:
            targets += [self.layout.archive_path, self.layout.archive_tmp_path]
        for target in targets:
            if path_exists(target):
                log.info("Removing stale bootstrap path %s", target)
                remove_path(target)

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------
    def _run_stage_one(self) -> None:
        log.debug("Stage I worker started")
        ok, error = False, ""
        try:
            archive = self._acquire()()
            stage = StageSnapshot(
                extractor=self._extractor,
                layout=self.layout,
                network=self.network,
                block_hash=self._block_hash,
                on_progress=self._report_progress,
                manual_download_url=self.network.bootstrap_url if self._mode == "cloud" else "",
            )
            stage(archive)
            ok = True
        except CancelledError as exc:
            log.info("Bootstrap stage I cancelled")
            error = str(exc)
        except BootstrapError as exc:
            log.error("Bootstrap stage I failed [%s]: %s", exc.code, exc)
            error = str(exc)
        except Exception as exc:
            log.exception("Unexpected error in bootstrap stage I")
            error = f"Unexpected error: {exc}"
        self._finish("stage_one", ok, error)

    def _run_stage_two(self) -> None:
        log.debug("Stage II worker started")
        ok, error = False, ""
        try:
            install = InstallSnapshot(
                layout=self.layout,
                merge_config=self._merge_config,
                on_progress=self._report_progress,
            )
            self._state.config_merged = install()
            ok = True
        except BootstrapError as exc:
            log.error("Bootstrap stage II failed [%s]: %s", exc.code, exc)
            error = str(exc)
        except Exception as exc:
            log.exception("Unexpected error in bootstrap stage II")
            error = f"Unexpected error: {exc}"
        self._finish("stage_two", ok, error)

    def _acquire(self) -> Callable[[], Path]:
        if self._mode == "file":
            return AcquireFromFile(self._file_path)
        return AcquireFromCloud(
            downloader=self._downloader,
            layout=self.layout,
            url=self.network.bootstrap_url,
            is_cancelled=lambda: self._state.cancel_requested,
            on_progress=self._report_progress,
        )

    def _finish(self, stage: BootstrapStage, ok: bool, error: str) -> None:
        error_text = "" if ok else (error or "Bootstrap failed")
        with self._lock:
            self._state.last_error = error_text
            if ok:
                self._state.progress = 100
            self._running = False
        log.info("Bootstrap %s finished (ok=%s)", stage, ok)
        # A state-changed listener may already have started the next run.
        self._emit("on_state_changed")
        hook = "on_stage_one_completed" if stage == "stage_one" else "on_stage_two_completed"
        self._emit(hook, ok, error_text)

    def _report_progress(self, status: str, percent: int) -> None:
        self._state.status_text = status
        self._state.progress = max(0, min(100, int(percent)))
        log.debug("%s (%d%%)", status, self._state.progress)
        self._emit("on_progress", status, self._state.progress)

    def _emit(self, name: str, *args: object) -> None:
        try:
            getattr(self.hooks, name)(*args)
        except Exception:
            log.exception("Bootstrap hook %s raised", name)

    @staticmethod
    def _as_result(action: Callable[[], None], message: str = "") -> CommandResult:
        try:
            action()
        except BootstrapError as exc:
            log.warning("Bootstrap command rejected [%s]: %s", exc.code, exc.message)
            return False, str(exc)
        return True, message


__all__ = ["BootstrapHooks", "BootstrapOrchestrator", "RUNNING_MESSAGE", "WORKER_NAMES"]
