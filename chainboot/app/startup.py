"""Node startup integration: finish an install interrupted by a restart."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Literal

from chainboot.domain.errors import BootstrapError
from chainboot.utils.fs import remove_path

from .orchestrator import BootstrapOrchestrator

log = logging.getLogger("chainboot.startup")

StartupAction = Literal["none", "discarded", "installed", "failed"]


@dataclass(frozen=True)
class StartupOutcome:
    """What ``resume_pending_install`` did and whether it succeeded."""

    action: StartupAction
    ok: bool
    message: str = ""


def resume_pending_install(orchestrator: BootstrapOrchestrator) -> StartupOutcome:
    """Inspect the staging area and run stage II when it is trusted.

    - no staging directory: nothing to do
    - staging without marker: untrusted leftovers of a failed stage I, removed
    - staging with marker: stage II runs and this call waits for it
    """
    layout = orchestrator.layout
    staging = layout.staging_dir
    if not staging.exists():
        return StartupOutcome("none", True)

    if not orchestrator.is_install_prepared():
        log.warning("Discarding unverified staging directory %s", staging)
        try:
            remove_path(staging)
        except BootstrapError as exc:
            return StartupOutcome("failed", False, str(exc))
        return StartupOutcome("discarded", True)

    log.info("Verified snapshot found in %s, installing", staging)
    ok, message = orchestrator.start_install()
    if not ok:
        return StartupOutcome("failed", False, message)
    ok, error = orchestrator.last_run_result()
    if not ok:
        log.error("Pending bootstrap install failed: %s", error)
        return StartupOutcome("failed", False, error)
    return StartupOutcome("installed", True, "Bootstrap installed")


__all__ = ["StartupAction", "StartupOutcome", "resume_pending_install"]
