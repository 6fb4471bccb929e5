"""Cleanup phase: release the lock taken by the main phase.

Runs as its own process after the job, whether the main phase succeeded,
failed or was cancelled. Nothing here can fail the job; a lock that cannot
be released is reported and left to expire (or to a manual unlock).
"""

from __future__ import annotations

from dataclasses import dataclass

from rd.core.config import DEFAULT_MAX_BUFFER
from rd.core.result import Err
from rd.output.console import ConsoleProtocol, Style
from rd.platform.state import StateStore
from rd.services.release.errors import ReleaseError
from rd.services.release.lock import LockManager, read_lock_state
from rd.services.release.sfp import SfpCli

_RULE = "-" * 90


@dataclass(frozen=True, slots=True)
class CleanupReport:
    attempted: bool
    released: bool
    error: ReleaseError | None = None


def run_cleanup(
    *,
    store: StateStore,
    console: ConsoleProtocol,
    sfp_bin: str = "sfp",
    max_buffer: int = DEFAULT_MAX_BUFFER,
) -> CleanupReport:
    state = read_lock_state(store)
    if not state.auto_unlock:
        console.info("No auto-unlock needed (lock was not acquired or disabled)")
        return CleanupReport(attempted=False, released=False)

    if state.lock is None:
        console.warning(f"Missing state for unlock: {', '.join(state.missing)}")
        console.warning("Manual unlock may be required")
        return CleanupReport(attempted=False, released=False)

    lock = state.lock
    console.mask_secret(lock.server_token)

    console.print(_RULE)
    console.print("release-domains cleanup: unlocking environment", Style.BOLD)
    console.print(_RULE)

    sfp = SfpCli(
        server_url=lock.server_url,
        server_token=lock.server_token,
        repository=lock.repository,
        bin=sfp_bin,
        max_buffer=max_buffer,
    )
    manager = LockManager(sfp=sfp, console=console)
    released = manager.release(ticket_id=lock.ticket_id, environment=lock.environment)
    if isinstance(released, Err):
        console.warning(f"Cleanup failed: {released.error.pretty()}")
        console.warning("The environment may need to be manually unlocked.")
        return CleanupReport(attempted=True, released=False, error=released.error)

    console.print(_RULE)
    return CleanupReport(attempted=True, released=True)
