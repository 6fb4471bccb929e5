"""Environment lock: acquire in the main phase, release in the cleanup phase.

The ticket returned by ``acquire`` is persisted right away so the separate
cleanup process can unlock even if the main phase dies mid-release.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum, auto

from rd.core.result import Err, Ok, Result
from rd.core.structured import as_str_dict, get_str
from rd.output.console import ConsoleProtocol
from rd.platform.state import StateStore
from rd.services.release.errors import ReleaseError
from rd.services.release.model import LockTicket, ReleaseInputs
from rd.services.release.sfp import SfpCli

__all__ = [
    "LockManager",
    "LockPhase",
    "LockStateRead",
    "PersistedLock",
    "StateKey",
    "parse_lock_response",
    "persist_lock_state",
    "read_lock_state",
    "reset_lock_state",
]


class StateKey:
    TICKET_ID = "TICKET_ID"
    ENVIRONMENT = "ENVIRONMENT"
    REPOSITORY = "REPOSITORY"
    SERVER_URL = "SFP_SERVER_URL"
    SERVER_TOKEN = "SFP_SERVER_TOKEN"
    AUTO_UNLOCK = "AUTO_UNLOCK"


class LockPhase(Enum):
    UNLOCKED = auto()
    LOCKING = auto()
    LOCKED = auto()
    UNLOCKING = auto()


def parse_lock_response(stdout: str) -> Result[LockTicket, ReleaseError]:
    """Parse ``sfp server environment lock --json`` output."""
    try:
        obj: object = json.loads(stdout)
    except json.JSONDecodeError:
        return Err(
            ReleaseError(
                kind="malformed_lock_response",
                message="failed to parse lock response",
                hint=stdout[:500] or None,
            )
        )

    data = as_str_dict(obj)
    ticket_id = get_str(data, "ticketId") if data is not None else None
    if data is None or ticket_id is None:
        return Err(
            ReleaseError(
                kind="malformed_lock_response",
                message="lock response did not contain a ticket ID",
                hint=stdout[:500] or None,
            )
        )

    return Ok(
        LockTicket(
            ticket_id=ticket_id,
            status=get_str(data, "status") or "",
            environment_id=get_str(data, "environmentId"),
            environment_name=get_str(data, "environmentName"),
        )
    )


class LockManager:
    """Drives ``Unlocked -> Locking -> Locked -> Unlocking -> Unlocked``."""

    def __init__(self, *, sfp: SfpCli, console: ConsoleProtocol) -> None:
        self._sfp = sfp
        self._console = console
        self.phase = LockPhase.UNLOCKED
        self.ticket: LockTicket | None = None

    def _require(self, *allowed: LockPhase) -> None:
        if self.phase not in allowed:
            raise RuntimeError(f"invalid lock transition from {self.phase.name}")

    def acquire(
        self,
        *,
        environment: str,
        duration_minutes: int,
        wait_timeout_minutes: int,
    ) -> Result[LockTicket, ReleaseError]:
        self._require(LockPhase.UNLOCKED)
        self.phase = LockPhase.LOCKING

        self._console.info(f"Locking environment: {environment}")
        self._console.info(f"Lock duration: {duration_minutes} minutes")
        if wait_timeout_minutes > 0:
            self._console.info(f"Wait timeout: {wait_timeout_minutes} minutes")
        else:
            self._console.info("Wait timeout: none (waiting until the lock is free)")

        out = self._sfp.lock_environment(
            environment=environment,
            duration_minutes=duration_minutes,
            wait_timeout_minutes=wait_timeout_minutes,
            console=self._console,
        )
        if not out.ok:
            self.phase = LockPhase.UNLOCKED
            return Err(
                ReleaseError(
                    kind="lock_acquisition",
                    message=f"failed to lock environment: {environment}",
                    hint=out.detail or None,
                )
            )

        parsed = parse_lock_response(out.stdout)
        if isinstance(parsed, Err):
            self.phase = LockPhase.UNLOCKED
            return parsed

        self.ticket = parsed.value
        self.phase = LockPhase.LOCKED
        self._console.success(f"Environment locked. Ticket ID: {self.ticket.ticket_id}")
        return parsed

    def release(self, *, ticket_id: str, environment: str) -> Result[None, ReleaseError]:
        # A fresh manager in the cleanup process adopts the persisted ticket.
        self._require(LockPhase.UNLOCKED, LockPhase.LOCKED)
        self.phase = LockPhase.UNLOCKING

        self._console.info(f"Unlocking environment: {environment}")
        self._console.info(f"Ticket ID: {ticket_id}")
        out = self._sfp.unlock_environment(
            environment=environment,
            ticket_id=ticket_id,
            console=self._console,
        )
        if not out.ok:
            self.phase = LockPhase.LOCKED
            return Err(
                ReleaseError(
                    kind="lock_release",
                    message=f"failed to unlock environment: {environment}",
                    hint=out.detail or None,
                )
            )

        self.phase = LockPhase.UNLOCKED
        self.ticket = None
        self._console.success("Environment unlocked")
        return Ok(None)


@dataclass(frozen=True, slots=True)
class PersistedLock:
    ticket_id: str
    environment: str
    repository: str
    server_url: str
    server_token: str


@dataclass(frozen=True, slots=True)
class LockStateRead:
    auto_unlock: bool
    lock: PersistedLock | None
    missing: tuple[str, ...]


def persist_lock_state(
    store: StateStore, *, ticket: LockTicket, inputs: ReleaseInputs
) -> Result[None, ReleaseError]:
    """Save everything the cleanup phase needs to unlock.

    ``AUTO_UNLOCK`` is written last: it is the signal that an unlock is owed.
    """
    values = (
        (StateKey.TICKET_ID, ticket.ticket_id),
        (StateKey.ENVIRONMENT, inputs.environment),
        (StateKey.REPOSITORY, inputs.repository),
        (StateKey.SERVER_URL, inputs.server_url),
        (StateKey.SERVER_TOKEN, inputs.server_token),
        (StateKey.AUTO_UNLOCK, "true"),
    )
    try:
        for key, value in values:
            store.save(key, value)
    except (OSError, RuntimeError, ValueError) as e:
        return Err(
            ReleaseError(
                kind="lock_acquisition",
                message=f"failed to persist lock state: {e}",
                hint="the lock will be released now since cleanup could not find it",
            )
        )
    return Ok(None)


def reset_lock_state(store: StateStore) -> Result[None, ReleaseError]:
    """Withdraw any unlock owed by an earlier run that shares this store."""
    try:
        store.save(StateKey.AUTO_UNLOCK, "false")
    except (OSError, RuntimeError, ValueError) as e:
        return Err(
            ReleaseError(
                kind="lock_release",
                message=f"failed to reset lock state: {e}",
                hint="a later cleanup may try to unlock a stale ticket",
            )
        )
    return Ok(None)


def read_lock_state(store: StateStore) -> LockStateRead:
    auto_unlock = store.get(StateKey.AUTO_UNLOCK) == "true"
    fields = {
        "ticketId": store.get(StateKey.TICKET_ID),
        "environment": store.get(StateKey.ENVIRONMENT),
        "repository": store.get(StateKey.REPOSITORY),
        "serverUrl": store.get(StateKey.SERVER_URL),
        "serverToken": store.get(StateKey.SERVER_TOKEN),
    }
    missing = tuple(name for name, value in fields.items() if not value)
    if missing:
        return LockStateRead(auto_unlock=auto_unlock, lock=None, missing=missing)

    return LockStateRead(
        auto_unlock=auto_unlock,
        lock=PersistedLock(
            ticket_id=fields["ticketId"] or "",
            environment=fields["environment"] or "",
            repository=fields["repository"] or "",
            server_url=fields["serverUrl"] or "",
            server_token=fields["serverToken"] or "",
        ),
        missing=(),
    )
