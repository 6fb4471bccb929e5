from __future__ import annotations

import pytest

from rd.output.console import MockConsole
from rd.platform.process import CommandOutput
from rd.platform.state import MemoryStateStore
from rd.services.release import sfp as sfp_mod
from rd.services.release.cleanup import run_cleanup
from rd.services.release.lock import StateKey

FULL_STATE = {
    StateKey.TICKET_ID: "T1",
    StateKey.ENVIRONMENT: "uat",
    StateKey.REPOSITORY: "acme/crm",
    StateKey.SERVER_URL: "https://sfp.example.com",
    StateKey.SERVER_TOKEN: "srv-token",
    StateKey.AUTO_UNLOCK: "true",
}


class _Unlock:
    def __init__(self, exit_code: int = 0) -> None:
        self.exit_code = exit_code
        self.calls: list[tuple[str, list[str]]] = []

    def __call__(self, command: str, args: list[str], **kwargs: object) -> CommandOutput:
        del kwargs
        self.calls.append((command, list(args)))
        return CommandOutput(
            command=(command, *args), stdout="", stderr="ticket expired", exit_code=self.exit_code
        )


def test_skips_without_auto_unlock(monkeypatch: pytest.MonkeyPatch) -> None:
    unlock = _Unlock()
    monkeypatch.setattr(sfp_mod, "run_command", unlock)
    console = MockConsole()

    report = run_cleanup(store=MemoryStateStore(), console=console)

    assert report.attempted is False
    assert unlock.calls == []
    assert console.find("No auto-unlock needed")


def test_warns_on_missing_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    unlock = _Unlock()
    monkeypatch.setattr(sfp_mod, "run_command", unlock)
    console = MockConsole()
    store = MemoryStateStore({StateKey.AUTO_UNLOCK: "true", StateKey.TICKET_ID: "T1"})

    report = run_cleanup(store=store, console=console)

    assert report.attempted is False
    assert unlock.calls == []
    assert console.find("Missing state for unlock: environment")
    assert console.find("Manual unlock may be required")


def test_releases_persisted_lock(monkeypatch: pytest.MonkeyPatch) -> None:
    unlock = _Unlock()
    monkeypatch.setattr(sfp_mod, "run_command", unlock)
    console = MockConsole()

    report = run_cleanup(
        store=MemoryStateStore(dict(FULL_STATE)), console=console, sfp_bin="/opt/sfp"
    )

    assert report.released is True
    command, args = unlock.calls[0]
    assert command == "/opt/sfp"
    assert args[:3] == ["server", "environment", "unlock"]
    assert args[args.index("--ticket-id") + 1] == "T1"
    assert args[args.index("--repository") + 1] == "acme/crm"
    assert console.secrets == ["srv-token"]
    assert not console.has_warning()


def test_unlock_failure_is_only_a_warning(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sfp_mod, "run_command", _Unlock(exit_code=1))
    console = MockConsole()

    report = run_cleanup(store=MemoryStateStore(dict(FULL_STATE)), console=console)

    assert report.attempted is True
    assert report.released is False
    assert report.error is not None
    assert report.error.kind == "lock_release"
    assert console.find("Cleanup failed")
    assert console.find("may need to be manually unlocked")
    assert not console.has_error()
