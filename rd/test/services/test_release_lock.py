from __future__ import annotations

from pathlib import Path

import pytest

from rd.core.result import Err, Ok
from rd.output.console import MockConsole
from rd.platform.process import CommandOutput
from rd.platform.state import MemoryStateStore
from rd.services.release import sfp as sfp_mod
from rd.services.release.lock import (
    LockManager,
    LockPhase,
    StateKey,
    parse_lock_response,
    persist_lock_state,
    read_lock_state,
)
from rd.services.release.model import LockSettings, LockTicket, ReleaseCandidate, ReleaseInputs
from rd.services.release.sfp import SfpCli


class _FakeSfp:
    def __init__(self, *results: CommandOutput) -> None:
        self.results = list(results)
        self.calls: list[list[str]] = []

    def __call__(self, command: str, args: list[str], **kwargs: object) -> CommandOutput:
        del kwargs
        self.calls.append(list(args))
        return self.results.pop(0)


def _out(*, stdout: str = "", stderr: str = "", exit_code: int = 0) -> CommandOutput:
    return CommandOutput(command=("sfp",), stdout=stdout, stderr=stderr, exit_code=exit_code)


def _sfp() -> SfpCli:
    return SfpCli(
        server_url="https://sfp.example.com", server_token="srv-token", repository="acme/crm"
    )


class TestParseLockResponse:
    def test_ticket(self) -> None:
        result = parse_lock_response('{"ticketId":"T1","status":"locked"}')
        assert result == Ok(LockTicket(ticket_id="T1", status="locked"))

    def test_optional_fields(self) -> None:
        result = parse_lock_response(
            '{"ticketId":"T1","status":"locked","environmentId":"e1","environmentName":"uat"}'
        )
        assert isinstance(result, Ok)
        assert result.value.environment_name == "uat"

    def test_missing_ticket(self) -> None:
        result = parse_lock_response('{"status":"locked"}')
        assert isinstance(result, Err)
        assert result.error.kind == "malformed_lock_response"

    def test_not_json(self) -> None:
        result = parse_lock_response("Lock acquired")
        assert isinstance(result, Err)
        assert result.error.kind == "malformed_lock_response"


class TestLockManager:
    def test_acquire_with_wait_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        fake = _FakeSfp(_out(stdout='{"ticketId":"T1","status":"locked"}'))
        monkeypatch.setattr(sfp_mod, "run_command", fake)
        manager = LockManager(sfp=_sfp(), console=MockConsole())

        result = manager.acquire(environment="uat", duration_minutes=60, wait_timeout_minutes=15)

        assert isinstance(result, Ok)
        assert result.value.ticket_id == "T1"
        assert manager.phase is LockPhase.LOCKED
        args = fake.calls[0]
        assert args[:3] == ["server", "environment", "lock"]
        assert args[args.index("--duration") + 1] == "60"
        assert args[args.index("--wait-timeout") + 1] == "15"
        assert "--json" in args
        assert "--wait" not in args

    def test_acquire_waits_indefinitely_without_timeout(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        fake = _FakeSfp(_out(stdout='{"ticketId":"T1"}'))
        monkeypatch.setattr(sfp_mod, "run_command", fake)
        manager = LockManager(sfp=_sfp(), console=MockConsole())
        manager.acquire(environment="uat", duration_minutes=60, wait_timeout_minutes=0)
        assert "--wait" in fake.calls[0]
        assert "--wait-timeout" not in fake.calls[0]

    def test_acquire_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sfp_mod, "run_command", _FakeSfp(_out(stderr="busy", exit_code=1)))
        manager = LockManager(sfp=_sfp(), console=MockConsole())
        result = manager.acquire(environment="uat", duration_minutes=60, wait_timeout_minutes=5)
        assert isinstance(result, Err)
        assert result.error.kind == "lock_acquisition"
        assert result.error.hint == "busy"
        assert manager.phase is LockPhase.UNLOCKED

    def test_release(self, monkeypatch: pytest.MonkeyPatch) -> None:
        fake = _FakeSfp(_out())
        monkeypatch.setattr(sfp_mod, "run_command", fake)
        manager = LockManager(sfp=_sfp(), console=MockConsole())
        result = manager.release(ticket_id="T1", environment="uat")
        assert result == Ok(None)
        assert manager.phase is LockPhase.UNLOCKED
        args = fake.calls[0]
        assert args[:3] == ["server", "environment", "unlock"]
        assert args[args.index("--ticket-id") + 1] == "T1"

    def test_release_failure_keeps_locked(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sfp_mod, "run_command", _FakeSfp(_out(stderr="gone", exit_code=1)))
        manager = LockManager(sfp=_sfp(), console=MockConsole())
        result = manager.release(ticket_id="T1", environment="uat")
        assert isinstance(result, Err)
        assert result.error.kind == "lock_release"
        assert manager.phase is LockPhase.LOCKED

    def test_double_acquire_is_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sfp_mod, "run_command", _FakeSfp(_out(stdout='{"ticketId":"T1"}')))
        manager = LockManager(sfp=_sfp(), console=MockConsole())
        manager.acquire(environment="uat", duration_minutes=60, wait_timeout_minutes=5)
        with pytest.raises(RuntimeError, match="invalid lock transition"):
            manager.acquire(environment="uat", duration_minutes=60, wait_timeout_minutes=5)


def _inputs() -> ReleaseInputs:
    return ReleaseInputs(
        server_url="https://sfp.example.com",
        server_token="srv-token",
        environment="uat",
        candidates=(ReleaseCandidate("core", "RC-1"),),
        repository="acme/crm",
        devhub_alias="devhub",
        wait_time_minutes=120,
        tag=None,
        lock=LockSettings(enabled=True, wait_timeout_minutes=120, duration_minutes=120),
        exclude_packages=(),
        override_packages=(),
        dry_run=False,
        generate_changelog=True,
        update_issue=False,
        issue_number=None,
        changelog_dir=Path("out"),
    )


def test_persist_then_read_lock_state() -> None:
    store = MemoryStateStore()
    result = persist_lock_state(store, ticket=LockTicket("T1", "locked"), inputs=_inputs())
    assert result == Ok(None)
    assert list(store.values)[-1] == StateKey.AUTO_UNLOCK

    state = read_lock_state(store)
    assert state.auto_unlock is True
    assert state.missing == ()
    assert state.lock is not None
    assert state.lock.ticket_id == "T1"
    assert state.lock.server_token == "srv-token"


def test_read_lock_state_reports_missing_fields() -> None:
    store = MemoryStateStore({StateKey.AUTO_UNLOCK: "true", StateKey.TICKET_ID: "T1"})
    state = read_lock_state(store)
    assert state.auto_unlock is True
    assert state.lock is None
    assert state.missing == ("environment", "repository", "serverUrl", "serverToken")


def test_persist_failure_is_an_error() -> None:
    class _BrokenStore:
        def save(self, key: str, value: str) -> None:
            raise OSError("disk full")

        def get(self, key: str) -> str | None:
            return None

    result = persist_lock_state(
        _BrokenStore(), ticket=LockTicket("T1", "locked"), inputs=_inputs()
    )
    assert isinstance(result, Err)
    assert "disk full" in result.error.message
