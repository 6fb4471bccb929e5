"""Tests for rd.platform.actions module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from rd.platform.actions import (
    DEFAULT_API_URL,
    ActionsOutputs,
    GitHubContext,
    MemoryOutputs,
    append_file_command,
    is_actions_runner,
    parse_repository,
)


def test_is_actions_runner() -> None:
    assert is_actions_runner({"GITHUB_ACTIONS": "true"})
    assert not is_actions_runner({})


def test_append_file_command_supports_multiline(tmp_path: Path) -> None:
    path = tmp_path / "out"
    append_file_command(path, "changelog", "line 1\nline 2")
    lines = path.read_text(encoding="utf-8").splitlines()
    delimiter = lines[0].split("<<", 1)[1]
    assert lines == [f"changelog<<{delimiter}", "line 1", "line 2", delimiter]


def test_parse_repository() -> None:
    assert parse_repository("acme/crm") == ("acme", "crm")
    assert parse_repository("acme") == ("acme", "")


def test_context_from_env(tmp_path: Path) -> None:
    ctx = GitHubContext.from_env(
        {
            "GITHUB_REPOSITORY": "acme/crm",
            "GITHUB_REF": "refs/heads/main",
            "GITHUB_API_URL": "https://ghe.example/api/v3/",
            "GITHUB_EVENT_PATH": str(tmp_path / "event.json"),
        }
    )
    assert ctx.repository == "acme/crm"
    assert ctx.api_url == "https://ghe.example/api/v3"
    assert ctx.event_path == tmp_path / "event.json"
    assert GitHubContext.from_env({}).api_url == DEFAULT_API_URL


class TestDetectIssueNumber:
    def test_from_pull_ref(self) -> None:
        assert GitHubContext(ref="refs/pull/42/merge").detect_issue_number() == 42

    @pytest.mark.parametrize(
        "payload, expected",
        [
            ({"issue": {"number": 7}}, 7),
            ({"pull_request": {"number": 8}}, 8),
            ({"number": 9}, 9),
            ({"action": "push"}, None),
        ],
    )
    def test_from_event_payload(
        self, tmp_path: Path, payload: dict[str, object], expected: int | None
    ) -> None:
        event = tmp_path / "event.json"
        event.write_text(json.dumps(payload), encoding="utf-8")
        ctx = GitHubContext(ref="refs/heads/main", event_path=event)
        assert ctx.detect_issue_number() == expected

    def test_unreadable_event_is_none(self, tmp_path: Path) -> None:
        ctx = GitHubContext(event_path=tmp_path / "missing.json")
        assert ctx.detect_issue_number() is None


def test_actions_outputs_write_file(tmp_path: Path) -> None:
    path = tmp_path / "output"
    ActionsOutputs(output_file=path).set_output("deployment-status", "success")
    assert "\nsuccess\n" in path.read_text(encoding="utf-8")


def test_actions_outputs_print_locally(capsys: pytest.CaptureFixture[str]) -> None:
    ActionsOutputs.from_env({}).set_output("ticket-id", "T1")
    assert capsys.readouterr().out == "ticket-id=T1\n"


def test_memory_outputs() -> None:
    outputs = MemoryOutputs()
    outputs.set_output("a", "b")
    assert outputs.values == {"a": "b"}
