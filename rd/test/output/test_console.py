"""Tests for rd.output.console module."""

from __future__ import annotations

import pytest

from rd.output.console import ActionsConsole, MockConsole, RichConsole, Style


class TestMockConsole:
    def test_records_styles(self) -> None:
        console = MockConsole()
        console.success("done")
        console.warning("careful")
        console.error("broken")
        console.info("fyi")
        console.print("plain")

        assert console.messages == [
            "OK done",
            "warning: careful",
            "error: broken",
            "info: fyi",
            "plain",
        ]
        assert console.has_error()
        assert console.has_warning()
        assert console.count(Style.INFO) == 1

    def test_find(self) -> None:
        console = MockConsole()
        console.info("Locking environment: uat")
        console.info("Lock duration: 120 minutes")
        assert len(console.find("Lock")) == 2
        assert len(console.find("uat")) == 1

    def test_mask_secret(self) -> None:
        console = MockConsole()
        console.mask_secret("s3cret")
        assert console.secrets == ["s3cret"]


def test_rich_console_does_not_interpret_markup(capsys: pytest.CaptureFixture[str]) -> None:
    console = RichConsole()
    console.info("[bold]not markup[/bold]")
    console.print("[red]raw[/red]", Style.DIM)
    out = capsys.readouterr().out
    assert "[bold]not markup[/bold]" in out
    assert "[red]raw[/red]" in out


class TestActionsConsole:
    def test_warning_and_error_are_workflow_commands(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        console = ActionsConsole()
        console.warning("lock release failed")
        console.error("deploy failed\nsee log")
        out = capsys.readouterr().out.splitlines()
        assert "::warning::lock release failed" in out
        assert "::error::deploy failed%0Asee log" in out

    def test_mask_secret(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = ActionsConsole()
        console.mask_secret("tok-123")
        console.mask_secret("")
        assert capsys.readouterr().out == "::add-mask::tok-123\n"
