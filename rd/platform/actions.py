"""GitHub Actions runner integration.

Covers the pieces of the runner contract this tool touches: file commands
(``$GITHUB_OUTPUT``, ``$GITHUB_STATE``), the ambient ``GITHUB_*`` context,
and issue/PR number detection.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from rd.core.structured import as_str_dict, get_int, get_table

__all__ = [
    "ActionsOutputs",
    "GitHubContext",
    "MemoryOutputs",
    "OutputWriter",
    "append_file_command",
    "is_actions_runner",
    "parse_repository",
]

DEFAULT_API_URL = "https://api.github.com"

_PR_REF = re.compile(r"refs/pull/(\d+)")


def is_actions_runner(env: Mapping[str, str]) -> bool:
    return env.get("GITHUB_ACTIONS") == "true"


def append_file_command(path: Path, name: str, value: str) -> None:
    """Append ``name``/``value`` to a runner file command (output or state).

    Uses the multi-line delimiter form so values may contain newlines.
    """
    delimiter = f"ghadelimiter_{uuid4()}"
    if delimiter in value or delimiter in name:
        raise ValueError("value collides with the file command delimiter")
    with path.open("a", encoding="utf-8") as handle:
        handle.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")


def parse_repository(repository: str) -> tuple[str, str]:
    """Split ``owner/repo``; missing parts come back empty."""
    owner, _, repo = repository.partition("/")
    return owner, repo


@dataclass(frozen=True, slots=True)
class GitHubContext:
    """Read-only view of the ambient ``GITHUB_*`` variables."""

    repository: str = ""
    ref: str = ""
    sha: str = ""
    event_name: str = ""
    event_path: Path | None = None
    api_url: str = DEFAULT_API_URL

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> GitHubContext:
        event_path = env.get("GITHUB_EVENT_PATH") or None
        return cls(
            repository=env.get("GITHUB_REPOSITORY", ""),
            ref=env.get("GITHUB_REF", ""),
            sha=env.get("GITHUB_SHA", ""),
            event_name=env.get("GITHUB_EVENT_NAME", ""),
            event_path=Path(event_path) if event_path else None,
            api_url=(env.get("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
        )

    def detect_issue_number(self) -> int | None:
        """Issue/PR number for the triggering event, if any.

        Checks ``refs/pull/<n>/...`` first, then the event payload's
        ``issue.number``, ``pull_request.number`` and ``number``.
        """
        match = _PR_REF.search(self.ref)
        if match:
            return int(match.group(1))

        if self.event_path is None:
            return None
        try:
            payload: object = json.loads(self.event_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return None

        event = as_str_dict(payload)
        if event is None:
            return None
        for key in ("issue", "pull_request"):
            section = get_table(event, key)
            if section is not None:
                number = get_int(section, "number")
                if number:
                    return number
        return get_int(event, "number") or None


class OutputWriter(Protocol):
    def set_output(self, name: str, value: str) -> None: ...


@dataclass(frozen=True, slots=True)
class ActionsOutputs:
    """Writes step outputs to ``$GITHUB_OUTPUT``, or prints them locally."""

    output_file: Path | None

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> ActionsOutputs:
        path = env.get("GITHUB_OUTPUT")
        return cls(output_file=Path(path) if path else None)

    def set_output(self, name: str, value: str) -> None:
        if self.output_file is None:
            print(f"{name}={value}")
            return
        append_file_command(self.output_file, name, value)


def _empty_outputs() -> dict[str, str]:
    return {}


@dataclass
class MemoryOutputs:
    """Captures outputs for tests."""

    values: dict[str, str] = field(default_factory=_empty_outputs)

    def set_output(self, name: str, value: str) -> None:
        self.values[name] = value
