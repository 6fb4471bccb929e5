"""Key/value handoff between the main phase and the cleanup phase.

The two phases run as separate processes, so anything the cleanup needs
(the lock ticket, where to send the unlock) is persisted here right after
the lock is taken. On a GitHub runner the native state API is used;
elsewhere a small versioned JSON file plays the same role.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from rd.core.structured import as_str_dict, get_int, get_table
from rd.platform.actions import append_file_command, is_actions_runner

__all__ = [
    "ActionsStateStore",
    "JsonStateStore",
    "MemoryStateStore",
    "StateStore",
    "DEFAULT_STATE_FILE",
    "STATE_FORMAT_VERSION",
    "select_state_store",
]

STATE_FORMAT_VERSION = 1
DEFAULT_STATE_FILE = Path(".release-domains") / "state.json"


class StateStore(Protocol):
    def save(self, key: str, value: str) -> None: ...

    def get(self, key: str) -> str | None: ...


@dataclass(frozen=True, slots=True)
class ActionsStateStore:
    """Runner-native state.

    ``save`` appends to ``$GITHUB_STATE``; the runner exposes saved values
    to the post step as ``STATE_<KEY>`` environment variables.
    """

    state_file: Path | None
    env: Mapping[str, str]

    def save(self, key: str, value: str) -> None:
        if self.state_file is None:
            raise RuntimeError("GITHUB_STATE is not set")
        append_file_command(self.state_file, key, value)

    def get(self, key: str) -> str | None:
        return self.env.get(f"STATE_{key}") or None


@dataclass(frozen=True, slots=True)
class JsonStateStore:
    """Versioned JSON file: ``{"version": 1, "values": {...}}``."""

    path: Path

    def _load(self) -> dict[str, str]:
        try:
            data = as_str_dict(json.loads(self.path.read_text(encoding="utf-8")))
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            # Unreadable state means nothing to clean up.
            return {}
        if data is None or get_int(data, "version") != STATE_FORMAT_VERSION:
            return {}
        values = get_table(data, "values") or {}
        return {k: v for k, v in values.items() if isinstance(v, str)}

    def save(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        payload = json.dumps({"version": STATE_FORMAT_VERSION, "values": values}, indent=2)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_path, self.path)
        finally:
            tmp_path.unlink(missing_ok=True)

    def get(self, key: str) -> str | None:
        return self._load().get(key) or None

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def _empty_values() -> dict[str, str]:
    return {}


@dataclass
class MemoryStateStore:
    """In-process store for tests."""

    values: dict[str, str] = field(default_factory=_empty_values)

    def save(self, key: str, value: str) -> None:
        self.values[key] = value

    def get(self, key: str) -> str | None:
        return self.values.get(key) or None


def select_state_store(env: Mapping[str, str]) -> ActionsStateStore | JsonStateStore:
    """Runner state on GitHub Actions, else the JSON file (``RD_STATE_FILE``)."""
    if is_actions_runner(env):
        state_file = env.get("GITHUB_STATE")
        return ActionsStateStore(state_file=Path(state_file) if state_file else None, env=env)
    return JsonStateStore(path=Path(env.get("RD_STATE_FILE") or DEFAULT_STATE_FILE))
