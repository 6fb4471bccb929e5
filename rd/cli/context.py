from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import typer

from rd.core.config import Config, load_config_or_default
from rd.core.errors import ErrorCode
from rd.core.result import Err
from rd.output.console import ActionsConsole, ConsoleProtocol, RichConsole
from rd.platform.actions import GitHubContext, is_actions_runner


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    console: ConsoleProtocol
    github: GitHubContext
    env: Mapping[str, str]


def build_console(env: Mapping[str, str]) -> ConsoleProtocol:
    if is_actions_runner(env):
        return ActionsConsole()
    return RichConsole()


def build_context(config_path: Path | None = None) -> CLIContext:
    env = dict(os.environ)
    config_result = load_config_or_default(config_path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        config=config_result.value,
        console=build_console(env),
        github=GitHubContext.from_env(env),
        env=env,
    )
