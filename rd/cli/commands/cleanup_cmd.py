from __future__ import annotations

import os
from pathlib import Path

import typer

from rd.cli.context import build_console
from rd.core.config import Config, load_config_or_default
from rd.core.result import Err
from rd.output.console import ConsoleProtocol
from rd.platform.state import JsonStateStore, select_state_store
from rd.services.release.cleanup import run_cleanup


def cleanup(
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: ./release-domains.toml)."
    ),
) -> None:
    """Release the environment lock taken by `run`. Never fails the job."""
    env = dict(os.environ)
    console = build_console(env)
    try:
        _cleanup(config, env, console)
    except Exception as e:  # noqa: BLE001
        console.warning(f"Cleanup failed: {e}")
        console.warning("Manual unlock may be required")


def _cleanup(config: Path | None, env: dict[str, str], console: ConsoleProtocol) -> None:
    cfg = Config()
    loaded = load_config_or_default(config)
    if isinstance(loaded, Err):
        console.warning(f"{loaded.error.message}; using defaults for cleanup")
    else:
        cfg = loaded.value

    store = select_state_store(env)
    report = run_cleanup(
        store=store,
        console=console,
        sfp_bin=cfg.sfp.bin,
        max_buffer=cfg.max_buffer,
    )

    # Runner state ends with the job; a local state file outlives it.
    if report.released and isinstance(store, JsonStateStore):
        try:
            store.clear()
        except OSError as e:
            console.warning(f"could not remove state file {store.path}: {e}")
