"""Subprocess execution with bounded output capture.

``run_command`` never fails because of a non-zero exit: callers get a
``CommandOutput`` and decide per step whether the exit code is fatal.
Both streams are captured incrementally and capped, so a very chatty
``sfp release`` cannot exhaust memory.

Usage:
    out = run_command("sfp", ["org", "login", "--server"], silent=True)
    if not out.ok:
        console.error(out.detail)
"""

from __future__ import annotations

import codecs
import subprocess
import sys
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import partial
from io import BufferedReader
from pathlib import Path
from typing import TextIO, cast

from rd.core.config import DEFAULT_MAX_BUFFER

__all__ = ["CommandOutput", "TRUNCATION_MARKER", "run_command"]

TRUNCATION_MARKER = "\n... [output truncated]"

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class CommandOutput:
    """Captured result of one external command.

    Attributes:
        command: The command that was executed (program first).
        stdout: Standard output, stripped, possibly truncated.
        stderr: Standard error, stripped, possibly truncated.
        exit_code: Process exit code (-1 if it could not be started).
    """

    command: tuple[str, ...]
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def detail(self) -> str:
        """Most useful diagnostic text: stderr, else stdout."""
        return self.stderr or self.stdout

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} exited with {self.exit_code}"


class _BoundedBuffer:
    """Accumulates text up to ``limit`` characters, then marks truncation once."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._parts: list[str] = []
        self._size = 0
        self.truncated = False

    def feed(self, text: str) -> None:
        if self.truncated or not text:
            return
        room = self._limit - self._size
        if len(text) > room:
            self._parts.append(text[:room])
            self._parts.append(TRUNCATION_MARKER)
            self._size = self._limit
            self.truncated = True
            return
        self._parts.append(text)
        self._size += len(text)

    def getvalue(self) -> str:
        return "".join(self._parts)


def _pump(stream: BufferedReader, buffer: _BoundedBuffer, echo: TextIO | None) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    for chunk in iter(partial(stream.read1, _CHUNK_SIZE), b""):
        text = decoder.decode(chunk)
        buffer.feed(text)
        if echo is not None:
            echo.write(text)
            echo.flush()
    tail = decoder.decode(b"", final=True)
    buffer.feed(tail)
    if echo is not None and tail:
        echo.write(tail)
    stream.close()


def run_command(
    command: str,
    args: Sequence[str],
    *,
    silent: bool = False,
    max_buffer: int = DEFAULT_MAX_BUFFER,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandOutput:
    """Execute ``command`` with ``args`` and capture its output.

    Args:
        command: Program to run (resolved through PATH).
        args: Arguments passed verbatim.
        silent: When False, output is echoed to this process's stdout/stderr
            while it is captured.
        max_buffer: Per-stream capture cap in characters.
        cwd: Working directory (current directory if None).
        env: Environment variables (inherits the current env if None).

    Returns:
        CommandOutput with stripped stdout/stderr and the exit code.
    """
    argv = (command, *args)
    try:
        proc = subprocess.Popen(
            argv,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        # ValueError: arguments Popen refuses (e.g. an embedded NUL byte)
        return CommandOutput(command=argv, stdout="", stderr=str(e), exit_code=-1)

    out_buf = _BoundedBuffer(max_buffer)
    err_buf = _BoundedBuffer(max_buffer)
    readers = [
        threading.Thread(
            target=_pump,
            args=(cast(BufferedReader, proc.stdout), out_buf, None if silent else sys.stdout),
            daemon=True,
        ),
        threading.Thread(
            target=_pump,
            args=(cast(BufferedReader, proc.stderr), err_buf, None if silent else sys.stderr),
            daemon=True,
        ),
    ]
    for reader in readers:
        reader.start()
    exit_code = proc.wait()
    for reader in readers:
        reader.join()

    return CommandOutput(
        command=argv,
        stdout=out_buf.getvalue().strip(),
        stderr=err_buf.getvalue().strip(),
        exit_code=exit_code,
    )
