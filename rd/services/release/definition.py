"""Exclude/override edits on a fetched release definition.

The definition is treated as plain lines, not as YAML. A line belongs to
package ``name`` when, after its indentation, it starts with ``name:``.
Names are compared literally and the namespace is flat: a package listed
in two sections is edited in both.

Edits run as two passes over the lines:

1. classify: each line is kept, dropped (excluded package) or replaced
   (overridden package, indentation and line ending preserved);
2. render: decisions are applied and whitespace-only lines removed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path

from rd.core.result import Err, Ok, Result
from rd.output.console import ConsoleProtocol, Style
from rd.services.release.errors import ReleaseError
from rd.services.release.model import PackageOverride

__all__ = [
    "LineAction",
    "LineDecision",
    "apply_definition_edits",
    "classify_lines",
    "mutate_definition",
]


class LineAction(Enum):
    KEEP = auto()
    DROP = auto()
    REPLACE = auto()


@dataclass(frozen=True, slots=True)
class LineDecision:
    action: LineAction
    original: str
    # Rendered line for KEEP/REPLACE (with its line ending); empty for DROP.
    text: str
    package: str | None = None


def _split_ending(line: str) -> tuple[str, str]:
    body = line.rstrip("\r\n")
    return body, line[len(body) :]


def _indent_of(body: str) -> str:
    return body[: len(body) - len(body.lstrip())]


def _belongs_to(body: str, name: str) -> bool:
    return body.lstrip().startswith(f"{name}:")


def _classify(
    line: str,
    exclude: Sequence[str],
    overrides: Sequence[PackageOverride],
) -> LineDecision:
    body, ending = _split_ending(line)

    for name in exclude:
        if _belongs_to(body, name):
            return LineDecision(LineAction.DROP, original=line, text="", package=name)

    # Later overrides of the same package win.
    chosen: PackageOverride | None = None
    for override in overrides:
        if _belongs_to(body, override.name):
            chosen = override
    if chosen is not None:
        text = f"{_indent_of(body)}{chosen.name}: {chosen.version}{ending}"
        return LineDecision(LineAction.REPLACE, original=line, text=text, package=chosen.name)

    return LineDecision(LineAction.KEEP, original=line, text=line)


def classify_lines(
    text: str,
    exclude: Sequence[str],
    overrides: Sequence[PackageOverride],
) -> list[LineDecision]:
    """First pass: decide what happens to every line of ``text``."""
    names = [n for n in exclude if n]
    return [_classify(line, names, overrides) for line in text.splitlines(keepends=True)]


def mutate_definition(
    text: str,
    exclude: Sequence[str],
    overrides: Sequence[PackageOverride],
) -> str:
    """Apply exclusions, then overrides, then drop whitespace-only lines."""
    rendered: list[str] = []
    for decision in classify_lines(text, exclude, overrides):
        if decision.action is LineAction.DROP:
            continue
        if not decision.text.strip():
            continue
        rendered.append(decision.text)
    return "".join(rendered)


def apply_definition_edits(
    *,
    path: Path,
    exclude: Sequence[str],
    overrides: Sequence[PackageOverride],
    console: ConsoleProtocol,
) -> Result[str, ReleaseError]:
    """Rewrite the definition file at ``path`` in place.

    Returns the modified text.
    """
    try:
        original = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(
            ReleaseError(
                kind="definition",
                message=f"failed to read release definition: {e}",
                hint=str(path),
            )
        )

    console.info("Original release definition:")
    console.print(original, Style.DIM)

    if exclude:
        console.info(f"Excluding packages: {', '.join(exclude)}")
    if overrides:
        console.info(f"Overriding package versions: {', '.join(str(o) for o in overrides)}")

    decisions = classify_lines(original, exclude, overrides)
    for decision in decisions:
        if decision.action is LineAction.DROP:
            console.print(f"  Removing: {decision.original.strip()}", Style.DIM)
        elif decision.action is LineAction.REPLACE:
            console.print(
                f"  Setting: {decision.original.strip()} -> {decision.text.strip()}", Style.DIM
            )

    touched = {d.package for d in decisions if d.package is not None}
    for name in [*exclude, *(o.name for o in overrides)]:
        if name not in touched:
            console.warning(f"package not found in release definition: {name}")

    modified = mutate_definition(original, exclude, overrides)

    console.info("Modified release definition:")
    console.print(modified, Style.DIM)

    try:
        path.write_text(modified, encoding="utf-8")
    except OSError as e:
        return Err(
            ReleaseError(
                kind="definition",
                message=f"failed to write release definition: {e}",
                hint=str(path),
            )
        )
    return Ok(modified)
