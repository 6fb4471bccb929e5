"""Changelog discovery, fallback generation and comment rendering.

``sfp release`` writes changelog artifacts below the output directory,
one subdirectory per domain when several domains are released. Discovery
is best-effort: it never raises and never fails a release.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from rd.core.result import Err, Ok, Result
from rd.output.console import ConsoleProtocol
from rd.services.release.errors import ReleaseError
from rd.services.release.model import ChangelogArtifacts, ChangelogStatus, ReleaseInputs
from rd.services.release.sfp import SfpCli

__all__ = [
    "CHANGELOG_SEPARATOR",
    "comment_marker",
    "format_changelog_comment",
    "generate_changelogs",
    "locate_changelog",
]

CHANGELOG_SEPARATOR = "\n\n---\n\n"

_MARKDOWN_SUFFIX = ".md"
_JSON_SUFFIX = ".json"

_STATUS_BADGES: dict[ChangelogStatus, tuple[str, str]] = {
    "success": ("✅", "Completed Successfully"),
    "partial": ("⚠️", "Partially Completed"),
    "failed": ("❌", "Failed"),
    "dry-run": ("\U0001f4dd", "Dry Run Preview"),
}


@dataclass(frozen=True, slots=True)
class _Found:
    path: Path
    mtime: float


def _walk(directory: Path, markdown: list[_Found], json_files: list[_Found]) -> None:
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if entry.is_dir() and not entry.is_symlink():
            _walk(entry, markdown, json_files)
            continue
        if not entry.is_file():
            continue
        suffix = entry.suffix.lower()
        if suffix == _MARKDOWN_SUFFIX:
            markdown.append(_Found(entry, entry.stat().st_mtime))
        elif suffix == _JSON_SUFFIX:
            json_files.append(_Found(entry, entry.stat().st_mtime))


def locate_changelog(root: Path) -> ChangelogArtifacts:
    """Find changelog artifacts anywhere below ``root``.

    The newest JSON file is reported as is. Markdown files are merged newest
    first; ``markdown_path`` is the newest one.
    """
    markdown: list[_Found] = []
    json_files: list[_Found] = []
    try:
        if not root.is_dir():
            return ChangelogArtifacts()
        _walk(root, markdown, json_files)

        markdown.sort(key=lambda f: f.mtime, reverse=True)
        json_files.sort(key=lambda f: f.mtime, reverse=True)

        content: str | None = None
        if markdown:
            content = CHANGELOG_SEPARATOR.join(
                f.path.read_text(encoding="utf-8") for f in markdown
            )
    except (OSError, UnicodeDecodeError):
        return ChangelogArtifacts()

    return ChangelogArtifacts(
        markdown_path=markdown[0].path if markdown else None,
        json_path=json_files[0].path if json_files else None,
        content=content,
    )


def generate_changelogs(
    *,
    sfp: SfpCli,
    inputs: ReleaseInputs,
    output_dir: Path,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    """Run ``sfp changelog from-env`` for each candidate into ``<dir>/<domain>``."""
    failures: list[str] = []
    for candidate in inputs.candidates:
        target = output_dir / candidate.domain
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            failures.append(f"{candidate}: {e}")
            continue

        console.info(f"Generating changelog for {candidate} in {inputs.environment}...")
        out = sfp.changelog_from_env(
            environment=inputs.environment,
            candidate=candidate,
            output_dir=target,
            console=console,
        )
        if not out.ok:
            failures.append(f"{candidate}: {out.detail or f'exit code {out.exit_code}'}")

    if failures:
        return Err(
            ReleaseError(
                kind="changelog_processing",
                message="changelog generation failed",
                hint="; ".join(failures),
            )
        )
    return Ok(None)


def comment_marker(environment: str) -> str:
    return f"<!-- release-domains:{environment} -->"


def format_changelog_comment(
    *,
    content: str | None,
    status: ChangelogStatus,
    candidates_label: str,
    environment: str,
    now: datetime | None = None,
) -> str:
    emoji, text = _STATUS_BADGES[status]
    timestamp = (now or datetime.now(UTC)).isoformat()
    body = content if content else "_No changelog was generated for this run._"
    return (
        f"## {emoji} Release {text}\n"
        "\n"
        f"**Environment:** `{environment}`\n"
        f"**Release Candidates:** `{candidates_label}`\n"
        f"**Updated:** {timestamp}\n"
        "\n"
        "---\n"
        "\n"
        f"{body}\n"
        "\n"
        "---\n"
        "<sub>Generated by release-domains</sub>"
    )
