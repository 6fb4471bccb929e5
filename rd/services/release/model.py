from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from rd.services.release.errors import ReleaseError

DeploymentStatus = Literal["success", "failed", "dry-run"]
ChangelogStatus = Literal["success", "partial", "failed", "dry-run"]


@dataclass(frozen=True, slots=True)
class ReleaseCandidate:
    """A release candidate qualified by its domain (``core:RC-1``)."""

    domain: str
    name: str

    def __str__(self) -> str:
        return f"{self.domain}:{self.name}"


@dataclass(frozen=True, slots=True)
class PackageOverride:
    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}={self.version}"


@dataclass(frozen=True, slots=True)
class LockSettings:
    enabled: bool
    # <= 0 means wait for the lock indefinitely
    wait_timeout_minutes: int
    duration_minutes: int


@dataclass(frozen=True, slots=True)
class ReleaseInputs:
    """Everything a run needs, resolved and validated once at start."""

    server_url: str
    server_token: str
    environment: str
    candidates: tuple[ReleaseCandidate, ...]
    repository: str
    devhub_alias: str
    wait_time_minutes: int
    tag: str | None
    lock: LockSettings
    exclude_packages: tuple[str, ...]
    override_packages: tuple[PackageOverride, ...]
    dry_run: bool
    generate_changelog: bool
    update_issue: bool
    issue_number: int | None
    changelog_dir: Path

    @property
    def candidates_label(self) -> str:
        return ",".join(str(c) for c in self.candidates)

    @property
    def wants_definition_edits(self) -> bool:
        return bool(self.exclude_packages or self.override_packages)

    @property
    def single_candidate(self) -> ReleaseCandidate | None:
        if len(self.candidates) == 1:
            return self.candidates[0]
        return None


@dataclass(frozen=True, slots=True)
class LockTicket:
    ticket_id: str
    status: str
    environment_id: str | None = None
    environment_name: str | None = None


@dataclass(frozen=True, slots=True)
class DeployResult:
    success: bool
    changelog_dir: Path | None
    is_dry_run: bool


@dataclass(frozen=True, slots=True)
class ChangelogArtifacts:
    """Discovered changelog files.

    ``content`` is authoritative: when several markdown files exist it holds
    all of them (newest first) while ``markdown_path`` points at the newest.
    """

    markdown_path: Path | None = None
    json_path: Path | None = None
    content: str | None = None

    @property
    def found(self) -> bool:
        return self.markdown_path is not None or self.json_path is not None


def _no_advisories() -> list[ReleaseError]:
    return []


@dataclass
class ReleaseOutcome:
    """What a main-phase run produced.

    ``fatal`` is the required channel (lock, auth, deploy). ``advisories``
    collects best-effort failures (changelog, comments) and never feeds
    back into ``fatal``.
    """

    status: DeploymentStatus | None = None
    ticket_id: str | None = None
    changelog: ChangelogArtifacts | None = None
    fatal: ReleaseError | None = None
    advisories: list[ReleaseError] = field(default_factory=_no_advisories)

    @property
    def failed(self) -> bool:
        return self.fatal is not None

    def advise(self, error: ReleaseError) -> None:
        self.advisories.append(error)
