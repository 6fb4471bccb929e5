"""Turn raw string inputs into validated ``ReleaseInputs``.

Inputs arrive as strings (CLI options or ``INPUT_*`` action variables).
Everything is checked here, before anything touches the environment.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rd.core.config import Config
from rd.core.result import Err, Ok, Result
from rd.platform.actions import GitHubContext
from rd.services.release.errors import ReleaseError
from rd.services.release.model import (
    LockSettings,
    PackageOverride,
    ReleaseCandidate,
    ReleaseInputs,
)

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off"}


@dataclass(frozen=True, slots=True)
class RawInputs:
    sfp_server_url: str | None = None
    sfp_server_token: str | None = None
    environment: str | None = None
    release_candidates: str | None = None
    repository: str | None = None
    devhub_alias: str | None = None
    wait_time: str | None = None
    tag: str | None = None
    exclude_packages: str | None = None
    override_packages: str | None = None
    lock: str | None = None
    lock_timeout: str | None = None
    lock_duration: str | None = None
    dry_run: str | None = None
    generate_changelog: str | None = None
    update_issue: str | None = None
    issue_number: str | None = None
    changelog_dir: str | None = None


def _invalid(message: str, hint: str | None = None) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="validation", message=message, hint=hint))


def _clean(value: str | None) -> str:
    return (value or "").strip()


def parse_bool(value: str | None, *, name: str, default: bool) -> Result[bool, ReleaseError]:
    text = _clean(value).lower()
    if not text:
        return Ok(default)
    if text in _TRUE:
        return Ok(True)
    if text in _FALSE:
        return Ok(False)
    return _invalid(f"invalid {name}: {value!r}", hint="expected true or false")


def parse_minutes(
    value: str | None,
    *,
    name: str,
    default: int,
    allow_zero: bool = True,
    allow_negative: bool = False,
) -> Result[int, ReleaseError]:
    text = _clean(value)
    if not text:
        return Ok(default)
    try:
        minutes = int(text, 10)
    except ValueError:
        return _invalid(f"invalid {name}: {value!r}", hint="expected a whole number of minutes")
    if allow_negative:
        return Ok(minutes)
    if minutes < 0 or (minutes == 0 and not allow_zero):
        return _invalid(f"invalid {name}: {minutes}", hint="must be positive")
    return Ok(minutes)


def parse_release_candidates(
    value: str | None,
) -> Result[tuple[ReleaseCandidate, ...], ReleaseError]:
    """Parse ``domain:name[,domain:name...]``."""
    text = _clean(value)
    if ":" not in text:
        return _invalid(
            "release candidates must be given as domain:name",
            hint="e.g. core:RC-1 or core:RC-1,sales:RC-7",
        )

    out: list[ReleaseCandidate] = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        domain, sep, name = item.partition(":")
        domain = domain.strip()
        name = name.strip()
        if not sep or not domain or not name:
            return _invalid(f"invalid release candidate (expected domain:name): {item}")
        out.append(ReleaseCandidate(domain=domain, name=name))

    if not out:
        return _invalid("no release candidates given")
    return Ok(tuple(out))


def parse_package_list(value: str | None) -> tuple[str, ...]:
    return tuple(p.strip() for p in _clean(value).split(",") if p.strip())


def parse_overrides(value: str | None) -> Result[tuple[PackageOverride, ...], ReleaseError]:
    out: list[PackageOverride] = []
    for item in parse_package_list(value):
        name, sep, version = item.partition("=")
        name = name.strip()
        version = version.strip()
        if not sep or not name or not version:
            return _invalid(f"invalid package override (expected name=version): {item}")
        out.append(PackageOverride(name=name, version=version))
    return Ok(tuple(out))


def resolve_inputs(
    raw: RawInputs,
    *,
    context: GitHubContext,
    config: Config,
) -> Result[ReleaseInputs, ReleaseError]:
    for label, value in (
        ("sfp-server-url", raw.sfp_server_url),
        ("sfp-server-token", raw.sfp_server_token),
        ("environment", raw.environment),
    ):
        if not _clean(value):
            return _invalid(f"missing required input: {label}")

    candidates = parse_release_candidates(raw.release_candidates)
    if isinstance(candidates, Err):
        return candidates

    repository = _clean(raw.repository) or context.repository.strip()
    if not repository:
        return _invalid(
            "repository not specified and GITHUB_REPOSITORY not set",
            hint="pass --repository owner/name",
        )

    overrides = parse_overrides(raw.override_packages)
    if isinstance(overrides, Err):
        return overrides

    wait_time = parse_minutes(
        raw.wait_time, name="wait-time", default=config.sfp.wait_time, allow_zero=False
    )
    if isinstance(wait_time, Err):
        return wait_time
    # <= 0 waits without limit
    lock_timeout = parse_minutes(
        raw.lock_timeout, name="lock-timeout", default=config.lock.timeout, allow_negative=True
    )
    if isinstance(lock_timeout, Err):
        return lock_timeout
    lock_duration = parse_minutes(
        raw.lock_duration, name="lock-duration", default=config.lock.duration, allow_zero=False
    )
    if isinstance(lock_duration, Err):
        return lock_duration

    flags: dict[str, bool] = {}
    for name, value, default in (
        ("lock", raw.lock, True),
        ("dry-run", raw.dry_run, False),
        ("generate-changelog", raw.generate_changelog, True),
        ("update-issue", raw.update_issue, True),
    ):
        parsed = parse_bool(value, name=name, default=default)
        if isinstance(parsed, Err):
            return parsed
        flags[name] = parsed.value

    issue_number: int | None = None
    issue_text = _clean(raw.issue_number)
    if issue_text:
        if not issue_text.isdigit() or int(issue_text) <= 0:
            return _invalid(f"invalid issue-number: {raw.issue_number!r}")
        issue_number = int(issue_text)
    elif flags["update-issue"]:
        issue_number = context.detect_issue_number()

    return Ok(
        ReleaseInputs(
            server_url=_clean(raw.sfp_server_url),
            server_token=_clean(raw.sfp_server_token),
            environment=_clean(raw.environment),
            candidates=candidates.value,
            repository=repository,
            devhub_alias=_clean(raw.devhub_alias) or config.sfp.devhub_alias,
            wait_time_minutes=wait_time.value,
            tag=_clean(raw.tag) or None,
            lock=LockSettings(
                enabled=flags["lock"],
                wait_timeout_minutes=lock_timeout.value,
                duration_minutes=lock_duration.value,
            ),
            exclude_packages=parse_package_list(raw.exclude_packages),
            override_packages=overrides.value,
            dry_run=flags["dry-run"],
            generate_changelog=flags["generate-changelog"],
            update_issue=flags["update-issue"],
            issue_number=issue_number,
            changelog_dir=Path(_clean(raw.changelog_dir) or config.changelog_dir),
        )
    )
