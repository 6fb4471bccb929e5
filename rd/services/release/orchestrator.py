"""Main phase: lock, authenticate, edit, deploy, report.

Two channels leave a run:

- required: lock, authentication, definition fetch and deploy. The first
  failure here stops the run and becomes ``ReleaseOutcome.fatal``.
- advisory: changelog discovery and the issue comment. Failures are
  logged as warnings and collected in ``ReleaseOutcome.advisories``; they
  never change the deployment status.

Releasing the lock is not done here. It belongs to the cleanup phase,
which runs as its own process after the job, whatever happened here.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from rd import __version__
from rd.core.result import Err, Ok, Result
from rd.output.console import ConsoleProtocol, Style
from rd.platform.actions import GitHubContext, OutputWriter
from rd.platform.http import HttpClient
from rd.platform.state import StateStore
from rd.services.release.changelog import (
    comment_marker,
    format_changelog_comment,
    generate_changelogs,
    locate_changelog,
)
from rd.services.release.comments import upsert_comment
from rd.services.release.definition import apply_definition_edits
from rd.services.release.errors import ReleaseError
from rd.services.release.lock import LockManager, persist_lock_state, reset_lock_state
from rd.services.release.model import (
    ChangelogArtifacts,
    ChangelogStatus,
    DeployResult,
    DeploymentStatus,
    ReleaseInputs,
    ReleaseOutcome,
)
from rd.services.release.sfp import SfpCli
from rd.services.release.token import fetch_repository_token

_RULE = "-" * 90


@dataclass(frozen=True, slots=True)
class ReleaseRuntime:
    """Collaborators of a run (swapped for fakes in tests)."""

    sfp: SfpCli
    console: ConsoleProtocol
    outputs: OutputWriter
    state: StateStore
    http: HttpClient
    context: GitHubContext
    temp_dir: Path


def print_header(inputs: ReleaseInputs, console: ConsoleProtocol) -> None:
    console.print(_RULE)
    console.print(f"release-domains  -Version:{__version__}", Style.BOLD)
    console.print(_RULE)
    console.print(f"Repository        : {inputs.repository}")
    console.print(f"Environment       : {inputs.environment}")
    console.print(f"Release Candidates: {inputs.candidates_label}")
    console.print(f"SFP Server        : {inputs.server_url}")
    console.print(f"Lock              : {inputs.lock.enabled}")
    if inputs.exclude_packages:
        console.print(f"Exclude           : {','.join(inputs.exclude_packages)}")
    if inputs.override_packages:
        console.print(f"Override          : {','.join(str(o) for o in inputs.override_packages)}")
    if inputs.dry_run:
        console.print("Mode              : DRY-RUN")
    console.print(_RULE)
    console.newline()


def print_summary(
    inputs: ReleaseInputs, outcome: ReleaseOutcome, console: ConsoleProtocol
) -> None:
    console.newline()
    console.print(_RULE)
    console.header("Release Summary")
    console.print(_RULE)
    console.print(f"Environment       : {inputs.environment}")
    console.print(f"Release Candidates: {inputs.candidates_label}")
    if inputs.exclude_packages:
        console.print(f"Excluded          : {','.join(inputs.exclude_packages)}")
    if inputs.override_packages:
        console.print(f"Overrides         : {','.join(str(o) for o in inputs.override_packages)}")
    if outcome.ticket_id:
        console.print(f"Lock Ticket       : {outcome.ticket_id}")
    if outcome.changelog is not None and outcome.changelog.markdown_path is not None:
        console.print(f"Changelog         : {outcome.changelog.markdown_path}")
    console.print(f"Status            : {outcome.status or 'failed'}")
    console.print(_RULE)


def _authenticate(inputs: ReleaseInputs, runtime: ReleaseRuntime) -> Result[None, ReleaseError]:
    hub = runtime.sfp.login_devhub(alias=inputs.devhub_alias, console=runtime.console)
    if isinstance(hub, Err):
        return hub
    return runtime.sfp.login_environment(environment=inputs.environment, console=runtime.console)


def _prepare_definition(
    inputs: ReleaseInputs, runtime: ReleaseRuntime
) -> Result[Path | None, ReleaseError]:
    """Fetch and edit the definition when exclude/override is requested.

    Edits need a single release candidate; with several the request is
    ignored (with a warning) and the candidates deploy unmodified.
    """
    if not inputs.wants_definition_edits:
        return Ok(None)

    candidate = inputs.single_candidate
    if candidate is None:
        runtime.console.warning(
            "exclude/override packages need exactly one release candidate; "
            f"{len(inputs.candidates)} given, deploying without modifications"
        )
        return Ok(None)

    try:
        runtime.temp_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return Err(ReleaseError(kind="definition", message=f"failed to create temp dir: {e}"))

    target = runtime.temp_dir / f"release-def-{uuid4().hex[:12]}.yml"
    fetched = runtime.sfp.fetch_release_candidate(
        candidate=candidate, output_file=target, console=runtime.console
    )
    if isinstance(fetched, Err):
        return fetched

    edited = apply_definition_edits(
        path=target,
        exclude=inputs.exclude_packages,
        overrides=inputs.override_packages,
        console=runtime.console,
    )
    if isinstance(edited, Err):
        _remove_definition(target, runtime.console)
        return edited
    return Ok(target)


def _remove_definition(path: Path | None, console: ConsoleProtocol) -> None:
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        console.warning(f"could not remove temporary definition {path}: {e}")


def _deploy(
    inputs: ReleaseInputs,
    runtime: ReleaseRuntime,
    definition_file: Path | None,
) -> DeployResult:
    changelog_dir = inputs.changelog_dir if (inputs.generate_changelog or inputs.dry_run) else None
    verb = "Comparing (dry-run)" if inputs.dry_run else "Deploying"
    runtime.console.info(f"{verb} release candidates: {inputs.candidates_label}...")

    out = runtime.sfp.release(
        environment=inputs.environment,
        candidates=inputs.candidates,
        definition_file=definition_file,
        devhub_alias=inputs.devhub_alias,
        wait_time_minutes=inputs.wait_time_minutes,
        tag=inputs.tag,
        dry_run=inputs.dry_run,
        changelog_dir=changelog_dir,
        console=runtime.console,
    )
    if out.ok:
        suffix = " (dry-run)" if inputs.dry_run else ""
        runtime.console.success(f"Release deployment completed{suffix}")
    elif inputs.dry_run:
        runtime.console.warning(f"Dry-run comparison failed: {out.detail or out}")
    else:
        runtime.console.error(f"Release deployment failed: {out.detail or out}")
    return DeployResult(success=out.ok, changelog_dir=changelog_dir, is_dry_run=inputs.dry_run)


def _publish_comment(
    inputs: ReleaseInputs,
    runtime: ReleaseRuntime,
    artifacts: ChangelogArtifacts,
    status: ChangelogStatus,
) -> Result[None, ReleaseError]:
    if not inputs.update_issue:
        return Ok(None)
    if inputs.issue_number is None:
        runtime.console.info("No issue or pull request number found; skipping comment")
        return Ok(None)

    token = fetch_repository_token(
        http=runtime.http,
        server_url=inputs.server_url,
        server_token=inputs.server_token,
        repository=inputs.repository,
        console=runtime.console,
    )
    if isinstance(token, Err):
        return token

    body = format_changelog_comment(
        content=artifacts.content,
        status=status,
        candidates_label=inputs.candidates_label,
        environment=inputs.environment,
    )
    published = upsert_comment(
        http=runtime.http,
        token=token.value,
        repository=inputs.repository,
        issue_number=inputs.issue_number,
        body=body,
        marker=comment_marker(inputs.environment),
        console=runtime.console,
        api_url=runtime.context.api_url,
    )
    if isinstance(published, Err):
        return published
    return Ok(None)


def _handle_changelog(
    inputs: ReleaseInputs,
    runtime: ReleaseRuntime,
    deploy: DeployResult,
    status: ChangelogStatus,
    outcome: ReleaseOutcome,
) -> None:
    """Locate (or generate) the changelog and publish it. Advisory only."""
    root = deploy.changelog_dir or inputs.changelog_dir
    artifacts = locate_changelog(root)

    if not artifacts.found:
        runtime.console.info(f"No changelog found in {root}; generating from environment")
        generated = generate_changelogs(
            sfp=runtime.sfp, inputs=inputs, output_dir=root, console=runtime.console
        )
        if isinstance(generated, Err):
            runtime.console.warning(generated.error.pretty())
            outcome.advise(generated.error)
        artifacts = locate_changelog(root)

    outcome.changelog = artifacts
    paths = (
        ("changelog-path", "Markdown", artifacts.markdown_path),
        ("changelog-json-path", "JSON", artifacts.json_path),
    )
    for output, label, path in paths:
        if path is None:
            continue
        runtime.console.info(f"  {label}: {path}")
        try:
            runtime.outputs.set_output(output, str(path))
        except OSError as e:
            error = ReleaseError(
                kind="changelog_processing", message=f"could not set output {output}: {e}"
            )
            runtime.console.warning(error.pretty())
            outcome.advise(error)
    if artifacts.content is None:
        error = ReleaseError(
            kind="changelog_processing",
            message="no changelog markdown was produced",
            hint=str(root),
        )
        runtime.console.warning(error.pretty())
        outcome.advise(error)

    published = _publish_comment(inputs, runtime, artifacts, status)
    if isinstance(published, Err):
        runtime.console.warning(f"could not update issue comment: {published.error.pretty()}")
        outcome.advise(published.error)


def _set_status(runtime: ReleaseRuntime, outcome: ReleaseOutcome, status: DeploymentStatus) -> None:
    outcome.status = status
    runtime.outputs.set_output("deployment-status", status)


def _run_dry(inputs: ReleaseInputs, runtime: ReleaseRuntime, outcome: ReleaseOutcome) -> None:
    runtime.console.info("DRY-RUN MODE: no lock is acquired and the environment is not changed")

    auth = _authenticate(inputs, runtime)
    if isinstance(auth, Err):
        outcome.fatal = auth.error
        return

    definition = _prepare_definition(inputs, runtime)
    if isinstance(definition, Err):
        outcome.fatal = definition.error
        return

    deploy = _deploy(inputs, runtime, definition.value)
    _remove_definition(definition.value, runtime.console)
    if not deploy.success:
        error = ReleaseError(kind="deployment", message="dry-run comparison reported a failure")
        outcome.advise(error)

    _set_status(runtime, outcome, "dry-run")
    _handle_changelog(inputs, runtime, deploy, "dry-run", outcome)


def _run_normal(inputs: ReleaseInputs, runtime: ReleaseRuntime, outcome: ReleaseOutcome) -> None:
    if inputs.lock.enabled:
        manager = LockManager(sfp=runtime.sfp, console=runtime.console)
        ticket = manager.acquire(
            environment=inputs.environment,
            duration_minutes=inputs.lock.duration_minutes,
            wait_timeout_minutes=inputs.lock.wait_timeout_minutes,
        )
        if isinstance(ticket, Err):
            outcome.fatal = ticket.error
            return

        persisted = persist_lock_state(runtime.state, ticket=ticket.value, inputs=inputs)
        if isinstance(persisted, Err):
            released = manager.release(
                ticket_id=ticket.value.ticket_id, environment=inputs.environment
            )
            if isinstance(released, Err):
                runtime.console.warning(released.error.pretty())
                outcome.advise(released.error)
            outcome.fatal = persisted.error
            return

        outcome.ticket_id = ticket.value.ticket_id
        runtime.outputs.set_output("ticket-id", ticket.value.ticket_id)

    auth = _authenticate(inputs, runtime)
    if isinstance(auth, Err):
        outcome.fatal = auth.error
        return

    definition = _prepare_definition(inputs, runtime)
    if isinstance(definition, Err):
        outcome.fatal = definition.error
        return

    deploy = _deploy(inputs, runtime, definition.value)
    _remove_definition(definition.value, runtime.console)

    _set_status(runtime, outcome, "success" if deploy.success else "failed")
    if inputs.generate_changelog:
        changelog_status: ChangelogStatus = "success" if deploy.success else "partial"
        _handle_changelog(inputs, runtime, deploy, changelog_status, outcome)

    if not deploy.success:
        outcome.fatal = ReleaseError(kind="deployment", message="release deployment failed")


def run_release(inputs: ReleaseInputs, runtime: ReleaseRuntime) -> ReleaseOutcome:
    """Run the main phase. Never raises for release failures; see ``ReleaseOutcome``."""
    outcome = ReleaseOutcome()
    runtime.console.mask_secret(inputs.server_token)
    print_header(inputs, runtime.console)

    reset = reset_lock_state(runtime.state)
    if isinstance(reset, Err):
        runtime.console.warning(reset.error.pretty())
        outcome.advise(reset.error)

    if inputs.dry_run:
        _run_dry(inputs, runtime, outcome)
    else:
        _run_normal(inputs, runtime, outcome)

    if outcome.status is None:
        _set_status(runtime, outcome, "failed")

    print_summary(inputs, outcome, runtime.console)
    return outcome
