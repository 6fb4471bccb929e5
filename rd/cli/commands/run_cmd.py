from __future__ import annotations

import tempfile
from pathlib import Path

import typer

from rd.cli.commands._helpers import exit_on_release_error
from rd.cli.context import CLIContext, build_context
from rd.core.result import Err
from rd.platform.actions import ActionsOutputs
from rd.platform.http import RealHttpClient
from rd.platform.state import select_state_store
from rd.services.release.inputs import RawInputs, resolve_inputs
from rd.services.release.model import ReleaseInputs
from rd.services.release.orchestrator import ReleaseRuntime, run_release
from rd.services.release.sfp import SfpCli
from rd.services.release.timeouts import HTTP_TIMEOUT_SECONDS


def _runtime(ctx: CLIContext, inputs: ReleaseInputs) -> ReleaseRuntime:
    return ReleaseRuntime(
        sfp=SfpCli(
            server_url=inputs.server_url,
            server_token=inputs.server_token,
            repository=inputs.repository,
            bin=ctx.config.sfp.bin,
            max_buffer=ctx.config.max_buffer,
        ),
        console=ctx.console,
        outputs=ActionsOutputs.from_env(ctx.env),
        state=select_state_store(ctx.env),
        http=RealHttpClient(timeout=HTTP_TIMEOUT_SECONDS),
        context=ctx.github,
        temp_dir=Path(ctx.env.get("RUNNER_TEMP") or tempfile.gettempdir()),
    )


def run(
    sfp_server_url: str | None = typer.Option(
        None, "--sfp-server-url", envvar="INPUT_SFP-SERVER-URL", help="SFP server URL."
    ),
    sfp_server_token: str | None = typer.Option(
        None,
        "--sfp-server-token",
        envvar="INPUT_SFP-SERVER-TOKEN",
        help="SFP server application token.",
        show_default=False,
    ),
    environment: str | None = typer.Option(
        None, "--environment", "-e", envvar="INPUT_ENVIRONMENT", help="Target environment."
    ),
    release_candidates: str | None = typer.Option(
        None,
        "--release-candidates",
        "-r",
        envvar="INPUT_RELEASE-CANDIDATES",
        help="domain:name[,domain:name...]",
    ),
    repository: str | None = typer.Option(
        None,
        "--repository",
        envvar="INPUT_REPOSITORY",
        help="owner/repo (default: GITHUB_REPOSITORY).",
    ),
    devhub_alias: str | None = typer.Option(
        None, "--devhub-alias", envvar="INPUT_DEVHUB-ALIAS", help="DevHub alias."
    ),
    wait_time: str | None = typer.Option(
        None, "--wait-time", envvar="INPUT_WAIT-TIME", help="Deploy wait time (minutes)."
    ),
    tag: str | None = typer.Option(None, "--tag", envvar="INPUT_TAG", help="Release tag."),
    exclude_packages: str | None = typer.Option(
        None,
        "--exclude-packages",
        envvar="INPUT_EXCLUDE-PACKAGES",
        help="Comma-separated packages to drop from the definition.",
    ),
    override_packages: str | None = typer.Option(
        None,
        "--override-packages",
        envvar="INPUT_OVERRIDE-PACKAGES",
        help="Comma-separated name=version pins.",
    ),
    lock: str | None = typer.Option(
        None, "--lock", envvar="INPUT_LOCK", help="Lock the environment (true/false)."
    ),
    lock_timeout: str | None = typer.Option(
        None,
        "--lock-timeout",
        envvar="INPUT_LOCK-TIMEOUT",
        help="Minutes to wait for the lock (0 waits indefinitely).",
    ),
    lock_duration: str | None = typer.Option(
        None, "--lock-duration", envvar="INPUT_LOCK-DURATION", help="Lock lease (minutes)."
    ),
    dry_run: str | None = typer.Option(
        None, "--dry-run", envvar="INPUT_DRY-RUN", help="Compare only (true/false)."
    ),
    generate_changelog: str | None = typer.Option(
        None,
        "--generate-changelog",
        envvar="INPUT_GENERATE-CHANGELOG",
        help="Collect the changelog (true/false).",
    ),
    update_issue: str | None = typer.Option(
        None,
        "--update-issue",
        envvar="INPUT_UPDATE-ISSUE",
        help="Publish the changelog comment (true/false).",
    ),
    issue_number: str | None = typer.Option(
        None,
        "--issue-number",
        envvar="INPUT_ISSUE-NUMBER",
        help="Issue/PR number (default: detected from the event).",
    ),
    changelog_dir: str | None = typer.Option(
        None,
        "--changelog-dir",
        envvar="INPUT_CHANGELOG-DIR",
        help="Where sfp writes changelog artifacts.",
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: ./release-domains.toml)."
    ),
) -> None:
    """Lock, deploy and report a release to one environment."""
    ctx = build_context(config)

    raw = RawInputs(
        sfp_server_url=sfp_server_url,
        sfp_server_token=sfp_server_token,
        environment=environment,
        release_candidates=release_candidates,
        repository=repository,
        devhub_alias=devhub_alias,
        wait_time=wait_time,
        tag=tag,
        exclude_packages=exclude_packages,
        override_packages=override_packages,
        lock=lock,
        lock_timeout=lock_timeout,
        lock_duration=lock_duration,
        dry_run=dry_run,
        generate_changelog=generate_changelog,
        update_issue=update_issue,
        issue_number=issue_number,
        changelog_dir=changelog_dir,
    )
    if sfp_server_token:
        ctx.console.mask_secret(sfp_server_token.strip())

    inputs = resolve_inputs(raw, context=ctx.github, config=ctx.config)
    if isinstance(inputs, Err):
        exit_on_release_error(inputs.error, ctx.console)

    outcome = run_release(inputs.value, _runtime(ctx, inputs.value))
    if outcome.fatal is not None:
        exit_on_release_error(outcome.fatal, ctx.console)
