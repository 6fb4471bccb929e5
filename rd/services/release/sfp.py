"""Adapter for the ``sfp`` command line.

Only exit codes and, for ``server environment lock``, the ``--json`` payload
are relied upon. Commands are echoed as their first words only; the server
token never reaches the log.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rd.core.config import DEFAULT_MAX_BUFFER
from rd.core.result import Err, Ok, Result
from rd.output.console import ConsoleProtocol, Style
from rd.platform.process import CommandOutput, run_command
from rd.services.release.errors import ReleaseError
from rd.services.release.model import ReleaseCandidate


@dataclass(frozen=True, slots=True)
class SfpCli:
    server_url: str
    server_token: str
    repository: str
    bin: str = "sfp"
    max_buffer: int = DEFAULT_MAX_BUFFER

    def _server_args(self) -> list[str]:
        return [
            "--repository",
            self.repository,
            "--sfp-server-url",
            self.server_url,
            "-t",
            self.server_token,
        ]

    def run(
        self, args: list[str], *, console: ConsoleProtocol, silent: bool = False
    ) -> CommandOutput:
        console.print(" ".join([self.bin, *args[:2]]) + " ...", Style.DIM)
        return run_command(self.bin, args, silent=silent, max_buffer=self.max_buffer)

    def lock_environment(
        self,
        *,
        environment: str,
        duration_minutes: int,
        wait_timeout_minutes: int,
        console: ConsoleProtocol,
    ) -> CommandOutput:
        args = [
            "server",
            "environment",
            "lock",
            "--name",
            environment,
            "--duration",
            str(duration_minutes),
            *self._server_args(),
            "--json",
        ]
        if wait_timeout_minutes > 0:
            args.extend(["--wait-timeout", str(wait_timeout_minutes)])
        else:
            args.append("--wait")
        return self.run(args, console=console, silent=True)

    def unlock_environment(
        self,
        *,
        environment: str,
        ticket_id: str,
        console: ConsoleProtocol,
    ) -> CommandOutput:
        args = [
            "server",
            "environment",
            "unlock",
            "--name",
            environment,
            "--ticket-id",
            ticket_id,
            *self._server_args(),
        ]
        return self.run(args, console=console, silent=True)

    def login_devhub(self, *, alias: str, console: ConsoleProtocol) -> Result[None, ReleaseError]:
        console.info("Authenticating to default DevHub via SFP Server...")
        args = [
            "org",
            "login",
            "--server",
            "--default-devhub",
            "--alias",
            alias,
            "--sfp-server-url",
            self.server_url,
            "-t",
            self.server_token,
        ]
        out = self.run(args, console=console)
        if not out.ok:
            return Err(
                ReleaseError(
                    kind="authentication",
                    message="failed to authenticate to DevHub",
                    hint=out.detail or None,
                )
            )
        console.success("DevHub authentication successful")
        return Ok(None)

    def login_environment(
        self, *, environment: str, console: ConsoleProtocol
    ) -> Result[None, ReleaseError]:
        console.info(f"Authenticating to environment: {environment}...")
        args = ["server", "environment", "login", "--name", environment, *self._server_args()]
        out = self.run(args, console=console)
        if not out.ok:
            return Err(
                ReleaseError(
                    kind="authentication",
                    message=f"failed to authenticate to environment: {environment}",
                    hint=out.detail or None,
                )
            )
        console.success("Environment authentication successful")
        return Ok(None)

    def fetch_release_candidate(
        self,
        *,
        candidate: ReleaseCandidate,
        output_file: Path,
        console: ConsoleProtocol,
    ) -> Result[Path, ReleaseError]:
        console.info(f"Fetching release candidate {candidate} for modification...")
        args = [
            "releasecandidate",
            "fetch",
            "-n",
            candidate.name,
            "-c",
            candidate.domain,
            *self._server_args(),
            "-o",
            str(output_file),
        ]
        out = self.run(args, console=console)
        if not out.ok:
            return Err(
                ReleaseError(
                    kind="definition",
                    message=f"failed to fetch release candidate: {candidate}",
                    hint=out.detail or None,
                )
            )
        console.info(f"Release definition fetched to: {output_file}")
        return Ok(output_file)

    def release(
        self,
        *,
        environment: str,
        candidates: tuple[ReleaseCandidate, ...],
        definition_file: Path | None,
        devhub_alias: str,
        wait_time_minutes: int,
        tag: str | None,
        dry_run: bool,
        changelog_dir: Path | None,
        console: ConsoleProtocol,
    ) -> CommandOutput:
        args = ["release", "-o", environment]
        if definition_file is not None:
            args.extend(["-p", str(definition_file)])
        else:
            for candidate in candidates:
                args.extend(
                    [
                        "--releasecandidate",
                        candidate.name,
                        "--releasecandidatedomain",
                        candidate.domain,
                    ]
                )
        args.extend(
            [
                *self._server_args(),
                "-v",
                devhub_alias,
                "--waittime",
                str(wait_time_minutes),
            ]
        )
        if tag:
            args.extend(["--tag", tag])
        if dry_run:
            args.append("--dryrun")
        if changelog_dir is not None:
            args.extend(["--changelog-output", str(changelog_dir)])
        return self.run(args, console=console)

    def changelog_from_env(
        self,
        *,
        environment: str,
        candidate: ReleaseCandidate,
        output_dir: Path,
        console: ConsoleProtocol,
    ) -> CommandOutput:
        args = [
            "changelog",
            "from-env",
            "-u",
            environment,
            "-n",
            str(candidate),
            *self._server_args(),
            "--output",
            str(output_dir),
        ]
        return self.run(args, console=console)
