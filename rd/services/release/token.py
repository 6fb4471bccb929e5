"""Short-lived GitHub token from the SFP server.

The token is minted per repository by the server, so it is fetched right
before the comment is published rather than once at start.
"""

from __future__ import annotations

import json
from time import sleep
from urllib.parse import urlencode, urljoin

from rd.core.result import Err, Ok, Result
from rd.core.structured import as_str_dict, get_str
from rd.output.console import ConsoleProtocol
from rd.platform.http import HttpClient, HttpError, parse_json
from rd.services.release.errors import ReleaseError
from rd.services.release.timeouts import TOKEN_RETRY_ATTEMPTS, TOKEN_RETRY_DELAY_SECONDS

TOKEN_ENDPOINT = "/sfp/api/repository/auth-token"


def token_url(server_url: str, repository: str) -> str:
    base = urljoin(server_url, TOKEN_ENDPOINT)
    return f"{base}?{urlencode({'repositoryIdentifier': repository})}"


def _describe_http_error(error: HttpError) -> str:
    """Server-provided ``message`` when the body carries one, else the status line."""
    try:
        data = as_str_dict(json.loads(error.body)) if error.body else None
    except json.JSONDecodeError:
        data = None
    message = get_str(data, "message") if data is not None else None
    if message:
        return message
    if error.status:
        return f"HTTP {error.status}: {error.message}"
    return error.message


def _attempt(
    *, http: HttpClient, url: str, server_token: str
) -> Result[tuple[str, str | None], str]:
    response = http.request(
        "GET",
        url,
        headers={
            "Authorization": f"Bearer {server_token}",
            "Accept": "application/json",
        },
    )
    if isinstance(response, Err):
        return Err(f"failed to get token: {_describe_http_error(response.error)}")

    payload = parse_json(response.value, url=url)
    if isinstance(payload, Err):
        return Err(payload.error.message)

    data = as_str_dict(payload.value)
    token = get_str(data, "token") if data is not None else None
    if data is None or token is None:
        return Err("response did not contain a token")
    return Ok((token, get_str(data, "expiresAt")))


def fetch_repository_token(
    *,
    http: HttpClient,
    server_url: str,
    server_token: str,
    repository: str,
    console: ConsoleProtocol,
    attempts: int = TOKEN_RETRY_ATTEMPTS,
    delay_seconds: float = TOKEN_RETRY_DELAY_SECONDS,
) -> Result[str, ReleaseError]:
    url = token_url(server_url, repository)
    last_error = "unknown error"

    for attempt in range(1, attempts + 1):
        console.info(f"Fetching GitHub token (attempt {attempt}/{attempts})...")
        result = _attempt(http=http, url=url, server_token=server_token)
        if isinstance(result, Ok):
            token, expires_at = result.value
            console.mask_secret(token)
            console.success(f"GitHub token retrieved (expires: {expires_at or 'unknown'})")
            return Ok(token)

        last_error = result.error
        console.warning(f"Attempt {attempt} failed: {last_error}")
        if attempt < attempts:
            console.info(f"Retrying in {delay_seconds:g} seconds...")
            sleep(delay_seconds)

    return Err(
        ReleaseError(
            kind="token_fetch",
            message=(
                f"failed to get GitHub token after {attempts} attempts. Last error: {last_error}"
            ),
        )
    )
