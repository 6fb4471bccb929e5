"""Idempotent status comments on a GitHub issue or pull request.

A comment is identified by a marker line (an HTML comment) at the top of
its body. Publishing again with the same marker edits that comment instead
of adding a new one.
"""

from __future__ import annotations

from dataclasses import dataclass

from rd.core.result import Err, Ok, Result
from rd.core.structured import as_obj_list, as_str_dict, get_int, get_str
from rd.output.console import ConsoleProtocol
from rd.platform.actions import DEFAULT_API_URL, parse_repository
from rd.platform.http import HttpClient, HttpError, parse_json
from rd.services.release.errors import ReleaseError
from rd.services.release.timeouts import COMMENTS_PER_PAGE

_API_VERSION = "2022-11-28"


@dataclass(frozen=True, slots=True)
class IssueRef:
    owner: str
    repo: str
    number: int

    @classmethod
    def parse(cls, repository: str, number: int) -> Result[IssueRef, ReleaseError]:
        owner, repo = parse_repository(repository)
        if not owner or not repo:
            return Err(
                ReleaseError(
                    kind="comment_publish",
                    message=f"invalid repository (expected owner/repo): {repository}",
                )
            )
        return Ok(cls(owner=owner, repo=repo, number=number))


def _headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github.v3+json",
        "X-GitHub-Api-Version": _API_VERSION,
    }


def _api_error(action: str, error: HttpError) -> ReleaseError:
    detail = error.message
    if error.status:
        detail = f"HTTP {error.status}: {error.body or error.message}"
    return ReleaseError(
        kind="comment_publish", message=f"failed to {action}: {detail}", hint=error.url
    )


def find_comment(
    *,
    http: HttpClient,
    token: str,
    issue: IssueRef,
    marker: str,
    api_url: str = DEFAULT_API_URL,
) -> Result[int | None, ReleaseError]:
    """Return the id of the first comment whose body contains ``marker``."""
    base = f"{api_url}/repos/{issue.owner}/{issue.repo}/issues/{issue.number}/comments"
    page = 1
    while True:
        url = f"{base}?page={page}&per_page={COMMENTS_PER_PAGE}"
        response = http.request("GET", url, headers=_headers(token))
        if isinstance(response, Err):
            return Err(_api_error("fetch comments", response.error))

        payload = parse_json(response.value, url=url)
        if isinstance(payload, Err):
            return Err(_api_error("fetch comments", payload.error))
        comments = as_obj_list(payload.value)
        if comments is None:
            return Err(ReleaseError(kind="comment_publish", message="unexpected comments payload"))
        if not comments:
            return Ok(None)

        for item in comments:
            comment = as_str_dict(item)
            if comment is None:
                continue
            body = get_str(comment, "body")
            comment_id = get_int(comment, "id")
            if body is not None and comment_id is not None and marker in body:
                return Ok(comment_id)

        if len(comments) < COMMENTS_PER_PAGE:
            return Ok(None)
        page += 1


def upsert_comment(
    *,
    http: HttpClient,
    token: str,
    repository: str,
    issue_number: int,
    body: str,
    marker: str,
    console: ConsoleProtocol,
    api_url: str = DEFAULT_API_URL,
) -> Result[int, ReleaseError]:
    """Create or update the marker comment. Returns the comment id."""
    issue_r = IssueRef.parse(repository, issue_number)
    if isinstance(issue_r, Err):
        return issue_r
    issue = issue_r.value

    existing = find_comment(http=http, token=token, issue=issue, marker=marker, api_url=api_url)
    if isinstance(existing, Err):
        return existing

    payload = {"body": f"{marker}\n{body}"}
    repo_api = f"{api_url}/repos/{issue.owner}/{issue.repo}"

    if existing.value is not None:
        url = f"{repo_api}/issues/comments/{existing.value}"
        response = http.request("PATCH", url, headers=_headers(token), json_body=payload)
        if isinstance(response, Err):
            return Err(_api_error("update comment", response.error))
        console.success(f"Updated existing comment #{existing.value}")
        return Ok(existing.value)

    url = f"{repo_api}/issues/{issue.number}/comments"
    response = http.request("POST", url, headers=_headers(token), json_body=payload)
    if isinstance(response, Err):
        return Err(_api_error("create comment", response.error))

    created = parse_json(response.value, url=url)
    data = as_str_dict(created.value) if isinstance(created, Ok) else None
    comment_id = get_int(data, "id") if data is not None else None
    if comment_id is None:
        return Err(ReleaseError(kind="comment_publish", message="created comment has no id"))
    console.success(f"Created new comment #{comment_id}")
    return Ok(comment_id)
