from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rd.core.errors import ErrorCode

ReleaseErrorKind = Literal[
    "validation",
    "lock_acquisition",
    "malformed_lock_response",
    "authentication",
    "definition",
    "deployment",
    "changelog_processing",
    "comment_publish",
    "token_fetch",
    "lock_release",
]

# Failures on these channels are reported but never change the release result.
ADVISORY_KINDS: frozenset[ReleaseErrorKind] = frozenset(
    {"changelog_processing", "comment_publish", "token_fetch", "lock_release"}
)


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    @property
    def is_advisory(self) -> bool:
        return self.kind in ADVISORY_KINDS

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def release_error_code(kind: ReleaseErrorKind) -> ErrorCode:
    if kind == "validation":
        return ErrorCode.USER_ERROR
    if kind in {"lock_acquisition", "malformed_lock_response", "authentication"}:
        return ErrorCode.ENV_ERROR
    if kind in {"definition", "deployment"}:
        return ErrorCode.DEPLOY_ERROR
    if kind in {"token_fetch", "comment_publish"}:
        return ErrorCode.NETWORK_ERROR
    return ErrorCode.IO_ERROR
