"""Process exit codes.

The main phase exits with one of these codes; the cleanup phase always
exits with ``OK`` because a failed unlock must not fail the pipeline twice.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for the ``release-domains`` commands.

    - 0: Success (including dry-runs)
    - 1: User error (invalid inputs, rejected before any side effect)
    - 2: Environment error (lock could not be taken, authentication failed)
    - 3: Deploy error (definition fetch failed, deployment failed)
    - 4: Network error (token service or API unreachable)
    - 5: I/O error (temp files, state files)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    DEPLOY_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
