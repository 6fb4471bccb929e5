from __future__ import annotations

# Token service retry policy (fixed backoff, no delay after the last attempt)
TOKEN_RETRY_ATTEMPTS = 3
TOKEN_RETRY_DELAY_SECONDS = 5.0

# Token service and GitHub REST calls
HTTP_TIMEOUT_SECONDS = 30.0

# GitHub issue comments pagination
COMMENTS_PER_PAGE = 100
