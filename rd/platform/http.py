"""HTTP client abstraction for the token service and the GitHub API.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Scripted implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from rd import __version__
from rd.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    "parse_json",
]

JsonBody = Mapping[str, object]


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """A 2xx response."""

    status: int
    body: str


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Reason phrase or network error text
        body: Response body of a non-2xx answer (may be empty)
    """

    url: str
    status: int
    message: str
    body: str = ""

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


def parse_json(response: HttpResponse, *, url: str) -> Result[object, HttpError]:
    """Decode a response body as JSON."""
    try:
        return Ok(json.loads(response.body))
    except json.JSONDecodeError as e:
        return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    Non-2xx answers are returned as ``Err(HttpError)`` with the body kept,
    so callers can surface server-provided messages.
    """

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: JsonBody | None = None,
    ) -> Result[HttpResponse, HttpError]: ...


class RealHttpClient:
    """Real HTTP client using urllib with system certificates."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = f"release-domains/{__version__}",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: JsonBody | None = None,
    ) -> Result[HttpResponse, HttpError]:
        all_headers = {"User-Agent": self.user_agent, **(headers or {})}
        data: bytes | None = None
        if json_body is not None:
            data = json.dumps(json_body).encode("utf-8")
            all_headers.setdefault("Content-Type", "application/json")

        req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
        try:
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                raw: bytes = response.read()
                return Ok(HttpResponse(status=response.status, body=raw.decode("utf-8")))
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            return Err(HttpError(url=url, status=e.code, message=str(e.reason), body=body))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except UnicodeDecodeError as e:
            return Err(HttpError(url=url, status=0, message=f"Decode error: {e}"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


@dataclass(frozen=True, slots=True)
class RecordedCall:
    method: str
    url: str
    headers: dict[str, str]
    json_body: JsonBody | None


class MockHttpClient:
    """Scripted HTTP client for testing.

    Responses are queued per (method, url) and consumed in order; an
    unscripted request answers 404.

    Usage:
        client = MockHttpClient()
        client.add_json("GET", url, {"token": "t"})
        client.add_error("GET", url, status=503)
    """

    def __init__(self) -> None:
        self._responses: dict[tuple[str, str], deque[HttpResponse | HttpError]] = {}
        self.calls: list[RecordedCall] = []

    def add_json(self, method: str, url: str, payload: object, *, status: int = 200) -> None:
        self._queue(method, url).append(HttpResponse(status=status, body=json.dumps(payload)))

    def add_error(
        self,
        method: str,
        url: str,
        *,
        status: int,
        message: str = "Error",
        body: str = "",
    ) -> None:
        self._queue(method, url).append(
            HttpError(url=url, status=status, message=message, body=body)
        )

    def _queue(self, method: str, url: str) -> deque[HttpResponse | HttpError]:
        return self._responses.setdefault((method.upper(), url), deque())

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: JsonBody | None = None,
    ) -> Result[HttpResponse, HttpError]:
        self.calls.append(
            RecordedCall(
                method=method.upper(),
                url=url,
                headers=dict(headers or {}),
                json_body=json_body,
            )
        )
        queue = self._responses.get((method.upper(), url))
        if not queue:
            return Err(HttpError(url=url, status=404, message="Not Found (mock)"))

        response = queue.popleft()
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def methods(self) -> list[str]:
        """HTTP methods of recorded calls, in order."""
        return [c.method for c in self.calls]
