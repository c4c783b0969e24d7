"""HTTP client abstraction for the release registry.

This module provides:
- HttpClient: Protocol for the JSON and upload calls the registry needs
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, cast, runtime_checkable

from chartrel.core.result import Err, Ok, Result
from chartrel.core.structured import as_str_dict

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    "RecordedCall",
]

JsonObject = dict[str, Any]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors and timeouts)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for registry HTTP operations.

    Every call returns the decoded JSON object of the response body.
    """

    def get_json(self, url: str) -> Result[JsonObject, HttpError]: ...

    def post_json(self, url: str, payload: JsonObject) -> Result[JsonObject, HttpError]: ...

    def upload_file(
        self,
        url: str,
        path: Path,
        content_type: str = "application/octet-stream",
    ) -> Result[JsonObject, HttpError]: ...


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles:
    - HTTPS with system certificates
    - Bearer token authentication
    - JSON encoding/decoding
    - A fixed per-request timeout (no retry)
    """

    def __init__(
        self,
        *,
        timeout: float,
        token: str = "",
        user_agent: str = "chartrel",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._token = token
        self._ssl_context = ssl.create_default_context()

    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/vnd.github+json",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _request(
        self,
        url: str,
        *,
        method: str,
        data: bytes | None = None,
        content_type: str | None = None,
    ) -> Result[JsonObject, HttpError]:
        try:
            req = urllib.request.Request(
                url,
                data=data,
                method=method,
                headers=self._headers(content_type),
            )
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                body: bytes = response.read()
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

        try:
            data_obj: object = json.loads(body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))

        parsed = as_str_dict(data_obj)
        if parsed is None:
            return Err(HttpError(url=url, status=0, message="Expected JSON object"))
        return Ok(cast(JsonObject, parsed))

    def get_json(self, url: str) -> Result[JsonObject, HttpError]:
        return self._request(url, method="GET")

    def post_json(self, url: str, payload: JsonObject) -> Result[JsonObject, HttpError]:
        data = json.dumps(payload).encode("utf-8")
        return self._request(url, method="POST", data=data, content_type="application/json")

    def upload_file(
        self,
        url: str,
        path: Path,
        content_type: str = "application/octet-stream",
    ) -> Result[JsonObject, HttpError]:
        try:
            data = path.read_bytes()
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=f"read {path}: {e}"))
        return self._request(url, method="POST", data=data, content_type=content_type)


@dataclass(frozen=True, slots=True)
class RecordedCall:
    """A single call observed by MockHttpClient."""

    method: str
    url: str
    payload: JsonObject | None = None
    path: Path | None = None


def _empty_calls() -> list[RecordedCall]:
    return []


@dataclass
class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are registered per (method, url). Unregistered GETs answer 404,
    like the registry does for unknown releases.

    Usage:
        client = MockHttpClient()
        client.set_response("GET", "https://api.github.com/x", {"id": 1})
        result = client.get_json("https://api.github.com/x")
        assert result == Ok({"id": 1})
    """

    calls: list[RecordedCall] = field(default_factory=_empty_calls)
    _responses: dict[tuple[str, str], list[JsonObject | HttpError]] = field(
        default_factory=dict, init=False, repr=False
    )

    def set_response(self, method: str, url: str, *responses: JsonObject | HttpError) -> None:
        """Queue responses for (method, url); the last one repeats."""
        self._responses[(method, url)] = list(responses)

    def _answer(self, method: str, url: str) -> Result[JsonObject, HttpError]:
        queue = self._responses.get((method, url))
        if not queue:
            return Err(HttpError(url=url, status=404, message="Not Found (mock)"))
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def get_json(self, url: str) -> Result[JsonObject, HttpError]:
        self.calls.append(RecordedCall("GET", url))
        return self._answer("GET", url)

    def post_json(self, url: str, payload: JsonObject) -> Result[JsonObject, HttpError]:
        self.calls.append(RecordedCall("POST", url, payload=payload))
        return self._answer("POST", url)

    def upload_file(
        self,
        url: str,
        path: Path,
        content_type: str = "application/octet-stream",
    ) -> Result[JsonObject, HttpError]:
        self.calls.append(RecordedCall("UPLOAD", url, path=path))
        return self._answer("UPLOAD", url)

    def methods(self) -> list[str]:
        """Methods of all recorded calls, in order."""
        return [c.method for c in self.calls]
