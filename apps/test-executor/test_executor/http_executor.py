"""HTTP caller used by fuzzers to send mutated requests."""

from __future__ import annotations

import http.client
import json
import os
import re
import time
from typing import Any, Protocol
from urllib import error, parse, request

from fuzzing_data_builder.models import FuzzingData

from .models import CatsRequest, CatsResponse

DEFAULT_BASE_URL = "http://127.0.0.1:8080"
DEFAULT_TIMEOUT = 10.0
PLACEHOLDER_FALLBACK = "1"
_PLACEHOLDER_PATTERN = re.compile(r"\{([^}]+)\}")


class ServiceCallError(RuntimeError):
    """Raised when no HTTP exchange could be completed."""


class CallRecorder(Protocol):
    def add_path(self, test_id: str, path: str) -> None: ...

    def add_full_request_path(self, test_id: str, full_request_path: str) -> None: ...

    def add_request(self, test_id: str, request: CatsRequest) -> None: ...

    def add_response(self, test_id: str, response: CatsResponse) -> None: ...


class ServiceCaller:
    """Executes scenario requests against the service under test via urllib."""

    def __init__(
        self,
        listener: CallRecorder,
        base_url: str | None = None,
        timeout: float | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        self._listener = listener
        env_base = os.getenv("FUZZ_RUNTIME_BASE_URL", DEFAULT_BASE_URL)
        self._base_url = (base_url or env_base).rstrip("/")
        env_timeout = os.getenv("FUZZ_RUNTIME_TIMEOUT", str(DEFAULT_TIMEOUT))
        self._timeout = timeout or float(env_timeout)
        self._extra_headers = dict(extra_headers or {})

    @property
    def base_url(self) -> str:
        return self._base_url

    def call(self, test_id: str, data: FuzzingData, payload: str) -> CatsResponse:
        """Send ``payload`` for the scenario and record request and response on the active test case."""

        document = _parse_payload(payload)
        method = data.method.value
        path, used = self._resolve_path(data.path, document)
        url = f"{self._base_url}{path}"
        body: bytes | None = None
        if data.method.requires_body:
            body = payload.encode("utf-8")
        elif isinstance(document, dict):
            query = {key: _query_value(value) for key, value in document.items() if key not in used}
            if query:
                url = f"{url}?{parse.urlencode(query)}"

        headers = self._headers(data)
        self._listener.add_path(test_id, data.path)
        self._listener.add_full_request_path(test_id, url)
        self._listener.add_request(
            test_id,
            CatsRequest(method=method, url=url, headers=headers, payload=payload if body is not None else ""),
        )

        status, response_body, response_headers, elapsed_ms = self._perform_request(method, url, headers, body)
        response = CatsResponse(
            response_code=status,
            body=response_body,
            headers=response_headers,
            elapsed_ms=round(elapsed_ms, 3),
        )
        self._listener.add_response(test_id, response)
        return response

    def _resolve_path(self, path: str, document: Any) -> tuple[str, set[str]]:
        used: set[str] = set()
        values = document if isinstance(document, dict) else {}

        def substitute(match: re.Match[str]) -> str:
            key = match.group(1)
            used.add(key)
            value = values.get(key)
            if value is None or isinstance(value, (dict, list)):
                return PLACEHOLDER_FALLBACK
            return parse.quote(_query_value(value), safe="")

        resolved = _PLACEHOLDER_PATTERN.sub(substitute, path)
        if not resolved.startswith("/"):
            resolved = f"/{resolved}"
        return resolved, used

    def _headers(self, data: FuzzingData) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if data.method.requires_body:
            headers["Content-Type"] = "application/json"
        for header in data.headers:
            headers[header.name] = header.sample_value()
        headers.update(self._extra_headers)
        return headers

    def _perform_request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
    ) -> tuple[int, str, dict[str, str], float]:
        req = request.Request(url, data=body, headers=headers, method=method)
        start = time.perf_counter()
        try:
            with request.urlopen(req, timeout=self._timeout) as response:
                payload = response.read().decode("utf-8", errors="replace")
                status = response.getcode()
                response_headers = dict(response.headers.items())
        except error.HTTPError as exc:
            payload = exc.read().decode("utf-8", errors="replace")
            status = exc.code
            response_headers = dict(exc.headers.items()) if exc.headers else {}
        except (error.URLError, TimeoutError, ConnectionError, http.client.HTTPException) as exc:
            raise ServiceCallError(f"HTTP request failed for {method} {url}: {exc}") from exc
        elapsed_ms = (time.perf_counter() - start) * 1000
        return status, payload, response_headers, elapsed_ms


def _parse_payload(payload: str) -> Any:
    try:
        return json.loads(payload)
    except json.JSONDecodeError:
        return None


def _query_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)
