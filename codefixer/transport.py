"""Minimal JSON-over-HTTP transport shared by the tracker and model clients."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import TransportError

_ERROR_DETAIL_LIMIT = 800


def request_json(
    method: str,
    url: str,
    *,
    headers: Optional[Mapping[str, str]] = None,
    payload: Optional[Mapping[str, Any]] = None,
    timeout: float,
    expected: tuple[int, ...] = (200,),
    label: str = "HTTP",
) -> Any:
    """Send a request and decode the JSON response body.

    Raises TransportError for connection failures, unexpected status codes and
    bodies that are not valid JSON.
    """
    data = json.dumps(payload).encode("utf-8") if payload is not None else None
    request_headers = dict(headers or {})
    if data is not None:
        request_headers.setdefault("Content-Type", "application/json")

    http_request = Request(url, data=data, headers=request_headers, method=method)
    try:
        with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
            status = getattr(response, "status", 200)
            raw = response.read()
    except HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
        message = detail.strip()[:_ERROR_DETAIL_LIMIT] or str(exc.reason)
        raise TransportError(
            f"{label} {method} failed with status {exc.code}: {message}", status=exc.code
        ) from exc
    except URLError as exc:
        raise TransportError(f"{label} {method} failed: {exc.reason}") from exc
    except TimeoutError as exc:
        raise TransportError(f"{label} {method} timed out after {timeout}s") from exc

    if status not in expected:
        raise TransportError(f"{label} {method} returned unexpected status {status}", status=status)

    if not raw:
        return {}
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TransportError(f"{label} {method} returned invalid JSON") from exc


__all__ = ["request_json"]
