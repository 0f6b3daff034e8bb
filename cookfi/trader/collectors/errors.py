"""Errors raised by the upstream API clients."""

from __future__ import annotations

import httpx


class UpstreamAPIError(Exception):
    """A vendor API answered, but reported a failure in its payload."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        detail = f" (code {status_code})" if status_code is not None else ""
        super().__init__(f"{source}: {message}{detail}")


def is_transient_http_error(error: BaseException) -> bool:
    """Transport failures, 429s and 5xx responses are worth retrying."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    return isinstance(error, httpx.TransportError)
