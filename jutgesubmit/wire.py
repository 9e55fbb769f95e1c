from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as package_version
from typing import Any, Sequence

import requests

from .errors import TransportError

logger = logging.getLogger(__name__)


def _resolve_client_version() -> str:
    try:
        return package_version("jutgesubmit")
    except PackageNotFoundError:
        return "unknown"


@dataclass
class WireResponse:
    """Status code and decoded body of one HTTP exchange."""

    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class ApiTransport:
    """HTTP transport shared by the login and submission endpoints."""

    def __init__(
        self,
        *,
        http_session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.timeout = timeout
        self.client_version = _resolve_client_version()
        self._http = http_session if http_session is not None else requests.Session()
        headers = getattr(self._http, "headers", None)
        if headers is not None:
            headers.update({"User-Agent": f"jutgesubmit/{self.client_version}"})

    def close(self) -> None:
        self._http.close()

    def post_json(
        self, url: str, payload: dict[str, Any], *, timeout: float | None = None
    ) -> WireResponse:
        """POST a JSON document and return the response."""
        return self._post(url, timeout=timeout, json=payload)

    def post_multipart(
        self,
        url: str,
        parts: Sequence[tuple[str, tuple[Any, ...]]],
        *,
        timeout: float | None = None,
    ) -> WireResponse:
        """POST ordered multipart parts; the boundary is generated per request."""
        return self._post(url, timeout=timeout, files=list(parts))

    def _post(self, url: str, *, timeout: float | None, **kwargs: Any) -> WireResponse:
        effective_timeout = self.timeout if timeout is None else timeout
        if effective_timeout is not None and effective_timeout <= 0:
            raise ValueError("timeout must be positive when provided")

        logger.debug("POST %s (timeout=%s)", url, effective_timeout)
        try:
            response = self._http.post(
                url, timeout=effective_timeout, stream=True, **kwargs
            )
        except requests.Timeout as exc:
            raise TransportError(f"request to {url} timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise TransportError(f"request to {url} failed: {exc}") from exc

        try:
            status = int(response.status_code)
            body = self._read_body(response)
        finally:
            response.close()
        logger.debug("POST %s -> %d (%d bytes)", url, status, len(body))
        return WireResponse(status=status, body=body)

    @staticmethod
    def _read_body(response: requests.Response) -> str:
        try:
            content = response.content
        except requests.RequestException as exc:
            logger.debug("response body unreadable: %s", exc)
            return ""
        if not content:
            return ""
        encoding = response.encoding or "utf-8"
        try:
            return content.decode(encoding, errors="replace")
        except LookupError:
            return content.decode("utf-8", errors="replace")
