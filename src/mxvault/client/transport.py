"""JSON-over-HTTP client used by the credential issuer.

This module provides :class:`TransportClient`, which wraps
:class:`httpx.Client` with exactly what the Matrix login exchange needs:

- **URL resolution** -- request paths are resolved against the stored
  client-server URL following RFC 3986 (``httpx.URL.join``), so a path
  with a leading ``/`` replaces whatever path the base URL carries.
- **JSON bodies** -- request bodies are sent as ``application/json``; every
  response body must decode to a JSON object.
- **No status mapping** -- Matrix reports failures as structured
  ``errcode`` documents, so HTTP status codes are logged but never
  inspected. Interpreting the body is the issuer's job.
- **No retry** -- one attempt per call.

See Also:
    :class:`~mxvault.issuer.CredentialIssuer`, the only caller.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

import httpx

from mxvault.exceptions import TransportError
from mxvault.models import RequestConfig
from mxvault.output import get_output


class TransportClient:
    """Blocking JSON client for homeserver calls.

    Can be used as a context manager; the underlying :class:`httpx.Client`
    is created on first use and released by :meth:`close`. One instance may
    be shared between threads: creation of the client is serialised, and
    httpx clients are safe for concurrent requests. Calling :meth:`close`
    while another thread is mid-request is not supported.

    Args:
        request: Transport settings. ``timeout`` is only passed to httpx
            when set, so httpx's own default applies otherwise.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        with TransportClient(RequestConfig(verify_ssl=False)) as client:
            body = client.post_json(cs_url, "/_matrix/client/r0/logout/all", {})
    """

    def __init__(
        self,
        request: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._request_config = request or RequestConfig()
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> TransportClient:
        self._http()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @staticmethod
    def resolve(base: str, path: str) -> str:
        """Resolve *path* against *base* as an RFC 3986 URL reference.

        Example::

            >>> TransportClient.resolve("https://example.org/matrix/", "/_matrix/client/r0/login")
            'https://example.org/_matrix/client/r0/login'

        Raises:
            TransportError: If either URL cannot be parsed.
        """
        try:
            return str(httpx.URL(base).join(path))
        except httpx.InvalidURL as exc:
            raise TransportError(f"Invalid URL {base!r} + {path!r}: {exc}") from exc

    def get_json(self, base: str, path: str) -> dict[str, Any]:
        """GET ``base`` + ``path`` and return the decoded JSON object."""
        return self._request("GET", self.resolve(base, path))

    def post_json(self, base: str, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST *body* as JSON to ``base`` + ``path`` and return the decoded JSON object."""
        return self._request("POST", self.resolve(base, path), body)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _http(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                kwargs: dict[str, Any] = {"verify": self._request_config.verify_ssl}
                if self._request_config.timeout is not None:
                    kwargs["timeout"] = self._request_config.timeout
                if self._transport is not None:
                    kwargs["transport"] = self._transport
                self._client = httpx.Client(**kwargs)
            return self._client

    def _request(
        self,
        method: str,
        url: str,
        json_body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Send one request and decode the body.

        Raises:
            TransportError: On any network error, or when the body is not a
                JSON object.
        """
        output = get_output()
        output.debug(f"{method} {url}")

        try:
            response = self._http().request(
                method,
                url,
                json=json_body,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        output.debug(f"HTTP {response.status_code} from {url}")

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"Invalid JSON from {method} {url}: {exc}") from exc

        if not isinstance(data, dict):
            raise TransportError(
                f"Invalid response from {method} {url}: expected a JSON object, "
                f"got {type(data).__name__}"
            )
        return data
