"""HTTP client bound to a scenario's base URL, headers and timeout policy."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests

from scenarist.exceptions import ScenarioTimeoutError

logger = logging.getLogger(__name__)


class ApiSession:
    """Thin wrapper around ``requests.Session`` for API-only scenarios.

    Relative URLs are joined to ``base_url``; absolute URLs are sent as-is.
    Every request is bounded by the scenario TimeoutPolicy unless the caller
    passes its own ``timeout``.

    Parameters
    ----------
    base_url : str | None
        Base URL prepended to relative request paths
    headers : Mapping[str, str] | None
        Headers sent with every request
    timeout_ms : int
        Default request timeout in milliseconds
    session : requests.Session | None
        Session to wrap (a new one is created when omitted)
    """

    def __init__(
        self,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
        timeout_ms: int = 30_000,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout_ms = timeout_ms
        self.session = session or requests.Session()
        self.session.headers.update(dict(headers or {}))
        self.closed = False

    @property
    def headers(self) -> Mapping[str, str]:
        return self.session.headers

    def url_for(self, path: str) -> str:
        """Build the absolute URL for a request path."""
        if path.startswith(("http://", "https://")) or not self.base_url:
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send a request, mapping request timeouts to ScenarioTimeoutError.

        Raises
        ------
        ScenarioTimeoutError
            If the request exceeds its timeout
        RuntimeError
            If the session was already disposed
        """
        if self.closed:
            raise RuntimeError("ApiSession is disposed")

        kwargs.setdefault("timeout", self.timeout_ms / 1000)
        url = self.url_for(path)
        logger.debug("%s %s", method.upper(), url)

        try:
            return self.session.request(method.upper(), url, **kwargs)
        except requests.Timeout as e:
            raise ScenarioTimeoutError(
                f"{method.upper()} {url} exceeded {kwargs['timeout']}s"
            ) from e

    def get(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("DELETE", path, **kwargs)

    def dispose(self) -> None:
        """Close the underlying session. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self.session.close()
