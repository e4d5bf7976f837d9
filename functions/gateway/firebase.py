"""
Firebase Realtime Database REST client and in-memory testing double.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol
from urllib.parse import quote, urlsplit
import json
import logging
import time

import requests

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 15.0
CHUNK_SIZE = 1024


def build_url(base_url: str, api_key: str, path: str) -> str:
    """
    Build the REST URL for ``path``, e.g. ``<base>/devices/dev1.json?key=...``.
    """
    resource_url = f"{base_url}/{path.lstrip('/')}.json"
    separator = "&" if urlsplit(resource_url).query else "?"
    return f"{resource_url}{separator}key={quote(api_key, safe='')}"


@dataclass(frozen=True)
class UpstreamResponse:
    """
    Outcome of one HTTP exchange.

    ``error`` is set (and ``body`` is None) when the exchange could not be
    completed; ``status_code`` is then 0.
    """

    status_code: int
    body: Optional[bytes]
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class FirebaseClient(Protocol):
    """Defines the operations the gateway needs from the database."""

    def get(self, path: str) -> UpstreamResponse:
        ...

    def put(self, path: str, value: Any) -> UpstreamResponse:
        ...


@dataclass
class RequestsFirebaseClient:
    """
    REST client issuing a single request per call. No retries.

    ``read_timeout`` bounds each socket read and also the whole exchange:
    the body is streamed and the call fails once that budget is spent.
    """

    base_url: str
    api_key: str
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    session: Optional[requests.Session] = None

    def __post_init__(self):
        if self.session is None:
            self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def url_for(self, path: str) -> str:
        return build_url(self.base_url, self.api_key, path)

    def get(self, path: str) -> UpstreamResponse:
        return self._send("GET", path)

    def put(self, path: str, value: Any) -> UpstreamResponse:
        return self._send(
            "PUT",
            path,
            data=json.dumps(value).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

    def _send(self, method: str, path: str, **kwargs) -> UpstreamResponse:
        logger.info("Firebase %s %s", method, path)
        deadline = time.monotonic() + self.read_timeout
        try:
            response = self.session.request(
                method,
                self.url_for(path),
                timeout=(self.connect_timeout, self.read_timeout),
                allow_redirects=True,
                stream=True,
                **kwargs,
            )
            try:
                body = self._read_body(response, deadline)
            finally:
                response.close()
        except requests.RequestException as exc:
            logger.warning("Firebase %s %s failed: %s", method, path, exc)
            return UpstreamResponse(status_code=0, body=None, error=str(exc))
        return UpstreamResponse(status_code=response.status_code, body=body)

    def _read_body(self, response: requests.Response, deadline: float) -> bytes:
        chunks = []
        if time.monotonic() > deadline:
            raise requests.Timeout(f"No response within {self.read_timeout}s")
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            chunks.append(chunk)
            if time.monotonic() > deadline:
                raise requests.Timeout(
                    f"Response not completed within {self.read_timeout}s"
                )
        return b"".join(chunks)

