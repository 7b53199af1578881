# src/stockroom/adapters/photo_sources.py
from __future__ import annotations

import logging

import httpx

from stockroom.domain.ports import PhotoLoadError, PhotoSourcePort

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset({"http", "https"})


class HttpPhotoSource(PhotoSourcePort):
    """
    Loads a photo from a URL using the shared HTTP client.

    The body is streamed and abandoned as soon as it exceeds max_bytes.
    Redirects are not followed, so the host check cannot be sidestepped.
    An empty allowed_hosts accepts any host.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        url: str,
        timeout: float = 10.0,
        max_bytes: int = 10 * 1024 * 1024,
        allowed_hosts: frozenset[str] = frozenset(),
    ) -> None:
        self._client = http_client
        self._url = url
        self._timeout = timeout
        self._max_bytes = max_bytes
        self._allowed_hosts = allowed_hosts

    async def load_blob(self) -> bytes:
        self._check_target()
        try:
            async with self._client.stream(
                "GET", self._url, timeout=self._timeout, follow_redirects=False
            ) as response:
                response.raise_for_status()
                declared = response.headers.get("Content-Length")
                if declared is not None and declared.isdigit() and int(declared) > self._max_bytes:
                    raise PhotoLoadError(self._url, f"photo exceeds {self._max_bytes} bytes")

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > self._max_bytes:
                        raise PhotoLoadError(self._url, f"photo exceeds {self._max_bytes} bytes")
        except httpx.HTTPStatusError as e:
            raise PhotoLoadError(self._url, str(e)) from e
        except httpx.RequestError as e:
            raise PhotoLoadError(self._url, f"Connection error: {e}") from e

        if not body:
            raise PhotoLoadError(self._url, "empty response body")
        logger.debug("Fetched %d bytes from %s", len(body), self._url)
        return bytes(body)

    def _check_target(self) -> None:
        try:
            url = httpx.URL(self._url)
        except httpx.InvalidURL as e:
            raise PhotoLoadError(self._url, str(e)) from e
        if url.scheme not in _ALLOWED_SCHEMES:
            raise PhotoLoadError(self._url, f"unsupported scheme '{url.scheme}'")
        if self._allowed_hosts and url.host not in self._allowed_hosts:
            raise PhotoLoadError(self._url, f"host '{url.host}' is not allowed")
