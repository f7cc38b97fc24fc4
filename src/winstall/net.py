"""HTTP helpers and the network error taxonomy."""

from __future__ import annotations

import json
import logging
import shutil
import socket
import ssl
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any

from winstall import __version__

logger = logging.getLogger(__name__)

USER_AGENT = f"winstall/{__version__}"


class NetError(Exception):
    """Error during an HTTP request."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RateLimitError(NetError):
    """The server refused the request because of rate limiting."""

    pass


class NotFoundError(NetError):
    """The requested resource does not exist."""

    pass


class NetworkTimeout(NetError):
    """The request did not complete within its timeout."""

    pass


def is_retryable(error: BaseException) -> bool:
    """Rate limits and timeouts are worth retrying; everything else is terminal."""
    return isinstance(error, (RateLimitError, NetworkTimeout))


def _classify_http_error(url: str, error: urllib.error.HTTPError) -> NetError:
    status = error.code
    if status == 404:
        return NotFoundError(f"Not found: {url}", status)
    headers = error.headers or {}
    exhausted = headers.get("X-RateLimit-Remaining") == "0"
    # secondary rate limits send Retry-After with quota still left
    if status == 429 or (status == 403 and (exhausted or "Retry-After" in headers)):
        return RateLimitError(f"Rate limited by {urllib.parse.urlsplit(url).netloc}", status)
    return NetError(f"HTTP {status} for {url}: {error.reason}", status)


def _is_timeout(error: BaseException) -> bool:
    if isinstance(error, (socket.timeout, TimeoutError)):
        return True
    reason = getattr(error, "reason", None)
    return isinstance(reason, (socket.timeout, TimeoutError))


class HttpClient:
    """Small urllib-based HTTP client.

    All requests carry a User-Agent and use a default SSL context; every
    failure is raised as a NetError subclass.
    """

    def __init__(self, timeout: float = 20.0, download_timeout: float = 300.0) -> None:
        """Initialize client.

        Args:
            timeout: Timeout in seconds for metadata requests.
            download_timeout: Socket timeout in seconds for file downloads.
        """
        self.timeout = timeout
        self.download_timeout = download_timeout
        self._context = ssl.create_default_context()

    def _open(self, url: str, headers: dict[str, str] | None, timeout: float):
        request = urllib.request.Request(
            url,
            headers={"User-Agent": USER_AGENT, **(headers or {})},
        )
        try:
            return urllib.request.urlopen(request, timeout=timeout, context=self._context)
        except urllib.error.HTTPError as e:
            raise _classify_http_error(url, e) from e
        except (urllib.error.URLError, OSError) as e:
            if _is_timeout(e):
                raise NetworkTimeout(f"Timed out after {timeout:g}s: {url}") from e
            raise NetError(f"Request to {url} failed: {e}") from e

    def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET a URL and decode the JSON body.

        Raises:
            NetError: On any transport, HTTP or decoding failure.
        """
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        logger.debug("GET %s", url)
        try:
            with self._open(url, headers, self.timeout) as response:
                body = response.read().decode("utf-8")
        except (socket.timeout, TimeoutError) as e:
            raise NetworkTimeout(f"Timed out reading {url}") from e
        except OSError as e:
            raise NetError(f"Reading {url} failed: {e}") from e
        except UnicodeDecodeError as e:
            raise NetError(f"Invalid UTF-8 from {url}: {e}") from e
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise NetError(f"Invalid JSON from {url}: {e}") from e

    def get_text(self, url: str) -> str:
        """GET a URL and return the body as text.

        Raises:
            NetError: On any transport or HTTP failure.
        """
        logger.debug("GET %s", url)
        try:
            with self._open(url, None, self.timeout) as response:
                charset = response.headers.get_content_charset() or "utf-8"
                return response.read().decode(charset, errors="replace")
        except (socket.timeout, TimeoutError) as e:
            raise NetworkTimeout(f"Timed out reading {url}") from e
        except OSError as e:
            raise NetError(f"Reading {url} failed: {e}") from e
        except LookupError as e:
            raise NetError(f"Unknown charset from {url}: {e}") from e

    def download(self, url: str, destination: Path) -> Path:
        """Stream a URL to a file.

        A partial file is removed when the download fails.

        Raises:
            NetError: On any transport or HTTP failure, including timeouts.
        """
        logger.debug("Downloading %s -> %s", url, destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._open(url, None, self.download_timeout) as response:
                with open(destination, "wb") as f:
                    shutil.copyfileobj(response, f)
        except (socket.timeout, TimeoutError) as e:
            destination.unlink(missing_ok=True)
            raise NetworkTimeout(f"Download timed out: {url}") from e
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise NetError(f"Download of {url} failed: {e}") from e
        except NetError:
            destination.unlink(missing_ok=True)
            raise
        return destination
