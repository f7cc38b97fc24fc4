"""Tests for the HTTP client and error classification."""

from __future__ import annotations

import io
import socket
import urllib.error
from pathlib import Path
from typing import Any

import pytest

from winstall import net
from winstall.net import (
    HttpClient,
    NetError,
    NetworkTimeout,
    NotFoundError,
    RateLimitError,
    is_retryable,
)


def _http_error(code: int, headers: dict[str, str] | None = None) -> urllib.error.HTTPError:
    return urllib.error.HTTPError("https://api.github.com/x", code, "reason", headers or {}, None)


class _Response(io.BytesIO):
    def __init__(self, body: bytes, charset: str | None = "utf-8") -> None:
        super().__init__(body)
        self.charset = charset

    @property
    def headers(self) -> Any:
        response = self

        class _Headers:
            def get_content_charset(self) -> str | None:
                return response.charset

        return _Headers()


class TestClassification:
    """Tests for HTTP error classification."""

    def test_not_found(self) -> None:
        error = net._classify_http_error("https://x/y", _http_error(404))
        assert isinstance(error, NotFoundError)
        assert error.status == 404

    def test_too_many_requests(self) -> None:
        assert isinstance(net._classify_http_error("https://x/y", _http_error(429)), RateLimitError)

    def test_forbidden_with_exhausted_quota(self) -> None:
        error = net._classify_http_error("https://x/y", _http_error(403, {"X-RateLimit-Remaining": "0"}))
        assert isinstance(error, RateLimitError)

    def test_plain_forbidden(self) -> None:
        error = net._classify_http_error("https://x/y", _http_error(403, {"X-RateLimit-Remaining": "12"}))
        assert type(error) is NetError

    def test_secondary_rate_limit(self) -> None:
        """Test that a 403 with Retry-After is a rate limit even with quota left."""
        error = net._classify_http_error(
            "https://x/y", _http_error(403, {"X-RateLimit-Remaining": "42", "Retry-After": "60"})
        )
        assert isinstance(error, RateLimitError)
        assert is_retryable(error)

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (RateLimitError("x"), True),
            (NetworkTimeout("x"), True),
            (NotFoundError("x"), False),
            (NetError("x"), False),
            (ValueError("x"), False),
        ],
    )
    def test_is_retryable(self, error: Exception, expected: bool) -> None:
        assert is_retryable(error) is expected


class TestHttpClient:
    """Tests for HttpClient with urlopen patched."""

    def test_get_json_encodes_params(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen = {}

        def fake_urlopen(request, timeout, context):
            seen["url"] = request.full_url
            seen["agent"] = request.get_header("User-agent")
            seen["timeout"] = timeout
            return _Response(b'{"ok": true}')

        monkeypatch.setattr(net.urllib.request, "urlopen", fake_urlopen)

        data = HttpClient(timeout=7).get_json("https://api.example.com/search", params={"q": "a b"})

        assert data == {"ok": True}
        assert seen["url"] == "https://api.example.com/search?q=a+b"
        assert seen["agent"] == net.USER_AGENT
        assert seen["timeout"] == 7

    def test_invalid_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(net.urllib.request, "urlopen", lambda *a, **k: _Response(b"<html>"))
        with pytest.raises(NetError, match="Invalid JSON"):
            HttpClient().get_json("https://example.com")

    def test_http_error_is_classified(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_urlopen(*args, **kwargs):
            raise _http_error(404)

        monkeypatch.setattr(net.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(NotFoundError):
            HttpClient().get_text("https://example.com/missing")

    def test_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_urlopen(*args, **kwargs):
            raise urllib.error.URLError(socket.timeout("timed out"))

        monkeypatch.setattr(net.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(NetworkTimeout):
            HttpClient().get_json("https://example.com")

    def test_connection_refused(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_urlopen(*args, **kwargs):
            raise urllib.error.URLError(ConnectionRefusedError("refused"))

        monkeypatch.setattr(net.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(NetError) as excinfo:
            HttpClient().get_text("https://example.com")
        assert not isinstance(excinfo.value, NetworkTimeout)

    def test_get_text_charset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            net.urllib.request, "urlopen", lambda *a, **k: _Response("héllo".encode("latin-1"), "latin-1")
        )
        assert HttpClient().get_text("https://example.com") == "héllo"

    def test_download_writes_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setattr(net.urllib.request, "urlopen", lambda *a, **k: _Response(b"MZ\x90\x00"))
        target = tmp_path / "sub" / "setup.exe"

        assert HttpClient().download("https://example.com/setup.exe", target) == target
        assert target.read_bytes() == b"MZ\x90\x00"

    def test_failed_download_removes_partial_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        class _Broken(_Response):
            def read(self, *args: Any) -> bytes:
                raise socket.timeout("timed out")

        monkeypatch.setattr(net.urllib.request, "urlopen", lambda *a, **k: _Broken(b""))
        target = tmp_path / "setup.exe"

        with pytest.raises(NetworkTimeout):
            HttpClient().download("https://example.com/setup.exe", target)
        assert not target.exists()

    @pytest.mark.parametrize("method", ["get_json", "get_text"])
    def test_connection_reset_mid_body(self, monkeypatch: pytest.MonkeyPatch, method: str) -> None:
        """Test that a reset while reading the body is raised as NetError."""

        class _Reset(_Response):
            def read(self, *args: Any) -> bytes:
                raise ConnectionResetError(10054, "connection reset")

        monkeypatch.setattr(net.urllib.request, "urlopen", lambda *a, **k: _Reset(b""))

        with pytest.raises(NetError, match="connection reset") as excinfo:
            getattr(HttpClient(), method)("https://example.com")
        assert not isinstance(excinfo.value, NetworkTimeout)

    def test_invalid_utf8_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(net.urllib.request, "urlopen", lambda *a, **k: _Response(b'{"a": "\xff"}'))
        with pytest.raises(NetError, match="Invalid UTF-8"):
            HttpClient().get_json("https://example.com")
