"""Unit tests for yachtshot.core.fetcher.

Requests are served by :class:`httpx.MockTransport`; no network access
occurs.
"""

import asyncio

import httpx
import pytest

from yachtshot.core.errors import ErrorKind, UpstreamFetchError
from yachtshot.core.fetcher import (
    fetch_image,
    guess_media_type,
    is_http_url,
    resolve_media_type,
)


def _fetch(url: str, handler):
    """Run :func:`fetch_image` against a mock transport."""

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_image(url, client)

    return asyncio.run(run())


class TestMediaTypeResolution:
    """Tests for choosing the media type of a fetched image."""

    def test_header_wins(self):
        assert resolve_media_type("image/webp", "https://x.test/a.png") == "image/webp"

    def test_header_parameters_are_dropped(self):
        assert resolve_media_type("image/jpeg; charset=binary", "https://x.test/a") == "image/jpeg"

    def test_extension_used_without_header(self):
        assert resolve_media_type(None, "https://x.test/photos/a.JPG") == "image/jpeg"

    def test_extension_ignores_query_string(self):
        assert resolve_media_type("", "https://x.test/a.webp?v=2") == "image/webp"

    def test_falls_back_to_png(self):
        assert resolve_media_type(None, "https://x.test/f/abc123") == "image/png"

    def test_guess_unknown_extension(self):
        assert guess_media_type("https://x.test/a.tiff") is None

    def test_is_http_url(self):
        assert is_http_url("http://x.test/a.png")
        assert is_http_url("HTTPS://x.test/a.png")
        assert not is_http_url("ftp://x.test/a.png")
        assert not is_http_url("not a url")


class TestFetchImage:
    """Tests for downloading images."""

    def test_success(self):
        def handler(request):
            return httpx.Response(200, content=b"png-bytes", headers={"content-type": "image/png"})

        payload = _fetch("https://x.test/scene", handler)

        assert payload.data == b"png-bytes"
        assert payload.media_type == "image/png"

    def test_sends_no_cache_headers(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"x")

        _fetch("https://x.test/a.png", handler)

        assert seen[0].headers["cache-control"] == "no-cache"
        assert seen[0].headers["pragma"] == "no-cache"

    def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/old.png":
                return httpx.Response(302, headers={"location": "https://x.test/new.jpg"})
            return httpx.Response(200, content=b"moved")

        payload = _fetch("https://x.test/old.png", handler)

        assert payload.data == b"moved"

    def test_non_success_status(self):
        """A non-2xx response is an upstream fetch failure carrying the status."""

        def handler(request):
            return httpx.Response(404, content=b"missing")

        with pytest.raises(UpstreamFetchError) as exc_info:
            _fetch("https://x.test/missing.png", handler)

        err = exc_info.value
        assert err.kind is ErrorKind.UPSTREAM_FETCH
        assert err.upstream_status == 404
        assert err.status == 502
        assert err.url == "https://x.test/missing.png"
        assert "404" in err.message

    def test_timeout_maps_to_504(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(UpstreamFetchError) as exc_info:
            _fetch("https://x.test/slow.png", handler)

        assert exc_info.value.status == 504
        assert exc_info.value.upstream_status is None

    def test_connection_error_maps_to_502(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamFetchError) as exc_info:
            _fetch("https://x.test/down.png", handler)

        assert exc_info.value.status == 502
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
