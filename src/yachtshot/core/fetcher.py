"""Remote image fetching.

Loads an image over HTTP(S) and returns it as an :class:`ImagePayload`.  The
media type comes from the ``Content-Type`` header when the host sends one,
otherwise it is guessed from the URL's file extension, and finally falls back
to ``image/png``.

The caller owns the :class:`httpx.AsyncClient` (the API creates one in its
lifespan handler) so that connection pooling and the configured timeout are
shared across requests.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from urllib.parse import urlparse

import httpx

from yachtshot.core.data_url import ImagePayload
from yachtshot.core.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

FALLBACK_MEDIA_TYPE = "image/png"

_EXTENSION_MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

# Ask intermediaries for a fresh copy on every request.
_NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


def is_http_url(value: str) -> bool:
    """Return True for ``http://`` and ``https://`` URLs."""
    return urlparse(value).scheme.lower() in ("http", "https")


def guess_media_type(url: str) -> str | None:
    """Guess an image media type from the URL path's extension."""
    suffix = PurePosixPath(urlparse(url).path).suffix.lower()
    return _EXTENSION_MEDIA_TYPES.get(suffix)


def resolve_media_type(content_type: str | None, url: str) -> str:
    """Pick the media type for a fetched image.

    Args:
        content_type: Raw ``Content-Type`` header value, possibly with
            parameters (``image/jpeg; charset=binary``).
        url: The requested URL, used for the extension fallback.

    Returns:
        The header's media type, the extension guess, or ``image/png``.
    """
    if content_type:
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type:
            return media_type
    return guess_media_type(url) or FALLBACK_MEDIA_TYPE


async def fetch_image(url: str, client: httpx.AsyncClient) -> ImagePayload:
    """Download an image.

    Args:
        url: Absolute http(s) URL.
        client: Shared async HTTP client.

    Returns:
        The downloaded bytes and their media type.

    Raises:
        UpstreamFetchError: On a non-2xx response (``upstream_status`` set),
            a timeout (status 504) or any other transport failure.
    """
    try:
        response = await client.get(url, headers=_NO_CACHE_HEADERS, follow_redirects=True)
    except httpx.TimeoutException as e:
        raise UpstreamFetchError(f"Timed out fetching image: {url}", url=url, status=504) from e
    except httpx.HTTPError as e:
        raise UpstreamFetchError(f"Failed to fetch image: {e}", url=url) from e

    if not response.is_success:
        logger.warning(f"Image fetch returned {response.status_code}: {url}")
        raise UpstreamFetchError(
            f"Failed to fetch image ({response.status_code})",
            upstream_status=response.status_code,
            url=url,
        )

    media_type = resolve_media_type(response.headers.get("content-type"), url)
    logger.debug(f"Fetched {len(response.content)} bytes ({media_type}) from {url}")
    return ImagePayload(data=response.content, media_type=media_type)
