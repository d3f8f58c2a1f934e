"""Data URL encoding and decoding.

A data URL carries binary content inline as
``data:<mediaType>[;base64],<payload>``.  Every image the pipeline handles
(fetched, uploaded or generated) passes through :class:`ImagePayload`, and
this module converts between the two forms.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

from yachtshot.core.errors import InvalidFormat

DATA_URL_PREFIX = "data:"
DEFAULT_MEDIA_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes together with their media type."""

    data: bytes
    media_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def is_data_url(value: str) -> bool:
    """Return True if *value* uses the ``data:`` scheme."""
    return value[: len(DATA_URL_PREFIX)].lower() == DATA_URL_PREFIX


def decode(data_url: str) -> ImagePayload:
    """Parse a data URL into an :class:`ImagePayload`.

    The header is everything between ``data:`` and the first comma.  A
    ``;base64`` parameter selects base64 decoding; otherwise the body is
    percent-decoded.  A header without a media type yields
    ``application/octet-stream``.

    Raises:
        InvalidFormat: If the scheme marker or the ``,`` separator is missing,
            or the base64 body is corrupt.
    """
    if not is_data_url(data_url):
        raise InvalidFormat("Not a data URL")

    header, sep, body = data_url[len(DATA_URL_PREFIX) :].partition(",")
    if not sep:
        raise InvalidFormat("Data URL is missing the ',' separator")

    params = [p.strip() for p in header.split(";")]
    media_type = params[0] or DEFAULT_MEDIA_TYPE
    is_base64 = any(p.lower() == "base64" for p in params[1:])

    if is_base64:
        try:
            data = base64.b64decode(body, validate=False)
        except ValueError as e:
            raise InvalidFormat(f"Invalid base64 payload: {e}") from e
    else:
        data = unquote_to_bytes(body)

    return ImagePayload(data=data, media_type=media_type)


def encode(data: bytes, media_type: str) -> str:
    """Serialise bytes as a base64 data URL."""
    return f"{DATA_URL_PREFIX}{media_type};base64,{base64.b64encode(data).decode('ascii')}"
