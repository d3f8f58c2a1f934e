"""Image extraction from model responses.

The model may answer with binary file parts, with text, or with both.  The
extraction result is a tagged union, :class:`Found` or :data:`NOT_FOUND`,
produced by trying an ordered list of strategies; the first strategy that
returns a :class:`Found` wins.

Strategy order
--------------
1. ``file_parts``: the first file part whose media type is ``image/*``,
   decoded from its base64 field or its raw bytes.
2. ``text``: the textual output coerced into a data URL:

   - already a data URL -> used unchanged;
   - looks like base64 -> wrapped as ``image/png``;
   - a byte sequence -> base64-encoded as ``image/png``;
   - anything else -> its string form base64-encoded as ``image/png``.

``None`` and empty values never match.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from yachtshot.core.data_url import encode, is_data_url
from yachtshot.core.model_manager import GeneratedFile, ModelResponse

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "image/png"

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")


@dataclass(frozen=True)
class Found:
    """An image was extracted."""

    media_type: str
    data_url: str


class NotFound:
    """No image could be extracted."""

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = NotFound()

ImageExtractionResult = Found | NotFound
ExtractionStrategy = Callable[[ModelResponse], Found | None]


def _decode_file(file: GeneratedFile) -> bytes | None:
    if file.base64:
        try:
            return base64.b64decode(file.base64, validate=True)
        except (binascii.Error, ValueError):
            logger.warning(f"Skipping {file.media_type} part with corrupt base64 data")
            return None
    if file.data:
        return bytes(file.data)
    return None


def from_file_parts(response: ModelResponse) -> Found | None:
    """Use the first ``image/*`` file part that carries data."""
    for file in response.files:
        if not (file.media_type or "").lower().startswith("image/"):
            continue
        data = _decode_file(file)
        if data:
            return Found(media_type=file.media_type, data_url=encode(data, file.media_type))
    return None


def _looks_like_base64(text: str) -> bool:
    compact = "".join(text.split())
    return len(compact) % 4 == 0 and bool(_BASE64_RE.match(compact))


def coerce_text(text: Any) -> Found | None:
    """Coerce an arbitrary textual output into a data URL."""
    if text is None:
        return None

    if isinstance(text, str):
        stripped = text.strip()
        if not stripped:
            return None
        if is_data_url(stripped):
            media_type = stripped[len("data:") :].split(",", 1)[0].split(";", 1)[0]
            return Found(media_type=media_type or DEFAULT_MEDIA_TYPE, data_url=stripped)
        if _looks_like_base64(stripped):
            compact = "".join(stripped.split())
            return Found(
                media_type=DEFAULT_MEDIA_TYPE,
                data_url=f"data:{DEFAULT_MEDIA_TYPE};base64,{compact}",
            )
        return Found(
            media_type=DEFAULT_MEDIA_TYPE,
            data_url=encode(stripped.encode("utf-8"), DEFAULT_MEDIA_TYPE),
        )

    if isinstance(text, (bytes, bytearray, memoryview)):
        data = bytes(text)
    elif isinstance(text, Sequence) and all(isinstance(b, int) for b in text):
        try:
            data = bytes(text)
        except ValueError:
            data = str(text).encode("utf-8")
    else:
        data = str(text).encode("utf-8")

    if not data:
        return None
    return Found(media_type=DEFAULT_MEDIA_TYPE, data_url=encode(data, DEFAULT_MEDIA_TYPE))


def from_text(response: ModelResponse) -> Found | None:
    """Coerce the response text."""
    return coerce_text(response.text)


STRATEGIES: tuple[ExtractionStrategy, ...] = (from_file_parts, from_text)


def extract_image(
    response: ModelResponse | None,
    strategies: Sequence[ExtractionStrategy] = STRATEGIES,
) -> ImageExtractionResult:
    """Run the extraction strategies in order.

    Args:
        response: Normalised model response, or ``None``.
        strategies: Strategies to try, in priority order.

    Returns:
        The first :class:`Found`, or :data:`NOT_FOUND`.
    """
    if response is None:
        return NOT_FOUND
    for strategy in strategies:
        result = strategy(response)
        if result is not None:
            logger.debug(f"Image extracted by {strategy.__name__} ({result.media_type})")
            return result
    return NOT_FOUND
