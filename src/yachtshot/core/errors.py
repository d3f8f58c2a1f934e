"""Error taxonomy for the generation pipeline.

Every failure the server can report belongs to one of a small, closed set of
kinds (:class:`ErrorKind`).  Errors are constructed explicitly where they are
raised, carrying whatever structured fields are known at that point (HTTP
status, upstream provider, upstream code), so the top-level handler never has
to guess at the shape of an arbitrary exception.

Anything that escapes the pipeline without being one of these errors is
wrapped by :func:`classify_error` as an ``internal`` error.

Status mapping
--------------
==================  ==========================================
Kind                Status
==================  ==========================================
request_malformed   400
invalid_format      400
upstream_fetch      502 (504 on timeout)
provider            401 on auth/permission text, 504 on timeout, else 500
extraction_empty    502
internal            401 on auth/permission text, else 500
==================  ==========================================
"""

from __future__ import annotations

import traceback
from enum import Enum
from typing import Any

# Substrings that mark a provider message as an authentication problem.
_AUTH_MARKERS = (
    "permission",
    "unauthorized",
    "unauthenticated",
    "api key",
    "api_key",
    "authentication",
    "forbidden",
)

# Nested causes are serialized at most this deep.
_MAX_CAUSE_DEPTH = 3


class ErrorKind(str, Enum):
    """Closed set of failure kinds reported by the API."""

    REQUEST_MALFORMED = "request_malformed"
    INVALID_FORMAT = "invalid_format"
    UPSTREAM_FETCH = "upstream_fetch"
    PROVIDER = "provider"
    EXTRACTION_EMPTY = "extraction_empty"
    INTERNAL = "internal"


def status_for_message(message: str, default: int = 500) -> int:
    """Infer an HTTP status from an error message.

    Providers report credential problems in prose rather than with a stable
    code, so a message mentioning permissions or API keys maps to 401.

    Args:
        message: Error message text.
        default: Status to use when no marker is found.

    Returns:
        401 for authentication/permission messages, otherwise *default*.
    """
    lowered = message.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return 401
    return default


class YachtshotError(Exception):
    """Base class for all classified pipeline errors.

    Attributes:
        kind: The :class:`ErrorKind` of this error.
        status: HTTP status to respond with.
        provider: Name of the upstream service involved, if any.
        code: Upstream error code, if any.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    default_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        provider: str | None = None,
        code: str | int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status if status is not None else self.default_status
        self.provider = provider
        self.code = code


class RequestMalformed(YachtshotError):
    """The request body could not be used."""

    kind = ErrorKind.REQUEST_MALFORMED
    default_status = 400


class InvalidFormat(YachtshotError):
    """A data URL is missing its scheme marker or header/body separator."""

    kind = ErrorKind.INVALID_FORMAT
    default_status = 400


class UpstreamFetchError(YachtshotError):
    """Fetching the base scene or a user image failed.

    Attributes:
        upstream_status: Status returned by the image host, when there was
            a response at all.
        url: The URL that was requested.
    """

    kind = ErrorKind.UPSTREAM_FETCH
    default_status = 502

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        url: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message, status=status, code=upstream_status)
        self.upstream_status = upstream_status
        self.url = url


class ProviderError(YachtshotError):
    """The model provider call failed."""

    kind = ErrorKind.PROVIDER
    default_status = 500


class ExtractionEmpty(YachtshotError):
    """The model answered but no image could be extracted from the response."""

    kind = ErrorKind.EXTRACTION_EMPTY
    default_status = 502

    def __init__(self, message: str = "The model did not return an image", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class InternalError(YachtshotError):
    """Wrapper for exceptions that were not raised as a classified error."""

    kind = ErrorKind.INTERNAL
    default_status = 500


def classify_error(exc: BaseException) -> YachtshotError:
    """Return *exc* as a :class:`YachtshotError`.

    Classified errors are returned unchanged.  Anything else becomes an
    :class:`InternalError` whose status is inferred from the message text,
    with the original exception kept as ``__cause__``.
    """
    if isinstance(exc, YachtshotError):
        return exc
    message = str(exc) or type(exc).__name__
    wrapped = InternalError(message, status=status_for_message(message))
    wrapped.__cause__ = exc
    return wrapped


def serialize_error(exc: BaseException, *, include_stack: bool = True, _depth: int = 0) -> dict:
    """Convert an exception into a JSON-serialisable dictionary.

    Args:
        exc: The exception to serialise.
        include_stack: Whether to include the formatted traceback.

    Returns:
        Dictionary with ``name``, ``message``, ``type`` and, where known,
        ``kind``, ``status``, ``code``, ``provider``, ``cause`` and ``stack``.
    """
    data: dict[str, Any] = {
        "name": type(exc).__name__,
        "message": str(exc),
        "type": f"{type(exc).__module__}.{type(exc).__qualname__}",
    }
    if isinstance(exc, YachtshotError):
        data["kind"] = exc.kind.value
        data["status"] = exc.status
        if exc.code is not None:
            data["code"] = exc.code
        if exc.provider is not None:
            data["provider"] = exc.provider

    cause = exc.__cause__ or exc.__context__
    if cause is not None and _depth < _MAX_CAUSE_DEPTH:
        data["cause"] = serialize_error(cause, include_stack=False, _depth=_depth + 1)

    if include_stack:
        data["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return data
