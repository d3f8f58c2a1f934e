"""Provider client lifecycle for the Yachtshot generator.

This module provides :class:`ModelManager`, the single point of control for
the remote image model.  It owns the google-genai client, turns the pipeline's
images and instruction into a multimodal request, enforces the call deadline
and normalises whatever the SDK returns into a :class:`ModelResponse`.

Key Responsibilities
--------------------
- **Lazy client creation**: the provider client is only created when
  ``generate()`` is first called (or ``load_client()`` is called explicitly).
- **Request assembly**: images first (base scene, then the optional user
  photo), then the instruction text, requesting image output.
- **Deadline**: the call is bounded by ``config.model_timeout``.  There are
  no retries; a failed call fails the request.
- **Error construction**: SDK failures are raised as
  :class:`~yachtshot.core.errors.ProviderError` with the provider status and
  an inferred HTTP status.
- **Response normalisation**: inline data parts become
  :class:`GeneratedFile` entries; text parts are joined into ``text``.

Usage
-----
::

    from yachtshot.core.config import config
    from yachtshot.core.model_manager import ModelManager

    mgr = ModelManager(config)
    response = await mgr.generate(instruction, base_image, user_image)
    mgr.unload()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from yachtshot.core.config import YachtshotConfig
from yachtshot.core.data_url import ImagePayload
from yachtshot.core.errors import ProviderError, status_for_message

logger = logging.getLogger(__name__)

PROVIDER_NAME = "google"


@dataclass
class GeneratedFile:
    """A binary part of a model response.

    Providers hand back either a base64 string or raw bytes; whichever is
    present is kept as-is.
    """

    media_type: str
    base64: str | None = None
    data: bytes | None = None


@dataclass
class ModelResponse:
    """Provider-independent view of a generation result."""

    files: list[GeneratedFile] = field(default_factory=list)
    text: Any = None


def _iter_response_parts(response: object) -> Iterable[object]:
    """Yield candidate parts across SDK response layouts."""
    candidates = getattr(response, "candidates", None)
    if candidates:
        for candidate in candidates:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                yield part
        return

    for part in getattr(response, "parts", None) or []:
        yield part


def normalize_response(response: object) -> ModelResponse:
    """Convert a google-genai response into a :class:`ModelResponse`.

    Args:
        response: The object returned by ``generate_content``.

    Returns:
        Inline data parts as files (in response order) and the text parts
        joined with newlines, or ``None`` if there was no text.
    """
    files: list[GeneratedFile] = []
    texts: list[str] = []

    for part in _iter_response_parts(response):
        inline_data = getattr(part, "inline_data", None)
        if inline_data is not None and getattr(inline_data, "data", None):
            payload = inline_data.data
            media_type = getattr(inline_data, "mime_type", None) or ""
            if isinstance(payload, str):
                files.append(GeneratedFile(media_type=media_type, base64=payload))
            else:
                files.append(GeneratedFile(media_type=media_type, data=bytes(payload)))
            continue

        text = getattr(part, "text", None)
        if text:
            texts.append(text)

    return ModelResponse(files=files, text="\n".join(texts) if texts else None)


class ModelManager:
    """Manages the google-genai client used for generation.

    Attributes:
        _config (YachtshotConfig):
            Application configuration: model id, API key, timeout and
            requested modalities.
        _client:
            The provider client, or ``None`` until first use.
    """

    def __init__(self, config: YachtshotConfig, client: Any | None = None) -> None:
        """Initialise the model manager.

        Args:
            config: Application configuration instance.
            client: Pre-built provider client.  When omitted the client is
                created lazily from ``config.google_api_key``.
        """
        self._config = config
        self._client = client

    # -- Public interface ---------------------------------------------------

    def load_client(self) -> Any:
        """Create the provider client if it does not exist yet.

        Returns:
            The google-genai ``Client``.

        Raises:
            ProviderError: If the client cannot be created (usually a
                missing API key, reported as 401).
        """
        if self._client is not None:
            return self._client

        from google import genai

        logger.info("Creating google-genai client for model '%s'.", self._config.image_model)
        try:
            self._client = genai.Client(api_key=self._config.google_api_key)
        except ValueError as e:
            raise ProviderError(
                f"Gemini client could not be created: {e}",
                status=status_for_message(str(e), default=500),
                provider=PROVIDER_NAME,
            ) from e
        return self._client

    async def generate(
        self,
        instruction: str,
        base_image: ImagePayload,
        user_image: ImagePayload | None = None,
    ) -> ModelResponse:
        """Ask the model for an image.

        Args:
            instruction: Composed instruction text.
            base_image: The base scene.
            user_image: Optional visitor photo to composite into the scene.

        Returns:
            The normalised response.

        Raises:
            ProviderError: If the call fails or exceeds ``model_timeout``.
        """
        from google.genai import errors, types

        client = self.load_client()

        contents: list[Any] = [
            types.Part.from_bytes(data=base_image.data, mime_type=base_image.media_type)
        ]
        if user_image is not None:
            contents.append(
                types.Part.from_bytes(data=user_image.data, mime_type=user_image.media_type)
            )
        contents.append(instruction)

        request_config = types.GenerateContentConfig(
            response_modalities=list(self._config.response_modalities),
        )

        logger.info(
            "Calling model '%s' (%d image(s), %d-char instruction).",
            self._config.image_model,
            len(contents) - 1,
            len(instruction),
        )

        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self._config.image_model,
                    contents=contents,
                    config=request_config,
                ),
                timeout=self._config.model_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProviderError(
                f"Model call timed out after {self._config.model_timeout:g}s",
                status=504,
                provider=PROVIDER_NAME,
            ) from e
        except errors.APIError as e:
            message = getattr(e, "message", None) or str(e)
            status = 401 if e.code in (401, 403) else status_for_message(message)
            raise ProviderError(
                message,
                status=status,
                provider=PROVIDER_NAME,
                code=getattr(e, "status", None) or e.code,
            ) from e

        result = normalize_response(response)
        logger.info(
            "Model returned %d file part(s)%s.",
            len(result.files),
            " and text" if result.text else "",
        )
        return result

    def unload(self) -> None:
        """Drop the provider client.  Safe to call when none exists."""
        if self._client is None:
            return
        logger.info("Releasing google-genai client.")
        self._client = None

    # -- Properties ---------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        """Whether the provider client has been created."""
        return self._client is not None

    @property
    def model_id(self) -> str:
        """Provider model identifier used for generation."""
        return self._config.image_model
