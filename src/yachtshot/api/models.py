"""Pydantic request and response models for the Yachtshot API.

These models define the JSON schema for the generation endpoint.  Field names
on the wire are camelCase (``imageUrl``, ``dataUrl``, ``errorId``); Python
attributes are snake_case.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``: optional user image and prompt.
GenerateSuccess
    ``{ok: true, dataUrl}`` response.
GenerateFailure
    ``{error, errorId, details?}`` response.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        image_url: A data URL or an http(s) URL of the visitor's photo.
            ``None`` (or blank) means there is no user photo.
        prompt: Free-text style instructions.  ``None`` or blank falls back
            to the template defaults.
    """

    model_config = ConfigDict(populate_by_name=True)

    image_url: str | None = Field(
        default=None,
        alias="imageUrl",
        description="Data URL or http(s) URL of the user's photo.",
    )
    prompt: str | None = Field(
        default=None,
        description="Free-text style instructions.",
    )

    @field_validator("image_url", "prompt")
    @classmethod
    def _strip(cls, value: str | None) -> str | None:
        return value.strip() if isinstance(value, str) else value


class GenerateSuccess(BaseModel):
    """Successful generation: the image as a data URL."""

    model_config = ConfigDict(populate_by_name=True)

    ok: Literal[True] = True
    data_url: str = Field(..., alias="dataUrl", min_length=1)


class GenerateFailure(BaseModel):
    """Failed generation.

    Attributes:
        error: Human-readable message.
        error_id: Correlation id, also written to the server log.
        details: Serialised error; omitted in production.
    """

    model_config = ConfigDict(populate_by_name=True)

    error: str
    error_id: str | None = Field(default=None, alias="errorId")
    details: dict[str, Any] | None = None
