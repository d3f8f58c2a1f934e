"""Yachtshot: FastAPI Application.

This module is the single entry point for the web application.  It defines
the FastAPI ``app`` instance, the REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
The application is stateless between requests:

- **Configuration** comes from :data:`~yachtshot.core.config.config`.
- **Image loading** uses one shared :class:`httpx.AsyncClient` created in the
  lifespan handler; the base scene and the optional user photo are loaded
  concurrently.
- **Image generation** is performed by
  :class:`~yachtshot.core.model_manager.ModelManager`, which owns the
  google-genai client.
- **The page** is a Gradio Blocks app mounted at ``/`` (see
  :mod:`yachtshot.ui.app`) when ``config.serve_ui`` is set.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/``                         Gradio page (when ``serve_ui``)
GET       ``/api/config``               Public settings for the page
POST      ``/api/generate``             Generate a yacht photo
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    yachtshot

Direct invocation::

    python -m yachtshot.api.main
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from yachtshot import __version__
from yachtshot.api.models import GenerateFailure, GenerateRequest, GenerateSuccess
from yachtshot.core import data_url
from yachtshot.core.config import YachtshotConfig, config
from yachtshot.core.data_url import ImagePayload
from yachtshot.core.errors import (
    ExtractionEmpty,
    RequestMalformed,
    classify_error,
    serialize_error,
)
from yachtshot.core.extraction import Found, extract_image
from yachtshot.core.fetcher import fetch_image, is_http_url
from yachtshot.core.model_manager import ModelManager
from yachtshot.core.prompt_builder import build_prompt, default_style_prompt
from yachtshot.ui.validation import ALLOWED_UPLOAD_TYPES

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle: HTTP client and model manager setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Stores the configuration, a shared :class:`httpx.AsyncClient` (with
        ``config.fetch_timeout``) and a :class:`ModelManager` on
        ``app.state``.  The provider client is created lazily on the first
        ``POST /api/generate`` call.

    On shutdown:
        Releases the provider client and closes the HTTP client.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    app.state.config = config
    app.state.http_client = httpx.AsyncClient(timeout=config.fetch_timeout)
    app.state.model_manager = ModelManager(config)
    logger.info("ModelManager initialised for '%s' (no client yet).", config.image_model)

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    app.state.model_manager.unload()
    await app.state.http_client.aclose()
    logger.info("HTTP client closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Yachtshot",
    description="Upload a selfie, get a photo of yourself on a yacht.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Pipeline helpers.
# ---------------------------------------------------------------------------


async def _load_user_image(image_url: str | None, client: httpx.AsyncClient) -> ImagePayload | None:
    """Resolve the optional user photo.

    Data URLs are decoded, http(s) URLs are fetched.  Any other non-empty
    value is ignored rather than rejected.
    """
    if not image_url:
        return None
    if data_url.is_data_url(image_url):
        return data_url.decode(image_url)
    if is_http_url(image_url):
        return await fetch_image(image_url, client)
    logger.info("Ignoring imageUrl that is neither a data URL nor http(s).")
    return None


async def _read_generate_request(request: Request, cfg: YachtshotConfig) -> GenerateRequest:
    """Parse and validate the body of ``POST /api/generate``.

    Raises:
        RequestMalformed: If the body is not JSON, does not match
            :class:`GenerateRequest`, or has a blank prompt while
            ``cfg.require_prompt`` is set.
    """
    try:
        raw = await request.json()
    except ValueError as e:
        raise RequestMalformed("Invalid JSON") from e

    try:
        body = GenerateRequest.model_validate(raw)
    except ValidationError as e:
        raise RequestMalformed("Invalid request body") from e

    if cfg.require_prompt and not body.prompt:
        raise RequestMalformed("Prompt is required")
    return body


def _error_response(exc: BaseException, cfg: YachtshotConfig) -> JSONResponse:
    """Build the structured failure response for *exc*.

    A fresh correlation id is logged with the exception and returned both in
    the body and in the ``X-Error-Id`` header.  ``details`` is omitted in
    production.
    """
    error = classify_error(exc)
    error_id = str(uuid.uuid4())

    logger.error(
        f"Generation failed [{error_id}] {error.kind.value} (status {error.status}): {error.message}",
        exc_info=exc,
    )

    failure = GenerateFailure(
        error=error.message,
        error_id=error_id,
        details=None if cfg.is_production else serialize_error(error),
    )
    return JSONResponse(
        failure.model_dump(by_alias=True, exclude_none=True),
        status_code=error.status,
        headers={"X-Error-Id": error_id, "Cache-Control": "no-store"},
    )


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/config")
async def get_config(request: Request) -> dict:
    """Return the public settings the page needs.

    Returns:
        Dictionary with ``version``, ``model``, ``base_scene_url``,
        ``max_upload_bytes``, ``max_dimension``, ``accepted_types`` and
        ``default_prompt``.
    """
    cfg: YachtshotConfig = request.app.state.config
    return {
        "version": __version__,
        "model": cfg.image_model,
        "base_scene_url": cfg.base_scene_url,
        "max_upload_bytes": cfg.max_upload_bytes,
        "max_dimension": cfg.max_dimension,
        "accepted_types": sorted(ALLOWED_UPLOAD_TYPES),
        "default_prompt": default_style_prompt(),
    }


@app.post("/api/generate")
async def generate(request: Request) -> JSONResponse:
    """Generate a yacht photo.

    This endpoint:

    1. Parses the JSON body (400 ``Invalid JSON`` on failure, nothing else
       runs).
    2. Validates it against :class:`GenerateRequest` and trims the fields.
    3. Loads the base scene and the optional user photo concurrently.
    4. Composes the instruction (edit or composite mode).
    5. Invokes the model.
    6. Extracts an image and returns it as a data URL.

    Any failure in steps 3–6 is classified and returned as
    ``{error, errorId, details?}`` with the error's status.

    Returns:
        ``{ok: true, dataUrl}`` on success.
    """
    cfg: YachtshotConfig = request.app.state.config

    # --- Parse -------------------------------------------------------------
    # Rejected bodies get a bare {error} with no correlation id.
    try:
        body = await _read_generate_request(request, cfg)
    except RequestMalformed as exc:
        logger.info(f"Rejected generate request: {exc.message}")
        return JSONResponse({"error": exc.message}, status_code=exc.status)

    prompt = body.prompt or ""

    client: httpx.AsyncClient = request.app.state.http_client
    model_mgr: ModelManager = request.app.state.model_manager

    try:
        # --- Load images (independent, so concurrently) --------------------
        base_image, user_image = await asyncio.gather(
            fetch_image(cfg.base_scene_url, client),
            _load_user_image(body.image_url, client),
        )

        # --- Compose and invoke ------------------------------------------
        instruction = build_prompt(prompt, has_user_image=user_image is not None)
        response = await model_mgr.generate(instruction, base_image, user_image)

        # --- Extract -------------------------------------------------------
        result = extract_image(response)
        if not isinstance(result, Found):
            raise ExtractionEmpty(provider="google")
    except Exception as exc:
        return _error_response(exc, cfg)

    logger.info(f"Generated {result.media_type} image ({len(result.data_url)} chars).")
    return JSONResponse(GenerateSuccess(data_url=result.data_url).model_dump(by_alias=True))


# ---------------------------------------------------------------------------
# Page.  Mounted last so the API routes above take precedence over ``/``.
# ---------------------------------------------------------------------------

if config.serve_ui:
    import gradio as gr

    from yachtshot.ui.app import create_ui

    app = gr.mount_gradio_app(app, create_ui(), path="/")


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~yachtshot.core.config.config` (which
    loads from ``YACHTSHOT_SERVER_HOST`` and ``YACHTSHOT_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``yachtshot`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "yachtshot.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
