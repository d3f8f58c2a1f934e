"""Shared pytest fixtures for Yachtshot tests."""

import io
import os
from collections.abc import Callable, Generator
from unittest.mock import AsyncMock, MagicMock

# The API module mounts the Gradio page at import time; tests talk to the
# bare FastAPI app.
os.environ.setdefault("YACHTSHOT_SERVE_UI", "false")

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from yachtshot.core.config import YachtshotConfig
from yachtshot.core.model_manager import GeneratedFile, ModelResponse
from yachtshot.ui.models import UIState

SCENE_URL = "https://images.example.test/yacht-scene.png"
USER_PHOTO_URL = "https://images.example.test/selfie.jpg"


def make_image_bytes(
    width: int = 32, height: int = 32, fmt: str = "PNG", color=(200, 120, 40)
) -> bytes:
    """Encode a solid-colour image.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        fmt: Pillow format name (PNG, JPEG, WEBP)
        color: RGB fill colour

    Returns:
        Encoded image bytes
    """
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    """Expose :func:`make_image_bytes` to tests."""
    return make_image_bytes


@pytest.fixture
def png_bytes() -> bytes:
    """A small PNG image."""
    return make_image_bytes()


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small JPEG image."""
    return make_image_bytes(fmt="JPEG")


@pytest.fixture
def test_config(monkeypatch) -> YachtshotConfig:
    """Create a test configuration pointing at the mocked image host.

    Returns:
        YachtshotConfig instance for testing
    """
    monkeypatch.delenv("YACHTSHOT_ENVIRONMENT", raising=False)
    return YachtshotConfig(
        _env_file=None,
        base_scene_url=SCENE_URL,
        google_api_key="test-key",  # Never used; the model manager is faked
        environment="development",
        serve_ui=False,
        fetch_timeout=5.0,
        model_timeout=5.0,
    )


@pytest.fixture
def image_host(png_bytes: bytes, jpeg_bytes: bytes) -> dict[str, tuple[int, bytes, dict]]:
    """Routes served by the mocked image host.

    Maps URL to ``(status, body, headers)``.  Tests add or replace entries
    to change what the host returns.
    """
    return {
        SCENE_URL: (200, png_bytes, {"content-type": "image/png"}),
        USER_PHOTO_URL: (200, jpeg_bytes, {"content-type": "image/jpeg"}),
    }


@pytest.fixture
def fetched_requests() -> list[httpx.Request]:
    """Every request the mocked image host received, in order."""
    return []


@pytest.fixture
def mock_http_client(
    image_host: dict, fetched_requests: list[httpx.Request]
) -> httpx.AsyncClient:
    """Async HTTP client backed by :class:`httpx.MockTransport`.

    Unknown URLs get a 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        fetched_requests.append(request)
        route = image_host.get(str(request.url))
        if route is None:
            return httpx.Response(404, content=b"not found")
        status, body, headers = route
        return httpx.Response(status, content=body, headers=headers)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def model_response() -> ModelResponse:
    """Default fake model output: one PNG file part carrying ``foo``."""
    return ModelResponse(files=[GeneratedFile(media_type="image/png", base64="Zm9v")])


@pytest.fixture
def fake_model_manager(model_response: ModelResponse) -> MagicMock:
    """Model manager stand-in whose ``generate`` returns ``model_response``."""
    manager = MagicMock()
    manager.generate = AsyncMock(return_value=model_response)
    manager.model_id = "gemini-test"
    return manager


@pytest.fixture
def test_client(
    test_config: YachtshotConfig,
    fake_model_manager: MagicMock,
    mock_http_client: httpx.AsyncClient,
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with the config, HTTP client and model faked.

    The lifespan handler runs normally; its objects on ``app.state`` are
    swapped for the fakes and the real HTTP client is restored before
    shutdown so it gets closed.
    """
    from yachtshot.api.main import app

    with TestClient(app) as client:
        real_http_client = app.state.http_client
        app.state.config = test_config
        app.state.http_client = mock_http_client
        app.state.model_manager = fake_model_manager
        try:
            yield client
        finally:
            app.state.http_client = real_http_client


@pytest.fixture
def ui_state() -> UIState:
    """Create empty UI state for testing.

    Returns:
        UIState instance
    """
    return UIState()
