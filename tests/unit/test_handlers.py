"""Unit tests for the Gradio event handlers.

The generation API is served by :class:`httpx.MockTransport`.
"""

import json

import httpx
import pytest
from PIL import Image

from yachtshot.core.config import config
from yachtshot.core.data_url import encode
from yachtshot.ui.handlers import (
    GENERATE_FAILED_MESSAGE,
    NO_UPLOAD_HINT,
    NOTICE_MESSAGE,
    USING_UPLOAD_HINT,
    data_url_to_image,
    handle_generate,
    handle_reset,
    handle_upload,
    request_generation,
)
from yachtshot.ui.state import initialize_ui_state


def _api_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), base_url="http://api.test")


@pytest.fixture
def photo_path(tmp_path, png_bytes):
    """A PNG written to disk, as Gradio hands uploads to handlers."""
    path = tmp_path / "selfie.png"
    path.write_bytes(png_bytes)
    return str(path)


class TestRequestGeneration:
    """Tests for the call to POST /api/generate."""

    def test_success_returns_data_url(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "dataUrl": "data:image/png;base64,Zm9v"})

        result = request_generation("sunset", None, client=_api_client(handler))

        assert result == "data:image/png;base64,Zm9v"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/generate"
        assert json.loads(seen[0].content) == {"prompt": "sunset"}

    def test_image_url_is_sent_when_present(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True, "dataUrl": "data:image/png;base64,Zm9v"})

        request_generation("x", "data:image/png;base64,YmFy", client=_api_client(handler))

        assert bodies == [{"prompt": "x", "imageUrl": "data:image/png;base64,YmFy"}]

    def test_server_error_message_is_raised(self):
        def handler(request):
            return httpx.Response(
                401,
                json={"error": "Permission denied", "errorId": "abc"},
                headers={"X-Error-Id": "abc"},
            )

        with pytest.raises(RuntimeError, match="Permission denied"):
            request_generation("x", None, client=_api_client(handler))

    def test_unparseable_error_uses_generic_message(self):
        def handler(request):
            return httpx.Response(500, content=b"<html>oops</html>")

        with pytest.raises(RuntimeError, match=GENERATE_FAILED_MESSAGE):
            request_generation("x", None, client=_api_client(handler))

    def test_missing_data_url_is_a_failure(self):
        def handler(request):
            return httpx.Response(200, json={"ok": True, "dataUrl": ""})

        with pytest.raises(RuntimeError, match=GENERATE_FAILED_MESSAGE):
            request_generation("x", None, client=_api_client(handler))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RuntimeError, match=GENERATE_FAILED_MESSAGE):
            request_generation("x", None, client=_api_client(handler))


class TestHandleGenerate:
    """Tests for the Generate button handler."""

    def test_success(self, ui_state, png_bytes):
        def handler(request):
            return httpx.Response(200, json={"ok": True, "dataUrl": encode(png_bytes, "image/png")})

        image, message, state = handle_generate("x", ui_state, client=_api_client(handler))

        assert isinstance(image, Image.Image)
        assert image.size == (32, 32)
        assert message == NOTICE_MESSAGE
        assert state.error is None
        assert not state.is_generating
        assert state.result_data_url.startswith("data:image/png;base64,")

    def test_sends_stored_upload(self, ui_state, png_bytes):
        state = initialize_ui_state(ui_state)
        state.upload_slot.publish("data:image/png;base64,c2VsZmll")
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True, "dataUrl": encode(png_bytes, "image/png")})

        handle_generate("x", state, client=_api_client(handler))

        assert bodies[0]["imageUrl"] == "data:image/png;base64,c2VsZmll"

    def test_error_is_shown(self, ui_state):
        def handler(request):
            return httpx.Response(502, json={"error": "The model did not return an image"})

        image, message, state = handle_generate("x", ui_state, client=_api_client(handler))

        assert image is None
        assert "The model did not return an image" in message
        assert state.error == "The model did not return an image"
        assert state.result_data_url is None

    def test_undecodable_result(self, ui_state):
        def handler(request):
            return httpx.Response(200, json={"ok": True, "dataUrl": "data:image/png;base64,Zm9v"})

        image, message, state = handle_generate("x", ui_state, client=_api_client(handler))

        assert image is None
        assert state.error == "The generated image could not be displayed."


class TestHandleUpload:
    """Tests for the upload and reset handlers."""

    def test_upload_updates_widgets(self, ui_state, photo_path):
        preview, label, upload_btn, reset_btn, hint, should_scroll, state = handle_upload(
            photo_path, ui_state
        )

        assert isinstance(preview, Image.Image)
        assert label == "**Your image**"
        assert upload_btn["visible"] is False
        assert reset_btn["visible"] is True
        assert hint == USING_UPLOAD_HINT
        assert should_scroll is True
        assert state.has_upload

    def test_scroll_only_after_first_upload(self, ui_state, photo_path):
        state = handle_upload(photo_path, ui_state)[-1]

        should_scroll = handle_upload(photo_path, state)[-2]

        assert should_scroll is False

    def test_cancelled_picker(self, ui_state):
        preview, label, _, _, hint, should_scroll, state = handle_upload(None, ui_state)

        assert preview == config.base_scene_url
        assert label == "**Before**"
        assert hint == NO_UPLOAD_HINT
        assert should_scroll is False
        assert not state.has_upload

    def test_rejected_file_drains_alerts(self, ui_state, tmp_path):
        path = tmp_path / "scan.bmp"
        path.write_bytes(b"BM" + b"\0" * 64)

        result = handle_upload(str(path), ui_state)
        state = result[-1]

        assert not state.has_upload
        assert state.alerts == []

    def test_reset(self, ui_state, photo_path):
        state = handle_upload(photo_path, ui_state)[-1]

        preview, label, upload_btn, reset_btn, hint, state = handle_reset(state)

        assert preview == config.base_scene_url
        assert label == "**Before**"
        assert upload_btn["visible"] is True
        assert reset_btn["visible"] is False
        assert hint == NO_UPLOAD_HINT
        assert state.upload_slot.get() is None


class TestDataUrlToImage:
    """Tests for decoding data URLs into PIL images."""

    def test_decodes_png(self, png_bytes):
        image = data_url_to_image(encode(png_bytes, "image/png"))

        assert image.size == (32, 32)

    def test_invalid_image(self):
        with pytest.raises(OSError):
            data_url_to_image("data:image/png;base64,Zm9v")
