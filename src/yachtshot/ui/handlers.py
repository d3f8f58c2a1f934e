"""Event handlers for the Yachtshot page.

Handlers take the session :class:`UIState` as their last input and return it
as their last output, like every Gradio handler that owns session state.
"""

import io
import logging

import gradio as gr
import httpx
from PIL import Image

from yachtshot.core import data_url as data_url_codec
from yachtshot.core.config import config
from yachtshot.core.errors import InvalidFormat

from .models import SelectedFile, UIState
from .state import initialize_ui_state

logger = logging.getLogger(__name__)

GENERATE_FAILED_MESSAGE = "Failed to generate"
NOTICE_MESSAGE = (
    "*Images are generated without watermark. Do not impersonate public figures or minors.*"
)
USING_UPLOAD_HINT = "*Using your uploaded photo.*"
NO_UPLOAD_HINT = "*Optional: upload a selfie above to personalize.*"


def data_url_to_image(value: str) -> Image.Image:
    """Decode a data URL into a loaded PIL image.

    Raises:
        InvalidFormat: If the value is not a data URL
        OSError: If the payload is not a decodable image
    """
    payload = data_url_codec.decode(value)
    image = Image.open(io.BytesIO(payload.data))
    image.load()
    return image


def _flush_alerts(state: UIState) -> None:
    """Show queued pipeline messages as toasts."""
    while state.alerts:
        gr.Warning(state.alerts.pop(0))


def _preview_value(state: UIState):
    if state.preview_url:
        try:
            return data_url_to_image(state.preview_url)
        except (InvalidFormat, OSError) as e:
            logger.warning(f"Could not render uploaded preview: {e}")
    return config.base_scene_url


def render_upload_widgets(state: UIState) -> tuple:
    """Current values for the preview, its label, the buttons and the hint.

    Returns:
        Tuple of (preview_image, preview_label, upload_button_update,
        reset_button_update, prompt_hint)
    """
    return (
        _preview_value(state),
        f"**{state.preview_label}**",
        gr.update(visible=not state.has_upload, label=state.upload_button_label),
        gr.update(visible=state.has_upload),
        USING_UPLOAD_HINT if state.has_upload else NO_UPLOAD_HINT,
    )


def handle_upload(file_path: str | None, state: UIState) -> tuple:
    """Run a picked file through the upload pipeline.

    Args:
        file_path: Temporary path of the uploaded file (None if cancelled)
        state: UI state

    Returns:
        Values from :func:`render_upload_widgets`, whether the page should
        scroll to the generator, and the state
    """
    state = initialize_ui_state(state)

    if file_path:
        try:
            selected = SelectedFile.from_path(file_path)
        except OSError as e:
            logger.error(f"Could not read uploaded file: {e}")
            state.alerts.append("Failed to read the selected file. Please try again.")
        else:
            outcome = state.upload_pipeline.select(selected)
            logger.info(f"Upload finished with stage {outcome.stage.value}")

    _flush_alerts(state)
    should_scroll = state.scroll_target is not None
    state.scroll_target = None
    return (*render_upload_widgets(state), should_scroll, state)


def handle_reset(state: UIState) -> tuple:
    """Clear the uploaded photo.

    Returns:
        Values from :func:`render_upload_widgets` followed by the state
    """
    state = initialize_ui_state(state)
    state.upload_pipeline.reset()
    return (*render_upload_widgets(state), state)


def request_generation(
    prompt: str, image_url: str | None, client: httpx.Client | None = None
) -> str:
    """POST to ``/api/generate`` and return the resulting data URL.

    Args:
        prompt: Style prompt text
        image_url: Stored upload, omitted from the body when None
        client: HTTP client to use (defaults to one pointed at
            ``config.api_base_url``)

    Raises:
        RuntimeError: With the server's error message (or a generic one)
    """
    body: dict[str, str] = {"prompt": prompt}
    if image_url:
        body["imageUrl"] = image_url

    owns_client = client is None
    if client is None:
        client = httpx.Client(
            base_url=config.api_base_url,
            timeout=config.model_timeout + config.fetch_timeout,
        )
    try:
        response = client.post("/api/generate", json=body)
    except httpx.HTTPError as e:
        raise RuntimeError(GENERATE_FAILED_MESSAGE) from e
    finally:
        if owns_client:
            client.close()

    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    if not response.is_success:
        error_id = response.headers.get("X-Error-Id")
        if error_id:
            logger.warning(f"Generation failed, errorId={error_id}")
        raise RuntimeError(payload.get("error") or GENERATE_FAILED_MESSAGE)

    result = payload.get("dataUrl")
    if not result:
        raise RuntimeError(GENERATE_FAILED_MESSAGE)
    return result


def handle_generate(prompt: str, state: UIState, client: httpx.Client | None = None) -> tuple:
    """Generate a yacht photo from the prompt and the stored upload.

    Args:
        prompt: Style prompt text
        state: UI state
        client: Optional HTTP client (tests)

    Returns:
        Tuple of (result_image, message_markdown, state)
    """
    state = initialize_ui_state(state)
    state.is_generating = True
    state.error = None
    state.result_data_url = None

    try:
        state.result_data_url = request_generation(prompt, state.upload_slot.get(), client)
        image = data_url_to_image(state.result_data_url)
    except RuntimeError as e:
        state.error = str(e)
    except (InvalidFormat, OSError) as e:
        logger.error(f"Generated image could not be decoded: {e}")
        state.error = "The generated image could not be displayed."
    finally:
        state.is_generating = False

    if state.error:
        return None, f"<span style='color:#dc2626'>{state.error}</span>", state
    return image, NOTICE_MESSAGE, state
