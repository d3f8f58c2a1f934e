"""Gradio page for Yachtshot."""

import logging

import gradio as gr

from yachtshot.core.config import config
from yachtshot.core.prompt_builder import default_style_prompt

from .handlers import (
    NO_UPLOAD_HINT,
    NOTICE_MESSAGE,
    handle_generate,
    handle_reset,
    handle_upload,
)
from .models import GENERATOR_SECTION_ID, PREVIEW_LABEL_DEFAULT, UIState

logger = logging.getLogger(__name__)

CUSTOM_CSS = """
.preview-label {
    position: absolute;
    top: 8px;
    left: 8px;
    z-index: 10;
    padding: 2px 8px;
    border-radius: 4px;
    background: rgba(0, 0, 0, 0.55);
    color: #fff;
}
"""

# Runs in the browser after an upload; falls back to the location hash when
# the section is not rendered.
SCROLL_TO_GENERATOR_JS = f"""
(shouldScroll) => {{
    if (!shouldScroll) return;
    const el = document.getElementById("{GENERATOR_SECTION_ID}");
    if (el) {{
        el.scrollIntoView({{ behavior: "smooth", block: "start" }});
    }} else {{
        window.location.hash = "#{GENERATOR_SECTION_ID}";
    }}
}}
"""

ACCEPTED_FILE_TYPES = [".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif"]


def create_ui() -> gr.Blocks:
    """Create the Gradio page.

    Returns:
        Gradio Blocks app
    """
    app = gr.Blocks(title="Yachtshot", css=CUSTOM_CSS)

    with app:
        # Session state - one instance per visitor
        ui_state = gr.State(UIState())

        gr.Markdown(
            """
            # Your yacht shot
            ### Upload a selfie, get a golden-hour portrait on deck
            """
        )

        with gr.Row():
            with gr.Column(scale=1):
                upload_button = gr.UploadButton(
                    "Upload your photo",
                    file_types=ACCEPTED_FILE_TYPES,
                    file_count="single",
                    type="filepath",
                )
                reset_button = gr.Button("Reset", visible=False)
            with gr.Column(scale=2):
                preview_label = gr.Markdown(
                    f"**{PREVIEW_LABEL_DEFAULT}**", elem_classes=["preview-label"]
                )
                preview = gr.Image(
                    value=config.base_scene_url,
                    label="Preview",
                    show_label=False,
                    interactive=False,
                    height=300,
                )

        with gr.Column(elem_id=GENERATOR_SECTION_ID):
            gr.Markdown(
                "*Tip: Face + upper torso visible, plain background, soft light, "
                "no hats/sunglasses.*"
            )
            prompt_input = gr.Textbox(
                label="Style prompt",
                value=default_style_prompt(),
                lines=3,
            )
            prompt_hint = gr.Markdown(NO_UPLOAD_HINT)
            generate_button = gr.Button("Generate", variant="primary")
            message = gr.Markdown(NOTICE_MESSAGE)
            result = gr.Image(
                label="Generated yacht shot",
                type="pil",
                interactive=False,
                show_download_button=True,
                height=540,
            )

        # Set by the upload handler after the first successful upload
        scroll_flag = gr.Checkbox(value=False, visible=False)

        upload_widgets = [preview, preview_label, upload_button, reset_button, prompt_hint]

        upload_button.upload(
            fn=handle_upload,
            inputs=[upload_button, ui_state],
            outputs=[*upload_widgets, scroll_flag, ui_state],
        ).then(fn=None, inputs=[scroll_flag], outputs=None, js=SCROLL_TO_GENERATOR_JS)

        reset_button.click(
            fn=handle_reset,
            inputs=[ui_state],
            outputs=[*upload_widgets, ui_state],
        )

        generate_button.click(
            fn=lambda: gr.update(value="Generating...", interactive=False),
            outputs=[generate_button],
        ).then(
            fn=handle_generate,
            inputs=[prompt_input, ui_state],
            outputs=[result, message, ui_state],
        ).then(
            fn=lambda: gr.update(value="Generate", interactive=True),
            outputs=[generate_button],
        )

    return app
