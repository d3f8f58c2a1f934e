"""Data models for Yachtshot UI state and uploads."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Anchor of the generator section; the upload flow scrolls here.
GENERATOR_SECTION_ID = "make-shot"

PREVIEW_LABEL_UPLOADED = "Your image"
PREVIEW_LABEL_DEFAULT = "Before"

_SUFFIX_MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
}


class UploadStage(str, Enum):
    """Stages a single file selection moves through."""

    IDLE = "idle"
    VALIDATING = "validating"
    REJECTED = "rejected"
    BUSY = "busy"
    TRANSCODING = "transcoding"
    DOWNSCALING = "downscaling"
    ENCODING = "encoding"
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass
class SelectedFile:
    """A file chosen in the picker.

    ``media_type`` is the type the browser declared, which is what the
    allow-list is checked against.
    """

    name: str
    media_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: str | Path, media_type: str | None = None) -> "SelectedFile":
        """Read a file from disk, declaring its type from the suffix if not given."""
        path = Path(path)
        declared = media_type or _SUFFIX_MEDIA_TYPES.get(
            path.suffix.lower(), "application/octet-stream"
        )
        return cls(name=path.name, media_type=declared, data=path.read_bytes())


@dataclass
class UploadOutcome:
    """Result of one pass through the upload pipeline.

    Attributes:
        stage: Terminal stage reached (PUBLISHED, REJECTED or FAILED), or
            BUSY if the selection was ignored because one was in flight.
        message: User-facing message for REJECTED/FAILED outcomes.
        data_url: The published data URL.
    """

    stage: UploadStage
    message: str | None = None
    data_url: str | None = None

    @property
    def ok(self) -> bool:
        return self.stage is UploadStage.PUBLISHED


@dataclass
class UIState:
    """Session state for the Gradio UI.

    This represents all the stateful objects that need to be maintained
    per visitor session. Each visitor gets their own UIState instance, so the
    upload slot behaves like per-tab session storage.
    """

    # Initialised lazily by initialize_ui_state()
    upload_slot: Any = None
    upload_pipeline: Any = None

    # Mirrors of the slot, kept current by a slot subscription
    preview_url: str | None = None
    has_upload: bool = False

    # Generate section
    is_generating: bool = False
    error: str | None = None
    result_data_url: str | None = None

    alerts: list[str] = field(default_factory=list)
    scroll_target: str | None = None

    def is_initialized(self) -> bool:
        """Check if the upload slot and pipeline have been created."""
        return self.upload_slot is not None and self.upload_pipeline is not None

    @property
    def preview_label(self) -> str:
        """Overlay label for the preview slot."""
        return PREVIEW_LABEL_UPLOADED if self.has_upload else PREVIEW_LABEL_DEFAULT

    @property
    def upload_button_label(self) -> str:
        """Label for the upload/reset button."""
        if self.upload_pipeline is not None and self.upload_pipeline.is_busy:
            return "Uploading..."
        return "Reset" if self.has_upload else "Upload your photo"

    def __repr__(self) -> str:
        return (
            f"UIState(has_upload={self.has_upload}, is_generating={self.is_generating}, "
            f"error={self.error!r}, has_result={self.result_data_url is not None})"
        )
