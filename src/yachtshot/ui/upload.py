"""Upload processing for the visitor's photo.

Each file selection runs through a fixed sequence of stages::

    IDLE -> VALIDATING -> (REJECTED | BUSY) -> [TRANSCODING] -> [DOWNSCALING]
         -> ENCODING -> (PUBLISHED | FAILED)

- **Validation** checks the declared type against the allow-list and the
  size against ``config.max_upload_bytes``.  A rejection alerts the visitor
  and changes nothing.
- **Transcoding** turns HEIC/HEIF into JPEG (``config.heic_quality``).
- **Downscaling** shrinks the longest side to ``config.max_dimension``.  If
  the image already fits, the bytes pass through untouched.
- The processed size is checked again, with its own message.
- **Encoding** produces a data URL, which is published to the session's
  :class:`~yachtshot.ui.state.UploadSlot`.

The first successful publish asks the page to scroll to the generator
section.
"""

import io
import logging
from collections.abc import Callable

import pillow_heif
from PIL import Image, ImageOps

from yachtshot.core.config import YachtshotConfig
from yachtshot.core.data_url import encode

from .models import GENERATOR_SECTION_ID, SelectedFile, UploadOutcome, UploadStage
from .state import SlotWriteError, UploadSlot
from .validation import (
    PROCESSING_FAILED_MESSAGE,
    STORAGE_FAILED_MESSAGE,
    ValidationError,
    is_heic,
    validate_processed_size,
    validate_upload,
)

logger = logging.getLogger(__name__)

pillow_heif.register_heif_opener()

_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

# Formats whose encoder takes a quality setting
_LOSSY_FORMATS = {"JPEG", "WEBP"}


class ImageProcessingError(Exception):
    """Decoding, transcoding or re-encoding an image failed."""

    pass


def compute_scale(width: int, height: int, max_dimension: int) -> float:
    """Return ``min(1, max_dimension / max(width, height))``."""
    return min(1.0, max_dimension / max(width, height))


def transcode_heic(data: bytes, quality: int) -> bytes:
    """Convert HEIC/HEIF bytes to JPEG.

    Raises:
        ImageProcessingError: If the image cannot be decoded or encoded
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image = ImageOps.exif_transpose(image)
            if image.mode != "RGB":
                image = image.convert("RGB")
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=quality)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageProcessingError(f"HEIC transcoding failed: {e}") from e
    return buffer.getvalue()


def downscale_image(data: bytes, media_type: str, max_dimension: int, quality: int) -> bytes:
    """Shrink an image so its longest side is at most *max_dimension*.

    Returns *data* unchanged when no scaling is needed, or when the image
    reports no dimensions.

    Args:
        data: Encoded image bytes
        media_type: Type to re-export in when scaling happens
        max_dimension: Longest allowed side in pixels
        quality: Encoder quality for lossy formats

    Raises:
        ImageProcessingError: If the image cannot be decoded or encoded
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            if not width or not height:
                return data

            scale = compute_scale(width, height, max_dimension)
            if scale == 1:
                return data

            target = (max(1, round(width * scale)), max(1, round(height * scale)))
            pil_format = _PIL_FORMATS.get(media_type.lower(), "JPEG")
            resized = image.resize(target, Image.Resampling.LANCZOS)
            if pil_format == "JPEG" and resized.mode not in ("RGB", "L"):
                resized = resized.convert("RGB")

            save_kwargs = {"quality": quality} if pil_format in _LOSSY_FORMATS else {}
            buffer = io.BytesIO()
            resized.save(buffer, format=pil_format, **save_kwargs)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageProcessingError(f"Downscaling failed: {e}") from e

    logger.info(f"Downscaled {width}x{height} -> {target[0]}x{target[1]} ({pil_format})")
    return buffer.getvalue()


class UploadPipeline:
    """Turns a selected file into a published data URL.

    Attributes:
        slot: The session's upload slot
        config: Upload limits and qualities
        alert: Receives user-facing messages
        navigate: Called with the generator section id after the first
            successful publish.  The page scrolls there, or sets the
            location hash when the section is not rendered.
    """

    def __init__(
        self,
        slot: UploadSlot,
        config: YachtshotConfig,
        alert: Callable[[str], None] | None = None,
        navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.slot = slot
        self.config = config
        self.alert = alert
        self.navigate = navigate
        self.stage = UploadStage.IDLE
        self._busy = False
        self._has_navigated = False

    @property
    def is_busy(self) -> bool:
        return self._busy

    def select(self, file: SelectedFile) -> UploadOutcome:
        """Process a file selection.

        Args:
            file: The selected file

        Returns:
            The outcome.  Rejections and failures have already been passed
            to ``alert``; neither touches the slot.
        """
        if self._busy:
            logger.info("Upload already in progress, ignoring selection")
            return UploadOutcome(stage=UploadStage.BUSY)

        self.stage = UploadStage.VALIDATING
        try:
            validate_upload(file.media_type, file.size, self.config.max_upload_bytes)
        except ValidationError as e:
            return self._finish(UploadStage.REJECTED, str(e))

        self._busy = True
        self.stage = UploadStage.BUSY
        try:
            return self._process(file)
        finally:
            self._busy = False

    def reset(self) -> None:
        """Clear the stored photo."""
        self.slot.clear()
        self.stage = UploadStage.IDLE

    def _process(self, file: SelectedFile) -> UploadOutcome:
        data = file.data
        target_type = file.media_type.lower()

        try:
            if is_heic(target_type):
                self.stage = UploadStage.TRANSCODING
                data = transcode_heic(data, self.config.heic_quality)
                target_type = "image/jpeg"

            self.stage = UploadStage.DOWNSCALING
            data = downscale_image(
                data,
                target_type,
                self.config.max_dimension,
                self.config.downscale_quality,
            )
        except ImageProcessingError:
            logger.exception(f"Failed to process image {file.name!r}")
            return self._finish(UploadStage.FAILED, PROCESSING_FAILED_MESSAGE)

        try:
            validate_processed_size(len(data), self.config.max_upload_bytes)
        except ValidationError as e:
            return self._finish(UploadStage.REJECTED, str(e))

        self.stage = UploadStage.ENCODING
        data_url = encode(data, target_type)

        try:
            self.slot.publish(data_url)
        except SlotWriteError:
            logger.exception("Failed to store image data")
            return self._finish(UploadStage.FAILED, STORAGE_FAILED_MESSAGE)

        logger.info(f"Published {file.name!r} as {target_type} ({len(data)} bytes)")
        self._scroll_to_generator()
        return self._finish(UploadStage.PUBLISHED, data_url=data_url)

    def _finish(
        self, stage: UploadStage, message: str | None = None, data_url: str | None = None
    ) -> UploadOutcome:
        self.stage = stage
        if message and self.alert is not None:
            self.alert(message)
        return UploadOutcome(stage=stage, message=message, data_url=data_url)

    def _scroll_to_generator(self) -> None:
        if self._has_navigated:
            return
        self._has_navigated = True
        if self.navigate is not None:
            self.navigate(GENERATOR_SECTION_ID)
