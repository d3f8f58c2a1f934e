"""Validation utilities for Yachtshot uploads."""

import logging

logger = logging.getLogger(__name__)

ALLOWED_UPLOAD_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/heic",
        "image/heif",
    }
)

HEIC_TYPES = frozenset({"image/heic", "image/heif"})

INVALID_FILE_MESSAGE = "Please select a valid image (JPG, PNG, WebP, HEIC/HEIF) up to 10MB."
TOO_LARGE_AFTER_PROCESSING_MESSAGE = (
    "Processed image exceeds 10MB. Please choose a smaller photo or crop it."
)
PROCESSING_FAILED_MESSAGE = "Failed to process the image. Please try again."
STORAGE_FAILED_MESSAGE = (
    "Unable to store image. Please try again or check if private browsing is enabled."
)


class ValidationError(Exception):
    """User-friendly validation error.

    This exception is raised when user input fails validation.
    The message is intended to be displayed directly to the user.
    """

    pass


def is_heic(media_type: str) -> bool:
    """Check whether a declared type needs transcoding to JPEG."""
    return media_type.lower() in HEIC_TYPES


def validate_upload(media_type: str, size: int, max_bytes: int) -> None:
    """Validate a selected file before any processing.

    Args:
        media_type: The file's declared media type
        size: File size in bytes
        max_bytes: Size ceiling in bytes

    Raises:
        ValidationError: If the type is not allowed or the file is too large
    """
    if media_type.lower() not in ALLOWED_UPLOAD_TYPES:
        logger.info(f"Rejected upload with type {media_type!r}")
        raise ValidationError(INVALID_FILE_MESSAGE)

    if size > max_bytes:
        logger.info(f"Rejected upload of {size} bytes (limit {max_bytes})")
        raise ValidationError(INVALID_FILE_MESSAGE)


def validate_processed_size(size: int, max_bytes: int) -> None:
    """Re-apply the size ceiling after transcoding/downscaling.

    Raises:
        ValidationError: If the processed image is still too large
    """
    if size > max_bytes:
        raise ValidationError(TOO_LARGE_AFTER_PROCESSING_MESSAGE)
