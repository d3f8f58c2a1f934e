"""State management utilities for the Yachtshot UI.

The uploaded photo lives in an :class:`UploadSlot`: a single value holder
owned by one visitor session.  Widgets that need the photo subscribe to the
slot instead of sharing state with the upload button directly.

Slot contract
-------------
- ``subscribe(listener)`` returns an unsubscribe handle.
- ``publish(value)`` stores the value, then calls every listener
  synchronously, in subscription order, with the new value.
- ``clear()`` removes the value and notifies listeners with ``None``.
- A write that exceeds the quota raises :class:`SlotWriteError` and leaves
  the stored value and listeners untouched.
"""

import logging
from collections.abc import Callable

from yachtshot.core.config import config

from .models import UIState

logger = logging.getLogger(__name__)

# Name the slot is known by; also used as the notification name in logs.
USER_UPLOAD_KEY = "userUploadDataUrl"
USER_UPLOADED_EVENT = "user-uploaded-photo"

SlotListener = Callable[[str | None], None]


class SlotWriteError(Exception):
    """The slot refused a value (quota exceeded)."""

    pass


class UploadSlot:
    """Observable holder for the session's uploaded photo (a data URL)."""

    def __init__(self, key: str = USER_UPLOAD_KEY, quota: int | None = None) -> None:
        self.key = key
        self.quota = quota
        self._value: str | None = None
        self._listeners: list[SlotListener] = []

    def get(self) -> str | None:
        """Return the stored data URL, or None."""
        return self._value

    def subscribe(self, listener: SlotListener) -> Callable[[], None]:
        """Register *listener* and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, value: str) -> None:
        """Store *value* and notify listeners.

        Raises:
            SlotWriteError: If *value* is longer than the quota
        """
        if self.quota is not None and len(value) > self.quota:
            raise SlotWriteError(
                f"Value of {len(value)} chars exceeds the {self.quota}-char quota for '{self.key}'"
            )
        self._value = value
        self._notify()

    def clear(self) -> None:
        """Remove the stored value and notify listeners with None."""
        self._value = None
        self._notify()

    def _notify(self) -> None:
        logger.debug(f"{USER_UPLOADED_EVENT}: notifying {len(self._listeners)} listener(s)")
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            listener(self._value)


def initialize_ui_state(state: UIState | None = None) -> UIState:
    """Initialize or ensure UI state is ready.

    Creates the session's upload slot and pipeline on first use and wires
    the slot to the state's preview fields.

    Args:
        state: Existing UIState or None

    Returns:
        Initialized UIState instance
    """
    # Imported here to avoid a cycle: the pipeline module imports state helpers
    from .upload import UploadPipeline

    if state is None:
        logger.info("Creating new UIState")
        state = UIState()

    if state.is_initialized():
        return state

    logger.info("Initializing UIState components...")

    def sync_preview(value: str | None) -> None:
        state.preview_url = value or None
        state.has_upload = bool(value)

    state.upload_slot = UploadSlot(quota=config.slot_quota_bytes)
    state.upload_slot.subscribe(sync_preview)

    def request_scroll(section_id: str) -> None:
        state.scroll_target = section_id

    state.upload_pipeline = UploadPipeline(
        state.upload_slot,
        config,
        alert=state.alerts.append,
        navigate=request_scroll,
    )

    logger.info(f"UIState initialization complete: {state}")
    return state
