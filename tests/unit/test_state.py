"""Unit tests for the session upload slot and UI state management."""

import pytest

from yachtshot.ui.models import UIState, UploadStage
from yachtshot.ui.state import (
    USER_UPLOAD_KEY,
    SlotWriteError,
    UploadSlot,
    initialize_ui_state,
)
from yachtshot.ui.upload import UploadPipeline


class TestUploadSlot:
    """Tests for the observable upload slot."""

    def test_starts_empty(self):
        slot = UploadSlot()

        assert slot.get() is None
        assert slot.key == USER_UPLOAD_KEY

    def test_publish_stores_and_notifies_in_order(self):
        slot = UploadSlot()
        calls = []
        slot.subscribe(lambda value: calls.append(("first", value)))
        slot.subscribe(lambda value: calls.append(("second", value)))

        slot.publish("data:image/png;base64,Zm9v")

        assert slot.get() == "data:image/png;base64,Zm9v"
        assert calls == [
            ("first", "data:image/png;base64,Zm9v"),
            ("second", "data:image/png;base64,Zm9v"),
        ]

    def test_listener_sees_stored_value(self):
        """Listeners run after the value is stored."""
        slot = UploadSlot()
        seen = []
        slot.subscribe(lambda value: seen.append(slot.get()))

        slot.publish("a")

        assert seen == ["a"]

    def test_unsubscribe(self):
        slot = UploadSlot()
        calls = []
        unsubscribe = slot.subscribe(calls.append)

        unsubscribe()
        slot.publish("a")

        assert calls == []
        unsubscribe()  # second call is a no-op

    def test_unsubscribe_during_notification(self):
        slot = UploadSlot()
        calls = []
        handles = {}

        def once(value):
            calls.append(("once", value))
            handles["once"]()

        handles["once"] = slot.subscribe(once)
        slot.subscribe(lambda value: calls.append(("always", value)))

        slot.publish("a")
        slot.publish("b")

        assert calls == [("once", "a"), ("always", "a"), ("always", "b")]

    def test_clear_notifies_none(self):
        slot = UploadSlot()
        slot.publish("a")
        calls = []
        slot.subscribe(calls.append)

        slot.clear()

        assert slot.get() is None
        assert calls == [None]

    def test_quota_breach_changes_nothing(self):
        slot = UploadSlot(quota=5)
        slot.publish("12345")
        calls = []
        slot.subscribe(calls.append)

        with pytest.raises(SlotWriteError):
            slot.publish("123456")

        assert slot.get() == "12345"
        assert calls == []


class TestInitializeUIState:
    """Tests for initialize_ui_state function."""

    def test_initialize_none_creates_new_state(self):
        result = initialize_ui_state(None)

        assert isinstance(result, UIState)
        assert result.is_initialized()
        assert isinstance(result.upload_slot, UploadSlot)
        assert isinstance(result.upload_pipeline, UploadPipeline)

    def test_initialize_returns_if_already_initialized(self, ui_state):
        first = initialize_ui_state(ui_state)
        slot = first.upload_slot

        second = initialize_ui_state(first)

        assert second is first
        assert second.upload_slot is slot

    def test_slot_changes_sync_preview(self, ui_state):
        state = initialize_ui_state(ui_state)

        state.upload_slot.publish("data:image/png;base64,Zm9v")

        assert state.has_upload
        assert state.preview_url == "data:image/png;base64,Zm9v"
        assert state.preview_label == "Your image"

        state.upload_slot.clear()

        assert not state.has_upload
        assert state.preview_url is None
        assert state.preview_label == "Before"


class TestUIStateLabels:
    """Tests for the derived labels on UIState."""

    def test_upload_button_label_idle(self, ui_state):
        assert ui_state.upload_button_label == "Upload your photo"

    def test_upload_button_label_with_upload(self, ui_state):
        ui_state.has_upload = True

        assert ui_state.upload_button_label == "Reset"

    def test_upload_button_label_while_busy(self, ui_state):
        state = initialize_ui_state(ui_state)
        labels = []
        state.upload_slot.subscribe(lambda value: labels.append(state.upload_button_label))

        state.upload_slot.publish("x")  # published outside the pipeline: not busy
        state.upload_pipeline._busy = True
        labels.append(state.upload_button_label)

        assert labels == ["Reset", "Uploading..."]
        assert state.upload_pipeline.stage is UploadStage.IDLE
