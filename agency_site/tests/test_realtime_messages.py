"""Tests for the event registry and the socket wire envelope."""

import json

import pytest

from agency_site.realtime.events import EventRegistry
from agency_site.realtime.messages import CollaborationEvent, MessageFormatError, SocketMessage


class TestEventRegistry:
    """Test cases for the EventRegistry class."""

    def test_callbacks_run_in_registration_order(self):
        registry = EventRegistry()
        calls = []
        registry.on("message", lambda value: calls.append(("first", value)))
        registry.on("message", lambda value: calls.append(("second", value)))

        count = registry.emit("message", 7)

        assert count == 2
        assert calls == [("first", 7), ("second", 7)]

    def test_unsubscribe(self):
        registry = EventRegistry()
        calls = []
        unsubscribe = registry.on("connected", lambda: calls.append("connected"))

        unsubscribe()
        registry.emit("connected")

        assert calls == []
        assert registry.subscriber_count("connected") == 0

    def test_off_unknown_callback_is_harmless(self):
        registry = EventRegistry()

        registry.off("connected", lambda: None)

        assert registry.subscriber_count("connected") == 0

    def test_failing_subscriber_does_not_stop_others(self):
        registry = EventRegistry()
        calls = []

        def broken():
            raise RuntimeError("subscriber bug")

        registry.on("error", broken)
        registry.on("error", lambda: calls.append("ran"))

        assert registry.emit("error") == 2
        assert calls == ["ran"]

    def test_emit_without_subscribers(self):
        assert EventRegistry().emit("nothing") == 0


class TestSocketMessage:
    """Test cases for the SocketMessage envelope."""

    def test_to_dict_uses_wire_keys(self):
        message = SocketMessage(
            type="presence", payload={"status": "online"}, timestamp=1, user_id="u1", session_id="s1"
        )

        assert message.to_dict() == {
            "type": "presence",
            "payload": {"status": "online"},
            "timestamp": 1,
            "userId": "u1",
            "sessionId": "s1",
        }

    def test_optional_ids_are_omitted(self):
        assert set(SocketMessage(type="pong").to_dict()) == {"type", "payload", "timestamp"}

    def test_from_json(self):
        raw = json.dumps({"type": "notification", "payload": {"title": "Hi"}, "userId": "u2"})

        message = SocketMessage.from_json(raw)

        assert message.type == "notification"
        assert message.payload == {"title": "Hi"}
        assert message.user_id == "u2"
        assert message.session_id is None
        assert isinstance(message.timestamp, int)

    @pytest.mark.parametrize("raw", ["not json", "[]", '{"payload": {}}', '{"type": 3}'])
    def test_invalid_frames(self, raw):
        with pytest.raises(MessageFormatError):
            SocketMessage.from_json(raw)


class TestCollaborationEvent:
    def test_to_dict(self):
        event = CollaborationEvent(type="cursor", user_id="u1", data={"x": 1, "y": 2}, user_name="Ada")

        assert event.to_dict() == {
            "type": "cursor",
            "userId": "u1",
            "data": {"x": 1, "y": 2},
            "userName": "Ada",
        }

    def test_from_dict(self):
        event = CollaborationEvent.from_dict({"type": "edit", "userId": "u1", "data": {"position": 3}})

        assert event.type == "edit"
        assert event.data == {"position": 3}
        assert event.user_name is None

    def test_unknown_sub_type(self):
        with pytest.raises(MessageFormatError):
            CollaborationEvent.from_dict({"type": "teleport", "userId": "u1"})
