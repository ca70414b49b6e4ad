"""Tests for persona resolution."""

from agency_site.personalities import (
    CHATBOT_PERSONALITIES,
    DEFAULT_SYSTEM_INSTRUCTION,
    build_conversation,
    list_personalities,
    resolve_system_instruction,
)


class TestPersonalities:
    def test_known_personality(self):
        assert resolve_system_instruction("jordan-peterson") == CHATBOT_PERSONALITIES[
            "jordan-peterson"
        ]["system_prompt"]

    def test_unknown_or_missing_personality(self):
        assert resolve_system_instruction("nobody") == DEFAULT_SYSTEM_INSTRUCTION
        assert resolve_system_instruction(None) == DEFAULT_SYSTEM_INSTRUCTION

    def test_build_conversation_prepends_system_message(self):
        history = [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello"},
            {"role": "user", "content": "Help me plan"},
        ]

        conversation = build_conversation(history, "sensei-suki")

        assert conversation[0] == {
            "role": "system",
            "content": CHATBOT_PERSONALITIES["sensei-suki"]["system_prompt"],
        }
        assert conversation[1:] == history
        assert len(history) == 3

    def test_every_persona_is_complete(self):
        for slug, persona in CHATBOT_PERSONALITIES.items():
            for field in ("name", "avatar", "system_prompt", "greeting"):
                assert persona[field], f"{slug} is missing {field}"

    def test_list_personalities(self):
        listed = list_personalities()

        assert [item["id"] for item in listed] == list(CHATBOT_PERSONALITIES)
        assert set(listed[0]) == {"id", "name", "avatar", "greeting"}
