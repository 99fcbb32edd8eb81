"""Tests for the voice message protocol."""
import json

import pytest
from pydantic import ValidationError

from voiceclient.config import LLMConfig, LLMMessage, SessionConfig, TTSConfig
from voiceclient.messages import (
    MESSAGE_LABEL,
    Transcript,
    TranscriptMessage,
    VoiceMessage,
    VoiceMessageType,
    deserialize_message,
    llm_messages,
)


class TestFactories:
    """Tests for the outbound message factories."""

    def test_speak_carries_text_and_interrupt_flag(self):
        msg = VoiceMessage.speak("Hello there", interrupt=True)
        assert msg.type == VoiceMessageType.SPEAK
        assert msg.data == {"text": "Hello there", "interrupt": True}
        assert msg.label == MESSAGE_LABEL

    def test_speak_defaults_to_no_interrupt(self):
        assert VoiceMessage.speak("Hi").data["interrupt"] is False

    def test_speak_accepts_empty_text(self):
        # Only argument shape is checked at construction
        assert VoiceMessage.speak("").data["text"] == ""

    def test_interrupt_has_no_payload(self):
        msg = VoiceMessage.interrupt()
        assert msg.type == VoiceMessageType.INTERRUPT
        assert msg.data is None
        assert "data" not in msg.to_dict()

    def test_config_from_model(self):
        cfg = SessionConfig(llm=LLMConfig(model="llama3"), tts=TTSConfig(voice="alloy"))
        msg = VoiceMessage.config(cfg)
        assert msg.type == VoiceMessageType.CONFIG
        assert msg.data == {"config": {"llm": {"model": "llama3"}, "tts": {"voice": "alloy"}}}

    def test_config_copies_input(self):
        cfg = {"llm": {"model": "a"}}
        msg = VoiceMessage.config(cfg)
        cfg["llm"]["model"] = "b"
        assert msg.data["config"]["llm"]["model"] == "a"

    def test_update_llm_context(self):
        msg = VoiceMessage.update_llm_context({"model": "m", "messages": []})
        assert msg.type == VoiceMessageType.LLM_UPDATE_CONTEXT
        assert msg.data == {"model": "m", "messages": []}

    def test_append_llm_context_mixes_models_and_dicts(self):
        msg = VoiceMessage.append_llm_context([
            LLMMessage(role="user", content="hi"),
            {"role": "assistant", "content": "hello"},
        ])
        assert msg.type == VoiceMessageType.LLM_APPEND_CONTEXT
        assert msg.data == {"messages": [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ]}

    def test_get_llm_context(self):
        assert VoiceMessage.get_llm_context().type == VoiceMessageType.LLM_GET_CONTEXT


class TestImmutability:
    """Messages are value objects."""

    def test_cannot_reassign_fields(self):
        msg = VoiceMessage.speak("Hi")
        with pytest.raises(ValidationError):
            msg.type = VoiceMessageType.INTERRUPT

    def test_transcript_is_frozen(self):
        msg = TranscriptMessage.from_text("hello", user_id="user")
        with pytest.raises(ValidationError):
            msg.data.text = "changed"


class TestTranscriptMessage:
    """Tests for TranscriptMessage."""

    def test_from_text(self):
        msg = TranscriptMessage.from_text("hello", user_id="bot", final=False, timestamp="2024-01-01T00:00:00Z")
        assert isinstance(msg, VoiceMessage)
        assert msg.type == VoiceMessageType.TRANSCRIPT
        assert msg.transcript == Transcript(
            text="hello", user_id="bot", final=False, timestamp="2024-01-01T00:00:00Z"
        )

    def test_timestamp_defaults_to_now(self):
        msg = TranscriptMessage.from_text("hello")
        assert msg.transcript.timestamp
        assert msg.transcript.final is True

    def test_structural_identity_independent_of_tag(self):
        msg = TranscriptMessage(type=VoiceMessageType.BOT_READY, data=Transcript(text="x"))
        assert isinstance(msg, TranscriptMessage)
        assert msg.type == VoiceMessageType.BOT_READY

    def test_plain_message_is_not_transcript(self):
        assert not isinstance(VoiceMessage.bot_ready(), TranscriptMessage)


class TestSerialization:
    """Tests for wire serialization."""

    def test_to_dict_uses_wire_values(self):
        data = VoiceMessage.speak("Hi").to_dict()
        assert data == {
            "label": "realtime-ai",
            "type": "tts-speak",
            "data": {"text": "Hi", "interrupt": False},
        }

    def test_to_json(self):
        data = json.loads(VoiceMessage.bot_ready().to_json())
        assert data == {"label": "realtime-ai", "type": "bot-ready"}

    def test_deserialize_bot_ready(self):
        msg = deserialize_message({"label": "realtime-ai", "type": "bot-ready"})
        assert type(msg) is VoiceMessage
        assert msg.type == VoiceMessageType.BOT_READY

    def test_deserialize_transcript(self):
        msg = deserialize_message({
            "type": "transcript",
            "data": {"text": "hello", "final": True, "timestamp": "t", "user_id": "u1"},
        })
        assert isinstance(msg, TranscriptMessage)
        assert msg.transcript.text == "hello"
        assert msg.transcript.user_id == "u1"

    def test_deserialize_json_completion(self):
        msg = deserialize_message({"type": "json-completion", "data": '{"a": 1}'})
        assert msg.type == VoiceMessageType.JSON_COMPLETION
        assert msg.data == '{"a": 1}'

    def test_missing_type(self):
        with pytest.raises(ValueError, match="missing 'type'"):
            deserialize_message({"data": {}})

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown message type"):
            deserialize_message({"type": "nope"})

    def test_invalid_transcript_payload(self):
        with pytest.raises(ValueError, match="Failed to validate"):
            deserialize_message({"type": "transcript", "data": {"final": True}})

    def test_non_mapping(self):
        with pytest.raises(ValueError, match="must be an object"):
            deserialize_message(["bot-ready"])


class TestLLMMessages:
    """Tests for llm_messages normalization."""

    def test_single_dict(self):
        msg = {"role": "user", "content": "hi"}
        assert llm_messages(msg) == [msg]

    def test_single_model(self):
        msg = LLMMessage(role="user", content="hi")
        assert llm_messages(msg) == [msg]

    def test_sequence_keeps_order(self):
        msgs = (
            {"role": "user", "content": "1"},
            {"role": "user", "content": "2"},
        )
        assert llm_messages(msgs) == list(msgs)
