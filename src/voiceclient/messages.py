"""Control protocol messages exchanged with the bot.

Messages are immutable Pydantic v2 models. Outbound messages are built with
the ``VoiceMessage`` factory classmethods; inbound wire dicts are decoded with
``deserialize_message``.

Transcripts are a dedicated subclass, ``TranscriptMessage``. Code that
dispatches messages checks ``isinstance(msg, TranscriptMessage)`` before it
looks at ``msg.type``.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import LLMConfigLike, LLMMessage, ConfigLike, as_config_dict

# Label stamped on every message so the bot can tell protocol traffic
# apart from other app messages on the same channel.
MESSAGE_LABEL = "realtime-ai"


class VoiceMessageType(str, Enum):
    """All message types in the voice protocol."""

    # Client -> Bot
    CONFIG = "config-update"
    LLM_GET_CONTEXT = "llm-get-context"
    LLM_UPDATE_CONTEXT = "llm-update-context"
    LLM_APPEND_CONTEXT = "llm-append-context"
    SPEAK = "tts-speak"
    INTERRUPT = "tts-interrupt"

    # Bot -> Client
    BOT_READY = "bot-ready"
    TRANSCRIPT = "transcript"
    JSON_COMPLETION = "json-completion"
    LLM_CONTEXT = "llm-context"


class Transcript(BaseModel):
    """Transcript payload.

    Example:
        {"text": "Hello", "final": true, "timestamp": "2024-05-01T10:00:00+00:00",
         "user_id": "bot"}
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    text: str
    final: bool = True
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    user_id: str = Field(default="", description="Speaker role or participant id")


class VoiceMessage(BaseModel):
    """Base message.

    Attributes:
        label: Protocol label
        type: Message type tag
        data: Type specific payload
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    label: str = MESSAGE_LABEL
    type: VoiceMessageType
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize message to a wire dictionary."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self) -> str:
        """Serialize message to a JSON string."""
        return self.model_dump_json(exclude_none=True)

    # Outbound factories

    @classmethod
    def config(cls, config: ConfigLike) -> "VoiceMessage":
        return cls(type=VoiceMessageType.CONFIG, data={"config": as_config_dict(config)})

    @classmethod
    def get_llm_context(cls) -> "VoiceMessage":
        return cls(type=VoiceMessageType.LLM_GET_CONTEXT)

    @classmethod
    def update_llm_context(cls, llm_config: LLMConfigLike) -> "VoiceMessage":
        return cls(type=VoiceMessageType.LLM_UPDATE_CONTEXT, data=as_config_dict(llm_config))

    @classmethod
    def append_llm_context(
        cls,
        messages: Sequence[Union[LLMMessage, Dict[str, Any]]]
    ) -> "VoiceMessage":
        return cls(
            type=VoiceMessageType.LLM_APPEND_CONTEXT,
            data={"messages": [as_config_dict(m) for m in messages]},
        )

    @classmethod
    def speak(cls, text: str, interrupt: bool = False) -> "VoiceMessage":
        """Ask the bot to say ``text``, optionally cutting off current speech."""
        return cls(type=VoiceMessageType.SPEAK, data={"text": text, "interrupt": interrupt})

    @classmethod
    def interrupt(cls) -> "VoiceMessage":
        return cls(type=VoiceMessageType.INTERRUPT)

    # Inbound factories (used by transports and tests)

    @classmethod
    def bot_ready(cls) -> "VoiceMessage":
        return cls(type=VoiceMessageType.BOT_READY)

    @classmethod
    def json_completion(cls, json_string: str) -> "VoiceMessage":
        return cls(type=VoiceMessageType.JSON_COMPLETION, data=json_string)


class TranscriptMessage(VoiceMessage):
    """Transcript message, delivered through its own callback/event."""

    type: VoiceMessageType = VoiceMessageType.TRANSCRIPT
    data: Transcript

    @property
    def transcript(self) -> Transcript:
        return self.data

    @classmethod
    def from_text(
        cls,
        text: str,
        user_id: str = "",
        final: bool = True,
        timestamp: Optional[str] = None
    ) -> "TranscriptMessage":
        payload: Dict[str, Any] = {"text": text, "user_id": user_id, "final": final}
        if timestamp is not None:
            payload["timestamp"] = timestamp
        return cls(data=Transcript(**payload))


AnyVoiceMessage = Union[TranscriptMessage, VoiceMessage]


def deserialize_message(data: Dict[str, Any]) -> AnyVoiceMessage:
    """Deserialize a wire dictionary to the appropriate message class.

    Args:
        data: Dictionary containing message data with 'type' field

    Returns:
        ``TranscriptMessage`` for transcripts, ``VoiceMessage`` otherwise

    Raises:
        ValueError: If message type is missing/unknown or data is invalid
    """
    if not isinstance(data, dict):
        raise ValueError(f"Message must be an object, got {type(data).__name__}")

    msg_type = data.get("type")
    if not msg_type:
        raise ValueError("Message missing 'type' field")

    try:
        VoiceMessageType(msg_type)
    except ValueError:
        raise ValueError(f"Unknown message type: {msg_type}") from None

    msg_class = TranscriptMessage if msg_type == VoiceMessageType.TRANSCRIPT.value else VoiceMessage
    try:
        return msg_class.model_validate(data)
    except Exception as e:
        raise ValueError(f"Failed to validate message of type '{msg_type}': {e}") from e


def llm_messages(
    messages: Union[LLMMessage, Dict[str, Any], Sequence[Union[LLMMessage, Dict[str, Any]]]]
) -> List[Union[LLMMessage, Dict[str, Any]]]:
    """Normalize one LLM message or a sequence of them into a list."""
    if isinstance(messages, (LLMMessage, dict)):
        return [messages]
    return list(messages)
