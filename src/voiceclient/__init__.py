"""voiceclient - client-side orchestration for real-time voice bot sessions.

Architecture:
- messages: control protocol messages
- transport: transport contract and a WebSocket transport
- events: callback table and event emitter
- core: voice client (session orchestrator) and REST handshake
"""
from .config import (
    ClientSettings,
    LLMConfig,
    LLMMessage,
    SessionConfig,
    TTSConfig,
    deep_merge,
    get_settings,
    merge_config,
)
from .core import HandshakeClient, VoiceClient
from .events import EventEmitter, VoiceEvent, VoiceEventCallbacks, build_callback_table
from .exceptions import (
    AuthenticationError,
    BotStartError,
    RateLimitError,
    TransportError,
    VoiceError,
)
from .logging_config import logger, setup_logger
from .messages import (
    Transcript,
    TranscriptMessage,
    VoiceMessage,
    VoiceMessageType,
    deserialize_message,
)
from .options import VoiceClientOptions
from .transport import Participant, Tracks, Transport, TransportState, WebSocketTransport

__version__ = "0.1.0"

__all__ = [
    # Config
    "ClientSettings",
    "SessionConfig",
    "LLMConfig",
    "LLMMessage",
    "TTSConfig",
    "deep_merge",
    "merge_config",
    "get_settings",
    # Logging
    "logger",
    "setup_logger",
    # Core
    "VoiceClient",
    "VoiceClientOptions",
    "HandshakeClient",
    # Events
    "EventEmitter",
    "VoiceEvent",
    "VoiceEventCallbacks",
    "build_callback_table",
    # Messages
    "VoiceMessage",
    "VoiceMessageType",
    "Transcript",
    "TranscriptMessage",
    "deserialize_message",
    # Transport
    "Transport",
    "TransportState",
    "Participant",
    "Tracks",
    "WebSocketTransport",
    # Exceptions
    "VoiceError",
    "AuthenticationError",
    "RateLimitError",
    "BotStartError",
    "TransportError",
]
