"""Transport contract.

A transport owns the real-time channel to the bot. The client hands it a
fully wrapped callback table and an ``on_message`` sink at construction and
never polls it; the transport is expected to call:

- ``on_connected`` / ``on_disconnected``
- ``on_transport_state_changed(state)`` (done by ``_set_state``)
- ``on_participant_joined`` / ``on_participant_left``
- ``on_track_started`` / ``on_track_stopped``
- ``on_local_audio_level`` / ``on_remote_audio_level``
- ``on_bot_connected`` / ``on_bot_disconnected``
- ``on_bot_started_talking`` / ``on_bot_stopped_talking``
- ``on_local_started_talking`` / ``on_local_stopped_talking``

and to pass every inbound protocol message to ``on_message``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..events import VoiceEventCallbacks
from ..logging_config import setup_logger
from ..messages import VoiceMessage
from ..options import VoiceClientOptions

logger = setup_logger("voiceclient.transport")

MessageSink = Callable[[VoiceMessage], None]


class TransportState(str, Enum):
    """Transport states.

    ``idle -> handshaking -> connecting -> connected -> ready``; ``disconnected``
    and ``error`` can follow any non-idle state.
    """
    IDLE = "idle"
    HANDSHAKING = "handshaking"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READY = "ready"
    DISCONNECTED = "disconnected"
    ERROR = "error"


@dataclass(frozen=True)
class Participant:
    """A session participant as reported by the transport."""
    id: str
    name: str = ""
    local: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Participant":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            local=bool(data.get("local", False)),
        )


@dataclass(frozen=True)
class TrackSet:
    """Audio/video track handles of one participant."""
    audio: Any = None
    video: Any = None


@dataclass(frozen=True)
class Tracks:
    """Snapshot of local and bot media tracks."""
    local: TrackSet = field(default_factory=TrackSet)
    bot: Optional[TrackSet] = None


class Transport(ABC):
    """Base class for transport implementations."""

    def __init__(self, options: VoiceClientOptions, on_message: MessageSink):
        self._options = options
        self._callbacks = options.callbacks or VoiceEventCallbacks()
        self._on_message = on_message
        self._state = TransportState.IDLE

    @abstractmethod
    async def connect(self, url: str, token: str) -> None:
        """Connect to the session. Raises TransportError on failure."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect. Must be safe to call when already disconnected."""
        pass

    @abstractmethod
    def send_message(self, message: VoiceMessage) -> None:
        """Send a control message to the bot."""
        pass

    @abstractmethod
    def enable_mic(self, enable: bool) -> None:
        pass

    @property
    @abstractmethod
    def is_mic_enabled(self) -> bool:
        pass

    @abstractmethod
    def enable_cam(self, enable: bool) -> None:
        pass

    @property
    @abstractmethod
    def is_cam_enabled(self) -> bool:
        pass

    @abstractmethod
    def tracks(self) -> Tracks:
        """Return the current local and bot tracks."""
        pass

    @property
    def expiry(self) -> Optional[int]:
        """Session expiry as a Unix timestamp, if the transport has one."""
        return None

    @property
    def state(self) -> TransportState:
        return self._state

    def mark_handshaking(self) -> None:
        """Enter the handshaking state while the client talks to the backend."""
        self._set_state(TransportState.HANDSHAKING)

    def mark_ready(self) -> None:
        """Enter the ready state once the bot has signalled it is ready."""
        self._set_state(TransportState.READY)

    def _set_state(self, state: TransportState) -> None:
        if state == self._state:
            return
        old_state = self._state
        self._state = state
        logger.info(f"Transport: {old_state.value} -> {state.value}")
        self._notify("on_transport_state_changed", state)

    def _notify(self, name: str, *args: Any) -> None:
        """Invoke callback ``name`` from the callback table, if set."""
        callback = getattr(self._callbacks, name)
        if callback is not None:
            callback(*args)
