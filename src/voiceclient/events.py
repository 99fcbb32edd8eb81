"""Voice client events.

Every occurrence reported by a transport (or by the client itself) can be
observed two ways:

- a single callback in ``VoiceEventCallbacks`` passed at construction;
- any number of subscribers registered with ``EventEmitter.on``.

``build_callback_table`` joins the two. It wraps each caller callback so that
the callback runs first and the named event is emitted right after, and the
resulting table is what transports get to call.
"""
from collections import defaultdict
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from .logging_config import setup_logger

logger = setup_logger("voiceclient.events")

Handler = Callable[..., Any]
"""Type alias for event handlers and callbacks."""


class VoiceEvent(str, Enum):
    """Named events emitted by the voice client."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    TRANSPORT_STATE_CHANGED = "transportStateChanged"

    CONFIG_UPDATED = "configUpdated"

    BOT_CONNECTED = "botConnected"
    BOT_READY = "botReady"
    BOT_DISCONNECTED = "botDisconnected"

    PARTICIPANT_JOINED = "participantJoined"
    PARTICIPANT_LEFT = "participantLeft"

    TRACK_STARTED = "trackStarted"
    TRACK_STOPPED = "trackStopped"

    LOCAL_AUDIO_LEVEL = "localAudioLevel"
    REMOTE_AUDIO_LEVEL = "remoteAudioLevel"

    BOT_STARTED_TALKING = "botStartedTalking"
    BOT_STOPPED_TALKING = "botStoppedTalking"
    LOCAL_STARTED_TALKING = "localStartedTalking"
    LOCAL_STOPPED_TALKING = "localStoppedTalking"

    TRANSCRIPT = "transcript"
    JSON_COMPLETION = "jsonCompletion"


@dataclass
class VoiceEventCallbacks:
    """Optional callbacks, one per client occurrence.

    Signatures:
        on_transport_state_changed(state)
        on_config_updated(config)
        on_bot_connected(participant) / on_bot_disconnected(participant)
        on_participant_joined(participant) / on_participant_left(participant)
        on_track_started(track, participant=None) / on_track_stopped(...)
        on_local_audio_level(level)
        on_remote_audio_level(level, participant)
        on_bot_started_talking(participant) / on_bot_stopped_talking(participant)
        on_transcript(transcript_message)
        on_json_completion(json_string)
        everything else takes no arguments.
    """

    on_connected: Optional[Handler] = None
    on_disconnected: Optional[Handler] = None
    on_transport_state_changed: Optional[Handler] = None

    on_config_updated: Optional[Handler] = None

    on_bot_connected: Optional[Handler] = None
    on_bot_ready: Optional[Handler] = None
    on_bot_disconnected: Optional[Handler] = None

    on_participant_joined: Optional[Handler] = None
    on_participant_left: Optional[Handler] = None

    on_track_started: Optional[Handler] = None
    on_track_stopped: Optional[Handler] = None

    on_local_audio_level: Optional[Handler] = None
    on_remote_audio_level: Optional[Handler] = None

    on_bot_started_talking: Optional[Handler] = None
    on_bot_stopped_talking: Optional[Handler] = None
    on_local_started_talking: Optional[Handler] = None
    on_local_stopped_talking: Optional[Handler] = None

    on_transcript: Optional[Handler] = None
    on_json_completion: Optional[Handler] = None

    @classmethod
    def from_dict(cls, callbacks: Dict[str, Handler]) -> "VoiceEventCallbacks":
        """Build a table from ``{"on_bot_ready": fn, ...}``."""
        known = {f.name for f in fields(cls)}
        unknown = set(callbacks) - known
        if unknown:
            raise ValueError(f"Unknown callbacks: {', '.join(sorted(unknown))}")
        return cls(**callbacks)


# Callback attribute -> emitted event
CALLBACK_EVENTS: Dict[str, VoiceEvent] = {
    "on_connected": VoiceEvent.CONNECTED,
    "on_disconnected": VoiceEvent.DISCONNECTED,
    "on_transport_state_changed": VoiceEvent.TRANSPORT_STATE_CHANGED,
    "on_config_updated": VoiceEvent.CONFIG_UPDATED,
    "on_bot_connected": VoiceEvent.BOT_CONNECTED,
    "on_bot_ready": VoiceEvent.BOT_READY,
    "on_bot_disconnected": VoiceEvent.BOT_DISCONNECTED,
    "on_participant_joined": VoiceEvent.PARTICIPANT_JOINED,
    "on_participant_left": VoiceEvent.PARTICIPANT_LEFT,
    "on_track_started": VoiceEvent.TRACK_STARTED,
    "on_track_stopped": VoiceEvent.TRACK_STOPPED,
    "on_local_audio_level": VoiceEvent.LOCAL_AUDIO_LEVEL,
    "on_remote_audio_level": VoiceEvent.REMOTE_AUDIO_LEVEL,
    "on_bot_started_talking": VoiceEvent.BOT_STARTED_TALKING,
    "on_bot_stopped_talking": VoiceEvent.BOT_STOPPED_TALKING,
    "on_local_started_talking": VoiceEvent.LOCAL_STARTED_TALKING,
    "on_local_stopped_talking": VoiceEvent.LOCAL_STOPPED_TALKING,
    "on_transcript": VoiceEvent.TRANSCRIPT,
    "on_json_completion": VoiceEvent.JSON_COMPLETION,
}


class EventEmitter:
    """Synchronous publish-subscribe emitter keyed by ``VoiceEvent``.

    Handlers run in subscription order. A handler that raises is logged and
    does not stop the remaining handlers.

    Example:
        emitter = EventEmitter()
        unsubscribe = emitter.on(VoiceEvent.BOT_READY, lambda: print("ready"))
        emitter.emit(VoiceEvent.BOT_READY)
        unsubscribe()
    """

    def __init__(self):
        self._handlers: Dict[VoiceEvent, List[Handler]] = defaultdict(list)

    def on(self, event: Union[VoiceEvent, str], handler: Handler) -> Callable[[], None]:
        """Subscribe a handler to an event.

        Returns:
            Unsubscribe function that removes the handler when called
        """
        event = VoiceEvent(event)
        self._handlers[event].append(handler)
        logger.debug(f"Subscribed handler to {event.value}")

        def unsubscribe() -> None:
            self.off(event, handler)

        return unsubscribe

    def once(self, event: Union[VoiceEvent, str], handler: Handler) -> Callable[[], None]:
        """Subscribe a handler that is removed after its first call."""
        event = VoiceEvent(event)

        def wrapper(*args: Any) -> None:
            self.off(event, wrapper)
            handler(*args)

        return self.on(event, wrapper)

    def off(self, event: Union[VoiceEvent, str], handler: Handler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        event = VoiceEvent(event)
        if handler in self._handlers[event]:
            self._handlers[event].remove(handler)
            logger.debug(f"Unsubscribed handler from {event.value}")

    def emit(self, event: Union[VoiceEvent, str], *args: Any) -> bool:
        """Call every handler subscribed to ``event``.

        Returns:
            True if at least one handler was subscribed
        """
        event = VoiceEvent(event)
        # Snapshot so once() handlers can unsubscribe mid-emit
        handlers = list(self._handlers.get(event, []))
        for handler in handlers:
            try:
                handler(*args)
            except Exception as e:
                logger.exception(f"Handler error for {event.value}: {e}")
        return bool(handlers)

    def listener_count(self, event: Union[VoiceEvent, str]) -> int:
        return len(self._handlers.get(VoiceEvent(event), []))

    def remove_all_listeners(self, event: Optional[Union[VoiceEvent, str]] = None) -> None:
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(VoiceEvent(event), None)


def _bridge(callback: Optional[Handler], emitter: EventEmitter, event: VoiceEvent) -> Handler:
    def fire(*args: Any) -> None:
        if callback is not None:
            callback(*args)
        emitter.emit(event, *args)

    fire.__name__ = f"emit_{event.name.lower()}"
    return fire


def build_callback_table(
    callbacks: Optional[VoiceEventCallbacks],
    emitter: EventEmitter
) -> VoiceEventCallbacks:
    """Wrap caller callbacks so each occurrence also emits its event.

    Every entry of the returned table is set, whether or not the caller
    supplied a callback for it.

    Args:
        callbacks: Caller supplied callbacks (may be None or partial)
        emitter: Emitter that receives the named events

    Returns:
        A new, fully populated callback table
    """
    callbacks = callbacks or VoiceEventCallbacks()
    wrapped = {
        name: _bridge(getattr(callbacks, name), emitter, event)
        for name, event in CALLBACK_EVENTS.items()
    }
    return VoiceEventCallbacks(**wrapped)
