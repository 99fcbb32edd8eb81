"""Voice client - owns one transport and the session configuration."""
import copy
import dataclasses
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from ..config import (
    ConfigLike,
    LLMConfigLike,
    LLMMessage,
    as_config_dict,
    get_settings,
    merge_config,
)
from ..events import EventEmitter, VoiceEventCallbacks, build_callback_table
from ..exceptions import (
    AuthenticationError,
    BotStartError,
    RateLimitError,
    VoiceError,
)
from ..logging_config import set_level, setup_logger
from ..messages import (
    TranscriptMessage,
    VoiceMessage,
    VoiceMessageType,
    llm_messages,
)
from ..options import VoiceClientOptions
from ..transport.base import Tracks, Transport, TransportState
from ..transport.websocket import WebSocketTransport
from .api import HandshakeClient

logger = setup_logger("voiceclient.client")

LLMMessageLike = Union[LLMMessage, Dict[str, Any]]


class VoiceClient(EventEmitter):
    """Client for a real-time voice bot session.

    Lifecycle:
    - ``start()`` authenticates, asks the backend to start a bot and
      connects the transport
    - the transport reports state changes and inbound messages
    - once the bot signals ready, ``say``, ``interrupt``, config and LLM
      context updates are sent over the transport

    Every occurrence is reported both to the matching callback in
    ``options.callbacks`` and as a ``VoiceEvent`` to ``on()`` subscribers,
    callback first.
    """

    def __init__(
        self,
        options: Optional[VoiceClientOptions] = None,
        *,
        api: Optional[HandshakeClient] = None,
        **kwargs: Any
    ):
        super().__init__()

        if options is None:
            options = VoiceClientOptions(**kwargs)
        elif kwargs:
            options = dataclasses.replace(options, **kwargs)

        if not options.base_url:
            raise ValueError("base_url is required")

        callbacks = options.callbacks
        if isinstance(callbacks, Mapping):
            callbacks = VoiceEventCallbacks.from_dict(dict(callbacks))

        self._base_url = options.base_url
        self._config: Dict[str, Any] = as_config_dict(options.config)

        # Transports only ever see the wrapped table
        self._callbacks = build_callback_table(callbacks, self)
        self._options = dataclasses.replace(
            options,
            callbacks=self._callbacks,
            config=copy.deepcopy(self._config),
        )

        transport_cls = options.transport or WebSocketTransport
        self._transport: Transport = transport_cls(self._options, self.handle_message)

        self._owns_api = api is None
        self._api = api or HandshakeClient(options.base_url, timeout=options.timeout)
        self._starting = False

    @classmethod
    def from_settings(cls, **overrides: Any) -> "VoiceClient":
        """Create a client from ``VOICECLIENT_*`` settings, applying their log level."""
        api = overrides.pop("api", None)
        settings = get_settings()
        set_level(settings.log_level)
        return cls(VoiceClientOptions.from_settings(settings, **overrides), api=api)

    # ------ Transport methods

    async def start(self) -> None:
        """Authenticate, start the bot and connect the transport.

        Raises:
            AuthenticationError: The authenticate call failed
            RateLimitError: No room/token was handed out
            BotStartError: The start_bot call failed
            VoiceError: A start is already in progress
        """
        if self._starting:
            raise VoiceError("Session start already in progress")

        self._starting = True
        try:
            await self._start()
        finally:
            self._starting = False
            if self._owns_api:
                await self._api.close()

    async def _start(self) -> None:
        self._transport.mark_handshaking()
        logger.info(f"Starting session via {self._base_url}")

        try:
            data = await self._api.authenticate()
            room = data.get("room")
            token = data.get("token")
        except Exception as e:
            logger.error(f"Authentication failed: {e}")
            raise AuthenticationError() from e

        if not room or not token:
            # No error codes upstream; missing credentials means the server is busy
            logger.warning("Authentication returned no room/token")
            raise RateLimitError()

        try:
            await self._api.start_bot(room, self.config)
        except Exception as e:
            logger.error(f"Bot start failed for room {room}: {e}")
            raise BotStartError(room=room) from e

        await self._transport.connect(url=room, token=token)

    async def disconnect(self) -> None:
        if self._starting:
            raise VoiceError("Cannot disconnect while session start is in progress")
        await self._transport.disconnect()

    def enable_mic(self, enable: bool) -> None:
        self._transport.enable_mic(enable)

    @property
    def is_mic_enabled(self) -> bool:
        return self._transport.is_mic_enabled

    def enable_cam(self, enable: bool) -> None:
        self._transport.enable_cam(enable)

    @property
    def is_cam_enabled(self) -> bool:
        return self._transport.is_cam_enabled

    @property
    def state(self) -> TransportState:
        return self._transport.state

    def tracks(self) -> Tracks:
        return self._transport.tracks()

    # ------ Config methods

    @property
    def config(self) -> Dict[str, Any]:
        """A copy of the current session configuration."""
        return copy.deepcopy(self._config)

    def update_config(
        self,
        config: ConfigLike,
        *,
        use_deep_merge: bool = False,
        send_partial: bool = False
    ) -> None:
        """Update the session configuration.

        The merged result is always kept locally. It is sent to the bot only
        while the transport is ready; otherwise the update stays local and
        is not resent later.

        Args:
            config: New (possibly partial) configuration
            use_deep_merge: Merge nested sections instead of replacing the
                whole configuration. Lists are always replaced.
            send_partial: Send only ``config`` instead of the merged result
        """
        partial = as_config_dict(config)
        self._config = merge_config(self._config, partial, use_deep_merge=use_deep_merge)

        if self._is_ready():
            self._transport.send_message(
                VoiceMessage.config(partial if send_partial else self._config)
            )
        else:
            logger.debug("Transport not ready, config updated locally only")

        self._callbacks.on_config_updated(self.config)

    # ------ LLM context methods

    @property
    def llm_context(self) -> Optional[Dict[str, Any]]:
        llm = self._config.get("llm")
        return copy.deepcopy(llm) if llm is not None else None

    @llm_context.setter
    def llm_context(self, llm_config: LLMConfigLike) -> None:
        llm = as_config_dict(llm_config)
        self._config = {
            **self._config,
            "llm": {**(self._config.get("llm") or {}), **llm},
        }

        if self._is_ready():
            self._transport.send_message(VoiceMessage.update_llm_context(llm))
        else:
            logger.debug("Transport not ready, LLM context updated locally only")

        self._callbacks.on_config_updated(self.config)

    def append_llm_context(
        self,
        messages: Union[LLMMessageLike, Sequence[LLMMessageLike]]
    ) -> None:
        """Append one or more messages to the live LLM context.

        Raises:
            VoiceError: The transport is not ready
        """
        if not self._is_ready():
            raise VoiceError("Attempt to update LLM context while transport not in ready state")
        self._transport.send_message(VoiceMessage.append_llm_context(llm_messages(messages)))

    # ------ Utility methods

    def say(self, text: str, interrupt: bool = False) -> None:
        """Have the bot speak ``text``.

        Args:
            text: The text to be spoken
            interrupt: Cut off the bot if it is currently talking

        Raises:
            VoiceError: The transport is not ready
        """
        if not self._is_ready():
            raise VoiceError("Attempted to speak while transport not in ready state")
        self._transport.send_message(VoiceMessage.speak(text, interrupt))

    def interrupt(self) -> None:
        """Interrupt the bot's speech.

        Raises:
            VoiceError: The transport is not ready
        """
        if not self._is_ready():
            raise VoiceError("Attempted to interrupt bot TTS while transport not in ready state")
        self._transport.send_message(VoiceMessage.interrupt())

    @property
    def transport_expiry(self) -> Optional[int]:
        """Expiry of the transport session (Unix seconds), if it has one."""
        if self._transport.state not in (TransportState.CONNECTED, TransportState.READY):
            raise VoiceError(
                "Attempted to get transport expiry time when transport not in connected or ready state"
            )
        return self._transport.expiry

    # ------ Handlers

    def handle_message(self, message: VoiceMessage) -> None:
        """Dispatch an inbound message from the transport."""
        if isinstance(message, TranscriptMessage):
            self._callbacks.on_transcript(message)
            return

        if message.type == VoiceMessageType.BOT_READY:
            self._transport.mark_ready()
            self._callbacks.on_bot_ready()
        elif message.type == VoiceMessageType.JSON_COMPLETION:
            self._callbacks.on_json_completion(message.data)

    def _is_ready(self) -> bool:
        return self._transport.state == TransportState.READY
