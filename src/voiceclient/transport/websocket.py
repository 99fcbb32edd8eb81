"""WebSocket control-channel transport.

Carries protocol messages only, no media: the mic/cam toggles are recorded
but nothing is captured, and ``tracks()`` is always empty. Use it against
bots that take audio through another path, or as the reference
implementation of the transport contract.
"""
import asyncio
import json
from typing import Any, Dict, Optional, Set

import aiohttp

from ..exceptions import TransportError
from ..logging_config import setup_logger
from ..messages import VoiceMessage, deserialize_message
from ..options import VoiceClientOptions
from .base import MessageSink, Participant, Tracks, Transport, TransportState

logger = setup_logger("voiceclient.transport.websocket")

# Transport-level notifications: mapped onto callbacks, never passed to on_message
_PARTICIPANT_NOTIFICATIONS = {
    "bot-connected": "on_bot_connected",
    "bot-disconnected": "on_bot_disconnected",
    "participant-joined": "on_participant_joined",
    "participant-left": "on_participant_left",
    "bot-started-talking": "on_bot_started_talking",
    "bot-stopped-talking": "on_bot_stopped_talking",
}
_REMOTE_AUDIO_LEVEL = "remote-audio-level"
_SESSION_EXPIRY = "session-expiry"


class WebSocketTransport(Transport):
    """Transport over an aiohttp WebSocket.

    ``connect(url, token)`` opens ``url`` with ``Authorization: Bearer <token>``.
    Every text frame is a JSON message envelope.
    """

    def __init__(
        self,
        options: VoiceClientOptions,
        on_message: MessageSink,
        heartbeat: Optional[float] = 30.0
    ):
        super().__init__(options, on_message)
        self.heartbeat = heartbeat
        self._mic_enabled = options.enable_mic
        self._cam_enabled = options.enable_cam
        self._expiry: Optional[int] = None
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._send_tasks: Set[asyncio.Task] = set()

    async def connect(self, url: str, token: str) -> None:
        """Open the WebSocket and start reading messages.

        Raises:
            TransportError: Already connected, or the connection failed
        """
        if self._ws is not None and not self._ws.closed:
            raise TransportError("WebSocket transport is already connected")

        self._set_state(TransportState.CONNECTING)
        logger.info(f"WebSocket transport connecting to {url}")

        try:
            self._session = aiohttp.ClientSession()
            self._ws = await self._session.ws_connect(
                url,
                headers={"Authorization": f"Bearer {token}"},
                heartbeat=self.heartbeat,
            )
        except Exception as e:
            await self._close_session()
            self._set_state(TransportState.ERROR)
            logger.error(f"WebSocket connection failed: {e}")
            raise TransportError(f"WebSocket connection failed: {e}") from e

        self._receive_task = asyncio.create_task(self._receive_loop(self._ws))
        self._set_state(TransportState.CONNECTED)
        self._notify("on_connected")
        logger.info("WebSocket transport connected")

    async def disconnect(self) -> None:
        """Close the WebSocket. No-op when not connected."""
        if self._ws is None and self._session is None:
            return

        logger.info("WebSocket transport disconnecting...")
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            await ws.close()

        if self._receive_task is not None:
            task, self._receive_task = self._receive_task, None
            if task is not asyncio.current_task():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        await self._close_session()
        self._on_closed()

    def send_message(self, message: VoiceMessage) -> None:
        """Queue a message for sending on the WebSocket."""
        if self._ws is None or self._ws.closed:
            raise TransportError("Not connected")

        logger.debug(f"Sending message: {message.type.value}")
        task = asyncio.get_running_loop().create_task(self._ws.send_str(message.to_json()))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_done)

    def enable_mic(self, enable: bool) -> None:
        self._mic_enabled = enable

    @property
    def is_mic_enabled(self) -> bool:
        return self._mic_enabled

    def enable_cam(self, enable: bool) -> None:
        self._cam_enabled = enable

    @property
    def is_cam_enabled(self) -> bool:
        return self._cam_enabled

    def tracks(self) -> Tracks:
        return Tracks()

    @property
    def expiry(self) -> Optional[int]:
        return self._expiry

    async def drain(self) -> None:
        """Wait until every queued message has been written."""
        if self._send_tasks:
            await asyncio.gather(*list(self._send_tasks), return_exceptions=True)

    def _send_done(self, task: asyncio.Task) -> None:
        self._send_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"WebSocket send error: {task.exception()}")

    async def _receive_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_text(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error(f"WebSocket error: {ws.exception()}")
                    break
        finally:
            # Remote side closed; a local disconnect() has already cleared _ws
            if self._ws is ws:
                self._ws = None
                self._receive_task = None
                await self._close_session()
                self._on_closed()

    def _handle_text(self, text: str) -> None:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Dropping malformed frame: {e}")
            return

        try:
            if isinstance(data, dict) and self._handle_notification(data):
                return
        except (TypeError, ValueError) as e:
            logger.error(f"Dropping malformed {data.get('type')} notification: {e}")
            return

        try:
            message = deserialize_message(data)
        except ValueError as e:
            logger.error(f"Message deserialization failed: {e}")
            return

        try:
            self._on_message(message)
        except Exception:
            # A failing handler must not end the receive loop
            logger.exception(f"Error handling {message.type.value} message")

    def _handle_notification(self, data: Dict[str, Any]) -> bool:
        msg_type = data.get("type")
        if msg_type not in _PARTICIPANT_NOTIFICATIONS and msg_type not in (_REMOTE_AUDIO_LEVEL, _SESSION_EXPIRY):
            return False

        payload = data.get("data") or {}
        if not isinstance(payload, dict):
            raise TypeError(f"data must be an object, got {type(payload).__name__}")

        if msg_type == _SESSION_EXPIRY:
            expiry = payload.get("expiry")
            self._expiry = int(expiry) if expiry is not None else None
            return True

        participant = payload.get("participant") or {}
        if not isinstance(participant, dict):
            raise TypeError(f"participant must be an object, got {type(participant).__name__}")
        participant = Participant.from_dict(participant)

        if msg_type == _REMOTE_AUDIO_LEVEL:
            level = float(payload.get("level", 0.0))
            self._dispatch("on_remote_audio_level", level, participant)
        else:
            self._dispatch(_PARTICIPANT_NOTIFICATIONS[msg_type], participant)
        return True

    def _dispatch(self, name: str, *args: Any) -> None:
        try:
            self._notify(name, *args)
        except Exception:
            logger.exception(f"Error in {name} callback")

    def _on_closed(self) -> None:
        if self._state in (TransportState.IDLE, TransportState.DISCONNECTED):
            return
        self._set_state(TransportState.DISCONNECTED)
        self._notify("on_disconnected")
        logger.info("WebSocket transport disconnected")

    async def _close_session(self) -> None:
        session, self._session = self._session, None
        if session is not None and not session.closed:
            await session.close()
