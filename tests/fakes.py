"""Test doubles shared by the voiceclient tests."""
import asyncio
import json
from typing import Any, Dict, List, Optional

from aiohttp import WSMsgType, web

from voiceclient.exceptions import TransportError
from voiceclient.messages import VoiceMessage
from voiceclient.transport.base import (
    Participant,
    TrackSet,
    Tracks,
    Transport,
    TransportState,
)

BOT = Participant(id="bot-1", name="bot", local=False)
LOCAL = Participant(id="me", name="me", local=True)


class FakeTransport(Transport):
    """In-memory transport implementing the transport contract."""

    fail_connect = False

    def __init__(self, options, on_message):
        super().__init__(options, on_message)
        self.sent: List[VoiceMessage] = []
        self.connect_calls: List[Dict[str, str]] = []
        self.disconnect_calls = 0
        self.log: Optional[List[Any]] = None
        self._mic_enabled = options.enable_mic
        self._cam_enabled = options.enable_cam
        self._expiry = 1_700_000_000

    async def connect(self, url: str, token: str) -> None:
        self.connect_calls.append({"url": url, "token": token})
        if self.log is not None:
            self.log.append("connect")
        self._set_state(TransportState.CONNECTING)
        if self.fail_connect:
            self._set_state(TransportState.ERROR)
            raise TransportError("rejected")
        self._set_state(TransportState.CONNECTED)
        self._notify("on_connected")

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self._state in (TransportState.IDLE, TransportState.DISCONNECTED):
            return
        self._set_state(TransportState.DISCONNECTED)
        self._notify("on_disconnected")

    def send_message(self, message: VoiceMessage) -> None:
        self.sent.append(message)

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
        return Tracks(local=TrackSet(audio="local-audio"), bot=TrackSet(audio="bot-audio"))

    @property
    def expiry(self) -> Optional[int]:
        return self._expiry

    # Helpers driving the transport from tests

    def deliver(self, message: VoiceMessage) -> None:
        self._on_message(message)

    def force_state(self, state: TransportState) -> None:
        self._set_state(state)

    def bot_joins(self) -> None:
        self._notify("on_participant_joined", BOT)
        self._notify("on_bot_connected", BOT)
        self._notify("on_track_started", "bot-audio", BOT)

    def bot_talks(self, level: float = 0.6) -> None:
        self._notify("on_bot_started_talking", BOT)
        self._notify("on_remote_audio_level", level, BOT)
        self._notify("on_bot_stopped_talking", BOT)

    def local_talks(self, level: float = 0.4) -> None:
        self._notify("on_local_started_talking")
        self._notify("on_local_audio_level", level)
        self._notify("on_local_stopped_talking")

    def bot_leaves(self) -> None:
        self._notify("on_track_stopped", "bot-audio", BOT)
        self._notify("on_bot_disconnected", BOT)
        self._notify("on_participant_left", BOT)


class FakeHandshake:
    """Stand-in for HandshakeClient."""

    def __init__(
        self,
        auth_response: Any = None,
        auth_error: Optional[Exception] = None,
        start_error: Optional[Exception] = None,
    ):
        self.auth_response = {"room": "r1", "token": "t1"} if auth_response is None else auth_response
        self.auth_error = auth_error
        self.start_error = start_error
        self.calls: List[Any] = []
        self.started_bots: List[Dict[str, Any]] = []
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    async def authenticate(self) -> Any:
        self.calls.append("authenticate")
        if self.gate is not None:
            await self.gate.wait()
        if self.auth_error is not None:
            raise self.auth_error
        return self.auth_response

    async def start_bot(self, room: str, config: Dict[str, Any]) -> None:
        self.calls.append("start_bot")
        self.started_bots.append({"room": room, "config": config})
        if self.start_error is not None:
            raise self.start_error

    async def close(self) -> None:
        self.closed = True


class BotServer:
    """In-process aiohttp backend: REST handshake plus a bot WebSocket."""

    def __init__(self):
        self.received: List[Dict[str, Any]] = []
        self.started_bots: List[Dict[str, Any]] = []
        self.auth_headers: List[Optional[str]] = []
        self.auth_body: Optional[Dict[str, Any]] = None
        self.auth_status = 200
        self.start_bot_status = 200
        self.auth_delay = 0.0
        self.ws: Optional[web.WebSocketResponse] = None
        self.ws_connected = asyncio.Event()
        self.message_received = asyncio.Event()
        self._runner: Optional[web.AppRunner] = None
        self.port: Optional[int] = None

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    @property
    def ws_url(self) -> str:
        return f"ws://127.0.0.1:{self.port}/ws"

    async def start(self) -> None:
        app = web.Application()
        app.router.add_post("/authenticate", self.handle_authenticate)
        app.router.add_post("/start_bot", self.handle_start_bot)
        app.router.add_get("/ws", self.handle_websocket)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "127.0.0.1", 0)
        await site.start()
        self.port = self._runner.addresses[0][1]

    async def stop(self) -> None:
        if self.ws is not None and not self.ws.closed:
            await self.ws.close()
        if self._runner is not None:
            await self._runner.cleanup()

    async def handle_authenticate(self, request: web.Request) -> web.Response:
        if self.auth_delay:
            await asyncio.sleep(self.auth_delay)
        if self.auth_status != 200:
            return web.Response(status=self.auth_status, text="nope")
        body = self.auth_body if self.auth_body is not None else {"room": self.ws_url, "token": "secret"}
        return web.json_response(body)

    async def handle_start_bot(self, request: web.Request) -> web.Response:
        self.started_bots.append(await request.json())
        if self.start_bot_status != 200:
            return web.Response(status=self.start_bot_status, text="no bots")
        return web.json_response({"ok": True})

    async def handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        self.auth_headers.append(request.headers.get("Authorization"))
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.ws = ws
        self.ws_connected.set()

        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                self.received.append(json.loads(msg.data))
                self.message_received.set()
        return ws

    async def send(self, payload: Any) -> None:
        await self.ws.send_str(payload if isinstance(payload, str) else json.dumps(payload))

    async def wait_for_messages(self, count: int, timeout: float = 2.0) -> List[Dict[str, Any]]:
        async def _wait() -> None:
            while len(self.received) < count:
                self.message_received.clear()
                await self.message_received.wait()

        await asyncio.wait_for(_wait(), timeout)
        return self.received
