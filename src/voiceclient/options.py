"""Construction options shared by the client and its transport."""
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Type

from .config import ClientSettings, ConfigLike, get_settings
from .events import VoiceEventCallbacks

if TYPE_CHECKING:
    from .transport.base import Transport


@dataclass
class VoiceClientOptions:
    """Options for ``VoiceClient``.

    Attributes:
        base_url: Base URL of the authenticate / start_bot endpoints
        transport: Transport class to instantiate (defaults to WebSocketTransport)
        enable_mic: Enable user mic input
        enable_cam: Enable user cam input
        callbacks: Optional callbacks for voice events
        config: Service configuration sent to the bot
        timeout: Handshake timeout in seconds, applied to each REST call
    """
    base_url: str
    transport: Optional[Type["Transport"]] = None
    enable_mic: bool = True
    enable_cam: bool = False
    callbacks: Optional[VoiceEventCallbacks] = None
    config: Optional[ConfigLike] = None
    timeout: Optional[float] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        **overrides: Any
    ) -> "VoiceClientOptions":
        """Build options from environment settings, then apply overrides."""
        settings = settings or get_settings()
        values = {
            "base_url": settings.base_url,
            "timeout": settings.timeout,
            "enable_mic": settings.enable_mic,
            "enable_cam": settings.enable_cam,
        }
        values.update(overrides)
        if not values.get("base_url"):
            raise ValueError("base_url is required (set VOICECLIENT_BASE_URL or pass base_url)")
        return cls(**values)
