"""Core module (voice client and REST handshake)."""
from .api import HandshakeClient
from .client import VoiceClient

__all__ = [
    "HandshakeClient",
    "VoiceClient",
]
