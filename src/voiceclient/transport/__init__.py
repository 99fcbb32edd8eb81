"""Transport layer modules (contract, WebSocket)."""
from .base import Participant, TrackSet, Tracks, Transport, TransportState
from .websocket import WebSocketTransport

__all__ = [
    "Participant",
    "TrackSet",
    "Tracks",
    "Transport",
    "TransportState",
    "WebSocketTransport",
]
