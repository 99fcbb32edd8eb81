"""Custom exceptions for voiceclient."""
from typing import Optional


class VoiceError(Exception):
    """Base exception for voiceclient.

    Raised directly when a protocol operation is attempted while the
    transport is not in the state it requires.
    """

    def __init__(self, message: str = "Voice client error"):
        super().__init__(message)
        self.message = message


class AuthenticationError(VoiceError):
    """The authenticate call failed or returned an unreadable body."""

    def __init__(self, message: str = "Failed to authenticate with the server"):
        super().__init__(message)


class RateLimitError(VoiceError):
    """Authentication succeeded but no room/token was handed out.

    The backend has no dedicated error code for this, so it is reported
    as the server being busy.
    """

    def __init__(self, message: str = "Server is busy, please try again later"):
        super().__init__(message)


class BotStartError(VoiceError):
    """The start_bot call failed."""

    def __init__(self, message: Optional[str] = None, room: Optional[str] = None):
        super().__init__(message or f"Failed to start bot at URL {room}")
        self.room = room


class TransportError(VoiceError):
    """Transport layer errors."""
    pass
