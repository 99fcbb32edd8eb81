"""REST handshake with the voice backend."""
from typing import Any, Dict, Mapping, Optional

import aiohttp

from ..logging_config import setup_logger

logger = setup_logger("voiceclient.api")


class HandshakeClient:
    """Calls ``{base_url}/authenticate`` and ``{base_url}/start_bot``.

    Errors are not translated here: aiohttp exceptions (including
    ``ClientResponseError`` for non-2xx statuses and timeouts) propagate so
    the caller can map them onto its own error types.
    """

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def authenticate(self) -> Dict[str, Any]:
        """Request a room and token.

        Returns:
            The decoded JSON body, e.g. ``{"room": ..., "token": ...}``
        """
        url = f"{self.base_url}/authenticate"
        session = await self._get_session()
        async with session.post(url, raise_for_status=True) as response:
            # content_type=None: some backends answer JSON as text/plain
            data = await response.json(content_type=None)

        if not isinstance(data, dict):
            raise ValueError(f"Unexpected authenticate response: {data!r}")
        return data

    async def start_bot(self, room: str, config: Mapping[str, Any]) -> None:
        """Ask the backend to start a bot in ``room`` with ``config``."""
        url = f"{self.base_url}/start_bot"
        session = await self._get_session()
        payload = {"room": room, "config": dict(config)}
        async with session.post(url, json=payload, raise_for_status=True):
            logger.debug(f"Bot start requested for room {room}")

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
