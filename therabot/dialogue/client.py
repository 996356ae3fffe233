"""HTTP client for the remote dialogue service."""

import asyncio
import logging
import aiohttp
from typing import Any, Dict, Optional

from ..exceptions import NetworkError

logger = logging.getLogger(__name__)


class DialogueClient:
    """Stateless client for the dialogue service's two endpoints.

    ``GET /start_chat`` opens a session and returns the greeting,
    ``POST /chat`` sends one user turn and returns the reply. Each call is a
    single attempt; failures raise ``NetworkError`` and the caller decides
    what to do next.
    """

    def __init__(self, base_url: str, timeout_seconds: Optional[float] = None):
        """Initialize dialogue client.

        Args:
            base_url: Service root, e.g. ``https://example.herokuapp.com``
            timeout_seconds: Total per-request timeout. None waits indefinitely.
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        logger.info(f"DialogueClient initialized with base URL: {self.base_url}")

    async def start_session(self) -> str:
        """Open a conversation and return the service's greeting.

        Raises:
            NetworkError: If the request fails or returns a non-success response
        """
        return await self._request("GET", "/start_chat")

    async def send_turn(self, message: str) -> str:
        """Send one user message and return the service's reply.

        Must not be called while a previous call is outstanding; the session
        controller enforces that.

        Raises:
            NetworkError: If the request fails or returns a non-success response
        """
        return await self._request("POST", "/chat", payload={"message": message})

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> str:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, url, json=payload) as response:
                    if response.status < 200 or response.status >= 300:
                        error_text = await response.text()
                        raise NetworkError(
                            f"Dialogue service error: {response.status} - {error_text[:200]}",
                            status=response.status,
                        )
                    body = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise NetworkError(f"Dialogue service request failed ({method} {path}): {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Dialogue service request timed out ({method} {path})") from e
        except ValueError as e:
            raise NetworkError(f"Dialogue service returned invalid JSON ({method} {path}): {e}") from e

        if not isinstance(body, dict) or "reply" not in body:
            raise NetworkError(f"Dialogue service response missing 'reply' ({method} {path})")

        reply = body["reply"]
        if reply is None:
            reply = ""
        logger.debug(f"Reply from {path}: {str(reply)[:80]}")
        return str(reply)
