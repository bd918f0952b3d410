"""Thin aiohttp wrapper that maps transport failures onto the acquisition error taxonomy."""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from ..exceptions import NetworkFailureError, ParseFailureError
from ..utils.logging import get_logger
from .config import NetworkConfig, config

logger = get_logger("http_client")


class HttpClient:
    """
    Async HTTP client shared by every request of one acquisition.

    The session is created lazily and must be closed by the owner, either with
    ``await client.close()`` or by using the client as an async context manager.
    No retries happen at this layer.
    """

    def __init__(self, network_config: Optional[NetworkConfig] = None):
        self.network = network_config or config.network
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=self.network.http_timeout_total,
                connect=self.network.http_timeout_connect
            )
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={
                    "Accept": "*/*",
                    "Accept-Language": self.network.accept_language,
                    # Skip the EU consent interstitial on the watch page
                    "Cookie": "CONSENT=YES+1; PREF=hl=en",
                }
            )
            logger.debug("Created new HTTP session")
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def get_text(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> str:
        """
        GET a URL and return the body as text.

        Raises:
            NetworkFailureError: On connection errors, timeouts and HTTP status >= 400
        """
        session = await self._get_session()
        try:
            async with session.get(url, params=params, headers=headers, allow_redirects=True) as response:
                body = await response.text()
                self._raise_for_status(response.status, url)
                return body
        except asyncio.TimeoutError as e:
            raise NetworkFailureError(f"Timed out fetching {url}") from e
        except aiohttp.ClientError as e:
            raise NetworkFailureError(f"Request to {url} failed: {e}") from e

    async def post_json(
        self,
        url: str,
        body: Dict[str, Any],
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        POST a JSON body and decode the JSON response.

        Raises:
            NetworkFailureError: On connection errors, timeouts and HTTP status >= 400
            ParseFailureError: If the response body is not a JSON object
        """
        session = await self._get_session()
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(headers or {})
        try:
            async with session.post(url, params=params, json=body, headers=request_headers) as response:
                text = await response.text()
                self._raise_for_status(response.status, url)
        except asyncio.TimeoutError as e:
            raise NetworkFailureError(f"Timed out posting to {url}") from e
        except aiohttp.ClientError as e:
            raise NetworkFailureError(f"Request to {url} failed: {e}") from e

        return decode_json_object(text, source=url)

    @staticmethod
    def _raise_for_status(status: int, url: str) -> None:
        if status >= 400:
            raise NetworkFailureError(f"HTTP {status} from {url}", status_code=status)


def decode_json_object(text: str, source: str = "response") -> Dict[str, Any]:
    """Decode a JSON object, tolerating the ``)]}'`` XSSI guard prefix."""
    cleaned = (text or "").lstrip(")]}'\n\r\t ")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseFailureError(f"Failed to parse JSON from {source}: {e}") from e
    if not isinstance(data, dict):
        raise ParseFailureError(f"Expected a JSON object from {source}, got {type(data).__name__}")
    return data
