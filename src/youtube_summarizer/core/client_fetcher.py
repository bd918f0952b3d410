"""
Player-context fetching for the two impersonated YouTube clients.

- ANDROID: POST to the InnerTube player endpoint with a device fingerprint.
  Less subject to anti-scraping measures, so it is tried first.
- WEB: GET the watch page and pull the JSON blobs embedded in it. Also yields
  page-level metadata and the ytcfg bootstrap needed by get_transcript.
"""

import json
import random
import re
from typing import Any, Dict, List, Optional

from ..exceptions import ParseFailureError, VideoUnavailableError
from ..models import ClientProfile, RawPlayerPayload
from ..utils.logging import get_logger
from .config import InnerTubeConfig, config
from .http_client import HttpClient

logger = get_logger("client_fetcher")

# Playability statuses after which no strategy can succeed
TERMINAL_PLAYABILITY_STATUSES = ("ERROR", "LOGIN_REQUIRED", "UNPLAYABLE", "LIVE_STREAM_OFFLINE")


def _assignment_patterns(name: str) -> List[re.Pattern]:
    """Textual forms the watch page uses to assign an embedded JSON blob."""
    escaped = re.escape(name)
    return [
        re.compile(r"var\s+" + escaped + r"\s*=\s*\{"),
        re.compile(r"window\[\s*['\"]" + escaped + r"['\"]\s*\]\s*=\s*\{"),
        re.compile(r"(?<![\w.])" + escaped + r"\s*=\s*\{"),
        re.compile(r"window\." + escaped + r"\s*=\s*\{"),
    ]


def extract_balanced_json(text: str, start: int) -> Optional[str]:
    """
    Return the JSON object literal that opens at ``text[start]``.

    Braces inside string literals are ignored, so descriptions containing
    ``}`` do not cut the object short.
    """
    if start < 0 or start >= len(text) or text[start] != "{":
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def extract_embedded_json(html: str, name: str) -> Optional[Dict[str, Any]]:
    """Find ``name = {...}`` in the page under any known pattern and decode it."""
    for pattern in _assignment_patterns(name):
        for match in pattern.finditer(html):
            blob = extract_balanced_json(html, match.end() - 1)
            if not blob:
                continue
            try:
                data = json.loads(blob)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict):
                return data
    return None


def extract_innertube_from_html(html: str) -> Dict[str, Any]:
    """
    Scrape the InnerTube bootstrap (key, client version, context, visitor data) from ytcfg.

    Returns an empty dict when nothing is found.
    """
    found: Dict[str, Any] = {}

    for match in re.finditer(r"ytcfg\.set\(\s*\{", html):
        blob = extract_balanced_json(html, match.end() - 1)
        if not blob:
            continue
        try:
            obj = json.loads(blob)
        except json.JSONDecodeError:
            continue
        for key in ("INNERTUBE_API_KEY", "INNERTUBE_CONTEXT_CLIENT_VERSION", "INNERTUBE_CONTEXT", "VISITOR_DATA"):
            if key in obj and key not in found:
                found[key] = obj[key]

    if "INNERTUBE_API_KEY" not in found:
        m_key = re.search(r'"INNERTUBE_API_KEY"\s*:\s*"([^"]+)"', html)
        if m_key:
            found["INNERTUBE_API_KEY"] = m_key.group(1)
    if "INNERTUBE_CONTEXT_CLIENT_VERSION" not in found:
        m_ver = re.search(r'"INNERTUBE_CONTEXT_CLIENT_VERSION"\s*:\s*"([^"]+)"', html)
        if m_ver:
            found["INNERTUBE_CONTEXT_CLIENT_VERSION"] = m_ver.group(1)
    if "VISITOR_DATA" not in found:
        m_visitor = re.search(r'"VISITOR_DATA"\s*:\s*"([^"]+)"', html)
        if m_visitor:
            found["VISITOR_DATA"] = m_visitor.group(1)

    context = found.get("INNERTUBE_CONTEXT") or {}
    if "INNERTUBE_CONTEXT_CLIENT_VERSION" not in found:
        version = (context.get("client") or {}).get("clientVersion")
        if version:
            found["INNERTUBE_CONTEXT_CLIENT_VERSION"] = version
    if "VISITOR_DATA" not in found:
        visitor = (context.get("client") or {}).get("visitorData")
        if visitor:
            found["VISITOR_DATA"] = visitor

    return found


def check_playability(player_response: Dict[str, Any]) -> None:
    """
    Raise VideoUnavailableError when the playability status rules the video out.

    A missing status is treated as playable.
    """
    playability = player_response.get("playabilityStatus") or {}
    status = playability.get("status", "OK")
    if status in TERMINAL_PLAYABILITY_STATUSES:
        reason = playability.get("reason")
        if not reason:
            subreason = ((playability.get("errorScreen") or {}).get("playerErrorMessageRenderer") or {}).get("reason") or {}
            reason = subreason.get("simpleText")
        logger.warning(f"Player not OK: {status} ({reason or 'no reason given'})")
        raise VideoUnavailableError(status=status, reason=reason)


class ClientFetcher:
    """Fetches raw player payloads while impersonating a YouTube client."""

    def __init__(self, http: HttpClient, innertube: Optional[InnerTubeConfig] = None):
        self.http = http
        self.innertube = innertube or config.innertube

    @property
    def player_url(self) -> str:
        return f"{self.innertube.base_url}/youtubei/v1/player"

    def watch_url(self, video_id: str) -> str:
        return f"{self.innertube.base_url}/watch?v={video_id}&hl={self.innertube.hl}"

    async def fetch_player_context(self, video_id: str, profile: ClientProfile = ClientProfile.ANDROID) -> RawPlayerPayload:
        """
        Fetch the player context for a video with the given client profile.

        Raises:
            VideoUnavailableError: Playability status is terminal
            NetworkFailureError: Transport failure
            ParseFailureError: Response could not be decoded
        """
        if profile == ClientProfile.ANDROID:
            return await self._fetch_android(video_id)
        return await self._fetch_web(video_id)

    async def _fetch_android(self, video_id: str) -> RawPlayerPayload:
        body = {
            "context": self.innertube.android_context(),
            "videoId": video_id,
        }
        headers = {
            "User-Agent": self.innertube.android_user_agent,
            "X-YouTube-Client-Name": "3",
            "X-YouTube-Client-Version": self.innertube.client_version,
        }
        logger.info(f"Fetching ANDROID player data for {video_id}")
        data = await self.http.post_json(
            self.player_url,
            body,
            params={"key": self.innertube.api_key, "prettyPrint": "false"},
            headers=headers
        )
        check_playability(data)
        return RawPlayerPayload(video_id=video_id, profile=ClientProfile.ANDROID, player_response=data)

    async def _fetch_web(self, video_id: str) -> RawPlayerPayload:
        headers = {
            "User-Agent": random.choice(self.innertube.desktop_user_agents),
            "Referer": f"{self.innertube.base_url}/",
        }
        logger.info(f"Fetching watch page for {video_id}")
        html = await self.http.get_text(self.watch_url(video_id), headers=headers)

        player_response = extract_embedded_json(html, "ytInitialPlayerResponse") or {}
        initial_data = extract_embedded_json(html, "ytInitialData") or {}
        if not player_response and not initial_data:
            raise ParseFailureError(f"No embedded player data found in watch page for {video_id}")

        if player_response:
            check_playability(player_response)

        return RawPlayerPayload(
            video_id=video_id,
            profile=ClientProfile.WEB,
            player_response=player_response,
            initial_data=initial_data,
            html=html,
            innertube=extract_innertube_from_html(html),
        )
