"""Best-effort extraction of video metadata from whichever payload shape was fetched."""

import json
import re
from html import unescape
from typing import Any, Dict, Iterable, List, Optional

from ..models import RawPlayerPayload, VideoMetadata, VideoRef
from ..utils.logging import get_logger
from ..utils.youtube_utils import decode_html

logger = get_logger("metadata_extractor")

UNKNOWN = "Unknown"

# Raw-HTML fallbacks for pages whose JSON blobs could not be decoded
TITLE_REGEX = re.compile(r'"title"\s*:\s*"((?:[^"\\]|\\.)+)"')
AUTHOR_REGEX = re.compile(r'"author"\s*:\s*"((?:[^"\\]|\\.)+)"')
CHANNEL_ID_REGEX = re.compile(r'"channelId"\s*:\s*"([^"]+)"')
DESCRIPTION_REGEX = re.compile(r'"shortDescription"\s*:\s*"((?:[^"\\]|\\.)*)"')
PUBLISH_DATE_REGEX = re.compile(r'"(?:publishDate|uploadDate)"\s*:\s*"([^"]+)"')
KEYWORDS_META_REGEX = re.compile(r'<meta\s+name="keywords"\s+content="([^"]*)"', re.IGNORECASE)
OG_TITLE_REGEX = re.compile(r'<meta\s+property="og:title"\s+content="([^"]*)"', re.IGNORECASE)


def channel_url_for(channel_id: Optional[str]) -> str:
    return f"https://www.youtube.com/channel/{channel_id}" if channel_id else ""


def _text_of(node: Any) -> str:
    """Read a YouTube text node: ``{"simpleText": ...}`` or ``{"runs": [{"text": ...}]}``."""
    if isinstance(node, str):
        return node
    if not isinstance(node, dict):
        return ""
    if "simpleText" in node:
        return str(node["simpleText"])
    return "".join(str(run.get("text", "")) for run in node.get("runs") or [] if isinstance(run, dict))


def _unescape_json_string(raw: str) -> str:
    # Strings matched out of raw HTML still carry JSON escapes
    try:
        return json.loads(f"\"{raw}\"")
    except json.JSONDecodeError:
        return raw


def _first(*values: Optional[str]) -> str:
    for value in values:
        if value and str(value).strip():
            return str(value)
    return ""


def _watch_renderers(initial_data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Pull the primary and secondary info renderers out of ytInitialData."""
    found: Dict[str, Dict[str, Any]] = {}
    contents = (
        ((((initial_data.get("contents") or {})
            .get("twoColumnWatchNextResults") or {})
            .get("results") or {})
            .get("results") or {})
        .get("contents") or []
    )
    for item in contents:
        if not isinstance(item, dict):
            continue
        for key in ("videoPrimaryInfoRenderer", "videoSecondaryInfoRenderer"):
            if key in item and key not in found:
                found[key] = item[key]
    return found


def _tags_from(values: Iterable[Any]) -> List[str]:
    return [decode_html(str(v)) for v in values if v and str(v).strip()]


def extract_metadata(payload: RawPlayerPayload, video_ref: Optional[VideoRef] = None) -> VideoMetadata:
    """
    Extract title, author, channel, description, tags and publish date.

    Never raises on missing fields: title and author default to "Unknown",
    everything else to empty values.
    """
    video_ref = video_ref or VideoRef(video_id=payload.video_id)
    details = payload.video_details
    micro = payload.microformat
    renderers = _watch_renderers(payload.initial_data)
    primary = renderers.get("videoPrimaryInfoRenderer") or {}
    secondary = renderers.get("videoSecondaryInfoRenderer") or {}
    owner = ((secondary.get("owner") or {}).get("videoOwnerRenderer") or {})
    html = payload.html or ""

    title = _first(
        details.get("title"),
        _text_of(micro.get("title")),
        _text_of(primary.get("title")),
        _html_match(OG_TITLE_REGEX, html, json_escaped=False),
        _html_match(TITLE_REGEX, html),
    )
    author = _first(
        details.get("author"),
        micro.get("ownerChannelName"),
        _text_of(owner.get("title")),
        _html_match(AUTHOR_REGEX, html),
    )
    channel_id = _first(
        details.get("channelId"),
        micro.get("externalChannelId"),
        (((owner.get("navigationEndpoint") or {}).get("browseEndpoint") or {}).get("browseId")),
        _html_match(CHANNEL_ID_REGEX, html, json_escaped=False),
    )
    description = _first(
        details.get("shortDescription"),
        _text_of(micro.get("description")),
        _text_of((secondary.get("attributedDescription") or {}).get("content")),
        _text_of(secondary.get("description")),
        _html_match(DESCRIPTION_REGEX, html),
    )
    publish_date = _first(
        micro.get("publishDate"),
        micro.get("uploadDate"),
        _text_of(primary.get("dateText")),
        _html_match(PUBLISH_DATE_REGEX, html, json_escaped=False),
    )

    tags: List[str] = []
    if details.get("keywords"):
        tags = _tags_from(details["keywords"])
    elif html:
        keywords = _html_match(KEYWORDS_META_REGEX, html, json_escaped=False)
        if keywords:
            tags = _tags_from(keywords.split(","))

    if not title:
        logger.warning(f"No title found for {video_ref.video_id}")

    # Descriptions keep their line breaks; only entities are decoded
    metadata = VideoMetadata(
        video_ref=video_ref,
        title=decode_html(title) or UNKNOWN,
        description=unescape(description).strip(),
        author=decode_html(author) or UNKNOWN,
        channel_url=channel_url_for(channel_id.strip() if channel_id else None),
        tags=frozenset(t for t in tags if t),
        publish_date=decode_html(publish_date),
    )
    logger.debug(f"Extracted metadata for {video_ref.video_id}: title={metadata.title!r} author={metadata.author!r}")
    return metadata


def _html_match(pattern: re.Pattern, html: str, json_escaped: bool = True) -> str:
    if not html:
        return ""
    match = pattern.search(html)
    if not match:
        return ""
    value = match.group(1)
    return _unescape_json_string(value) if json_escaped else value

