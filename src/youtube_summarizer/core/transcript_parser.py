"""
Caption payload fetching and parsing.

Three payload families are seen in the wild:

- timedtext XML, either format 3 (``<p t="ms" d="ms">``) or the legacy
  ``<text start="s" dur="s">`` document
- timedtext JSON3 (``fmt=json3``): ``events[].segs[].utf8``
- the InnerTube ``get_transcript`` response, where segments sit deep inside an
  engagement-panel transcript renderer

``sniff_schema`` tags a payload with its family and ``PARSERS`` maps each tag
to a pure parser. Parsers return a list of TranscriptLine (possibly empty) or
raise ParseFailureError; emptiness is judged once, in ``parse_caption_payload``.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urljoin

from ..exceptions import EmptyCaptionsError, ParseFailureError
from ..models import CaptionTrack, TranscriptLine
from ..utils.logging import get_logger
from ..utils.youtube_utils import clean_caption_text
from .config import InnerTubeConfig, config
from .http_client import HttpClient, decode_json_object

logger = get_logger("transcript_parser")

Payload = Union[str, Dict[str, Any]]


class CaptionSchema(Enum):
    """Payload families recognised by sniff_schema."""
    XML_TIMEDTEXT = "xml_timedtext"
    JSON3 = "json3"
    GET_TRANSCRIPT = "get_transcript"
    EMPTY = "empty"
    UNKNOWN = "unknown"


_P_TAG_REGEX = re.compile(r"<p\b([^>]*)>([\s\S]*?)</p>")
_TEXT_TAG_REGEX = re.compile(r"<text\b([^>]*)>([\s\S]*?)</text>")
_ATTR_REGEX = re.compile(r'([\w:-]+)\s*=\s*"([^"]*)"')
_XML_ROOT_REGEX = re.compile(r"^\s*(?:<\?xml[^>]*\?>\s*)?<(timedtext|transcript)\b", re.IGNORECASE)
_XML_SEGMENT_REGEX = re.compile(r'<p\s+t="\d|<text\s+start="')


# =============================================================================
# SCHEMA SNIFFING
# =============================================================================

def _sniff_json(data: Dict[str, Any]) -> CaptionSchema:
    if "events" in data:
        return CaptionSchema.JSON3
    if "actions" in data or "onResponseReceivedActions" in data:
        return CaptionSchema.GET_TRANSCRIPT
    return CaptionSchema.UNKNOWN


def sniff_schema(payload: Payload) -> CaptionSchema:
    """Tag a raw payload with the family of parser that understands it."""
    if isinstance(payload, dict):
        return _sniff_json(payload)
    if payload is None or not payload.strip():
        return CaptionSchema.EMPTY

    head = payload.lstrip()
    if head.startswith("{") or head.startswith(")]}'"):
        try:
            return _sniff_json(decode_json_object(payload))
        except ParseFailureError:
            return CaptionSchema.UNKNOWN
    if _XML_ROOT_REGEX.match(payload) or _XML_SEGMENT_REGEX.search(payload):
        return CaptionSchema.XML_TIMEDTEXT
    return CaptionSchema.UNKNOWN


# =============================================================================
# PARSERS
# =============================================================================

def _attrs(raw: str) -> Dict[str, str]:
    return {name: value for name, value in _ATTR_REGEX.findall(raw)}


def seconds_to_ms(value: str) -> int:
    """Convert a decimal seconds string to integer milliseconds, rounding half up."""
    try:
        ms = (Decimal(value.strip()) * 1000).to_integral_value(rounding=ROUND_HALF_UP)
    except (InvalidOperation, AttributeError) as e:
        raise ParseFailureError(f"Invalid caption time value: {value!r}") from e
    if not ms.is_finite():
        raise ParseFailureError(f"Invalid caption time value: {value!r}")
    return max(int(ms), 0)


def _int_ms(value: Any) -> int:
    try:
        return max(int(str(value).strip()), 0)
    except (TypeError, ValueError) as e:
        raise ParseFailureError(f"Invalid caption time value: {value!r}") from e


def parse_p_xml(xml: str) -> List[TranscriptLine]:
    """Timedtext format 3: ``<p t="1360" d="1680">text</p>``, times already in ms."""
    lines = []
    for match in _P_TAG_REGEX.finditer(xml):
        attrs = _attrs(match.group(1))
        if "t" not in attrs:
            continue
        text = clean_caption_text(match.group(2))
        if not text:
            continue
        lines.append(TranscriptLine(
            text=text,
            offset_ms=_int_ms(attrs["t"]),
            duration_ms=_int_ms(attrs.get("d", "0")),
        ))
    return lines


def parse_text_xml(xml: str) -> List[TranscriptLine]:
    """Legacy timedtext: ``<text start="0.0" dur="1.54">text</text>``, times in seconds."""
    lines = []
    for match in _TEXT_TAG_REGEX.finditer(xml):
        attrs = _attrs(match.group(1))
        if "start" not in attrs:
            continue
        text = clean_caption_text(match.group(2))
        if not text:
            continue
        lines.append(TranscriptLine(
            text=text,
            offset_ms=seconds_to_ms(attrs["start"]),
            duration_ms=seconds_to_ms(attrs.get("dur", "0")),
        ))
    return lines


def parse_timedtext_xml(xml: str) -> List[TranscriptLine]:
    """
    Parse either XML schema without mixing them.

    The newer ``<p>`` schema is tried first; the legacy ``<text>`` schema only
    when the first produced no segments at all.
    """
    lines = parse_p_xml(xml)
    if lines:
        return lines
    return parse_text_xml(xml)


def parse_json3(data: Dict[str, Any]) -> List[TranscriptLine]:
    """Timedtext JSON3: ``{"events": [{"tStartMs", "dDurationMs", "segs": [{"utf8"}]}]}``."""
    events = data.get("events")
    if not isinstance(events, list):
        raise ParseFailureError("JSON3 payload has no events list")

    lines = []
    for event in events:
        if not isinstance(event, dict) or "tStartMs" not in event:
            continue
        segs = event.get("segs") or []
        text = clean_caption_text("".join(str(seg.get("utf8", "")) for seg in segs if isinstance(seg, dict)))
        if not text:
            continue
        lines.append(TranscriptLine(
            text=text,
            offset_ms=_int_ms(event["tStartMs"]),
            duration_ms=_int_ms(event.get("dDurationMs", 0)),
        ))
    return lines


def _segment_text(snippet: Dict[str, Any]) -> str:
    if "simpleText" in snippet:
        return str(snippet["simpleText"])
    return "".join(str(run.get("text", "")) for run in snippet.get("runs") or [] if isinstance(run, dict))


def _actions(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    actions = (data.get("actions") or []) + (data.get("onResponseReceivedActions") or [])
    return [action for action in actions if isinstance(action, dict)]


def _transcript_renderers(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    renderers = []
    for action in _actions(data):
        panel = action.get("updateEngagementPanelAction") or {}
        renderer = (panel.get("content") or {}).get("transcriptRenderer")
        if isinstance(renderer, dict):
            renderers.append(renderer)
    return renderers


def _continuation_item_lists(data: Dict[str, Any]) -> List[List[Any]]:
    item_lists = []
    for action in _actions(data):
        append = action.get("appendContinuationItemsAction") or {}
        items = append.get("continuationItems")
        if isinstance(items, list):
            item_lists.append(items)
    return item_lists


def _segment_lines(segments: List[Any]) -> List[TranscriptLine]:
    lines = []
    for segment in segments:
        seg = (segment or {}).get("transcriptSegmentRenderer") if isinstance(segment, dict) else None
        if not seg:
            # Chapter headers and the like
            continue
        text = clean_caption_text(_segment_text(seg.get("snippet") or {}))
        if not text:
            continue
        start = _int_ms(seg.get("startMs", 0))
        end = _int_ms(seg.get("endMs", start))
        lines.append(TranscriptLine(text=text, offset_ms=start, duration_ms=max(end - start, 0)))
    return lines


def parse_get_transcript(data: Dict[str, Any]) -> List[TranscriptLine]:
    """
    InnerTube get_transcript response.

    Current shape::

        actions[].updateEngagementPanelAction.content.transcriptRenderer
          .content.transcriptSearchPanelRenderer.body.transcriptSegmentListRenderer
          .initialSegments[].transcriptSegmentRenderer{startMs, endMs, snippet}

    Continuation pages put the same segments under
    ``onResponseReceivedActions[].appendContinuationItemsAction.continuationItems[]``.
    Older responses used ``transcriptRenderer.body.transcriptBodyRenderer.cueGroups``
    with ``transcriptCueRenderer{startOffsetMs, durationMs, cue}``; all three are read.
    """
    renderers = _transcript_renderers(data)
    item_lists = _continuation_item_lists(data)
    if not renderers and not item_lists:
        raise ParseFailureError("get_transcript response has no transcript renderer")

    lines: List[TranscriptLine] = []
    for renderer in renderers:
        segment_list = (
            (((renderer.get("content") or {})
              .get("transcriptSearchPanelRenderer") or {})
             .get("body") or {})
            .get("transcriptSegmentListRenderer") or {}
        )
        lines.extend(_segment_lines(segment_list.get("initialSegments") or []))

        cue_groups = ((renderer.get("body") or {}).get("transcriptBodyRenderer") or {}).get("cueGroups") or []
        for group in cue_groups:
            cues = ((group or {}).get("transcriptCueGroupRenderer") or {}).get("cues") or []
            for cue in cues:
                cue_renderer = (cue or {}).get("transcriptCueRenderer") or {}
                text = clean_caption_text(_segment_text(cue_renderer.get("cue") or {}))
                if not text:
                    continue
                lines.append(TranscriptLine(
                    text=text,
                    offset_ms=_int_ms(cue_renderer.get("startOffsetMs", 0)),
                    duration_ms=_int_ms(cue_renderer.get("durationMs", 0)),
                ))

    for items in item_lists:
        lines.extend(_segment_lines(items))
    return lines


PARSERS: Dict[CaptionSchema, Callable[[Any], List[TranscriptLine]]] = {
    CaptionSchema.XML_TIMEDTEXT: parse_timedtext_xml,
    CaptionSchema.JSON3: parse_json3,
    CaptionSchema.GET_TRANSCRIPT: parse_get_transcript,
}


def parse_caption_payload(payload: Payload) -> List[TranscriptLine]:
    """
    Sniff and parse a caption payload.

    Raises:
        EmptyCaptionsError: The payload is empty or parsed into zero non-empty lines
        ParseFailureError: The payload matches no known schema
    """
    schema = sniff_schema(payload)
    if schema == CaptionSchema.EMPTY:
        raise EmptyCaptionsError("Caption payload was empty")
    parser = PARSERS.get(schema)
    if parser is None:
        raise ParseFailureError("Caption payload matches no known schema")

    if schema in (CaptionSchema.JSON3, CaptionSchema.GET_TRANSCRIPT) and isinstance(payload, str):
        payload = decode_json_object(payload, source="caption payload")

    lines = parser(payload)
    if not lines:
        raise EmptyCaptionsError(f"No caption segments found in {schema.value} payload")
    logger.debug(f"Parsed {len(lines)} lines from {schema.value} payload")
    return lines


# =============================================================================
# FETCHER
# =============================================================================

class TranscriptFetcher:
    """Downloads caption payloads and turns them into transcript lines."""

    def __init__(self, http: HttpClient, innertube: Optional[InnerTubeConfig] = None):
        self.http = http
        self.innertube = innertube or config.innertube

    def absolute_url(self, url: str) -> str:
        """Resolve relative caption URLs against the YouTube origin."""
        return urljoin(self.innertube.base_url + "/", url)

    async def fetch_and_parse(self, track: CaptionTrack) -> List[TranscriptLine]:
        """
        Fetch a caption track and parse it.

        Raises:
            EmptyCaptionsError, ParseFailureError, NetworkFailureError
        """
        url = self.absolute_url(track.base_url)
        logger.info(f"Fetching caption track '{track.label}' ({track.language_code})")
        payload = await self.http.get_text(url)
        return parse_caption_payload(payload)

    async def fetch_get_transcript(
        self,
        video_id: str,
        params: str,
        bootstrap: Optional[Dict[str, Any]] = None
    ) -> List[TranscriptLine]:
        """
        Ask the InnerTube get_transcript endpoint for a transcript.

        ``bootstrap`` is the ytcfg data scraped from the watch page; the
        configured WEB fingerprint is used for anything it lacks.
        """
        bootstrap = bootstrap or {}
        api_key = bootstrap.get("INNERTUBE_API_KEY") or self.innertube.api_key
        client_version = bootstrap.get("INNERTUBE_CONTEXT_CLIENT_VERSION") or self.innertube.web_client_version
        visitor_data = bootstrap.get("VISITOR_DATA")

        context = bootstrap.get("INNERTUBE_CONTEXT") or self.innertube.web_context(client_version, visitor_data)
        watch_url = f"{self.innertube.base_url}/watch?v={video_id}"
        client = dict(context.get("client") or {})
        client["originalUrl"] = watch_url
        context = dict(context, client=client)

        headers = {
            "Origin": self.innertube.base_url,
            "Referer": watch_url,
            "X-YouTube-Client-Name": "1",
            "X-YouTube-Client-Version": client_version,
            "X-Goog-AuthUser": "0",
        }
        if self.innertube.desktop_user_agents:
            headers["User-Agent"] = self.innertube.desktop_user_agents[0]
        if visitor_data:
            headers["X-Goog-Visitor-Id"] = visitor_data

        data = await self.http.post_json(
            f"{self.innertube.base_url}/youtubei/v1/get_transcript",
            {"context": context, "params": params},
            params={"key": api_key, "prettyPrint": "false"},
            headers=headers
        )
        lines = parse_get_transcript(data)
        if not lines:
            raise EmptyCaptionsError("get_transcript returned no segments")
        return lines
