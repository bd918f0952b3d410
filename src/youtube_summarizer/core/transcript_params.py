"""
Parameter blobs for the InnerTube ``get_transcript`` endpoint.

The endpoint takes a base64 protobuf message naming the video and the caption
track. Its field layout is reverse-engineered, not documented, and changes
whenever YouTube changes its web client. Treat the bytes as opaque: the
variants below are simply tried in order until one returns segments.
"""

import base64
import re
from typing import Any, Dict, List, Optional, Union

from ..utils.logging import get_logger

logger = get_logger("transcript_params")

TRANSCRIPT_PANEL_ID = "engagement-panel-searchable-transcript-search-panel"

_PAGE_PARAMS_REGEX = re.compile(r'"getTranscriptEndpoint"\s*:\s*\{\s*"params"\s*:\s*"([^"]+)"')


def _varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def encode_message(fields: List[tuple]) -> bytes:
    """
    Encode ``[(field_number, value), ...]`` as protobuf wire format.

    ints become varints; str, bytes and nested field lists become
    length-delimited fields.
    """
    out = bytearray()
    for number, value in fields:
        if isinstance(value, bool) or isinstance(value, int):
            out += _varint(number << 3 | 0)
            out += _varint(int(value))
            continue
        if isinstance(value, list):
            payload = encode_message(value)
        elif isinstance(value, str):
            payload = value.encode("utf-8")
        else:
            payload = bytes(value)
        out += _varint(number << 3 | 2)
        out += _varint(len(payload))
        out += payload
    return bytes(out)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def build_params(video_id: str, language_code: Optional[str] = None, kind: str = "asr",
                 include_panel: bool = True) -> str:
    """Build one params blob for a video and (optionally) a caption track."""
    track_fields: List[tuple] = []
    if kind:
        track_fields.append((1, kind))
    if language_code:
        track_fields.append((2, language_code))
    track_fields.append((3, ""))

    fields: List[tuple] = [
        (1, [(2, video_id)]),
        (2, _b64(encode_message(track_fields))),
        (3, 1),
    ]
    if include_panel:
        fields += [(5, TRANSCRIPT_PANEL_ID), (6, 0), (7, 1), (8, 1)]
    return _b64(encode_message(fields))


def find_page_params(html: str = "", initial_data: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """Locate the getTranscriptEndpoint params the watch page itself would send."""
    if initial_data:
        found = _search_key(initial_data, "getTranscriptEndpoint")
        if isinstance(found, dict) and found.get("params"):
            return found["params"]
    if html:
        match = _PAGE_PARAMS_REGEX.search(html)
        if match:
            return match.group(1)
    return None


def _search_key(node: Union[Dict[str, Any], List[Any], Any], key: str) -> Any:
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            if key in current:
                return current[key]
            stack.extend(current.values())
        elif isinstance(current, list):
            stack.extend(current)
    return None


def generate_params_variants(
    video_id: str,
    language_code: Optional[str] = None,
    page_params: Optional[str] = None,
    limit: int = 5
) -> List[str]:
    """
    Ordered, de-duplicated params to try against get_transcript.

    The page-provided blob is always first; encoded variants follow, from the
    most specific (auto-generated track in the requested language) to the
    least (no track at all).
    """
    candidates: List[str] = []
    if page_params:
        candidates.append(page_params)
    candidates.append(build_params(video_id, language_code, kind="asr"))
    candidates.append(build_params(video_id, language_code, kind=""))
    candidates.append(build_params(video_id, None, kind="asr"))
    candidates.append(build_params(video_id, None, kind="", include_panel=False))

    variants: List[str] = []
    for candidate in candidates:
        if candidate not in variants:
            variants.append(candidate)
    variants = variants[:max(limit, 0)]
    logger.debug(f"Generated {len(variants)} get_transcript params variants for {video_id}")
    return variants
