"""Caption track collection and language resolution."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..models import CaptionTrack
from ..utils.logging import get_logger

logger = get_logger("caption_resolver")


@dataclass(frozen=True)
class Resolution:
    """A resolved caption track and whether it differs from the requested language."""
    track: CaptionTrack
    is_fallback: bool = False


def collect_caption_tracks(player_response: Dict[str, Any]) -> List[CaptionTrack]:
    """Read caption tracks from a player response, in the order YouTube lists them."""
    renderer = (player_response.get("captions") or {}).get("playerCaptionsTracklistRenderer") or {}
    tracks: List[CaptionTrack] = []
    for raw in renderer.get("captionTracks") or []:
        base_url = raw.get("baseUrl") or raw.get("url")
        language_code = raw.get("languageCode")
        if not base_url or not language_code:
            continue
        name = raw.get("name") or {}
        display_name = name.get("simpleText") or ((name.get("runs") or [{}])[0].get("text", ""))
        kind = raw.get("kind") or ("asr" if str(raw.get("vssId", "")).startswith("a.") else "")
        tracks.append(CaptionTrack(
            language_code=language_code,
            base_url=base_url,
            display_name=display_name,
            kind=kind,
        ))
    return tracks


def _code_match_rank(code: str, requested_lang: str) -> Optional[int]:
    """0 = exact, 1 = track is a regional variant, 2 = request is a regional variant."""
    if code == requested_lang:
        return 0
    if code.startswith(requested_lang + "-"):
        return 1
    if requested_lang.startswith(code + "-"):
        return 2
    return None


def _match_rank(track: CaptionTrack, requested_lang: str) -> Optional[int]:
    return _code_match_rank(track.language_code, requested_lang)


def rank_caption_tracks(tracks: Sequence[CaptionTrack], requested_lang: str) -> List[CaptionTrack]:
    """
    Order every track by resolution priority.

    Matching tracks come first (exact, then prefix, then reverse prefix),
    followed by the rest in their original order. The first element is what
    resolve_caption_track returns; later ones are used when it turns out empty.
    """
    ranked = []
    for index, track in enumerate(tracks):
        rank = _match_rank(track, requested_lang)
        ranked.append((3 if rank is None else rank, index, track))
    ranked.sort(key=lambda item: (item[0], item[1]))
    return [track for _, _, track in ranked]


def is_language_match(track: CaptionTrack, requested_lang: str) -> bool:
    return _match_rank(track, requested_lang) is not None


def is_language_code_match(code: str, requested_lang: str) -> bool:
    """Same rule as is_language_match, for a bare language code."""
    return _code_match_rank(code, requested_lang) is not None


def resolve_caption_track(tracks: Sequence[CaptionTrack], requested_lang: str) -> Optional[Resolution]:
    """
    Select the best caption track for the requested language.

    Priority:
        1. exact language code match
        2. track code starts with ``requested_lang + "-"`` (``en`` -> ``en-US``)
        3. requested code starts with ``track_code + "-"`` (``en-US`` -> ``en``)
        4. the first track, flagged as a fallback
    Returns None when there are no tracks at all.
    """
    if not tracks:
        return None

    for rank in (0, 1, 2):
        for track in tracks:
            if _match_rank(track, requested_lang) == rank:
                return Resolution(track=track, is_fallback=False)

    fallback = tracks[0]
    logger.warning(f"Language '{requested_lang}' not found, falling back to '{fallback.language_code}'")
    return Resolution(track=fallback, is_fallback=True)
