"""Core modules for YouTube transcript acquisition."""

from .config import config, configure_client, validate_config
from .http_client import HttpClient
from .client_fetcher import ClientFetcher
from .caption_resolver import Resolution, collect_caption_tracks, rank_caption_tracks, resolve_caption_track
from .metadata_extractor import extract_metadata
from .transcript_parser import CaptionSchema, TranscriptFetcher, parse_caption_payload, sniff_schema
from .orchestrator import TranscriptOrchestrator, ProgressEvent, StrategyResult
from .youtube_service import YouTubeService

__all__ = [
    'config',
    'configure_client',
    'validate_config',
    'HttpClient',
    'ClientFetcher',
    'Resolution',
    'collect_caption_tracks',
    'rank_caption_tracks',
    'resolve_caption_track',
    'extract_metadata',
    'CaptionSchema',
    'TranscriptFetcher',
    'parse_caption_payload',
    'sniff_schema',
    'TranscriptOrchestrator',
    'ProgressEvent',
    'StrategyResult',
    'YouTubeService'
]
