#!/usr/bin/env python3
"""
YouTube Summarizer CLI
Fetch transcripts, metadata and thumbnails from the command line.
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .core.config import config, validate_config
from .core.orchestrator import ProgressEvent
from .core.youtube_service import YouTubeService
from .exceptions import TranscriptError
from .models import ThumbnailQuality, Transcript, VideoMetadata
from .utils.logging import get_logger, setup_logger
from .utils.youtube_utils import parse_video_id

logger = get_logger("cli")


class SummarizerCLI:
    """Main CLI application class."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.service = YouTubeService(progress_callback=self.on_progress)

    def on_progress(self, event: ProgressEvent) -> None:
        self.console.print(f"[dim]… {escape(event.message)}[/dim]")

    def print_transcript(self, transcript: Transcript, timestamps: bool = False) -> None:
        header = Table.grid(padding=(0, 2))
        header.add_row("[bold]Title[/bold]", escape(transcript.title))
        header.add_row("[bold]Author[/bold]", escape(transcript.author))
        header.add_row("[bold]Channel[/bold]", transcript.channel_url or "-")
        header.add_row("[bold]Language[/bold]", transcript.language_code or "-")
        self.console.print(Panel(header, title=transcript.video_id, border_style="blue"))

        if transcript.is_fallback_language:
            self.console.print(
                f"⚠️  Requested language not available, showing '{transcript.language_code}'",
                style="yellow"
            )
        if not transcript.has_captions:
            self.console.print("No captions available for this video", style="yellow")
            return

        self.console.print(transcript.timestamped_text if timestamps else transcript.text, markup=False)

    def print_metadata(self, metadata: VideoMetadata) -> None:
        table = Table(title=f"Metadata for {metadata.video_id}", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Title", escape(metadata.title))
        table.add_row("Author", escape(metadata.author))
        table.add_row("Channel", metadata.channel_url or "-")
        table.add_row("Published", metadata.publish_date or "-")
        table.add_row("Tags", escape(", ".join(sorted(metadata.tags))) or "-")
        self.console.print(table)
        if metadata.description:
            self.console.print(Panel(escape(metadata.description), title="Description", border_style="cyan"))

    async def run_transcript(self, args: argparse.Namespace) -> int:
        transcript = await self.service.fetch_transcript(args.url, args.lang)
        if args.json:
            self.console.print_json(json.dumps(transcript.to_dict()))
        else:
            self.print_transcript(transcript, timestamps=args.timestamps)
        return 0

    async def run_metadata(self, args: argparse.Namespace) -> int:
        metadata = await self.service.fetch_video_metadata(args.url)
        if args.json:
            self.console.print_json(json.dumps(metadata.to_dict()))
        else:
            self.print_metadata(metadata)
        return 0

    def run_thumbnail(self, args: argparse.Namespace) -> int:
        video_id = parse_video_id(args.url).video_id
        self.console.print(self.service.get_thumbnail_url(video_id, args.quality))
        return 0

    def run(self, args: argparse.Namespace) -> int:
        try:
            if args.command == "transcript":
                return asyncio.run(self.run_transcript(args))
            if args.command == "metadata":
                return asyncio.run(self.run_metadata(args))
            if args.command == "thumbnail":
                return self.run_thumbnail(args)
        except TranscriptError as e:
            logger.debug(f"{args.command} failed: {e!r}")
            self.console.print(f"❌ Error: {escape(e.message)}", style="red")
            return 1
        except KeyboardInterrupt:
            self.console.print("Interrupted", style="yellow")
            return 130
        return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="youtube-summarizer",
        description="Fetch YouTube transcripts and metadata"
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--version", action="version", version=f"%(prog)s {config.app.version}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    transcript = subparsers.add_parser("transcript", help="Fetch the transcript of a video")
    transcript.add_argument("url", help="YouTube URL or video ID")
    transcript.add_argument("--lang", default=config.summary.default_language, help="Preferred caption language")
    transcript.add_argument("--timestamps", action="store_true", help="Prefix each line with its timestamp")
    transcript.add_argument("--json", action="store_true", help="Print JSON instead of text")

    metadata = subparsers.add_parser("metadata", help="Fetch video metadata")
    metadata.add_argument("url", help="YouTube URL or video ID")
    metadata.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    thumbnail = subparsers.add_parser("thumbnail", help="Print the thumbnail URL")
    thumbnail.add_argument("url", help="YouTube URL or video ID")
    thumbnail.add_argument(
        "--quality",
        default=config.summary.thumbnail_quality,
        choices=[quality.value for quality in ThumbnailQuality]
    )
    return parser


def configure_logging(log_level: Optional[str] = None) -> None:
    """Apply the logging section of the configuration; an explicit level wins, then DEBUG=true."""
    if not log_level:
        log_level = "DEBUG" if config.app.debug else config.logging.level
    setup_logger(
        log_level=log_level,
        log_format=config.logging.format,
        date_format=config.logging.date_format
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    is_valid, problems = validate_config()
    if not is_valid:
        Console(stderr=True).print(f"⚠️  Configuration problems: {', '.join(problems)}", style="yellow")

    return SummarizerCLI().run(args)


if __name__ == "__main__":
    sys.exit(main())
