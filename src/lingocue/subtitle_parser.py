# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Subtitle parsing for SRT and WebVTT transcripts.

Both parsers are lenient: a block or cue that does not have the expected
shape is dropped and parsing continues with the next one. Only the file-level
entry point treats "nothing could be parsed" as an error.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import PurePath

from .timecode import TimeCodeError, parse_time_code

logger = logging.getLogger(__name__)

SRT_ARROW: re.Pattern[str] = re.compile(
    r'(\d{2}:\d{2}:\d{2},\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2},\d{3})')
VTT_ARROW: re.Pattern[str] = re.compile(
    r'(\d{2}:\d{2}:\d{2}\.\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2}\.\d{3})')
BLANK_LINES: re.Pattern[str] = re.compile(r'\n\s*\n')

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".srt", ".vtt")


class SubtitleError(ValueError):
    """Base class for subtitle ingestion errors. The message is user-facing."""


class UnsupportedSubtitleFormatError(SubtitleError):
    """The file extension is neither .srt nor .vtt."""

    def __init__(self, filename: str) -> None:
        super().__init__(f"Unsupported subtitle format: {filename}")
        self.filename = filename


class SubtitleParseError(SubtitleError):
    """The file was read but produced no caption entries."""

    def __init__(self, filename: str) -> None:
        super().__init__(f"Could not parse subtitle file: {filename}")
        self.filename = filename


@dataclass
class CaptionEntry:
    """One timed caption.

    Timing and text never change after parsing. The speed and volume
    overrides are set by the learner and default to None ("use the global setting").
    """
    index: int  # 1-based position in the sequence
    start_time: float  # Seconds
    end_time: float  # Seconds
    text: str
    speed: float | None = None
    volume: float | None = None

    @property
    def duration(self) -> float:
        """Length of the caption in seconds."""
        return self.end_time - self.start_time

    def contains(self, current_time: float) -> bool:
        """Check if a time falls inside this caption (both ends inclusive)."""
        return self.start_time <= current_time <= self.end_time


# Regenerated sentences have exactly the same shape as raw captions
SentenceEntry = CaptionEntry


def _normalize_newlines(text: str) -> str:
    """Convert CRLF and CR line endings to LF and drop a leading BOM."""
    return text.lstrip('\ufeff').replace('\r\n', '\n').replace('\r', '\n')


def _make_entry(index: int, start: str, end: str, text: str) -> CaptionEntry | None:
    """Build an entry, or None if the timestamps don't parse or are reversed."""
    try:
        start_time: float = parse_time_code(start)
        end_time: float = parse_time_code(end)
    except TimeCodeError as e:
        logger.debug("Dropping caption with bad timestamp: %s", e)
        return None

    if start_time > end_time:
        logger.debug("Dropping caption ending before it starts: %s --> %s", start, end)
        return None

    return CaptionEntry(index=index, start_time=start_time, end_time=end_time, text=text)


def parse_srt(content: str) -> list[CaptionEntry]:
    """
    Parse SRT subtitle text.

    Each block is "[index] [start --> end] [text lines...]". Blocks with fewer
    than three lines, or whose second line is not an SRT time range, are dropped.
    Entry indices are assigned from output order, not from the file's numbering.

    Args:
        content: Raw SRT file contents

    Returns:
        Caption entries in file order
    """
    entries: list[CaptionEntry] = []
    blocks: list[str] = BLANK_LINES.split(_normalize_newlines(content).strip())

    for block in blocks:
        lines: list[str] = block.split('\n')
        if len(lines) < 3:
            logger.debug("Dropping SRT block with %d line(s)", len(lines))
            continue

        match = SRT_ARROW.search(lines[1])
        if not match:
            logger.debug("Dropping SRT block without time range: %r", lines[1])
            continue

        text: str = '\n'.join(lines[2:]).strip()
        entry = _make_entry(len(entries) + 1, match.group(1), match.group(2), text)
        if entry is not None:
            entries.append(entry)

    return entries


def parse_vtt(content: str) -> list[CaptionEntry]:
    """
    Parse WebVTT subtitle text.

    Lines are scanned in order. A time range line starts a new cue and flushes
    the previous one if it collected any text. Anything before the first cue
    (the WEBVTT header and its metadata) is ignored, as is a cue identifier
    line directly above a time range.

    Args:
        content: Raw VTT file contents

    Returns:
        Caption entries in file order
    """
    entries: list[CaptionEntry] = []
    lines: list[str] = [line.strip() for line in _normalize_newlines(content).split('\n')]

    current: tuple[str, str] | None = None  # (start, end) of the cue being collected
    text_lines: list[str] = []

    def flush() -> None:
        text: str = '\n'.join(text_lines).strip()
        if current is None or not text:
            return
        entry = _make_entry(len(entries) + 1, current[0], current[1], text)
        if entry is not None:
            entries.append(entry)

    for i, line in enumerate(lines):
        if not line or line.startswith('WEBVTT'):
            continue

        match = VTT_ARROW.search(line)
        if match:
            flush()
            current = (match.group(1), match.group(2))
            text_lines = []
            continue

        if current is None:
            continue

        next_line: str = lines[i + 1] if i + 1 < len(lines) else ""
        if VTT_ARROW.search(next_line):
            # Cue identifier for the next cue
            continue

        text_lines.append(line)

    flush()
    return entries


def subtitle_extension(filename: str) -> str:
    """Lowercased extension of a filename, including the dot."""
    return PurePath(filename).suffix.lower()


def is_supported_subtitle(filename: str) -> bool:
    """Check if a filename has a supported subtitle extension."""
    return subtitle_extension(filename) in SUPPORTED_EXTENSIONS


def parse_subtitle_file(filename: str, content: str) -> list[CaptionEntry]:
    """
    Parse a subtitle file, choosing the parser from the file extension.

    Args:
        filename: Name of the uploaded file (only the extension is used)
        content: Raw file contents

    Returns:
        Caption entries in file order

    Raises:
        UnsupportedSubtitleFormatError: If the extension is not .srt or .vtt
        SubtitleParseError: If the file contained no usable captions
    """
    extension: str = subtitle_extension(filename)
    if extension == ".srt":
        entries = parse_srt(content)
    elif extension == ".vtt":
        entries = parse_vtt(content)
    else:
        raise UnsupportedSubtitleFormatError(filename)

    if not entries:
        raise SubtitleParseError(filename)

    logger.info("Parsed %d caption(s) from %s", len(entries), filename)
    return entries


def find_subtitle_file(audio_filename: str, candidates: Iterable[str]) -> str | None:
    """
    Find the subtitle file that belongs to an audio file.

    A candidate matches when it is an .srt or .vtt file with the same base
    name as the audio file, ignoring case ("Lesson 1.mp3" -> "lesson 1.SRT").

    Args:
        audio_filename: Name of the audio file
        candidates: File names to search

    Returns:
        The first matching candidate, or None
    """
    base_name: str = PurePath(audio_filename).stem.lower()
    for candidate in candidates:
        if is_supported_subtitle(candidate) and PurePath(candidate).stem.lower() == base_name:
            return candidate
    return None
