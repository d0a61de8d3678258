# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Time code parsing and formatting for subtitle timestamps.

Subtitle files carry timestamps as HH:MM:SS,mmm (SRT) or HH:MM:SS.mmm (VTT).
"""

import re

TIME_CODE_PATTERN: re.Pattern[str] = re.compile(
    r'^(\d{2}):(\d{2}):(\d{2})[,.](\d{3})$')


class TimeCodeError(ValueError):
    """Raised when a timestamp does not look like HH:MM:SS,mmm or HH:MM:SS.mmm."""


def parse_time_code(text: str) -> float:
    """
    Convert a subtitle timestamp to seconds.

    No range checking is done on the individual fields, so "00:75:00,000"
    is accepted as 4500 seconds.

    Args:
        text: Timestamp such as "00:01:05,250" or "01:00:00.000"

    Returns:
        Offset in seconds

    Raises:
        TimeCodeError: If the text is not a timestamp
    """
    match = TIME_CODE_PATTERN.match(text.strip())
    if match is None:
        raise TimeCodeError(f"Not a subtitle time code: {text!r}")

    hours, minutes, seconds, millis = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds + millis / 1000


def format_time(seconds: float) -> str:
    """Format seconds as M:SS (minutes are not wrapped into hours)."""
    seconds = max(0.0, seconds)
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def format_duration(seconds: float) -> str:
    """Format seconds as H:MM:SS, or M:SS when shorter than an hour."""
    seconds = max(0.0, seconds)
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
