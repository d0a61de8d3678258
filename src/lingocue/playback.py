# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Playback cursor and sentence locator.

The audio player is an external collaborator: it reports the current time
many times a second and accepts play/pause/seek commands. The locator maps
a reported time to the sentence whose interval contains it.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from .subtitle_parser import CaptionEntry

# Seconds before a sentence's end at which auto-stop pauses playback
DEFAULT_AUTO_STOP_TOLERANCE: float = 0.1


@dataclass
class PlaybackCursor:
    """Mirror of what the audio player last reported."""
    current_time: float = 0.0
    duration: float | None = None  # Unknown until the player has loaded metadata
    is_playing: bool = False


class PlaybackControl(ABC):
    """Commands the practice engine sends to the audio player."""

    @abstractmethod
    def play(self) -> None:
        """Start or resume playback."""

    @abstractmethod
    def pause(self) -> None:
        """Pause playback."""

    @abstractmethod
    def seek(self, seconds: float) -> None:
        """Move the playhead to an absolute time."""

    @abstractmethod
    def set_rate(self, rate: float) -> None:
        """Set the playback speed multiplier (1.0 is normal speed)."""

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        """Set the output volume (0-1)."""


def locate_sentence(current_time: float, entries: Sequence[CaptionEntry]) -> int | None:
    """
    Find the entry whose interval contains a time.

    Intervals are inclusive at both ends. When two entries share a boundary
    the earlier one wins, since the scan stops at the first match.

    Args:
        current_time: Playback time in seconds
        entries: Entries in playback order

    Returns:
        Zero-based index of the entry, or None if the time falls in a gap,
        before the first entry or after the last
    """
    for index, entry in enumerate(entries):
        if entry.start_time <= current_time <= entry.end_time:
            return index
    return None


def should_auto_stop(
    current_time: float,
    entry: CaptionEntry,
    tolerance: float = DEFAULT_AUTO_STOP_TOLERANCE
) -> bool:
    """Check if playback has reached the end of a sentence (within tolerance)."""
    return current_time >= entry.end_time - tolerance
