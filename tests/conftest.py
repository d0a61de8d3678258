# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Shared fixtures: fake audio player and recorder collaborators.
"""

import pytest

from lingocue.playback import PlaybackControl, PlaybackCursor
from lingocue.recording import RecordingArtifact, RecordingCapture, RecordingKey
from lingocue.subtitle_parser import CaptionEntry


class RecordingPlayback(PlaybackControl):
    """Playback collaborator that records every command it receives."""

    def __init__(self) -> None:
        self.commands: list[tuple[str, float | None]] = []

    def play(self) -> None:
        self.commands.append(("play", None))

    def pause(self) -> None:
        self.commands.append(("pause", None))

    def seek(self, seconds: float) -> None:
        self.commands.append(("seek", seconds))

    def set_rate(self, rate: float) -> None:
        self.commands.append(("rate", rate))

    def set_volume(self, volume: float) -> None:
        self.commands.append(("volume", volume))

    def actions(self) -> list[str]:
        """Names of the commands received, in order."""
        return [name for name, _ in self.commands]

    def last(self, name: str) -> float | None:
        """Argument of the most recent command with this name."""
        for command, arg in reversed(self.commands):
            if command == name:
                return arg
        raise AssertionError(f"No {name!r} command was sent")

    def clear(self) -> None:
        self.commands.clear()


class FakeRecorder(RecordingCapture):
    """Recorder that delivers a small artifact as soon as capture stops."""

    def __init__(self) -> None:
        super().__init__()
        self.current_key: RecordingKey | None = None
        self.started: list[RecordingKey] = []
        self.stop_count: int = 0

    @property
    def is_capturing(self) -> bool:
        return self.current_key is not None

    def start_capture(self, key: RecordingKey) -> None:
        super().start_capture(key)
        self.current_key = key
        self.started.append(key)

    def stop_capture(self) -> None:
        key = self.current_key
        self.current_key = None
        self.stop_count += 1
        if key is not None:
            self.deliver(RecordingArtifact(key=key, data=b"RIFF-fake", duration=1.0))


def make_entries(*spans: tuple[float, float, str]) -> list[CaptionEntry]:
    """Build entries from (start, end, text) tuples."""
    return [
        CaptionEntry(index=i + 1, start_time=start, end_time=end, text=text)
        for i, (start, end, text) in enumerate(spans)
    ]


THREE_SENTENCE_VTT = """WEBVTT

00:00:00.000 --> 00:00:10.000
Hello there, how are you?

00:00:10.000 --> 00:00:20.000
I'm fine, thank you.

00:00:20.000 --> 00:00:30.000
Let's practice together.
"""


@pytest.fixture
def playback() -> RecordingPlayback:
    return RecordingPlayback()


@pytest.fixture
def recorder() -> FakeRecorder:
    return FakeRecorder()


@pytest.fixture
def cursor() -> PlaybackCursor:
    return PlaybackCursor()


@pytest.fixture
def entries() -> list[CaptionEntry]:
    """Three sentences with a gap between the second and third."""
    return make_entries(
        (0.0, 4.0, "Hello there."),
        (4.0, 8.0, "I'm fine, thank you."),
        (10.0, 14.0, "Let's go."),
    )


@pytest.fixture
def build_entries():
    """Factory fixture for ad-hoc entry sequences."""
    return make_entries


@pytest.fixture
def three_sentence_vtt() -> str:
    return THREE_SENTENCE_VTT
