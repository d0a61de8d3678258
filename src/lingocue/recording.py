# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Recording capture interface for shadowing practice.

The engine never touches audio samples. It asks a RecordingCapture to start
and stop, and some time later receives a finished RecordingArtifact through
the handler it registered. Artifacts are kept in a RecordingLibrary keyed by
sentence index, or by FULL_SESSION_KEY for whole-session recordings.
"""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Key for the single recording made in full-session shadowing
FULL_SESSION_KEY: str = "full"

RecordingKey = int | str


@dataclass
class RecordingArtifact:
    """A finished recording. The bytes are opaque to the engine."""
    key: RecordingKey
    data: bytes
    mime_type: str = "audio/wav"
    url: str | None = None  # Playable URL, if the capturer provides one
    duration: float | None = None  # Seconds

    def __repr__(self) -> str:
        return f"RecordingArtifact({self.key!r}: {len(self.data)} bytes, {self.mime_type})"


ArtifactHandler = Callable[[RecordingArtifact], None]


class RecordingCapture(ABC):
    """
    Base interface for something that records the learner's voice.

    Subclasses call super().start_capture(key) when a capture really starts.
    Only artifacts for keys started that way are delivered, once each.
    discard_pending() forgets every outstanding key, so artifacts that
    arrive late for an earlier transcript are dropped.
    """

    def __init__(self) -> None:
        self._artifact_handler: ArtifactHandler | None = None
        self._awaiting: Counter[RecordingKey] = Counter()

    def set_artifact_handler(self, handler: ArtifactHandler | None) -> None:
        """Register the callback that receives finished recordings."""
        self._artifact_handler = handler

    def is_awaiting(self, key: RecordingKey) -> bool:
        """Whether a capture was started for this key and has not been delivered."""
        return self._awaiting[key] > 0

    def discard_pending(self) -> None:
        """Drop every capture still waiting for its artifact."""
        if self._awaiting:
            logger.info("Discarding pending recordings %s", sorted(map(str, self._awaiting)))
        self._awaiting.clear()

    def deliver(self, artifact: RecordingArtifact) -> bool:
        """
        Hand a finished recording to the registered handler.

        Returns:
            False if the artifact was dropped
        """
        if self._awaiting[artifact.key] <= 0:
            logger.warning("Dropping recording %r: no capture pending for that key", artifact)
            return False
        self._awaiting[artifact.key] -= 1
        if not self._awaiting[artifact.key]:
            del self._awaiting[artifact.key]
        if self._artifact_handler is None:
            logger.warning("Dropping recording %r: no handler registered", artifact)
            return False
        self._artifact_handler(artifact)
        return True

    @property
    @abstractmethod
    def is_capturing(self) -> bool:
        """Whether a capture is in progress."""

    @abstractmethod
    def start_capture(self, key: RecordingKey) -> None:
        """
        Start capturing audio.

        Args:
            key: Key the finished artifact must carry
        """
        self._awaiting[key] += 1

    @abstractmethod
    def stop_capture(self) -> None:
        """Stop capturing. The artifact is delivered when it is ready."""


class RecordingLibrary:
    """
    Finished recordings in two keyspaces.

    Sentence recordings are keyed by sentence index. The full-session
    recording lives under FULL_SESSION_KEY. Storing one never replaces the other.
    """

    def __init__(self) -> None:
        self.sentence_recordings: dict[int, RecordingArtifact] = {}
        self.full_recording: RecordingArtifact | None = None

    def store(self, artifact: RecordingArtifact) -> None:
        """Keep an artifact, replacing any earlier one with the same key."""
        if artifact.key == FULL_SESSION_KEY:
            self.full_recording = artifact
        elif isinstance(artifact.key, int):
            self.sentence_recordings[artifact.key] = artifact
        else:
            raise ValueError(f"Invalid recording key: {artifact.key!r}")
        logger.info("Stored recording %r", artifact)

    def get(self, key: RecordingKey) -> RecordingArtifact | None:
        """Look up a recording by key."""
        if key == FULL_SESSION_KEY:
            return self.full_recording
        if isinstance(key, int):
            return self.sentence_recordings.get(key)
        return None

    def delete(self, key: RecordingKey) -> bool:
        """Remove a recording. Returns False if there was none."""
        if key == FULL_SESSION_KEY:
            existed: bool = self.full_recording is not None
            self.full_recording = None
            return existed
        if isinstance(key, int):
            return self.sentence_recordings.pop(key, None) is not None
        return False

    def keys(self) -> list[RecordingKey]:
        """All stored keys, sentence indices first in order."""
        keys: list[RecordingKey] = sorted(self.sentence_recordings)
        if self.full_recording is not None:
            keys.append(FULL_SESSION_KEY)
        return keys

    def clear(self) -> None:
        """Forget every recording."""
        self.sentence_recordings.clear()
        self.full_recording = None

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self.keys())
