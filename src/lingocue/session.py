# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
A practice session: one transcript, one playback cursor and one active mode.

PracticeSession is the single owner of the entry sequence and the pinned
sentence. The audio player and the recorder are collaborators that report
events in (on_time_update, on_play_state, artifacts) and receive commands.
Every mutation goes through this class, so a caller that serialises its
calls (one session per connection) never sees a half-updated state.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .comparison import WordMatchResult, similarity_score
from .config import DEFAULT_CONFIG, PracticeSettings
from .playback import PlaybackControl, PlaybackCursor
from .practice import (
    DictationController,
    KeyboardShortcuts,
    ModeController,
    PracticeMode,
    PracticeState,
    ShadowingController,
    ShadowingSubmode,
    create_controller,
)
from .recording import RecordingArtifact, RecordingCapture, RecordingKey, RecordingLibrary
from .regenerator import TranscriptStats, get_transcript_preview, get_transcript_stats, regenerate
from .subtitle_parser import CaptionEntry, SentenceEntry, parse_subtitle_file

logger = logging.getLogger(__name__)

NO_SUBTITLE_MESSAGE: str = "No subtitle available for current time."


@dataclass(frozen=True)
class DictationAttempt:
    """One finished dictation attempt, kept for the session summary."""
    index: int
    reference: str
    user_input: str
    is_correct: bool
    accuracy: float  # 0-100, character similarity of input and reference
    revealed: bool  # True if the learner gave up and showed the answer


@dataclass(frozen=True)
class RegenerationPreview:
    """What confirming a regeneration would do, shown before it is applied."""
    entries: list[SentenceEntry]
    before: TranscriptStats
    after: TranscriptStats
    preview_text: str


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session for the UI layer."""
    mode: PracticeMode
    shadowing_submode: ShadowingSubmode
    filename: str | None
    entry_count: int
    current_time: float
    duration: float | None
    is_playing: bool
    pinned_index: int
    active_index: int | None
    display_index: int | None
    display_text: str | None
    message: str | None
    user_input: str
    show_answer: bool
    comparison: WordMatchResult | None
    can_advance: bool
    is_recording: bool
    recording_keys: tuple[RecordingKey, ...] = field(default_factory=tuple)


class PracticeSession:
    """Owns the transcript and routes player events and learner commands to the active mode."""

    def __init__(
        self,
        playback: PlaybackControl,
        recorder: RecordingCapture | None = None,
        settings: PracticeSettings | None = None
    ) -> None:
        """
        Args:
            playback: Audio player commands
            recorder: Voice recorder for shadowing, or None if recording is unavailable
            settings: Practice settings; defaults are used when omitted
        """
        self.playback = playback
        self.recorder = recorder
        self.settings: PracticeSettings = settings or DEFAULT_CONFIG["practice"].copy()  # type: ignore[assignment]

        self.cursor: PlaybackCursor = PlaybackCursor()
        self.state: PracticeState = PracticeState()
        self.filename: str | None = None
        self.recordings: RecordingLibrary = RecordingLibrary()
        self.attempts: list[DictationAttempt] = []
        self.shortcuts: KeyboardShortcuts = KeyboardShortcuts()
        self._pending_regeneration: list[SentenceEntry] | None = None

        self.mode: PracticeMode = PracticeMode(self.settings.get("default_mode", "listening"))
        self.submode: ShadowingSubmode = ShadowingSubmode(
            self.settings.get("shadowing_submode", "sentence"))

        if recorder is not None:
            recorder.set_artifact_handler(self._on_artifact)

        self.controller: ModeController = self._build_controller()
        self.shortcuts.attach(self.controller)

    def _build_controller(self) -> ModeController:
        return create_controller(
            self.mode, self.playback, self.cursor, self.settings, self.recorder, self.submode)

    # Ingestion ----------------------------------------------------------

    def load_transcript(self, filename: str, text: str) -> list[CaptionEntry]:
        """
        Parse a subtitle file and make it the session's transcript.

        Raises:
            SubtitleError: If the format is unsupported or nothing could be parsed
        """
        entries: list[CaptionEntry] = parse_subtitle_file(filename, text)
        if self.settings.get("regenerate_on_load", False):
            entries = regenerate(entries)
        self.filename = filename
        self.load_entries(entries)
        return entries

    def load_entries(self, entries: Sequence[CaptionEntry]) -> None:
        """Replace the transcript and reset the pin, input and recordings."""
        self._stop_recording()
        if self.recorder is not None:
            self.recorder.discard_pending()
        self.state = PracticeState(entries=list(entries))
        self._pending_regeneration = None
        self.recordings.clear()
        self.attempts.clear()
        self.controller.enter(self.state)
        logger.info("Loaded %d entries", len(self.state.entries))

    @property
    def entries(self) -> list[CaptionEntry]:
        """The current entry sequence."""
        return self.state.entries

    # Player events ------------------------------------------------------

    def on_time_update(self, current_time: float) -> None:
        """The player reported a new playback time."""
        self.cursor.current_time = current_time
        self.controller.on_time_update(self.state)

    def on_play_state(self, is_playing: bool) -> None:
        """The player started or stopped on its own (e.g. the user pressed its play button)."""
        self.cursor.is_playing = is_playing

    def on_duration(self, duration: float) -> None:
        """The player loaded metadata for the audio."""
        self.cursor.duration = duration

    # Modes --------------------------------------------------------------

    def set_mode(self, mode: PracticeMode | str) -> None:
        """Switch practice mode, re-pinning at the live playback position."""
        mode = PracticeMode(mode)
        if mode == self.mode:
            return

        self._stop_recording()
        self.mode = mode
        self.controller = self._build_controller()
        self.state.user_input = ""
        self.state.show_answer = False
        self.controller.enter(self.state)
        self.shortcuts.attach(self.controller)
        logger.info("Switched to %s mode", mode.value)

    def set_shadowing_submode(self, submode: ShadowingSubmode | str) -> None:
        """Choose between sentence-by-sentence and whole-session shadowing."""
        submode = ShadowingSubmode(submode)
        if submode == self.submode:
            return

        self._stop_recording()
        self.submode = submode
        if isinstance(self.controller, ShadowingController):
            self.controller.submode = submode
        logger.info("Shadowing submode set to %s", submode.value)

    # Navigation ---------------------------------------------------------

    def next_sentence(self) -> bool:
        """Move to the following sentence. Returns False if refused or at the end."""
        return self.controller.next(self.state)

    def previous_sentence(self) -> bool:
        """Move to the preceding sentence. Returns False at the first sentence."""
        return self.controller.previous(self.state)

    def replay(self) -> bool:
        """Play the current sentence again from its start."""
        return self.controller.replay(self.state)

    def jump_to(self, index: int) -> bool:
        """Jump to a sentence picked from the transcript list."""
        return self.controller.jump_to(self.state, index)

    def seek(self, seconds: float) -> None:
        """Scrubber seek. Moves the playhead without moving the pin."""
        self.controller.seek(max(0.0, seconds))

    def handle_key(self, key: str, shift: bool = False, popup_focused: bool = False) -> bool:
        """Route a key press to the shortcuts. Returns True if it was consumed."""
        return self.shortcuts.handle_key(self.state, key, shift, popup_focused)

    # Dictation ----------------------------------------------------------

    @property
    def comparison(self) -> WordMatchResult | None:
        """Comparison of the current input with the pinned sentence (dictation only)."""
        if isinstance(self.controller, DictationController):
            return self.controller.compare(self.state)
        return None

    @property
    def can_advance(self) -> bool:
        """Whether next_sentence() would currently be allowed."""
        return self.controller.can_advance(self.state)

    def update_input(self, text: str) -> WordMatchResult | None:
        """Store the learner's typed text and compare it with the pinned sentence."""
        was_correct: bool = self._is_correct()
        self.state.user_input = text
        result: WordMatchResult | None = self.comparison
        if result is not None and result.is_correct and not was_correct:
            self._record_attempt(revealed=False)
        return result

    def reveal_answer(self) -> None:
        """Show the pinned sentence's text. This also opens the gate."""
        if self.state.show_answer:
            return
        self.state.show_answer = True
        if isinstance(self.controller, DictationController):
            self._record_attempt(revealed=True)

    def _is_correct(self) -> bool:
        result: WordMatchResult | None = self.comparison
        return result is not None and result.is_correct

    def _record_attempt(self, revealed: bool) -> None:
        entry: CaptionEntry | None = self.state.pinned_entry
        if entry is None:
            return
        self.attempts.append(DictationAttempt(
            index=self.state.pinned_index,
            reference=entry.text,
            user_input=self.state.user_input,
            is_correct=self._is_correct(),
            accuracy=similarity_score(self.state.user_input, entry.text),
            revealed=revealed,
        ))

    # Shadowing ----------------------------------------------------------

    @property
    def is_recording(self) -> bool:
        """Whether a shadowing recording is in progress."""
        return self.recorder is not None and self.recorder.is_capturing

    def toggle_recording(self) -> bool:
        """Start or stop recording. Returns False outside shadowing or without a recorder."""
        if not isinstance(self.controller, ShadowingController):
            return False
        return self.controller.toggle_recording(self.state)

    def delete_recording(self, key: RecordingKey) -> bool:
        """Discard a stored recording."""
        return self.recordings.delete(key)

    def _stop_recording(self) -> None:
        if self.recorder is not None and self.recorder.is_capturing:
            self.recorder.stop_capture()

    def _on_artifact(self, artifact: RecordingArtifact) -> None:
        self.recordings.store(artifact)

    # Overrides ----------------------------------------------------------

    def _entry_at(self, index: int) -> CaptionEntry:
        if not 0 <= index < len(self.state.entries):
            raise IndexError(f"No sentence at index {index}")
        return self.state.entries[index]

    def set_speed_override(self, index: int, speed: float | None) -> None:
        """
        Set the playback speed for one sentence.

        Args:
            index: Sentence index
            speed: Rate multiplier (> 0), or None to use the default

        Raises:
            ValueError: If speed is not positive
            IndexError: If there is no sentence at index
        """
        if speed is not None and speed <= 0:
            raise ValueError(f"Speed must be positive, got {speed}")
        self._entry_at(index).speed = speed
        self._refresh_if_current(index)

    def set_volume_override(self, index: int, volume: float | None) -> None:
        """
        Set the playback volume for one sentence.

        Args:
            index: Sentence index
            volume: Volume between 0 and 1, or None to use the default

        Raises:
            ValueError: If volume is outside 0-1
            IndexError: If there is no sentence at index
        """
        if volume is not None and not 0.0 <= volume <= 1.0:
            raise ValueError(f"Volume must be between 0 and 1, got {volume}")
        self._entry_at(index).volume = volume
        self._refresh_if_current(index)

    def _refresh_if_current(self, index: int) -> None:
        if index == self.controller.display_index(self.state):
            self.controller.refresh_overrides(self.state)

    # Regeneration -------------------------------------------------------

    def preview_regeneration(self) -> RegenerationPreview:
        """Compute the sentence-merged transcript without applying it."""
        merged: list[SentenceEntry] = regenerate(self.state.entries)
        self._pending_regeneration = merged
        return RegenerationPreview(
            entries=merged,
            before=get_transcript_stats(self.state.entries),
            after=get_transcript_stats(merged),
            preview_text=get_transcript_preview(merged),
        )

    def confirm_regeneration(self) -> bool:
        """Apply the previewed transcript. Returns False if there was no preview."""
        pending: list[SentenceEntry] | None = self._pending_regeneration
        if pending is None:
            return False
        logger.info("Regenerated %d entries into %d sentences",
                    len(self.state.entries), len(pending))
        self.load_entries(pending)
        return True

    def cancel_regeneration(self) -> None:
        """Drop the previewed transcript."""
        self._pending_regeneration = None

    @property
    def has_pending_regeneration(self) -> bool:
        """Whether a regeneration preview is waiting for confirmation."""
        return self._pending_regeneration is not None

    # Snapshot -----------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        """Capture the current state for rendering."""
        display: int | None = self.controller.display_index(self.state)
        display_text: str | None = None
        if display is not None and 0 <= display < len(self.state.entries):
            display_text = self.state.entries[display].text

        return SessionSnapshot(
            mode=self.mode,
            shadowing_submode=self.submode,
            filename=self.filename,
            entry_count=len(self.state.entries),
            current_time=self.cursor.current_time,
            duration=self.cursor.duration,
            is_playing=self.cursor.is_playing,
            pinned_index=self.state.pinned_index,
            active_index=self.state.active_index,
            display_index=display,
            display_text=display_text,
            message=NO_SUBTITLE_MESSAGE if display_text is None else None,
            user_input=self.state.user_input,
            show_answer=self.state.show_answer,
            comparison=self.comparison,
            can_advance=self.can_advance,
            is_recording=self.is_recording,
            recording_keys=tuple(self.recordings.keys()),
        )
