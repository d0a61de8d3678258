# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Practice mode state machines.

Three modes share one entry sequence and one playback cursor:

- Listening follows the audio. The highlighted sentence is recomputed from
  the playback time on every tick, and the pin follows it.
- Dictation pins one sentence, stops playback at its end, and only lets the
  learner move on once the typed text is correct or the answer was revealed.
- Shadowing pins one sentence like dictation, without gating, and records the
  learner repeating it. In "full" submode playback runs continuously and a
  single recording covers the whole session.

Gated modes never move the pin from a time update. Only mode entry and
explicit navigation (next, previous, replay, jump) set it. That keeps the pin
steady while the cursor sits in the gap between two sentences.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from . import debug_log
from .comparison import WordMatchResult, compare_texts
from .config import DEFAULT_CONFIG, PracticeSettings
from .playback import PlaybackControl, PlaybackCursor, locate_sentence, should_auto_stop
from .recording import FULL_SESSION_KEY, RecordingCapture, RecordingKey
from .subtitle_parser import CaptionEntry

logger = logging.getLogger(__name__)


class PracticeMode(str, Enum):
    """The three practice protocols."""
    LISTENING = "listening"
    DICTATION = "dictation"
    SHADOWING = "shadowing"


class ShadowingSubmode(str, Enum):
    """Whether shadowing works sentence by sentence or over the whole recording."""
    SENTENCE = "sentence"
    FULL = "full"


@dataclass
class PracticeState:
    """Everything a practice session resets together when the mode or transcript changes."""
    entries: list[CaptionEntry] = field(default_factory=list)
    pinned_index: int = 0
    active_index: int | None = None  # Live locator result from the last tick
    user_input: str = ""
    show_answer: bool = False

    @property
    def pinned_entry(self) -> CaptionEntry | None:
        """The pinned entry, or None if the pin is out of range."""
        if 0 <= self.pinned_index < len(self.entries):
            return self.entries[self.pinned_index]
        return None


class ModeController:
    """
    Base class for a practice mode.

    Subclasses decide which index is displayed, whether playback auto-stops
    and whether moving forward is allowed.
    """

    mode: PracticeMode
    # Whether the keyboard shortcuts (Tab/Enter/Space) apply in this mode
    uses_shortcuts: bool = False

    def __init__(
        self,
        playback: PlaybackControl,
        cursor: PlaybackCursor,
        settings: PracticeSettings | None = None
    ) -> None:
        """
        Args:
            playback: Audio player commands
            cursor: Shared mirror of the player's reported state
            settings: Practice settings (auto-stop tolerance, default speed/volume)
        """
        self.playback = playback
        self.cursor = cursor
        self.settings: PracticeSettings = settings or DEFAULT_CONFIG["practice"].copy()  # type: ignore[assignment]
        self._applied_index: int | None = None

    # Hooks --------------------------------------------------------------

    def auto_stops(self) -> bool:
        """Whether playback pauses at the end of the pinned sentence."""
        return False

    def can_advance(self, state: PracticeState) -> bool:
        """Whether next() is currently allowed."""
        return True

    def display_index(self, state: PracticeState) -> int | None:
        """Index of the sentence to show, or None when there is none."""
        if state.pinned_entry is None:
            return None
        return state.pinned_index

    def on_pin_moved(self, state: PracticeState, old_index: int) -> None:
        """Called after navigation moved the pin to a different sentence."""

    # Lifecycle ----------------------------------------------------------

    def enter(self, state: PracticeState) -> None:
        """Initialize the pin from the live playback position, or 0."""
        live: int | None = locate_sentence(self.cursor.current_time, state.entries)
        state.active_index = live
        state.pinned_index = live if live is not None else 0
        self._applied_index = None
        self._apply_overrides(state, state.pinned_index)
        logger.info("Entered %s mode at sentence %d", self.mode.value, state.pinned_index)

    def on_time_update(self, state: PracticeState) -> None:
        """
        React to a time update from the audio player.

        The cursor has already been updated. Gated modes leave the pin alone
        and only check whether playback should stop.
        """
        live: int | None = locate_sentence(self.cursor.current_time, state.entries)
        if live != state.active_index:
            debug_log.log_active_change(self.cursor.current_time, state.active_index, live)
        state.active_index = live

        entry: CaptionEntry | None = state.pinned_entry
        if (self.auto_stops() and self.cursor.is_playing and entry is not None
                and should_auto_stop(self.cursor.current_time, entry,
                                     self.settings.get("auto_stop_tolerance", 0.1))):
            logger.debug("Auto-stop at %.3fs (sentence %d ends %.3fs)",
                         self.cursor.current_time, state.pinned_index, entry.end_time)
            debug_log.log_auto_stop(self.cursor.current_time, state.pinned_index)
            self.pause()

    # Playback commands --------------------------------------------------

    def play(self) -> None:
        """Resume playback and mirror it on the cursor."""
        self.playback.play()
        self.cursor.is_playing = True
        debug_log.log_command("play")

    def pause(self) -> None:
        """Pause playback and mirror it on the cursor."""
        self.playback.pause()
        self.cursor.is_playing = False
        debug_log.log_command("pause")

    def seek(self, seconds: float) -> None:
        """Move the playhead and mirror it on the cursor."""
        self.playback.seek(seconds)
        self.cursor.current_time = seconds
        debug_log.log_command("seek", seconds)

    def _apply_overrides(self, state: PracticeState, index: int | None) -> None:
        """Push the sentence's speed/volume (or the defaults) to the player."""
        if index is None or index == self._applied_index:
            return
        if not 0 <= index < len(state.entries):
            return
        entry: CaptionEntry = state.entries[index]
        speed: float = entry.speed if entry.speed is not None else self.settings.get("default_speed", 1.0)
        volume: float = entry.volume if entry.volume is not None else self.settings.get("default_volume", 1.0)
        self.playback.set_rate(speed)
        self.playback.set_volume(volume)
        self._applied_index = index

    def refresh_overrides(self, state: PracticeState) -> None:
        """Re-send speed/volume after an override on the current sentence changed."""
        index: int | None = self.display_index(state)
        self._applied_index = None
        self._apply_overrides(state, index)

    # Navigation ---------------------------------------------------------

    def _navigation_anchor(self, state: PracticeState) -> int:
        """Index that next/previous move relative to."""
        return state.pinned_index

    def _move_to(self, state: PracticeState, index: int, play: bool = True) -> bool:
        """Pin a sentence, seek to its start and optionally resume playback."""
        if not 0 <= index < len(state.entries):
            return False

        old_index: int = state.pinned_index
        state.pinned_index = index
        self.seek(state.entries[index].start_time)
        self._apply_overrides(state, index)
        if play:
            self.play()

        debug_log.log_pin_move(old_index, index, self.mode.value)
        if index != old_index:
            self.on_pin_moved(state, old_index)
        return True

    def next(self, state: PracticeState) -> bool:
        """Move to the following sentence. Returns False if nothing happened."""
        if not self.can_advance(state):
            logger.debug("%s: next refused at sentence %d", self.mode.value, state.pinned_index)
            debug_log.log_gate_refusal(state.pinned_index)
            return False
        return self._move_to(state, self._navigation_anchor(state) + 1)

    def previous(self, state: PracticeState) -> bool:
        """Move to the preceding sentence. Returns False if already at the first."""
        return self._move_to(state, self._navigation_anchor(state) - 1)

    def replay(self, state: PracticeState) -> bool:
        """Restart the current sentence from its beginning."""
        index: int | None = self.display_index(state)
        if index is None:
            index = self._navigation_anchor(state)
        return self._move_to(state, index)

    def jump_to(self, state: PracticeState, index: int) -> bool:
        """Jump to a sentence picked by the learner (e.g. clicked in the list)."""
        return self._move_to(state, index)


class ListeningController(ModeController):
    """Follow-along mode: highlight whatever sentence is playing."""

    mode = PracticeMode.LISTENING

    def _resolve(self, state: PracticeState) -> int | None:
        """
        The sentence being heard.

        The pinned sentence wins while its interval still contains the
        playhead, so a sentence reached by navigation stays highlighted even
        when it touches the one before it.
        """
        entry: CaptionEntry | None = state.pinned_entry
        if entry is not None and entry.start_time <= self.cursor.current_time <= entry.end_time:
            return state.pinned_index
        return state.active_index

    def display_index(self, state: PracticeState) -> int | None:
        return self._resolve(state)

    def _navigation_anchor(self, state: PracticeState) -> int:
        index: int | None = self._resolve(state)
        return index if index is not None else state.pinned_index

    def _move_to(self, state: PracticeState, index: int, play: bool = True) -> bool:
        if not super()._move_to(state, index, play):
            return False
        state.active_index = index
        return True

    def on_time_update(self, state: PracticeState) -> None:
        super().on_time_update(state)
        index: int | None = self._resolve(state)
        if index is not None:
            state.pinned_index = index
        self._apply_overrides(state, index)


class DictationController(ModeController):
    """Type-what-you-hear mode with auto-stop and a correctness gate."""

    mode = PracticeMode.DICTATION
    uses_shortcuts = True

    def auto_stops(self) -> bool:
        return True

    def compare(self, state: PracticeState) -> WordMatchResult | None:
        """Compare the current input with the pinned sentence."""
        entry: CaptionEntry | None = state.pinned_entry
        if entry is None:
            return None
        return compare_texts(state.user_input, entry.text)

    def can_advance(self, state: PracticeState) -> bool:
        if state.show_answer:
            return True
        result: WordMatchResult | None = self.compare(state)
        return result is not None and result.is_correct

    def on_pin_moved(self, state: PracticeState, old_index: int) -> None:
        # Input and the revealed answer belong to the sentence that was pinned
        state.user_input = ""
        state.show_answer = False

    def jump_to(self, state: PracticeState, index: int) -> bool:
        # Jumping ahead skips the sentence just like next() does
        if index > state.pinned_index and not self.can_advance(state):
            debug_log.log_gate_refusal(state.pinned_index)
            return False
        return self._move_to(state, index)


class ShadowingController(ModeController):
    """Listen-and-repeat mode with per-sentence or whole-session recordings."""

    mode = PracticeMode.SHADOWING
    uses_shortcuts = True

    def __init__(
        self,
        playback: PlaybackControl,
        cursor: PlaybackCursor,
        settings: PracticeSettings | None = None,
        recorder: RecordingCapture | None = None,
        submode: ShadowingSubmode = ShadowingSubmode.SENTENCE
    ) -> None:
        super().__init__(playback, cursor, settings)
        self.recorder = recorder
        self.submode = submode

    def auto_stops(self) -> bool:
        return self.submode == ShadowingSubmode.SENTENCE

    def recording_key(self, state: PracticeState) -> RecordingKey:
        """Key the next recording is stored under."""
        if self.submode == ShadowingSubmode.FULL:
            return FULL_SESSION_KEY
        return state.pinned_index

    @property
    def is_recording(self) -> bool:
        """Whether the recorder is currently capturing."""
        return self.recorder is not None and self.recorder.is_capturing

    def start_recording(self, state: PracticeState) -> bool:
        """Ask the recorder to start capturing for the current key."""
        if self.recorder is None or self.recorder.is_capturing:
            return False
        key: RecordingKey = self.recording_key(state)
        self.recorder.start_capture(key)
        debug_log.log_command("record_start", key)
        return True

    def stop_recording(self) -> bool:
        """Ask the recorder to stop. The artifact arrives later."""
        if self.recorder is None or not self.recorder.is_capturing:
            return False
        self.recorder.stop_capture()
        debug_log.log_command("record_stop")
        return True

    def toggle_recording(self, state: PracticeState) -> bool:
        """Start capturing if idle, otherwise stop."""
        if self.is_recording:
            return self.stop_recording()
        return self.start_recording(state)


def create_controller(
    mode: PracticeMode,
    playback: PlaybackControl,
    cursor: PlaybackCursor,
    settings: PracticeSettings | None = None,
    recorder: RecordingCapture | None = None,
    submode: ShadowingSubmode = ShadowingSubmode.SENTENCE
) -> ModeController:
    """Build the controller for a practice mode."""
    if mode == PracticeMode.DICTATION:
        return DictationController(playback, cursor, settings)
    if mode == PracticeMode.SHADOWING:
        return ShadowingController(playback, cursor, settings, recorder, submode)
    return ListeningController(playback, cursor, settings)


# Keys handled by the shortcuts, as reported by KeyboardEvent.key
KEY_TAB: str = "Tab"
KEY_ENTER: str = "Enter"
KEY_SPACE: str = " "


class KeyboardShortcuts:
    """
    Global shortcuts for the gated modes.

    Only attached while Dictation or Shadowing is active. handle_key()
    returns True when the key was used and its default action should be
    suppressed. Everything else is left to the focused control.
    """

    def __init__(self) -> None:
        self.controller: ModeController | None = None

    @property
    def active(self) -> bool:
        """Whether a controller is attached."""
        return self.controller is not None

    def attach(self, controller: ModeController) -> None:
        """Listen for shortcuts on behalf of a controller, if its mode uses them."""
        self.controller = controller if controller.uses_shortcuts else None

    def detach(self) -> None:
        """Stop handling shortcuts."""
        self.controller = None

    def handle_key(
        self,
        state: PracticeState,
        key: str,
        shift: bool = False,
        popup_focused: bool = False
    ) -> bool:
        """
        Handle a key press.

        Args:
            state: Current practice state
            key: KeyboardEvent.key value ("Tab", "Enter", " ")
            shift: Whether Shift was held
            popup_focused: Whether an input-capture popup currently has focus

        Returns:
            True if the key was consumed
        """
        controller: ModeController | None = self.controller
        if controller is None:
            return False

        if key == KEY_TAB:
            if popup_focused:
                return False
            controller.replay(state)
            return True

        if key == KEY_ENTER and not shift:
            # Consumed even when the gate refuses, so no newline is typed
            controller.next(state)
            return True

        if key == KEY_SPACE and isinstance(controller, ShadowingController):
            controller.toggle_recording(state)
            return True

        return False
