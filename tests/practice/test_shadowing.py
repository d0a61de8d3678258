# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Tests for Shadowing mode in sentence and full-session submodes.
"""

import pytest

from lingocue.practice import PracticeState, ShadowingController, ShadowingSubmode
from lingocue.recording import FULL_SESSION_KEY, RecordingLibrary


@pytest.fixture
def library(recorder):
    recordings = RecordingLibrary()
    recorder.set_artifact_handler(recordings.store)
    return recordings


@pytest.fixture
def shadowing(playback, cursor, recorder, library):
    return ShadowingController(playback, cursor, recorder=recorder)


@pytest.fixture
def state(entries, shadowing):
    practice_state = PracticeState(entries=entries)
    shadowing.enter(practice_state)
    return practice_state


def tick(controller, state, current_time: float) -> None:
    controller.cursor.current_time = current_time
    controller.on_time_update(state)


class TestSentenceSubmode:
    """Sentence shadowing stops after each sentence and is never gated."""

    def test_auto_stops(self, shadowing, state, playback) -> None:
        shadowing.play()
        tick(shadowing, state, 3.95)
        assert playback.actions()[-1] == "pause"

    def test_next_not_gated(self, shadowing, state) -> None:
        assert shadowing.can_advance(state)
        assert shadowing.next(state)
        assert state.pinned_index == 1

    def test_ticks_keep_pin(self, shadowing, state) -> None:
        tick(shadowing, state, 11.0)
        assert state.pinned_index == 0

    def test_recording_keyed_by_sentence(self, shadowing, state, recorder, library) -> None:
        shadowing.next(state)
        assert shadowing.toggle_recording(state)
        assert shadowing.is_recording
        assert recorder.started == [1]

        assert shadowing.toggle_recording(state)
        assert not shadowing.is_recording
        assert library.get(1) is not None


class TestFullSubmode:
    """Full shadowing plays continuously with one recording for the session."""

    @pytest.fixture
    def shadowing(self, playback, cursor, recorder, library):
        return ShadowingController(playback, cursor, recorder=recorder, submode=ShadowingSubmode.FULL)

    def test_no_auto_stop(self, shadowing, state, playback) -> None:
        shadowing.play()
        tick(shadowing, state, 3.95)
        tick(shadowing, state, 5.0)
        assert "pause" not in playback.actions()

    def test_recording_uses_full_key(self, shadowing, state, recorder, library) -> None:
        shadowing.toggle_recording(state)
        tick(shadowing, state, 12.0)
        shadowing.toggle_recording(state)
        assert recorder.started == [FULL_SESSION_KEY]
        assert library.full_recording is not None
        assert library.sentence_recordings == {}


class TestRecordingControls:
    """Start/stop requests are ignored when they make no sense."""

    def test_start_twice(self, shadowing, state, recorder) -> None:
        assert shadowing.start_recording(state)
        assert not shadowing.start_recording(state)
        assert recorder.started == [0]

    def test_stop_when_idle(self, shadowing) -> None:
        assert not shadowing.stop_recording()

    def test_without_recorder(self, playback, cursor, entries) -> None:
        controller = ShadowingController(playback, cursor)
        state = PracticeState(entries=entries)
        controller.enter(state)
        assert not controller.toggle_recording(state)
        assert not controller.is_recording

    def test_switching_submode_changes_key(self, shadowing, state) -> None:
        assert shadowing.recording_key(state) == 0
        shadowing.submode = ShadowingSubmode.FULL
        assert shadowing.recording_key(state) == FULL_SESSION_KEY
        assert not shadowing.auto_stops()
