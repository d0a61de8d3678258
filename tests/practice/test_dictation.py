# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Tests for Dictation mode: pinned sentence, auto-stop and the correctness gate.
"""

import pytest

from lingocue.practice import DictationController, PracticeState


@pytest.fixture
def dictation(playback, cursor):
    return DictationController(playback, cursor)


@pytest.fixture
def state(entries, dictation):
    practice_state = PracticeState(entries=entries)
    dictation.enter(practice_state)
    return practice_state


def tick(controller, state, current_time: float) -> None:
    controller.cursor.current_time = current_time
    controller.on_time_update(state)


class TestAutoStop:
    """Playback pauses at the end of the pinned sentence."""

    def test_pauses_near_end(self, dictation, state, playback, cursor) -> None:
        dictation.play()
        tick(dictation, state, 2.0)
        assert "pause" not in playback.actions()
        tick(dictation, state, 3.95)
        assert playback.actions()[-1] == "pause"
        assert not cursor.is_playing

    def test_no_pause_when_not_playing(self, dictation, state, playback) -> None:
        playback.clear()
        tick(dictation, state, 3.95)
        assert playback.commands == []

    def test_pauses_again_after_resume(self, dictation, state, playback) -> None:
        """Resuming at the end of the sentence stops again on the next tick."""
        dictation.play()
        tick(dictation, state, 3.95)
        dictation.play()
        tick(dictation, state, 4.0)
        assert playback.actions()[-2:] == ["play", "pause"]

    def test_custom_tolerance(self, playback, cursor, entries) -> None:
        controller = DictationController(playback, cursor, {"auto_stop_tolerance": 0.5})
        state = PracticeState(entries=entries)
        controller.enter(state)
        controller.play()
        tick(controller, state, 3.6)
        assert playback.actions()[-1] == "pause"


class TestPinStability:
    """Ticks never move the pin in dictation."""

    def test_tick_into_next_sentence_keeps_pin(self, dictation, state) -> None:
        tick(dictation, state, 5.0)
        assert state.pinned_index == 0
        assert state.active_index == 1
        assert dictation.display_index(state) == 0

    def test_tick_in_gap_keeps_pin(self, dictation, state) -> None:
        tick(dictation, state, 9.0)
        assert dictation.display_index(state) == 0


class TestGating:
    """next() needs a correct answer or a revealed answer."""

    def test_refused_when_incorrect(self, dictation, state, playback) -> None:
        state.user_input = "something else"
        playback.clear()
        assert not dictation.next(state)
        assert state.pinned_index == 0
        assert playback.commands == []

    def test_refused_when_empty(self, dictation, state) -> None:
        assert not dictation.can_advance(state)
        assert not dictation.next(state)

    def test_correct_input_advances_one(self, dictation, state, cursor) -> None:
        state.user_input = "hello there"
        assert dictation.next(state)
        assert state.pinned_index == 1
        assert cursor.current_time == 4.0
        assert cursor.is_playing

    def test_show_answer_opens_gate(self, dictation, state) -> None:
        state.show_answer = True
        assert dictation.next(state)
        assert state.pinned_index == 1

    def test_contraction_variant_opens_gate(self, dictation, state) -> None:
        state.pinned_index = 1
        state.user_input = "I am fine thank you"
        assert dictation.can_advance(state)

    def test_moving_clears_input_and_answer(self, dictation, state) -> None:
        state.user_input = "Hello there."
        assert dictation.next(state)
        assert state.user_input == ""
        assert not state.show_answer

    def test_next_at_last_sentence(self, dictation, state) -> None:
        state.pinned_index = 2
        state.show_answer = True
        assert not dictation.next(state)
        assert state.pinned_index == 2


class TestNavigation:
    """previous, replay and jump in dictation."""

    def test_previous_not_gated(self, dictation, state) -> None:
        state.show_answer = True
        dictation.next(state)
        assert dictation.previous(state)
        assert state.pinned_index == 0

    def test_replay_keeps_input(self, dictation, state, playback) -> None:
        state.user_input = "hello"
        playback.clear()
        assert dictation.replay(state)
        assert state.user_input == "hello"
        assert playback.actions() == ["seek", "play"]
        assert playback.last("seek") == 0.0

    def test_forward_jump_gated(self, dictation, state) -> None:
        assert not dictation.jump_to(state, 2)
        assert state.pinned_index == 0

    def test_forward_jump_after_answer(self, dictation, state) -> None:
        state.show_answer = True
        assert dictation.jump_to(state, 2)
        assert state.pinned_index == 2

    def test_backward_jump_allowed(self, dictation, state) -> None:
        state.pinned_index = 2
        assert dictation.jump_to(state, 0)
        assert state.pinned_index == 0


class TestCompare:
    """compare() uses the pinned sentence."""

    def test_compare_pinned(self, dictation, state) -> None:
        state.user_input = "hello"
        result = dictation.compare(state)
        assert result.matched_words == [True, False]

    def test_compare_without_entries(self, dictation) -> None:
        assert dictation.compare(PracticeState()) is None
        assert not dictation.can_advance(PracticeState())
