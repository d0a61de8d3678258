# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Tests for the WebVTT parser.
"""

import pytest

from lingocue.subtitle_parser import parse_vtt


class TestParseVtt:
    """Tests for well-formed VTT input."""

    def test_three_cues(self, three_sentence_vtt: str) -> None:
        entries = parse_vtt(three_sentence_vtt)
        assert len(entries) == 3
        assert entries[0].text == "Hello there, how are you?"
        assert entries[1].start_time == 10.0
        assert entries[2].end_time == 30.0
        assert [e.index for e in entries] == [1, 2, 3]

    def test_header_metadata_ignored(self) -> None:
        content = "WEBVTT - Lesson 1\nKind: captions\nLanguage: en\n\n00:00:00.000 --> 00:00:02.000\nHi\n"
        entries = parse_vtt(content)
        assert [e.text for e in entries] == ["Hi"]

    def test_cue_identifiers_skipped(self) -> None:
        content = (
            "WEBVTT\n\n"
            "intro\n00:00:00.000 --> 00:00:02.000\nFirst\n\n"
            "2\n00:00:02.000 --> 00:00:04.000\nSecond\n"
        )
        entries = parse_vtt(content)
        assert [e.text for e in entries] == ["First", "Second"]

    def test_cue_settings_after_time_range(self) -> None:
        content = "WEBVTT\n\n00:00:01.000 --> 00:00:02.500 align:start position:10%\nPositioned\n"
        entries = parse_vtt(content)
        assert entries[0].start_time == 1.0
        assert entries[0].end_time == pytest.approx(2.5)

    def test_multiline_cue_text(self) -> None:
        content = "WEBVTT\n\n00:00:00.000 --> 00:00:02.000\nLine one\nLine two\n"
        assert parse_vtt(content)[0].text == "Line one\nLine two"

    def test_lines_are_trimmed(self) -> None:
        content = "WEBVTT\n\n  00:00:00.000 --> 00:00:02.000  \n   Padded text   \n"
        assert parse_vtt(content)[0].text == "Padded text"


class TestMalformedVtt:
    """Cues that cannot be used are dropped."""

    def test_cue_without_text_dropped(self) -> None:
        content = (
            "WEBVTT\n\n"
            "00:00:00.000 --> 00:00:02.000\n\n"
            "00:00:02.000 --> 00:00:04.000\nKept\n"
        )
        entries = parse_vtt(content)
        assert [e.text for e in entries] == ["Kept"]
        assert entries[0].index == 1

    def test_srt_style_timestamps_not_recognized(self) -> None:
        assert parse_vtt("WEBVTT\n\n00:00:00,000 --> 00:00:02,000\nText\n") == []

    def test_reversed_cue_dropped(self) -> None:
        content = (
            "WEBVTT\n\n"
            "00:00:09.000 --> 00:00:03.000\nBackwards\n\n"
            "00:00:10.000 --> 00:00:12.000\nForwards\n"
        )
        assert [e.text for e in parse_vtt(content)] == ["Forwards"]

    def test_header_only(self) -> None:
        assert parse_vtt("WEBVTT\n\n") == []
