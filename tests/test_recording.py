# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Tests for recording artifacts and the recording library.
"""

import pytest

from lingocue.recording import FULL_SESSION_KEY, RecordingArtifact, RecordingLibrary
from lingocue.server import WebSocketRecorder


class TestRecordingLibrary:
    """Tests for the two recording keyspaces."""

    def test_store_sentence_recording(self) -> None:
        library = RecordingLibrary()
        library.store(RecordingArtifact(key=2, data=b"abc"))
        assert library.get(2).data == b"abc"
        assert 2 in library
        assert len(library) == 1

    def test_full_and_sentence_recordings_coexist(self) -> None:
        library = RecordingLibrary()
        library.store(RecordingArtifact(key=0, data=b"one"))
        library.store(RecordingArtifact(key=FULL_SESSION_KEY, data=b"all"))
        assert library.get(0).data == b"one"
        assert library.get(FULL_SESSION_KEY).data == b"all"
        assert library.keys() == [0, FULL_SESSION_KEY]

    def test_store_replaces_same_key(self) -> None:
        library = RecordingLibrary()
        library.store(RecordingArtifact(key=1, data=b"first"))
        library.store(RecordingArtifact(key=1, data=b"second"))
        assert library.get(1).data == b"second"
        assert len(library) == 1

    def test_invalid_key(self) -> None:
        with pytest.raises(ValueError):
            RecordingLibrary().store(RecordingArtifact(key="other", data=b""))

    def test_delete(self) -> None:
        library = RecordingLibrary()
        library.store(RecordingArtifact(key=3, data=b"x"))
        library.store(RecordingArtifact(key=FULL_SESSION_KEY, data=b"y"))
        assert library.delete(3)
        assert not library.delete(3)
        assert library.delete(FULL_SESSION_KEY)
        assert not library.delete(FULL_SESSION_KEY)
        assert len(library) == 0

    def test_keys_sorted(self) -> None:
        library = RecordingLibrary()
        for key in (5, 1, 3):
            library.store(RecordingArtifact(key=key, data=b""))
        assert library.keys() == [1, 3, 5]

    def test_clear(self) -> None:
        library = RecordingLibrary()
        library.store(RecordingArtifact(key=1, data=b""))
        library.store(RecordingArtifact(key=FULL_SESSION_KEY, data=b""))
        library.clear()
        assert library.keys() == []
        assert library.get("missing") is None


class TestRecordingCapture:
    """Tests for artifact delivery."""

    def test_deliver_to_handler(self, recorder) -> None:
        received = []
        recorder.set_artifact_handler(received.append)
        recorder.start_capture(4)
        recorder.stop_capture()
        assert [a.key for a in received] == [4]

    def test_deliver_without_handler_is_dropped(self, recorder) -> None:
        recorder.start_capture(1)
        recorder.stop_capture()
        assert not recorder.is_capturing

    def test_unrequested_key_is_dropped(self, recorder) -> None:
        received = []
        recorder.set_artifact_handler(received.append)
        assert not recorder.deliver(RecordingArtifact(key=2, data=b"late"))
        assert received == []

    def test_each_capture_delivered_once(self, recorder) -> None:
        received = []
        recorder.set_artifact_handler(received.append)
        recorder.start_capture(1)
        recorder.stop_capture()
        assert not recorder.deliver(RecordingArtifact(key=1, data=b"again"))
        assert len(received) == 1

    def test_discard_pending(self) -> None:
        received = []
        recorder = WebSocketRecorder()
        recorder.set_artifact_handler(received.append)
        recorder.start_capture(3)
        recorder.stop_capture()
        assert recorder.is_awaiting(3)
        recorder.discard_pending()
        assert not recorder.is_awaiting(3)
        assert not recorder.deliver(RecordingArtifact(key=3, data=b"late"))
        assert received == []
