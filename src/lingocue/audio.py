# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Microphone recording for shadowing, using sounddevice.

Used when the learner records on the machine running the server rather
than in the browser. Audio is captured in small chunks while recording and
encoded as a mono 16-bit WAV when the capture stops.
"""

import io
import logging
import queue
import wave
from collections.abc import Sequence
from typing import Any

import numpy as np
import numpy.typing as npt
import sounddevice as sd

from .recording import RecordingArtifact, RecordingCapture, RecordingKey

logger = logging.getLogger(__name__)


def encode_wav(chunks: Sequence[bytes], sample_rate: int) -> bytes:
    """Wrap raw 16-bit mono PCM chunks in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(b''.join(chunks))
    return buffer.getvalue()


class MicrophoneRecorder(RecordingCapture):
    """Records the learner's voice from a local input device."""

    sample_rate: int
    chunk_size: int
    device: int | None
    audio_queue: queue.Queue[bytes]
    stream: sd.RawInputStream | None

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_duration_ms: int = 100,
        device: int | None = None
    ) -> None:
        """
        Initialize the recorder.

        Args:
            sample_rate: Sample rate in Hz
            chunk_duration_ms: Duration of each audio chunk in milliseconds
            device: Audio device index, or None for default
        """
        super().__init__()
        self.sample_rate = sample_rate
        self.chunk_size = int(sample_rate * chunk_duration_ms / 1000)
        self.device = device

        self.audio_queue = queue.Queue()
        self.stream = None
        self._key: RecordingKey | None = None

    def _audio_callback(
        self,
        indata: npt.NDArray[np.int16],
        frames: int,
        time: Any,
        status: sd.CallbackFlags
    ) -> None:
        """Called for each audio chunk from the microphone."""
        if status:
            logger.warning("Audio status: %s", status)
        self.audio_queue.put(bytes(indata))

    @property
    def is_capturing(self) -> bool:
        return self.stream is not None

    def start_capture(self, key: RecordingKey) -> None:
        if self.stream is not None:
            return

        super().start_capture(key)
        self._drain()
        self._key = key
        self.stream = sd.RawInputStream(
            samplerate=self.sample_rate,
            blocksize=self.chunk_size,
            device=self.device,
            dtype=np.int16,
            channels=1,
            callback=self._audio_callback
        )
        self.stream.start()
        logger.info("Recording started for %r", key)

    def stop_capture(self) -> None:
        if self.stream is None:
            return

        self.stream.stop()
        self.stream.close()
        self.stream = None

        chunks: list[bytes] = self._drain()
        frame_count: int = sum(len(chunk) for chunk in chunks) // 2
        key: RecordingKey = self._key if self._key is not None else 0
        self._key = None
        logger.info("Recording stopped for %r (%d frames)", key, frame_count)

        self.deliver(RecordingArtifact(
            key=key,
            data=encode_wav(chunks, self.sample_rate),
            duration=frame_count / self.sample_rate,
        ))

    def _drain(self) -> list[bytes]:
        """Take every pending chunk off the queue."""
        chunks: list[bytes] = []
        while True:
            try:
                chunks.append(self.audio_queue.get_nowait())
            except queue.Empty:
                break
        return chunks


def list_devices() -> Sequence[Any]:
    """List available audio input devices."""
    print("Available audio input devices:")
    devices: Sequence[Any] = sd.query_devices()
    for i, device in enumerate(devices):
        dev: dict[str, Any] = dict(device)
        if dev.get('max_input_channels', 0) > 0:
            print(f"  [{i}] {dev.get('name', 'Unknown')} "
                  f"(inputs: {dev.get('max_input_channels', 0)})")
    return devices
