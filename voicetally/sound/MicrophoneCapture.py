# voicetally/sound/MicrophoneCapture.py
from __future__ import annotations
import sounddevice as sd
import numpy as np
import logging
from typing import Any, Callable, Dict, Optional

from voicetally.errors import MicrophonePermissionError


class MicrophoneCapture:
    """Captures audio from the microphone and hands out raw PCM chunks.

    MicrophoneCapture uses sounddevice to capture real-time audio and passes
    every block to the on_chunk callback as 16-bit little-endian mono PCM
    bytes. The callback runs on the PortAudio thread and must stay fast; the
    session only appends the bytes to its buffer.

    Args:
        config: Configuration dictionary; uses the 'audio' section
        verbose: Enable verbose logging
    """

    def __init__(self, config: Dict[str, Any], verbose: bool = False):
        self.verbose: bool = verbose

        self.sample_rate: int = config['audio']['sample_rate']
        chunk_duration = config['audio']['chunk_duration']

        self.chunk_size: int = int(self.sample_rate * chunk_duration)
        self.is_running: bool = False
        self.stream: sd.InputStream | None = None
        self._on_chunk: Optional[Callable[[bytes], None]] = None

    def audio_callback(self, indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        """Callback from sounddevice that converts a block to PCM bytes.

        If the sound comes in stereo, the 1st channel is taken.

        Args:
            indata: Input audio data as numpy array (shape: [frames, channels])
            frames: Number of audio frames
            time_info: Timing information from sounddevice
            status: Status information from sounddevice
        """
        if status:
            logging.error(f"Audio error: {status}")

        on_chunk = self._on_chunk
        if on_chunk is None:
            return

        mono = np.clip(indata[:, 0], -1.0, 1.0)
        pcm = (mono * 32767).astype('<i2').tobytes()
        on_chunk(pcm)

    def start(self, on_chunk: Callable[[bytes], None]) -> None:
        """Open the default input device and start delivering chunks.

        Raises:
            MicrophonePermissionError: If the device cannot be opened
        """
        self._on_chunk = on_chunk
        try:
            self.stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype='float32',
                callback=self.audio_callback,
                blocksize=self.chunk_size
            )
            self.stream.start()
        except sd.PortAudioError as e:
            self._on_chunk = None
            self.stream = None
            raise MicrophonePermissionError(str(e)) from e

        self.is_running = True
        if self.verbose:
            logging.debug(f"Microphone capture started: {self.sample_rate} Hz, {self.chunk_size} samples/chunk")

    def stop(self) -> None:
        """Stop capturing and release the input device."""
        self.is_running = False
        self._on_chunk = None
        if self.stream:
            self.stream.stop()
            self.stream.close()
            self.stream = None
