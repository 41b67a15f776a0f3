# voicetally/sound/ToneNotifier.py
import logging
from typing import Any, Dict

import numpy as np
import sounddevice as sd


class ToneNotifier:
    """Plays a short falling two-tone beep when a word is detected.

    The tone starts at frequency_start, drops to frequency_end after 0.1 s and
    fades out exponentially over the configured duration. The waveform is
    rendered once; notify() only starts non-blocking playback.

    Args:
        config: Configuration dictionary; uses the 'notification' and 'audio'
            sections
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        notification = config['notification']
        self.sample_rate: int = config['audio']['sample_rate']
        self.waveform: np.ndarray = self._render(
            frequency_start=notification['frequency_start'],
            frequency_end=notification['frequency_end'],
            duration=notification['duration'],
            volume=notification['volume'],
        )

    def _render(self, frequency_start: float, frequency_end: float,
                duration: float, volume: float) -> np.ndarray:
        n = int(self.sample_rate * duration)
        t = np.arange(n, dtype=np.float32) / self.sample_rate

        frequency = np.where(t < 0.1, frequency_start, frequency_end).astype(np.float32)
        # Integrate frequency so the switch does not click
        phase = 2 * np.pi * np.cumsum(frequency) / self.sample_rate

        # Exponential ramp from volume down to 0.001 at the end
        envelope = volume * np.power(0.001 / volume, t / duration)
        return (np.sin(phase) * envelope).astype(np.float32)

    def notify(self) -> None:
        try:
            sd.play(self.waveform, self.sample_rate, blocking=False)
        except sd.PortAudioError as e:
            logging.warning(f"Audio notification failed: {e}")
