"""Protocol definitions for the collaborators around the tally core.

This module defines structural interfaces using Python's Protocol for duck typing.
The concrete implementations live in voicetally.bridge, voicetally.sound and
voicetally.persistence; tests substitute plain mocks.
"""

from typing import Callable, Optional, Protocol

from voicetally.types import SpeechResultEvent, TallyState


class SpeechListener(Protocol):
    """Receiver of speech engine events.

    Thread Safety:
        Engines may call these methods from their own threads
        (e.g. the WebSocket event loop thread).
    """

    def on_result(self, event: SpeechResultEvent) -> None:
        """Handle a batch of interim and/or final results."""
        ...

    def on_end(self) -> None:
        """Handle engine termination, requested or spontaneous."""
        ...

    def on_error(self, code: str) -> None:
        """Handle an engine error.

        Args:
            code: Error code, e.g. 'not-allowed', 'network', 'no-speech'
        """
        ...


class SpeechEngine(Protocol):
    """Speech-to-text capability."""

    def set_listener(self, listener: SpeechListener) -> None:
        ...

    def start(self) -> None:
        """Begin recognition.

        Raises:
            SpeechEngineError: If the engine cannot start
        """
        ...

    def stop(self) -> None:
        ...


class AudioCapture(Protocol):
    """Microphone capture emitting binary chunks at a fixed interval."""

    def start(self, on_chunk: Callable[[bytes], None]) -> None:
        """Open the input device and begin delivering chunks.

        Raises:
            MicrophonePermissionError: If the device cannot be opened
        """
        ...

    def stop(self) -> None:
        ...


class TallyStorage(Protocol):
    """Key-value blob store for TallyState."""

    def load(self, key: str) -> Optional[TallyState]:
        """Return the stored state, or None when nothing is stored.

        Raises:
            StorageUnavailableError: If the store cannot be read
        """
        ...

    def save(self, key: str, state: TallyState) -> None:
        """Persist the state under key.

        Raises:
            StorageUnavailableError: If the store cannot be written
        """
        ...


class Notifier(Protocol):
    """Audible feedback for a detection."""

    def notify(self) -> None:
        ...
