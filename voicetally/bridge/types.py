"""Wire message types for the browser speech bridge (v1).

A browser page running the Web Speech API connects over WebSocket, relays
its recognition events to the server and obeys start/stop control frames.
"""

from dataclasses import dataclass
from typing import Literal, Union

from voicetally.types import SpeechResultEvent


# ---------------------------------------------------------------------------
# Browser → Server
# ---------------------------------------------------------------------------

@dataclass
class WsSpeechResult:
    """JSON result frame: one SpeechRecognition 'result' event."""

    event: SpeechResultEvent


@dataclass
class WsSpeechEnd:
    """JSON end frame: the recognizer stopped, requested or not."""


@dataclass
class WsSpeechError:
    """JSON error frame.

    Args:
        code: SpeechRecognitionErrorEvent.error value, e.g. ``"not-allowed"``.
    """

    code: str


ClientMessage = Union[WsSpeechResult, WsSpeechEnd, WsSpeechError]


# ---------------------------------------------------------------------------
# Server → Browser
# ---------------------------------------------------------------------------

@dataclass
class WsControl:
    """JSON control frame telling the browser to start or stop recognition.

    Args:
        action: ``"start"`` or ``"stop"``.
        lang: BCP-47 language tag for the recognizer.
    """

    action: Literal["start", "stop"]
    lang: str = "en-US"
