"""Type definitions for tally state, detections and speech events."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Optional


class SessionStatus(Enum):
    """Lifecycle states of a RecognitionSession.

    State Transitions:
    - IDLE: Not listening, nothing pending
    - STARTING: Audio capture and speech engine are being started
    - ACTIVE: Engine running, transcript chunks are being processed
    - ENDING: Engine ended on its own, one auto-restart is pending
    - ERRORED: A start attempt or the engine failed; no auto-restart

    Transition Rules:
    IDLE → STARTING: start()
    STARTING → ACTIVE: audio capture and engine started
    STARTING → ERRORED: microphone denied or engine failed to start
    ACTIVE → ENDING: engine ended while the session should keep running
    ACTIVE → IDLE: engine ended after keep-running was cleared
    ACTIVE → ERRORED: non-recoverable engine error
    ENDING → STARTING: restart timer fired
    any → IDLE: stop()
    """
    IDLE = auto()
    STARTING = auto()
    ACTIVE = auto()
    ENDING = auto()
    ERRORED = auto()


@dataclass(frozen=True)
class TargetWord:
    """A word being counted, with its aliases.

    Attributes:
        id: Opaque identifier, unique within a TallyState
        word: Normalized lowercase word
        homophones: Normalized lowercase aliases counted toward this word
        count: Number of detections (never negative)
        color: Display tag, opaque to the core
    """
    id: str
    word: str
    homophones: tuple[str, ...] = ()
    count: int = 0
    color: str = '#3b82f6'

    @property
    def search_terms(self) -> tuple[str, ...]:
        return (self.word,) + self.homophones


@dataclass(frozen=True)
class DetectionEvent:
    """One recorded occurrence of a target word being heard.

    target_word_id may reference a target that was removed later; history
    entries are never rewritten to follow the target list.
    """
    id: str
    target_word_id: str
    matched_term: str
    timestamp: datetime
    audio_blob: Optional[bytes] = None


@dataclass(frozen=True)
class TallySettings:
    sound_enabled: bool = True
    confidence_threshold: float = 0.7
    theme: str = 'light'


@dataclass(frozen=True)
class TallyState:
    """Whole application state, the unit snapshotted by undo/redo.

    is_listening, is_recording, current_transcript and error are runtime
    status fields: they are not persisted and do not create undo steps.
    """
    target_words: tuple[TargetWord, ...] = ()
    history: tuple[DetectionEvent, ...] = ()
    is_listening: bool = False
    is_recording: bool = False
    current_transcript: str = ''
    error: Optional[str] = None
    settings: TallySettings = field(default_factory=TallySettings)

    def find_target(self, target_id: str) -> Optional[TargetWord]:
        for target in self.target_words:
            if target.id == target_id:
                return target
        return None


@dataclass(frozen=True)
class Detection:
    """A match produced by WordMatcher: which target, and which literal term."""
    target_id: str
    term: str


@dataclass(frozen=True)
class SpeechAlternative:
    """One recognition result inside a speech engine event.

    Attributes:
        transcript: Recognized text
        confidence: Engine confidence in [0, 1]; None when not reported
        is_final: True once the engine will not revise this result
    """
    transcript: str
    confidence: Optional[float] = None
    is_final: bool = False


@dataclass(frozen=True)
class SpeechResultEvent:
    """Result event from the speech engine.

    Results before result_index were already delivered in earlier events.
    """
    result_index: int
    results: tuple[SpeechAlternative, ...]


def default_tally_state() -> TallyState:
    """State used when nothing has been persisted yet: three preset words."""
    return TallyState(
        target_words=(
            TargetWord(id='1', word='hello', homophones=('halo', 'helo'), color='#3b82f6'),
            TargetWord(id='2', word='world', homophones=('word', 'whirled'), color='#10b981'),
            TargetWord(id='3', word='react', homophones=('ract', 'reakt'), color='#f59e0b'),
        ),
    )
