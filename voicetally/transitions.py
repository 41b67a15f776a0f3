"""Pure state transitions over TallyState.

Every function takes a TallyState and returns the next one. When a command
changes nothing (unknown target id, count already zero, blank word...) the
same object is returned, so callers can detect no-ops with ``is``. None of
these functions raise for ids that do not exist.
"""

import uuid
from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from voicetally.TermNormalizer import TermNormalizer
from voicetally.types import DetectionEvent, TallySettings, TallyState, TargetWord

DEFAULT_COLOR = '#3b82f6'

IdFactory = Callable[[], str]
Clock = Callable[[], datetime]

_normalizer = TermNormalizer()
_SETTINGS_FIELDS = {f.name for f in fields(TallySettings)}


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _map_target(state: TallyState, target_id: str,
                change: Callable[[TargetWord], TargetWord]) -> TallyState:
    """Apply change to the target with target_id; same state if nothing changed."""
    target = state.find_target(target_id)
    if target is None:
        return state

    updated = change(target)
    if updated == target:
        return state

    return replace(state, target_words=tuple(
        updated if t.id == target_id else t for t in state.target_words
    ))


# ---------------------------------------------------------------------------
# Tally commands (undoable, persisted)
# ---------------------------------------------------------------------------

def increment(state: TallyState,
              target_id: str,
              matched_term: str,
              audio_blob: Optional[bytes] = None,
              *,
              id_factory: IdFactory = new_id,
              clock: Clock = utc_now) -> TallyState:
    """Count one detection and append it to history in a single new state."""
    if state.find_target(target_id) is None:
        return state

    event = DetectionEvent(
        id=id_factory(),
        target_word_id=target_id,
        matched_term=matched_term,
        timestamp=clock(),
        audio_blob=audio_blob,
    )
    counted = _map_target(state, target_id, lambda t: replace(t, count=t.count + 1))
    return replace(counted, history=state.history + (event,))


def decrement(state: TallyState, target_id: str) -> TallyState:
    """Lower a count by one, never below zero. History is not touched."""
    return _map_target(state, target_id, lambda t: replace(t, count=max(0, t.count - 1)))


def reset(state: TallyState, target_id: str) -> TallyState:
    return _map_target(state, target_id, lambda t: replace(t, count=0))


def reset_all(state: TallyState) -> TallyState:
    """Zero every counter and clear history in one transition."""
    if not state.history and all(t.count == 0 for t in state.target_words):
        return state

    return replace(
        state,
        target_words=tuple(replace(t, count=0) for t in state.target_words),
        history=(),
    )


def add_target_word(state: TallyState,
                    word: str,
                    homophones: Iterable[str] = (),
                    color: str = DEFAULT_COLOR,
                    *,
                    normalizer: TermNormalizer = _normalizer,
                    id_factory: IdFactory = new_id) -> TallyState:
    """Append a new target with count 0. Blank words are rejected as a no-op."""
    normalized_word = normalizer.normalize(word)
    if not normalized_word:
        return state

    aliases = tuple(h for h in normalizer.normalize_terms(homophones) if h != normalized_word)
    target = TargetWord(
        id=id_factory(),
        word=normalized_word,
        homophones=aliases,
        count=0,
        color=color,
    )
    return replace(state, target_words=state.target_words + (target,))


def remove_target_word(state: TallyState, target_id: str) -> TallyState:
    """Remove a target; history entries that reference it are kept as they are."""
    if state.find_target(target_id) is None:
        return state

    return replace(state, target_words=tuple(
        t for t in state.target_words if t.id != target_id
    ))


def update_target_word(state: TallyState,
                       target_word: TargetWord,
                       *,
                       normalizer: TermNormalizer = _normalizer) -> TallyState:
    """Replace the target with the same id.

    Word and homophones are normalized and the count clamped to zero.
    A blank word leaves the state unchanged.
    """
    normalized_word = normalizer.normalize(target_word.word)
    if not normalized_word:
        return state

    aliases = tuple(h for h in normalizer.normalize_terms(target_word.homophones) if h != normalized_word)
    cleaned = replace(
        target_word,
        word=normalized_word,
        homophones=aliases,
        count=max(0, int(target_word.count)),
    )
    return _map_target(state, target_word.id, lambda _: cleaned)


def update_settings(state: TallyState, **changes: Any) -> TallyState:
    """Merge changed settings fields. Unknown field names are ignored."""
    accepted = {k: v for k, v in changes.items() if k in _SETTINGS_FIELDS}

    if 'confidence_threshold' in accepted:
        accepted['confidence_threshold'] = min(1.0, max(0.0, float(accepted['confidence_threshold'])))
    if 'sound_enabled' in accepted:
        accepted['sound_enabled'] = bool(accepted['sound_enabled'])

    settings = replace(state.settings, **accepted)
    if settings == state.settings:
        return state

    return replace(state, settings=settings)


def clear_history(state: TallyState) -> TallyState:
    if not state.history:
        return state

    return replace(state, history=())


# ---------------------------------------------------------------------------
# Runtime status (not undoable, not persisted)
# ---------------------------------------------------------------------------

def set_listening(state: TallyState, is_listening: bool) -> TallyState:
    if state.is_listening == is_listening:
        return state
    return replace(state, is_listening=is_listening)


def set_recording(state: TallyState, is_recording: bool) -> TallyState:
    if state.is_recording == is_recording:
        return state
    return replace(state, is_recording=is_recording)


def set_transcript(state: TallyState, transcript: str) -> TallyState:
    if state.current_transcript == transcript:
        return state
    return replace(state, current_transcript=transcript)


def set_error(state: TallyState, error: Optional[str]) -> TallyState:
    if state.error == error:
        return state
    return replace(state, error=error)


def with_runtime_status(state: TallyState, source: TallyState) -> TallyState:
    """Copy the runtime status fields of source onto state."""
    return replace(
        state,
        is_listening=source.is_listening,
        is_recording=source.is_recording,
        current_transcript=source.current_transcript,
        error=source.error,
    )


def clear_runtime_status(state: TallyState) -> TallyState:
    """Reset runtime status fields, e.g. after loading a persisted state."""
    return with_runtime_status(state, TallyState())
