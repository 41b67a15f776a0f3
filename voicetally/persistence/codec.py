"""Encode and decode TallyState for the JSON blob store.

Only durable fields are written: target words, history and settings.
Runtime status fields (listening, recording, transcript, error) are not
stored and come back with their defaults.

Layout:
  {
    "version": 1,
    "targetWords": [{"id", "word", "homophones", "count", "color"}],
    "history": [{"id", "targetWordId", "matchedTerm", "timestamp", "audio"}],
    "settings": {"soundEnabled", "confidenceThreshold", "theme"}
  }

timestamp is ISO-8601; audio is base64 or null.
"""

import base64
import binascii
from datetime import datetime
from typing import Any

from voicetally.types import DetectionEvent, TallySettings, TallyState, TargetWord

FORMAT_VERSION = 1


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def encode_state(state: TallyState) -> dict:
    """Encode the durable part of a TallyState to a JSON-compatible dict.

    Args:
        state: State to encode.

    Returns:
        Plain dict suitable for json.dumps.
    """
    return {
        "version": FORMAT_VERSION,
        "targetWords": [
            {
                "id": t.id,
                "word": t.word,
                "homophones": list(t.homophones),
                "count": t.count,
                "color": t.color,
            }
            for t in state.target_words
        ],
        "history": [
            {
                "id": e.id,
                "targetWordId": e.target_word_id,
                "matchedTerm": e.matched_term,
                "timestamp": e.timestamp.isoformat(),
                "audio": base64.b64encode(e.audio_blob).decode("ascii") if e.audio_blob else None,
            }
            for e in state.history
        ],
        "settings": {
            "soundEnabled": state.settings.sound_enabled,
            "confidenceThreshold": state.settings.confidence_threshold,
            "theme": state.settings.theme,
        },
    }


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def decode_state(obj: Any) -> TallyState:
    """Decode a dict produced by encode_state.

    Algorithm:
        1. Validate the top-level object and format version.
        2. Rebuild target words, clamping negative counts to 0.
        3. Rebuild history events, decoding timestamps and base64 audio.
        4. Merge stored settings over defaults (missing keys keep defaults).

    Args:
        obj: Parsed JSON value.

    Returns:
        TallyState with runtime status fields at their defaults.

    Raises:
        ValueError: On any structural or field validation failure.
    """
    if not isinstance(obj, dict):
        raise ValueError(f"Expected object, got {type(obj).__name__}")

    version = obj.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise ValueError(f"Unsupported state format version: {version!r}")

    try:
        targets = tuple(_decode_target(t) for t in _expect_list(obj.get("targetWords", []), "targetWords"))
        history = tuple(_decode_event(e) for e in _expect_list(obj.get("history", []), "history"))
        settings = _decode_settings(obj.get("settings", {}))
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Malformed tally state: {exc!r}") from exc

    ids = [t.id for t in targets]
    if len(ids) != len(set(ids)):
        raise ValueError("Duplicate target word ids in stored state")

    return TallyState(target_words=targets, history=history, settings=settings)


def _expect_object(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _expect_list(value: Any, what: str) -> list:
    if not isinstance(value, list):
        raise ValueError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _decode_target(obj: dict) -> TargetWord:
    _expect_object(obj, "Target word entry")
    word = obj["word"]
    if not isinstance(word, str) or not word.strip():
        raise ValueError(f"Invalid target word: {word!r}")

    return TargetWord(
        id=str(obj["id"]),
        word=word,
        homophones=tuple(str(h) for h in obj.get("homophones", []) if str(h).strip()),
        count=max(0, int(obj.get("count", 0))),
        color=str(obj.get("color", "#3b82f6")),
    )


def _decode_event(obj: dict) -> DetectionEvent:
    _expect_object(obj, "History entry")
    try:
        timestamp = datetime.fromisoformat(obj["timestamp"])
    except ValueError as exc:
        raise ValueError(f"Invalid timestamp {obj['timestamp']!r}") from exc

    audio = obj.get("audio")
    if audio is not None:
        try:
            audio = base64.b64decode(audio, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Invalid audio payload for event {obj['id']!r}") from exc

    return DetectionEvent(
        id=str(obj["id"]),
        target_word_id=str(obj["targetWordId"]),
        matched_term=str(obj["matchedTerm"]),
        timestamp=timestamp,
        audio_blob=audio,
    )


def _decode_settings(obj: dict) -> TallySettings:
    _expect_object(obj, "settings")
    defaults = TallySettings()
    threshold = float(obj.get("confidenceThreshold", defaults.confidence_threshold))
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"confidenceThreshold must be between 0 and 1, got: {threshold}")

    return TallySettings(
        sound_enabled=bool(obj.get("soundEnabled", defaults.sound_enabled)),
        confidence_threshold=threshold,
        theme=str(obj.get("theme", defaults.theme)),
    )
