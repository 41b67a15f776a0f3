"""Encode and decode speech bridge frames (v1).

All messages are UTF-8 JSON text frames.

Browser → server:
  {"type": "result", "resultIndex": 0,
   "results": [{"transcript": "hello", "confidence": 0.9, "isFinal": true}]}
  {"type": "end"}
  {"type": "error", "error": "not-allowed"}

Server → browser:
  {"type": "control", "action": "start", "lang": "en-US"}
"""

import json

from voicetally.bridge.types import (
    ClientMessage,
    WsControl,
    WsSpeechEnd,
    WsSpeechError,
    WsSpeechResult,
)
from voicetally.types import SpeechAlternative, SpeechResultEvent

_CONTROL_ACTIONS = ("start", "stop")


# ---------------------------------------------------------------------------
# JSON text frames: server → browser
# ---------------------------------------------------------------------------

def encode_control(msg: WsControl) -> str:
    """Encode a control frame.

    Raises:
        ValueError: If the action is not 'start' or 'stop'.
    """
    if msg.action not in _CONTROL_ACTIONS:
        raise ValueError(f"Invalid control action: {msg.action!r}")

    return json.dumps({"type": "control", "action": msg.action, "lang": msg.lang})


# ---------------------------------------------------------------------------
# JSON text frames: browser → server
# ---------------------------------------------------------------------------

def decode_client_message(text: str) -> ClientMessage:
    """Decode a JSON text frame from the browser into a typed dataclass.

    Args:
        text: Raw JSON string from a WebSocket text frame.

    Returns:
        WsSpeechResult, WsSpeechEnd or WsSpeechError.

    Raises:
        ValueError: On invalid JSON, missing/unknown type, or invalid field values.
    """
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in client message: {exc}") from exc

    if not isinstance(obj, dict):
        raise ValueError("Client message must be a JSON object")

    msg_type = obj.get("type")
    if msg_type is None:
        raise ValueError("Client message missing 'type' field")

    if msg_type == "result":
        return WsSpeechResult(event=_decode_result_event(obj))

    if msg_type == "end":
        return WsSpeechEnd()

    if msg_type == "error":
        code = obj.get("error")
        if not isinstance(code, str) or not code:
            raise ValueError(f"Invalid error code: {code!r}")
        return WsSpeechError(code=code)

    raise ValueError(f"unknown message type: {msg_type!r}")


def _decode_result_event(obj: dict) -> SpeechResultEvent:
    results = obj.get("results")
    if not isinstance(results, list):
        raise ValueError("'results' must be a list")

    result_index = obj.get("resultIndex", 0)
    if not isinstance(result_index, int) or isinstance(result_index, bool) or result_index < 0:
        raise ValueError(f"Invalid resultIndex: {result_index!r}")

    alternatives = []
    for item in results:
        if not isinstance(item, dict) or not isinstance(item.get("transcript"), str):
            raise ValueError(f"Invalid result entry: {item!r}")

        confidence = item.get("confidence")
        if confidence is not None:
            if not isinstance(confidence, (int, float)) or not 0.0 <= confidence <= 1.0:
                raise ValueError(f"Invalid confidence: {confidence!r}")
            confidence = float(confidence)

        alternatives.append(SpeechAlternative(
            transcript=item["transcript"],
            confidence=confidence,
            is_final=bool(item.get("isFinal", False)),
        ))

    return SpeechResultEvent(result_index=result_index, results=tuple(alternatives))
