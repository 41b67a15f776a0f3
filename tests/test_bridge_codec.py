"""Tests for the speech bridge wire codec.

Covers: control frame encoding, client result/end/error decoding,
validation errors, unknown type handling.
"""

import json

import pytest

from voicetally.bridge.codec import decode_client_message, encode_control
from voicetally.bridge.types import WsControl, WsSpeechEnd, WsSpeechError, WsSpeechResult
from voicetally.types import SpeechAlternative


# ---------------------------------------------------------------------------
# encode_control
# ---------------------------------------------------------------------------

class TestEncodeControl:
    def test_start(self) -> None:
        obj = json.loads(encode_control(WsControl(action="start", lang="de-DE")))

        assert obj == {"type": "control", "action": "start", "lang": "de-DE"}

    def test_stop_default_lang(self) -> None:
        obj = json.loads(encode_control(WsControl(action="stop")))

        assert obj["action"] == "stop"
        assert obj["lang"] == "en-US"

    def test_invalid_action_raises(self) -> None:
        with pytest.raises(ValueError):
            encode_control(WsControl(action="pause"))


# ---------------------------------------------------------------------------
# decode_client_message
# ---------------------------------------------------------------------------

class TestDecodeClientMessage:
    def test_result(self) -> None:
        text = json.dumps({
            "type": "result",
            "resultIndex": 1,
            "results": [
                {"transcript": "hello ", "confidence": 0.92, "isFinal": True},
                {"transcript": "wor", "isFinal": False},
            ],
        })

        msg = decode_client_message(text)

        assert isinstance(msg, WsSpeechResult)
        assert msg.event.result_index == 1
        assert msg.event.results == (
            SpeechAlternative("hello ", 0.92, True),
            SpeechAlternative("wor", None, False),
        )

    def test_result_index_defaults_to_zero(self) -> None:
        msg = decode_client_message('{"type": "result", "results": []}')

        assert msg.event.result_index == 0
        assert msg.event.results == ()

    def test_integer_confidence_accepted(self) -> None:
        msg = decode_client_message('{"type": "result", "results": [{"transcript": "x", "confidence": 1}]}')

        assert msg.event.results[0].confidence == 1.0

    def test_end(self) -> None:
        assert isinstance(decode_client_message('{"type": "end"}'), WsSpeechEnd)

    def test_error(self) -> None:
        msg = decode_client_message('{"type": "error", "error": "not-allowed"}')

        assert msg == WsSpeechError(code="not-allowed")

    @pytest.mark.parametrize("text", [
        "not json",
        "[1, 2]",
        '{"results": []}',
        '{"type": "bogus"}',
        '{"type": "result"}',
        '{"type": "result", "results": "hello"}',
        '{"type": "result", "resultIndex": -1, "results": []}',
        '{"type": "result", "resultIndex": true, "results": []}',
        '{"type": "result", "results": [{"confidence": 0.5}]}',
        '{"type": "result", "results": [{"transcript": "x", "confidence": 2}]}',
        '{"type": "result", "results": [{"transcript": "x", "confidence": "high"}]}',
        '{"type": "error"}',
        '{"type": "error", "error": ""}',
    ])
    def test_invalid_messages_raise(self, text) -> None:
        with pytest.raises(ValueError):
            decode_client_message(text)
