# tests/conftest.py
import itertools
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from voicetally.Config import merge_config
from voicetally.TallyStore import TallyStore
from voicetally.types import SpeechAlternative, SpeechResultEvent, TallyState, TargetWord


class ManualTimer:
    """Restart timer stand-in: fires only when the test calls fire()."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class ManualTimerFactory:
    """Records every timer the session schedules."""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, callback):
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]


class FakeSpeechEngine:
    """SpeechEngine stand-in; tests push events through the registered listener."""

    def __init__(self):
        self.listener = None
        self.start_calls = 0
        self.stop_calls = 0
        self.start_error = None

    def set_listener(self, listener):
        self.listener = listener

    def start(self):
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error

    def stop(self):
        self.stop_calls += 1

    def emit(self, *results, result_index=0):
        self.listener.on_result(SpeechResultEvent(result_index=result_index, results=tuple(results)))

    def emit_final(self, text, confidence=0.9):
        self.emit(SpeechAlternative(transcript=text, confidence=confidence, is_final=True))

    def emit_interim(self, text):
        self.emit(SpeechAlternative(transcript=text, confidence=None, is_final=False))


class FakeAudioCapture:
    """AudioCapture stand-in; push_chunk() plays the role of the device callback."""

    def __init__(self):
        self.on_chunk = None
        self.start_calls = 0
        self.stop_calls = 0
        self.start_error = None

    def start(self, on_chunk):
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.on_chunk = on_chunk

    def stop(self):
        self.stop_calls += 1

    def push_chunk(self, data):
        self.on_chunk(data)


@pytest.fixture
def config():
    """Provide the default configuration with a short restart delay.

    Returns:
        Dict: Configuration dictionary matching production config structure
    """
    cfg = merge_config({})
    cfg['recognition']['restart_delay'] = 0.5
    return cfg


@pytest.fixture
def id_factory():
    """Deterministic ids: 'id-1', 'id-2', ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def clock():
    """Clock advancing one second per call from 2024-05-01 09:00 UTC."""
    start = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    counter = itertools.count()
    return lambda: start + timedelta(seconds=next(counter))


@pytest.fixture
def targets():
    return (
        TargetWord(id='t1', word='hello', homophones=('halo',)),
        TargetWord(id='t2', word='world', homophones=('whirled',)),
    )


@pytest.fixture
def state(targets):
    return TallyState(target_words=targets)


@pytest.fixture
def store(state, id_factory, clock):
    return TallyStore(state, id_factory=id_factory, clock=clock)


@pytest.fixture
def speech_engine():
    return FakeSpeechEngine()


@pytest.fixture
def audio_capture():
    return FakeAudioCapture()


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def notifier():
    return Mock(spec=['notify'])
