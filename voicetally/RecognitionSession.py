"""
RecognitionSession - Drives the speech engine and microphone for the tally.

Owns the listening lifecycle, turns final transcript chunks into detections
via WordMatcher and applies them to the TallyStore, and restarts the speech
engine when it ends on its own.

State Machine (see SessionStatus):
- IDLE -> STARTING -> ACTIVE
- ACTIVE -> ENDING (spontaneous end, one restart pending) -> STARTING
- STARTING/ACTIVE -> ERRORED (permission denied, engine failure)
- any -> IDLE on stop()

Engine callbacks, audio chunks and the restart timer arrive on different
threads. Transitions are serialized by one RLock; the audio buffer has its
own lock so the capture callback never waits on a transition.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from voicetally.errors import MicrophonePermissionError, SpeechEngineError
from voicetally.protocols import AudioCapture, Notifier, SpeechEngine
from voicetally.TallyStore import TallyStore
from voicetally.types import SessionStatus, SpeechResultEvent
from voicetally.WordMatcher import WordMatcher

logger = logging.getLogger(__name__)

NON_RECOVERABLE_ERRORS = frozenset({'not-allowed', 'service-not-allowed'})

DEFAULT_RESTART_DELAY = 1.0
DEFAULT_CONFIDENCE = 0.8

TimerFactory = Callable[[float, Callable[[], None]], Any]


def _daemon_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


def error_message_for(code: str) -> str:
    """Human-readable message for a speech engine error code."""
    if code in NON_RECOVERABLE_ERRORS:
        return 'Microphone permission denied'
    if code == 'network':
        return 'Network error - please check your connection'
    return f'Speech recognition error: {code}'


class RecognitionSession:
    """Listening session feeding recognized speech into a TallyStore.

    Args:
        store: TallyStore receiving transcript updates and detections
        speech_engine: Speech-to-text capability; the session registers itself
            as its listener
        audio_capture: Microphone capability; chunks are attached to detections
        config: Configuration dictionary; uses the 'recognition' section
        matcher: Optional WordMatcher (default: new instance)
        notifier: Optional audible feedback played per detection when the
            sound_enabled setting is on
        timer_factory: Creates a started, cancellable restart timer from
            (delay_seconds, callback). Default: daemon threading.Timer
    """

    def __init__(self,
                 store: TallyStore,
                 speech_engine: SpeechEngine,
                 audio_capture: AudioCapture,
                 config: Optional[Dict[str, Any]] = None,
                 matcher: Optional[WordMatcher] = None,
                 notifier: Optional[Notifier] = None,
                 timer_factory: TimerFactory = _daemon_timer) -> None:
        recognition_config = (config or {}).get('recognition', {})

        self.store: TallyStore = store
        self.speech_engine: SpeechEngine = speech_engine
        self.audio_capture: AudioCapture = audio_capture
        self.matcher: WordMatcher = matcher if matcher is not None else WordMatcher()
        self.notifier: Optional[Notifier] = notifier
        self.restart_delay: float = recognition_config.get('restart_delay', DEFAULT_RESTART_DELAY)
        self.default_confidence: float = recognition_config.get('default_confidence', DEFAULT_CONFIDENCE)

        self._timer_factory = timer_factory
        self._lock = threading.RLock()
        self._status: SessionStatus = SessionStatus.IDLE

        # keep_running: the user wants to listen; cleared by stop() and fatal errors
        self._keep_running: bool = False
        # stopping: set by stop(), cleared only by the next start()
        self._stopping: bool = False
        self._fatal_error: bool = False
        self._restart_token: Optional[object] = None
        self._restart_timer: Any = None
        # engine ends still owed for stop() calls made while ACTIVE
        self._expected_ends: int = 0

        self._final_transcript: str = ''

        self._audio_lock = threading.Lock()
        self._audio_chunks: List[bytes] = []
        self._recording: bool = False

        self.speech_engine.set_listener(self)

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            return self._status

    @property
    def restart_pending(self) -> bool:
        with self._lock:
            return self._restart_token is not None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start listening.

        No-op while already starting or active. A denied microphone moves the
        session to ERRORED without retrying.
        """
        with self._lock:
            if self._status in (SessionStatus.STARTING, SessionStatus.ACTIVE):
                logger.debug(f"start() ignored in state {self._status.name}")
                return

            self._cancel_restart()
            self._stopping = False
            self._fatal_error = False
            self._keep_running = True
            self._final_transcript = ''
            self.store.set_error(None)
            self._start_capabilities()

    def stop(self) -> None:
        """Stop listening. Safe to call repeatedly and from any state.

        Always wins over a pending auto-restart.
        """
        with self._lock:
            self._stopping = True
            self._keep_running = False
            self._cancel_restart()

            previous = self._status
            if previous is SessionStatus.ACTIVE:
                self._expected_ends += 1
            if previous in (SessionStatus.STARTING, SessionStatus.ACTIVE):
                self._status = SessionStatus.ENDING

            try:
                self.speech_engine.stop()
            except Exception as e:
                logger.warning(f"Speech engine stop failed: {e}")

            self._stop_audio()
            self.store.set_listening(False)
            self._status = SessionStatus.IDLE

        if previous is not SessionStatus.IDLE:
            logger.info(f"Recognition session stopped (was {previous.name})")

    def reset_transcript(self) -> None:
        with self._lock:
            self._final_transcript = ''
            self.store.set_transcript('')

    # ------------------------------------------------------------------
    # SpeechListener
    # ------------------------------------------------------------------

    def on_result(self, event: SpeechResultEvent) -> None:
        """Process interim and final results from the speech engine.

        Every result updates current_transcript. Final results at or above
        the confidence threshold are matched against the target words.
        """
        with self._lock:
            if self._status is not SessionStatus.ACTIVE:
                logger.debug(f"Result ignored in state {self._status.name}")
                return

            interim = ''
            threshold = self.store.state.settings.confidence_threshold

            for result in event.results[event.result_index:]:
                if not result.is_final:
                    interim += result.transcript
                    continue

                self._final_transcript += result.transcript
                confidence = result.confidence or self.default_confidence
                if confidence >= threshold:
                    self._process_final(result.transcript)
                else:
                    logger.debug(f"Final chunk below threshold "
                                 f"({confidence:.2f} < {threshold:.2f}): {result.transcript!r}")

            self.store.set_transcript(self._final_transcript + interim)

    def on_error(self, code: str) -> None:
        with self._lock:
            message = error_message_for(code)
            self.store.set_error(message)

            if code in NON_RECOVERABLE_ERRORS:
                logger.error(f"Speech recognition error '{code}': {message}")
                self._fatal_error = True
                self._keep_running = False
                self._cancel_restart()
                self._stop_audio()
                self.store.set_listening(False)
                self._status = SessionStatus.ERRORED
            else:
                logger.warning(f"Speech recognition error '{code}', restart eligible")

    def on_end(self) -> None:
        """Handle engine termination; schedule one restart if still wanted.

        An end answering an earlier stop() may arrive after the next start();
        it is consumed without touching the running session.
        """
        with self._lock:
            if self._expected_ends > 0:
                self._expected_ends -= 1
                logger.debug(f"End of stopped recognition consumed (state {self._status.name})")
                return

            logger.info(f"Speech recognition ended (keep_running={self._keep_running})")
            self.store.set_listening(False)
            self._stop_audio()

            if self._keep_running and not self._stopping and not self._fatal_error:
                self._status = SessionStatus.ENDING
                self._schedule_restart()
            elif self._status is not SessionStatus.ERRORED:
                self._status = SessionStatus.IDLE

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    def on_audio_chunk(self, chunk: bytes) -> None:
        """Buffer a microphone chunk until the next detection."""
        with self._audio_lock:
            if self._recording:
                self._audio_chunks.append(chunk)

    def _take_audio(self) -> Optional[bytes]:
        """Return and clear buffered audio in one step."""
        with self._audio_lock:
            chunks, self._audio_chunks = self._audio_chunks, []
        return b''.join(chunks) if chunks else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start_capabilities(self) -> None:
        """Start audio capture and the speech engine. Caller holds _lock."""
        self._status = SessionStatus.STARTING

        try:
            with self._audio_lock:
                self._audio_chunks = []
                self._recording = True
            self.audio_capture.start(self.on_audio_chunk)
        except MicrophonePermissionError as e:
            self._fail(f"Microphone access failed: {e}")
            return

        self.store.set_recording(True)

        try:
            self.speech_engine.start()
        except SpeechEngineError as e:
            self._fail(f"Failed to start: {e}")
            return

        self._status = SessionStatus.ACTIVE
        self.store.set_error(None)
        self.store.set_listening(True)
        logger.info("Recognition session active")

    def _fail(self, message: str) -> None:
        logger.error(message)
        self._keep_running = False
        self._stop_audio()
        self.store.set_listening(False)
        self.store.set_error(message)
        self._status = SessionStatus.ERRORED

    def _stop_audio(self) -> None:
        with self._audio_lock:
            was_recording = self._recording
            self._recording = False
            self._audio_chunks = []

        if was_recording:
            try:
                self.audio_capture.stop()
            except Exception as e:
                logger.warning(f"Audio capture stop failed: {e}")
        self.store.set_recording(False)

    def _process_final(self, transcript: str) -> None:
        state = self.store.state
        detections = self.matcher.match(transcript, state.target_words)

        for detection in detections:
            logger.info(f"Detected '{detection.term}' for target {detection.target_id}")
            self.store.increment(detection.target_id, detection.term, self._take_audio())

            if self.notifier is not None and self.store.state.settings.sound_enabled:
                try:
                    self.notifier.notify()
                except Exception as e:
                    logger.warning(f"Notification failed: {e}")

    def _schedule_restart(self) -> None:
        """Schedule exactly one restart, replacing any pending one."""
        self._cancel_restart()
        token = object()
        self._restart_token = token
        self._restart_timer = self._timer_factory(self.restart_delay, lambda: self._restart(token))
        logger.info(f"Auto-restart scheduled in {self.restart_delay}s")

    def _cancel_restart(self) -> None:
        timer = self._restart_timer
        self._restart_token = None
        self._restart_timer = None
        if timer is not None:
            timer.cancel()

    def _restart(self, token: object) -> None:
        with self._lock:
            if self._stopping or token is not self._restart_token:
                logger.debug("Stale auto-restart ignored")
                return

            self._restart_token = None
            self._restart_timer = None
            logger.info("Auto-restarting speech recognition")
            self._start_capabilities()
