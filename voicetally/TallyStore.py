"""
TallyStore - Authoritative container for TallyState with undo/redo.

Commands are computed by the pure functions in voicetally.transitions and the
result is committed to a HistoryManager. Observers are notified with
(old_state, new_state) after every change.

Two kinds of change:
- Tally commands (counts, targets, history, settings): committed as an undo
  step and saved to storage.
- Runtime status (listening, recording, transcript, error): replace the
  present state only. Undo/redo keeps the live status fields.

State mutations are protected by threading.RLock; observers are called
outside the lock.
"""
import logging
import threading
from typing import Any, Callable, Iterable, List, Optional

from voicetally import transitions
from voicetally.errors import StorageUnavailableError
from voicetally.HistoryManager import HistoryManager
from voicetally.protocols import TallyStorage
from voicetally.TermNormalizer import TermNormalizer
from voicetally.types import TallyState, TargetWord, default_tally_state

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = 'voiceTallyState'

StateObserver = Callable[[TallyState, TallyState], None]


def _identity(state: TallyState) -> TallyState:
    # TallyState is frozen all the way down, so sharing is a value snapshot
    return state


class TallyStore:
    """
    Holds the live TallyState and applies commands to it.

    Attributes:
        storage_key: Key the state is saved under
        _history: Undo/redo snapshots; its present is the live state
        _storage: Optional persistence backend
        _storage_failed: Set after the first write failure; the store then
            keeps working in memory only
    """

    def __init__(self,
                 initial_state: Optional[TallyState] = None,
                 storage: Optional[TallyStorage] = None,
                 storage_key: str = DEFAULT_STORAGE_KEY,
                 undo_limit: Optional[int] = None,
                 normalizer: Optional[TermNormalizer] = None,
                 id_factory: transitions.IdFactory = transitions.new_id,
                 clock: transitions.Clock = transitions.utc_now):
        """
        Initialize TallyStore.

        Args:
            initial_state: Starting state (default: three preset words)
            storage: Persistence backend, None for in-memory only
            storage_key: Key used with storage
            undo_limit: Maximum undo depth (None = unbounded)
            normalizer: Normalizer for added/updated target words
            id_factory: Generates target and detection ids
            clock: Timestamp source for detections
        """
        if initial_state is None:
            initial_state = default_tally_state()

        self.storage_key = storage_key
        self._storage = storage
        self._storage_failed = False
        self._normalizer = normalizer if normalizer is not None else TermNormalizer()
        self._id_factory = id_factory
        self._clock = clock

        self._lock = threading.RLock()
        self._history: HistoryManager[TallyState] = HistoryManager(
            initial_state, limit=undo_limit, copier=_identity
        )
        self._observers: List[StateObserver] = []

    @classmethod
    def load_or_default(cls, storage: TallyStorage,
                        storage_key: str = DEFAULT_STORAGE_KEY,
                        **kwargs: Any) -> 'TallyStore':
        """
        Create a store from persisted state, or the default state when absent.

        Runtime status fields of the loaded state are reset. An unreadable
        store is logged and treated as absent.

        Args:
            storage: Persistence backend
            storage_key: Key to load and save under
            **kwargs: Passed to the constructor
        """
        try:
            loaded = storage.load(storage_key)
        except StorageUnavailableError as e:
            logger.warning(f"Could not load tally state, using defaults: {e}")
            loaded = None

        if loaded is None:
            logger.info("No stored tally state, starting with default target words")
            initial = default_tally_state()
        else:
            initial = transitions.clear_runtime_status(loaded)
            logger.info(f"Loaded tally state: {len(initial.target_words)} words, "
                        f"{len(initial.history)} detections")

        return cls(initial, storage=storage, storage_key=storage_key, **kwargs)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> TallyState:
        with self._lock:
            return self._history.present

    @property
    def can_undo(self) -> bool:
        with self._lock:
            return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        with self._lock:
            return self._history.can_redo

    @property
    def persistence_enabled(self) -> bool:
        return self._storage is not None and not self._storage_failed

    def register_observer(self, observer: StateObserver) -> None:
        """
        Args:
            observer: Callable that receives (old_state, new_state)
        """
        with self._lock:
            self._observers.append(observer)

    # ------------------------------------------------------------------
    # Tally commands
    # ------------------------------------------------------------------

    def increment(self, target_id: str, matched_term: str,
                  audio_blob: Optional[bytes] = None) -> TallyState:
        return self._commit('increment', lambda s: transitions.increment(
            s, target_id, matched_term, audio_blob,
            id_factory=self._id_factory, clock=self._clock,
        ))

    def decrement(self, target_id: str) -> TallyState:
        return self._commit('decrement', lambda s: transitions.decrement(s, target_id))

    def reset(self, target_id: str) -> TallyState:
        return self._commit('reset', lambda s: transitions.reset(s, target_id))

    def reset_all(self) -> TallyState:
        return self._commit('reset_all', transitions.reset_all)

    def add_target_word(self, word: str, homophones: Iterable[str] = (),
                        color: str = transitions.DEFAULT_COLOR) -> Optional[TargetWord]:
        """
        Add a target word.

        Returns:
            The new TargetWord, or None if the word was blank
        """
        homophones = tuple(homophones)
        target_id = self._id_factory()
        after = self._commit('add_target_word', lambda s: transitions.add_target_word(
            s, word, homophones, color,
            normalizer=self._normalizer, id_factory=lambda: target_id,
        ))
        return after.find_target(target_id)

    def remove_target_word(self, target_id: str) -> TallyState:
        return self._commit('remove_target_word', lambda s: transitions.remove_target_word(s, target_id))

    def update_target_word(self, target_word: TargetWord) -> TallyState:
        return self._commit('update_target_word', lambda s: transitions.update_target_word(
            s, target_word, normalizer=self._normalizer,
        ))

    def update_settings(self, **changes: Any) -> TallyState:
        return self._commit('update_settings', lambda s: transitions.update_settings(s, **changes))

    def clear_history(self) -> TallyState:
        return self._commit('clear_history', transitions.clear_history)

    def undo(self) -> bool:
        """
        Step back one committed change.

        Returns:
            True if the state changed
        """
        return self._travel('undo', self._history.undo)

    def redo(self) -> bool:
        """
        Step forward one undone change.

        Returns:
            True if the state changed
        """
        return self._travel('redo', self._history.redo)

    # ------------------------------------------------------------------
    # Runtime status
    # ------------------------------------------------------------------

    def set_listening(self, is_listening: bool) -> TallyState:
        return self._replace(lambda s: transitions.set_listening(s, is_listening))

    def set_recording(self, is_recording: bool) -> TallyState:
        return self._replace(lambda s: transitions.set_recording(s, is_recording))

    def set_transcript(self, transcript: str) -> TallyState:
        return self._replace(lambda s: transitions.set_transcript(s, transcript))

    def set_error(self, error: Optional[str]) -> TallyState:
        return self._replace(lambda s: transitions.set_error(s, error))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self, command: str, transition: Callable[[TallyState], TallyState]) -> TallyState:
        with self._lock:
            old_state = self._history.present
            new_state = transition(old_state)

            if new_state is old_state:
                logger.debug(f"Command {command}: no change")
                return old_state

            self._history.commit(new_state)
            self._persist(new_state)
            logger.debug(f"Command {command}: committed, "
                         f"counts={[(t.word, t.count) for t in new_state.target_words]}")

        self._notify_observers(old_state, new_state)
        return new_state

    def _replace(self, transition: Callable[[TallyState], TallyState]) -> TallyState:
        with self._lock:
            old_state = self._history.present
            new_state = transition(old_state)

            if new_state is old_state:
                return old_state

            self._history.replace_present(new_state)

        self._notify_observers(old_state, new_state)
        return new_state

    def _travel(self, direction: str, step: Callable[[], bool]) -> bool:
        with self._lock:
            old_state = self._history.present
            if not step():
                logger.debug(f"{direction}: nothing to {direction}")
                return False

            restored = transitions.with_runtime_status(self._history.present, old_state)
            self._history.replace_present(restored)
            self._persist(restored)
            logger.debug(f"{direction}: restored state with {len(restored.history)} detections")

        self._notify_observers(old_state, restored)
        return True

    def _persist(self, state: TallyState) -> None:
        if not self.persistence_enabled:
            return

        try:
            self._storage.save(self.storage_key, state)
        except StorageUnavailableError as e:
            self._storage_failed = True
            logger.warning(f"Saving tally state failed, continuing in memory only: {e}")

    def _notify_observers(self, old_state: TallyState, new_state: TallyState) -> None:
        with self._lock:
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(old_state, new_state)
            except Exception as e:
                logger.error(f"State observer failed: {e}", exc_info=True)
