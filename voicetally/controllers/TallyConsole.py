"""
TallyConsole - Line-oriented command controller for the terminal front end.

This controller only calls TallyStore and RecognitionSession. It does not
hold any tally state itself; everything it prints is read back from the
store.
"""
import shlex
from datetime import datetime
from typing import Callable, Dict, List, Optional

from voicetally import HistoryQuery
from voicetally.RecognitionSession import RecognitionSession
from voicetally.TallyStore import TallyStore
from voicetally.types import TallyState, TargetWord

HELP_TEXT = """Commands:
  start | stop | toggle           control listening
  status                          show counters and session state
  inc WORD | dec WORD             adjust a counter by hand
  reset WORD | reset-all          zero one counter / all counters and history
  add WORD [ALIAS,ALIAS] [COLOR]  add a target word
  alias WORD ALIAS,ALIAS          replace the aliases of a target word
  remove WORD                     remove a target word
  threshold VALUE                 set confidence threshold (0-1)
  sound on|off                    toggle detection sound
  history [TEXT] [YYYY-MM-DD]     list detections, optionally filtered
  clear-history                   delete detection history
  undo | redo                     step through changes
  quit                            exit"""


class TallyConsole:
    """
    Maps text commands to store and session operations.

    Attributes:
        store: TallyStore to operate on
        session: RecognitionSession for start/stop
    """

    def __init__(self, store: TallyStore, session: RecognitionSession):
        self.store = store
        self.session = session
        self._commands: Dict[str, Callable[[List[str]], str]] = {
            'help': lambda args: HELP_TEXT,
            'start': self._start,
            'stop': self._stop,
            'toggle': self._toggle,
            'status': lambda args: self.render_status(),
            'inc': self._inc,
            'dec': self._dec,
            'reset': self._reset,
            'reset-all': self._reset_all,
            'add': self._add,
            'alias': self._alias,
            'remove': self._remove,
            'threshold': self._threshold,
            'sound': self._sound,
            'history': self._history,
            'clear-history': self._clear_history,
            'undo': self._undo,
            'redo': self._redo,
        }

    def execute(self, line: str) -> str:
        """
        Run one command line.

        Returns:
            Text to show the user
        """
        try:
            parts = shlex.split(line)
        except ValueError as e:
            return f"Cannot parse command: {e}"

        if not parts:
            return ''

        handler = self._commands.get(parts[0].lower())
        if handler is None:
            return f"Unknown command '{parts[0]}'. Type 'help' for a list."
        return handler(parts[1:])

    def find_target(self, name: str) -> Optional[TargetWord]:
        """Look a target up by id or by word (case-insensitive)."""
        state = self.store.state
        target = state.find_target(name)
        if target is not None:
            return target

        wanted = name.strip().lower()
        for candidate in state.target_words:
            if candidate.word == wanted:
                return candidate
        return None

    def render_status(self) -> str:
        state = self.store.state
        lines = [f"Session: {self.session.status.name.lower()}"
                 f"{' (listening)' if state.is_listening else ''}"]
        for target in state.target_words:
            aliases = f" ({', '.join(target.homophones)})" if target.homophones else ''
            lines.append(f"  {target.word}{aliases}: {target.count}")
        if state.current_transcript:
            lines.append(f"Heard: {state.current_transcript}")
        if state.error:
            lines.append(f"Error: {state.error}")
        lines.append(f"Detections: {len(state.history)}, "
                     f"threshold {state.settings.confidence_threshold:.2f}, "
                     f"sound {'on' if state.settings.sound_enabled else 'off'}")
        return '\n'.join(lines)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _start(self, args: List[str]) -> str:
        self.session.start()
        return self._session_line()

    def _stop(self, args: List[str]) -> str:
        self.session.stop()
        return self._session_line()

    def _toggle(self, args: List[str]) -> str:
        if self.store.state.is_listening:
            return self._stop(args)
        return self._start(args)

    def _session_line(self) -> str:
        state = self.store.state
        line = f"Session: {self.session.status.name.lower()}"
        if state.error:
            line += f" - {state.error}"
        return line

    def _with_target(self, args: List[str], action: Callable[[TargetWord], TallyState]) -> str:
        if not args:
            return "Missing word"
        target = self.find_target(args[0])
        if target is None:
            return f"No target word '{args[0]}'"
        new_state = action(target)
        updated = new_state.find_target(target.id)
        return f"{target.word}: {updated.count}" if updated else f"Removed '{target.word}'"

    def _inc(self, args: List[str]) -> str:
        return self._with_target(args, lambda t: self.store.increment(t.id, t.word))

    def _dec(self, args: List[str]) -> str:
        return self._with_target(args, lambda t: self.store.decrement(t.id))

    def _reset(self, args: List[str]) -> str:
        return self._with_target(args, lambda t: self.store.reset(t.id))

    def _reset_all(self, args: List[str]) -> str:
        self.store.reset_all()
        return "All counters reset"

    def _remove(self, args: List[str]) -> str:
        return self._with_target(args, lambda t: self.store.remove_target_word(t.id))

    def _add(self, args: List[str]) -> str:
        if not args:
            return "Usage: add WORD [ALIAS,ALIAS] [COLOR]"
        homophones = args[1].split(',') if len(args) > 1 else []
        if len(args) > 2:
            added = self.store.add_target_word(args[0], homophones, args[2])
        else:
            added = self.store.add_target_word(args[0], homophones)
        if added is None:
            return "Word must not be empty"
        return f"Added '{added.word}'"

    def _alias(self, args: List[str]) -> str:
        if len(args) < 2:
            return "Usage: alias WORD ALIAS,ALIAS"
        target = self.find_target(args[0])
        if target is None:
            return f"No target word '{args[0]}'"
        updated = TargetWord(
            id=target.id,
            word=target.word,
            homophones=tuple(args[1].split(',')),
            count=target.count,
            color=target.color,
        )
        self.store.update_target_word(updated)
        aliases = self.store.state.find_target(target.id).homophones
        return f"{target.word}: {', '.join(aliases) or 'no aliases'}"

    def _threshold(self, args: List[str]) -> str:
        try:
            value = float(args[0])
        except (IndexError, ValueError):
            return "Usage: threshold VALUE (0-1)"
        self.store.update_settings(confidence_threshold=value)
        return f"Confidence threshold: {self.store.state.settings.confidence_threshold:.2f}"

    def _sound(self, args: List[str]) -> str:
        if not args or args[0].lower() not in ('on', 'off'):
            return "Usage: sound on|off"
        self.store.update_settings(sound_enabled=args[0].lower() == 'on')
        return f"Sound {args[0].lower()}"

    def _history(self, args: List[str]) -> str:
        search = ''
        day = None
        for arg in args:
            try:
                day = datetime.strptime(arg, '%Y-%m-%d').date()
            except ValueError:
                search = arg

        state = self.store.state
        events = HistoryQuery.filter_history(state.history, state.target_words, search=search, day=day)
        if not events:
            return "No detections"

        lines = []
        for group in HistoryQuery.group_by_day(events):
            lines.append(group.day.isoformat())
            for event in group.items:
                word = HistoryQuery.target_word_for(event, state.target_words) or '(removed)'
                audio = f" [{len(event.audio_blob)} bytes audio]" if event.audio_blob else ''
                lines.append(f"  {event.timestamp:%H:%M:%S} {word} <- '{event.matched_term}'{audio}")
        return '\n'.join(lines)

    def _clear_history(self, args: List[str]) -> str:
        self.store.clear_history()
        return "History cleared"

    def _undo(self, args: List[str]) -> str:
        return "Undone" if self.store.undo() else "Nothing to undo"

    def _redo(self, args: List[str]) -> str:
        return "Redone" if self.store.redo() else "Nothing to redo"
