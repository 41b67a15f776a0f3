# tests/test_history_manager.py
import pytest

from voicetally.HistoryManager import HistoryManager


class TestHistoryManager:
    """Linear undo/redo over snapshots."""

    def test_initial_state(self):
        history = HistoryManager(0)

        assert history.present == 0
        assert history.past == ()
        assert history.future == ()
        assert not history.can_undo
        assert not history.can_redo

    def test_commit_undo_redo(self):
        history = HistoryManager('a')
        history.commit('b')
        history.commit('c')

        assert history.undo() is True
        assert history.present == 'b'
        assert history.future == ('c',)

        assert history.undo() is True
        assert history.present == 'a'
        assert history.undo() is False
        assert history.present == 'a'

        assert history.redo() is True
        assert history.redo() is True
        assert history.present == 'c'
        assert history.redo() is False

    def test_undo_then_redo_restores_same_triple(self):
        history = HistoryManager(1)
        for value in (2, 3, 4):
            history.commit(value)
        history.undo()
        before = (history.past, history.present, history.future)

        history.undo()
        history.redo()

        assert (history.past, history.present, history.future) == before

    def test_commit_discards_future(self):
        history = HistoryManager(1)
        history.commit(2)
        history.undo()
        assert history.can_redo

        history.commit(3)

        assert history.future == ()
        assert history.past == (1,)
        assert history.present == 3

    def test_limit_drops_oldest(self):
        history = HistoryManager(0, limit=2)
        for value in range(1, 5):
            history.commit(value)

        assert history.past == (2, 3)
        assert history.present == 4

    def test_zero_limit_disables_undo(self):
        history = HistoryManager(0, limit=0)
        history.commit(1)

        assert not history.can_undo
        assert history.present == 1

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            HistoryManager(0, limit=-1)

    def test_snapshots_are_copies(self):
        """Mutating a committed object must not alter the snapshot."""
        value = {'count': 1}
        history = HistoryManager(value)
        value['count'] = 99

        assert history.present == {'count': 1}

        newer = {'count': 2}
        history.commit(newer)
        newer['count'] = 42
        history.undo()
        history.redo()

        assert history.present == {'count': 2}

    def test_replace_present_keeps_past_and_future(self):
        history = HistoryManager('a')
        history.commit('b')
        history.commit('c')
        history.undo()

        history.replace_present('B')

        assert history.past == ('a',)
        assert history.present == 'B'
        assert history.future == ('c',)

    def test_clear(self):
        history = HistoryManager(1)
        history.commit(2)
        history.commit(3)
        history.undo()

        history.clear()

        assert history.present == 2
        assert not history.can_undo
        assert not history.can_redo
