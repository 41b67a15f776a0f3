# tests/test_history_query.py
from datetime import date, datetime, timedelta, timezone

from voicetally import HistoryQuery
from voicetally.types import DetectionEvent, TargetWord

TARGETS = (
    TargetWord(id='t1', word='hello', homophones=('halo',)),
    TargetWord(id='t2', word='world'),
)


def _event(event_id, target_id, term, timestamp):
    return DetectionEvent(id=event_id, target_word_id=target_id, matched_term=term, timestamp=timestamp)


HISTORY = (
    _event('e1', 't1', 'hello', datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)),
    _event('e2', 't2', 'world', datetime(2024, 5, 1, 23, 30, tzinfo=timezone.utc)),
    _event('e3', 't1', 'halo', datetime(2024, 5, 2, 8, 0, tzinfo=timezone.utc)),
    _event('e4', 'gone', 'react', datetime(2024, 5, 3, 12, 0, tzinfo=timezone.utc)),
)


def _ids(events):
    return [e.id for e in events]


class TestFilterHistory:
    def test_no_filters_returns_everything(self):
        assert _ids(HistoryQuery.filter_history(HISTORY, TARGETS)) == ['e1', 'e2', 'e3', 'e4']

    def test_search_by_target_word(self):
        """Searching for the target word finds its homophone detections too."""
        result = HistoryQuery.filter_history(HISTORY, TARGETS, search='HELLO')

        assert _ids(result) == ['e1', 'e3']

    def test_search_by_matched_term(self):
        assert _ids(HistoryQuery.filter_history(HISTORY, TARGETS, search='hal')) == ['e3']

    def test_removed_target_matches_on_term(self):
        assert _ids(HistoryQuery.filter_history(HISTORY, TARGETS, search='react')) == ['e4']

    def test_filter_by_day(self):
        result = HistoryQuery.filter_history(HISTORY, TARGETS, day=date(2024, 5, 1))

        assert _ids(result) == ['e1', 'e2']

    def test_day_uses_given_timezone(self):
        plus_two = timezone(timedelta(hours=2))

        result = HistoryQuery.filter_history(HISTORY, TARGETS, day=date(2024, 5, 2), tz=plus_two)

        assert _ids(result) == ['e2', 'e3']

    def test_search_and_day_combined(self):
        result = HistoryQuery.filter_history(HISTORY, TARGETS, search='hello', day=date(2024, 5, 2))

        assert _ids(result) == ['e3']


def test_group_by_day_newest_first():
    groups = HistoryQuery.group_by_day(HISTORY)

    assert [g.day for g in groups] == [date(2024, 5, 3), date(2024, 5, 2), date(2024, 5, 1)]
    assert _ids(groups[2].items) == ['e1', 'e2']


def test_unique_days():
    assert HistoryQuery.unique_days(HISTORY) == [date(2024, 5, 3), date(2024, 5, 2), date(2024, 5, 1)]
    assert HistoryQuery.unique_days(()) == []


def test_target_word_for():
    assert HistoryQuery.target_word_for(HISTORY[2], TARGETS) == 'hello'
    assert HistoryQuery.target_word_for(HISTORY[3], TARGETS) is None


def test_detections_per_target():
    assert HistoryQuery.detections_per_target(HISTORY) == {'t1': 2, 't2': 1, 'gone': 1}
