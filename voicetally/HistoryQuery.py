"""Read-only views over the detection history.

Search, day filtering and grouping used by history listings. History entries
may reference removed targets; those still match on their detected term.
"""

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence

from voicetally.types import DetectionEvent, TargetWord


@dataclass(frozen=True)
class HistoryGroup:
    """Detections that happened on one calendar day."""
    day: date
    items: tuple[DetectionEvent, ...]


def _local_day(timestamp: datetime, tz: Optional[tzinfo]) -> date:
    if tz is not None and timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(tz)
    return timestamp.date()


def target_word_for(event: DetectionEvent, targets: Sequence[TargetWord]) -> Optional[str]:
    """Word of the target an event was counted for, None if it was removed."""
    for target in targets:
        if target.id == event.target_word_id:
            return target.word
    return None


def filter_history(history: Iterable[DetectionEvent],
                   targets: Sequence[TargetWord],
                   search: str = '',
                   day: Optional[date] = None,
                   tz: Optional[tzinfo] = None) -> List[DetectionEvent]:
    """Return events matching a search text and/or a calendar day.

    Args:
        history: Detection events in any order; order is preserved
        targets: Current target words, used to search by target word
        search: Case-insensitive substring of the target word or matched term;
            empty matches everything
        day: Only events on this day; None matches every day
        tz: Timezone used to decide the day of aware timestamps
    """
    needle = search.strip().lower()
    result: List[DetectionEvent] = []

    for event in history:
        if needle:
            word = target_word_for(event, targets) or ''
            if needle not in word.lower() and needle not in event.matched_term.lower():
                continue

        if day is not None and _local_day(event.timestamp, tz) != day:
            continue

        result.append(event)

    return result


def group_by_day(history: Iterable[DetectionEvent],
                 tz: Optional[tzinfo] = None) -> List[HistoryGroup]:
    """Group events by calendar day, newest day first.

    Events keep their original order within a day.
    """
    groups: Dict[date, List[DetectionEvent]] = {}
    for event in history:
        groups.setdefault(_local_day(event.timestamp, tz), []).append(event)

    return [HistoryGroup(day=d, items=tuple(groups[d])) for d in sorted(groups, reverse=True)]


def unique_days(history: Iterable[DetectionEvent], tz: Optional[tzinfo] = None) -> List[date]:
    """Distinct days that have detections, newest first."""
    return sorted({_local_day(event.timestamp, tz) for event in history}, reverse=True)


def detections_per_target(history: Iterable[DetectionEvent]) -> Dict[str, int]:
    """Number of history entries per target id, including removed targets."""
    counts: Dict[str, int] = {}
    for event in history:
        counts[event.target_word_id] = counts.get(event.target_word_id, 0) + 1
    return counts
