"""
HistoryManager - Linear undo/redo over whole-state snapshots.

Generic over the value type; it knows nothing about tallies. Each value
stored in past/present/future is a copy made by the configured copier, so a
caller mutating an object after committing it cannot alter a snapshot.

State Machine over (past, present, future):
- commit(s): past + [present], s, []
- undo():    past[:-1], past[-1], [present] + future   (no-op if past empty)
- redo():    past + [present], future[0], future[1:]   (no-op if future empty)
"""
import copy
from typing import Callable, Generic, List, Optional, TypeVar

T = TypeVar('T')


class HistoryManager(Generic[T]):
    """
    Bounded or unbounded linear history of snapshots.

    Attributes:
        limit: Maximum number of past snapshots kept (None = unbounded)
        _copier: Callable producing an independent copy of a value
    """

    def __init__(self, initial: T, limit: Optional[int] = None,
                 copier: Callable[[T], T] = copy.deepcopy):
        """
        Initialize HistoryManager.

        Args:
            initial: Initial present value
            limit: Maximum past length; oldest snapshots are dropped beyond it
            copier: Snapshot function. Pass an identity function only for
                deeply immutable values.

        Raises ValueError
        """
        if limit is not None and limit < 0:
            raise ValueError(f"History limit must be >= 0, got: {limit}")

        self.limit = limit
        self._copier = copier
        self._past: List[T] = []
        self._present: T = copier(initial)
        self._future: List[T] = []

    @property
    def present(self) -> T:
        return self._present

    @property
    def past(self) -> tuple:
        """Past snapshots, oldest first."""
        return tuple(self._past)

    @property
    def future(self) -> tuple:
        """Future snapshots, nearest first."""
        return tuple(self._future)

    @property
    def can_undo(self) -> bool:
        return len(self._past) != 0

    @property
    def can_redo(self) -> bool:
        return len(self._future) != 0

    def commit(self, new_state: T) -> None:
        """
        Make new_state the present and discard the redo branch.

        Args:
            new_state: Value to snapshot
        """
        self._past.append(self._present)
        self._present = self._copier(new_state)
        self._future = []

        if self.limit is not None and len(self._past) > self.limit:
            del self._past[:len(self._past) - self.limit]

    def undo(self) -> bool:
        """
        Restore the most recent past snapshot.

        Returns:
            True if the present changed, False at the left edge
        """
        if not self._past:
            return False

        self._future.insert(0, self._present)
        self._present = self._past.pop()
        return True

    def redo(self) -> bool:
        """
        Restore the nearest future snapshot.

        Returns:
            True if the present changed, False at the right edge
        """
        if not self._future:
            return False

        self._past.append(self._present)
        self._present = self._future.pop(0)
        return True

    def replace_present(self, state: T) -> None:
        """Rewrite the present without creating an undo step."""
        self._present = self._copier(state)

    def clear(self) -> None:
        """Drop all past and future snapshots, keeping the present."""
        self._past = []
        self._future = []
