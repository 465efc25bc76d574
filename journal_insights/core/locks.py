import threading
from contextlib import contextmanager
from typing import Hashable, Iterator, Set

from journal_insights.core.errors import InsightRunInProgressError


class UserLockRegistry:
    """Tracks users with a run in progress; runs for different users never contend."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._active: Set[Hashable] = set()

    def is_locked(self, user_id: Hashable) -> bool:
        with self._guard:
            return user_id in self._active

    def active_count(self) -> int:
        with self._guard:
            return len(self._active)

    @contextmanager
    def hold(self, user_id: Hashable) -> Iterator[None]:
        """
        Marks the user's run as in progress for the duration of the block.
        The entry is dropped on exit, so idle users hold no state.

        Raises:
            InsightRunInProgressError: If another run for the same user is active.
        """
        with self._guard:
            if user_id in self._active:
                raise InsightRunInProgressError(f"Insight run already in progress for user {user_id}")
            self._active.add(user_id)
        try:
            yield
        finally:
            with self._guard:
                self._active.discard(user_id)


insight_run_locks = UserLockRegistry()
