import logging
from collections import deque

logger = logging.getLogger(__name__)


class TraversalQueue:
    """Work queue of directory paths pending a listing call.

    Breadth-first and first-in first-out, so discovery order only depends
    on the order listings are returned in.
    """

    def __init__(self, root: str = ""):
        self._pending: deque[str] = deque([root])
        self._seen: set[str] = {root}
        self._completed: list[str] = []

    def add_pending(self, paths: list[str]) -> None:
        """Add directories to the queue (skipping already seen)."""
        for path in paths:
            if path not in self._seen:
                self._seen.add(path)
                self._pending.append(path)

    def get_next(self) -> str | None:
        """Pop next pending directory."""
        return self._pending.popleft() if self._pending else None

    def mark_completed(self, path: str) -> None:
        """Record a directory as listed."""
        self._completed.append(path)

    @property
    def completed(self) -> list[str]:
        return list(self._completed)

    @property
    def is_empty(self) -> bool:
        """Check if queue has no pending directories."""
        return len(self._pending) == 0
