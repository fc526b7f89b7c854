"""Short-lived memory of recent create submissions.

Suppresses accidental double submission of create operations (the same
task content, the same email) arriving within a short window. It is a
best-effort, per-process guard: nothing is persisted, and a genuine
duplicate can still happen after a restart or once the window elapses.
"""

import logging
import time
from collections.abc import Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)

SubmissionKey = tuple[str, ...]


class RecentSubmissions:
    """Composite keys remembered for a fixed window."""

    def __init__(
        self,
        window_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            window_seconds: How long a submission is remembered. Zero disables
                the cache entirely.
            clock: Monotonic time source, injectable for tests.
        """
        if window_seconds < 0:
            raise ValueError(
                f"window_seconds must be non-negative, got {window_seconds}"
            )
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: dict[SubmissionKey, tuple[float, Any]] = {}

    @staticmethod
    def key(*parts: Hashable | None) -> SubmissionKey:
        """Build a composite key.

        Strings are trimmed and lower-cased so that "Buy milk" and
        " buy MILK " collide; None becomes the empty string.
        """
        normalized: list[str] = []
        for part in parts:
            if part is None:
                normalized.append("")
            elif isinstance(part, str):
                normalized.append(part.strip().lower())
            else:
                normalized.append(str(part))
        return tuple(normalized)

    @property
    def enabled(self) -> bool:
        return self.window_seconds > 0

    def _purge(self) -> None:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]

    def get(self, key: SubmissionKey) -> Any | None:
        """Return the value remembered for ``key``, or None if unknown or expired."""
        self._purge()
        entry = self._entries.get(key)
        if entry is None:
            return None
        logger.debug("Recent submission hit", extra={"key": key})
        return entry[1]

    def remember(self, key: SubmissionKey, value: Any = True) -> None:
        """Remember ``key`` (with an optional payload) for the window."""
        if not self.enabled:
            return
        self._entries[key] = (self._clock() + self.window_seconds, value)

    def forget(self, key: SubmissionKey) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, tuple) and self.get(key) is not None

    def __len__(self) -> int:
        self._purge()
        return len(self._entries)


__all__ = ["RecentSubmissions", "SubmissionKey"]
