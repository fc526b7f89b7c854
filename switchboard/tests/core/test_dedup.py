"""Unit tests for the recent-submission cache."""

import pytest

from switchboard.core.dedup import RecentSubmissions


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recent(clock: FakeClock) -> RecentSubmissions:
    return RecentSubmissions(window_seconds=30, clock=clock)


class TestKey:
    """Tests for composite key normalization."""

    def test_strings_are_trimmed_and_lowercased(self) -> None:
        assert RecentSubmissions.key("task", " Buy MILK ") == RecentSubmissions.key(
            "task", "buy milk"
        )

    def test_none_becomes_empty(self) -> None:
        assert RecentSubmissions.key("task", None) == ("task", "")

    def test_parts_are_positional(self) -> None:
        assert RecentSubmissions.key("a", "b") != RecentSubmissions.key("b", "a")


class TestRecentSubmissions:
    """Tests for remember/get/expiry."""

    def test_remembered_key_is_found(self, recent: RecentSubmissions) -> None:
        key = RecentSubmissions.key("task", "Buy milk")
        recent.remember(key, {"id": "1"})

        assert recent.get(key) == {"id": "1"}
        assert key in recent
        assert len(recent) == 1

    def test_unknown_key(self, recent: RecentSubmissions) -> None:
        assert recent.get(("nope",)) is None
        assert ("nope",) not in recent

    def test_entry_expires_after_window(
        self, recent: RecentSubmissions, clock: FakeClock
    ) -> None:
        key = RecentSubmissions.key("email", "a@b.co")
        recent.remember(key)

        clock.advance(29.9)
        assert key in recent

        clock.advance(0.1)
        assert key not in recent
        assert len(recent) == 0

    def test_forget_and_clear(self, recent: RecentSubmissions) -> None:
        recent.remember(("a",))
        recent.remember(("b",))

        recent.forget(("a",))
        assert ("a",) not in recent

        recent.clear()
        assert len(recent) == 0

    def test_zero_window_disables_cache(self, clock: FakeClock) -> None:
        recent = RecentSubmissions(window_seconds=0, clock=clock)
        recent.remember(("a",))

        assert not recent.enabled
        assert ("a",) not in recent

    def test_negative_window_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            RecentSubmissions(window_seconds=-1)
