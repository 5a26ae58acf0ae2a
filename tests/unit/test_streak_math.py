"""Streak arithmetic: current run with one-day grace, longest run over history."""

from datetime import date, timedelta

from linguacred.db.models import UserStreak
from linguacred.gamification.streak_service import (
    compute_current_streak,
    compute_longest_streak,
    effective_current_streak,
)

TODAY = date(2026, 3, 10)


def days_ago(*offsets: int) -> list[date]:
    """Dates ``offsets`` days before TODAY, newest first."""
    return sorted((TODAY - timedelta(days=o) for o in offsets), reverse=True)


class TestCurrentStreak:
    """Current streak walks back from the latest activity."""

    def test_no_activity(self):
        assert compute_current_streak([], TODAY) == 0

    def test_single_day_today(self):
        assert compute_current_streak(days_ago(0), TODAY) == 1

    def test_consecutive_days_ending_today(self):
        assert compute_current_streak(days_ago(0, 1, 2), TODAY) == 3

    def test_latest_yesterday_is_within_grace(self):
        """Missing today does not break the streak yet."""
        assert compute_current_streak(days_ago(1, 2, 3), TODAY) == 3

    def test_latest_two_days_ago_breaks_streak(self):
        assert compute_current_streak(days_ago(2, 3, 4), TODAY) == 0

    def test_stops_at_first_gap(self):
        assert compute_current_streak(days_ago(0, 1, 3, 4, 5), TODAY) == 2

    def test_gap_then_resume_counts_from_resume(self):
        """Activity on D and D+1, nothing on D+2..D+4, activity on D+5 -> 1."""
        d = date(2026, 3, 1)
        history = [d + timedelta(days=5), d + timedelta(days=1), d]
        assert compute_current_streak(history, d + timedelta(days=5)) == 1

    def test_future_dates_are_not_a_gap(self):
        """A row dated today in a later timezone still starts the walk."""
        assert compute_current_streak([TODAY + timedelta(days=1), TODAY], TODAY) == 2


class TestLongestStreak:
    """Longest streak is the maximal run anywhere in the history."""

    def test_empty(self):
        assert compute_longest_streak([]) == 0

    def test_single(self):
        assert compute_longest_streak([TODAY]) == 1

    def test_longest_run_in_the_past(self):
        history = days_ago(0, 10, 11, 12, 13, 20, 21)
        assert compute_longest_streak(history) == 4

    def test_order_and_duplicates_do_not_matter(self):
        history = [TODAY, TODAY - timedelta(days=1), TODAY, TODAY - timedelta(days=2)]
        assert compute_longest_streak(history) == 3

    def test_month_and_year_boundaries(self):
        history = [date(2025, 12, 30), date(2025, 12, 31), date(2026, 1, 1), date(2026, 1, 2)]
        assert compute_longest_streak(history) == 4

    def test_longest_never_below_current(self):
        for offsets in [(0,), (0, 1), (1, 2, 3, 9), (0, 2, 4), (0, 1, 2, 3, 10, 11)]:
            history = days_ago(*offsets)
            assert compute_longest_streak(history) >= compute_current_streak(history, TODAY)


class TestEffectiveStreak:
    """Stored streak as reported on a later day."""

    @staticmethod
    def stored(last: date | None, current: int = 5) -> UserStreak:
        return UserStreak(user_id=1, current_streak=current, longest_streak=current, last_activity_date=last)

    def test_no_state(self):
        assert effective_current_streak(None, TODAY) == 0

    def test_active_today(self):
        assert effective_current_streak(self.stored(TODAY), TODAY) == 5

    def test_active_yesterday(self):
        assert effective_current_streak(self.stored(TODAY - timedelta(days=1)), TODAY) == 5

    def test_lapsed(self):
        assert effective_current_streak(self.stored(TODAY - timedelta(days=2)), TODAY) == 0

    def test_never_active(self):
        assert effective_current_streak(self.stored(None, current=0), TODAY) == 0
