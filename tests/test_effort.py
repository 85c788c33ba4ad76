"""Tests for effort credit accounting."""

from datetime import UTC, datetime, timedelta

import pytest

from flatshare.chores.effort import (
    average_delay_minutes,
    delay_minutes,
    earned_credit,
    effective_laziness,
    effort_scores,
    member_of_month,
    raw_credit,
    scaled_score,
    task_stats,
    vacation_return_credit,
)
from flatshare.models import CompletionRecord, Member

BASE_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


# Helper function for tests
def make_completion(
    user_id: str,
    pimpers: float,
    delay: int = 0,
    task_id: str = "t-1",
    completed_at: datetime | None = None,
    rating: float | None = None,
) -> CompletionRecord:
    """Create a CompletionRecord for testing."""
    return CompletionRecord(
        task_id=task_id,
        user_id=user_id,
        completed_at=completed_at or BASE_TIME,
        delay_minutes=delay,
        pimpers_earned=pimpers,
        rating=rating,
    )


class TestRawCredit:
    """Test summing earned credit."""

    def test_sums_per_user(self):
        completions = [
            make_completion("a", 3),
            make_completion("b", 1.5),
            make_completion("a", 2.5),
        ]

        assert raw_credit(completions) == {"a": 5.5, "b": 1.5}

    def test_empty(self):
        assert raw_credit([]) == {}


class TestScaledScore:
    """Test laziness normalization."""

    def test_neutral_factor(self):
        assert scaled_score(10, 1.0) == 10

    def test_half_factor_doubles(self):
        assert scaled_score(10, 0.5) == 20

    def test_zero_factor_uses_floor(self):
        """Only the floor limits the score, there is no separate cap."""
        assert scaled_score(10, 0.0) == pytest.approx(100000)

    def test_negative_factor_uses_floor(self):
        assert scaled_score(10, -1.0) == pytest.approx(100000)

    def test_effective_laziness_disabled(self):
        """With the feature off every member counts as neutral."""
        assert effective_laziness(Member(id="a", laziness_factor=0.5), False) == 1.0

    def test_effective_laziness_enabled(self):
        assert effective_laziness(Member(id="a", laziness_factor=0.5), True) == 0.5


class TestEarnedCredit:
    """Test the lateness penalty."""

    def test_two_days_late(self):
        assert earned_credit(4, 2880, 0.25) == 3.5

    def test_on_time(self):
        assert earned_credit(4, 0, 0.25) == 4

    def test_partial_day_is_linear(self):
        assert earned_credit(4, 720, 1.0) == pytest.approx(3.5)

    def test_never_negative(self):
        assert earned_credit(1, 1440 * 10, 0.25) == 0

    def test_no_penalty(self):
        assert earned_credit(4, 100000, 0) == 4


class TestDelayMinutes:
    """Test lateness measured past due date plus grace."""

    def test_within_grace(self):
        due = BASE_TIME
        assert delay_minutes(due, 60, due + timedelta(minutes=59)) == 0

    def test_early(self):
        due = BASE_TIME
        assert delay_minutes(due, 0, due - timedelta(hours=3)) == 0

    def test_counts_whole_minutes_after_grace(self):
        due = BASE_TIME
        completed = due + timedelta(minutes=90, seconds=59)

        assert delay_minutes(due, 60, completed) == 30


class TestEffortScores:
    """Test per-member score assembly."""

    def test_every_member_scored(self):
        members = [Member(id="a"), Member(id="b", laziness_factor=0.5)]
        completions = [make_completion("a", 4), make_completion("gone", 9)]

        scores = effort_scores(members, completions, laziness_enabled=True)

        assert set(scores) == {"a", "b"}
        assert scores["a"].raw_credit == 4
        assert scores["a"].scaled_score == 4
        assert scores["b"].raw_credit == 0

    def test_laziness_scales_when_enabled(self):
        members = [Member(id="a", laziness_factor=0.5)]
        completions = [make_completion("a", 10)]

        assert effort_scores(members, completions, laziness_enabled=True)["a"].scaled_score == 20
        assert effort_scores(members, completions, laziness_enabled=False)["a"].scaled_score == 10


class TestStatistics:
    """Test delay averages and task statistics."""

    def test_average_delay(self):
        completions = [
            make_completion("a", 1, delay=60),
            make_completion("a", 1, delay=0),
            make_completion("b", 1, delay=30),
        ]

        assert average_delay_minutes(completions) == {"a": 30.0, "b": 30.0}

    def test_task_stats(self):
        completions = [
            make_completion("a", 1, delay=0, rating=5),
            make_completion("b", 1, delay=120, rating=3),
            make_completion("a", 1, delay=0),
            make_completion("b", 1, delay=60),
        ]

        stats = task_stats(completions)

        assert stats.total == 4
        assert stats.average_delay_minutes == 45
        assert stats.on_time_rate == 0.5
        assert stats.rating_count == 2
        assert stats.rating_average == 4

    def test_task_stats_empty(self):
        stats = task_stats([])

        assert stats.total == 0
        assert stats.rating_average is None


class TestMemberOfMonth:
    """Test picking the top contributor of a period."""

    def test_highest_credit_wins(self):
        completions = [
            make_completion("a", 3),
            make_completion("b", 5),
            make_completion("a", 1),
        ]

        winner = member_of_month(completions, BASE_TIME - timedelta(days=1), BASE_TIME)

        assert winner is not None
        assert winner.user_id == "b"
        assert winner.completion_count == 1

    def test_tie_goes_to_more_punctual(self):
        completions = [
            make_completion("a", 4, delay=60),
            make_completion("b", 4, delay=10),
        ]

        winner = member_of_month(completions, BASE_TIME, BASE_TIME)

        assert winner is not None
        assert winner.user_id == "b"

    def test_outside_range_ignored(self):
        completions = [make_completion("a", 4, completed_at=BASE_TIME - timedelta(days=40))]

        assert member_of_month(completions, BASE_TIME - timedelta(days=30), BASE_TIME) is None


class TestVacationReturnCredit:
    """Test lifting members who come back from vacation."""

    def test_lifted_to_winsorized_mean(self):
        members = [Member(id="r"), Member(id="a"), Member(id="b"), Member(id="c")]
        credit = {"r": 5.0, "a": 10.0, "b": 20.0, "c": 30.0}

        assert vacation_return_credit("r", credit, members) == pytest.approx(20.0)

    def test_outlier_is_clamped(self):
        members = [Member(id="r")] + [Member(id=f"m{i}") for i in range(11)]
        credit = {f"m{i}": 10.0 for i in range(10)}
        credit["m10"] = 1000.0

        # 90th percentile of ten 10s and one 1000 is 10, so the outlier counts as 10
        assert vacation_return_credit("r", credit, members) == pytest.approx(10.0)

    def test_never_lowered(self):
        members = [Member(id="r"), Member(id="a")]

        assert vacation_return_credit("r", {"r": 50.0, "a": 10.0}, members) == 50.0

    def test_ignores_others_on_vacation(self):
        members = [Member(id="r"), Member(id="a", vacation_mode=True)]

        assert vacation_return_credit("r", {"r": 1.0, "a": 99.0}, members) == 1.0
