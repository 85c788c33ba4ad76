"""Effort credit ("pimpers") accounting for completed chores."""

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from ..models import CompletionRecord, EffortScore, Member, MemberOfMonth, TaskStats

logger = logging.getLogger(__name__)

LAZINESS_FLOOR = 0.0001
MINUTES_PER_DAY = 1440


def raw_credit(completions: Iterable[CompletionRecord]) -> dict[str, float]:
    """Sum earned pimpers per user. Negative values never reduce credit."""
    totals: dict[str, float] = {}
    for completion in completions:
        totals[completion.user_id] = totals.get(completion.user_id, 0.0) + max(
            0.0, completion.pimpers_earned
        )
    return totals


def scaled_score(
    raw: float, laziness_factor: float, floor: float = LAZINESS_FLOOR
) -> float:
    """
    Normalize raw credit by a member's laziness factor.

    A factor of 1 is neutral and lower factors inflate the score. This is a
    household policy knob: members who agreed to do less get a lower factor so
    that their smaller contribution still compares as fair. Factors at or
    below zero are floored to avoid dividing by zero.
    """
    return raw / max(laziness_factor, floor)


def effective_laziness(member: Member | None, laziness_enabled: bool) -> float:
    """Laziness factor actually applied to a member (1 when the feature is off)."""
    if not laziness_enabled or member is None:
        return 1.0
    if not math.isfinite(member.laziness_factor):
        return 1.0
    return min(2.0, max(0.0, member.laziness_factor))


def earned_credit(
    effort_pimpers: float, delay_minutes: float, delay_penalty_per_day: float
) -> float:
    """
    Credit for a completion after the lateness penalty.

    The penalty accrues linearly per day past due date plus grace period and
    the result never drops below zero.
    """
    penalty = delay_penalty_per_day * (delay_minutes / MINUTES_PER_DAY)
    return max(effort_pimpers - penalty, 0.0)


def delay_minutes(
    due_at: datetime, grace_period_minutes: int, completed_at: datetime
) -> int:
    """Whole minutes a completion came in after due date plus grace (0 if on time)."""
    deadline = due_at + timedelta(minutes=max(grace_period_minutes, 0))
    late_by = (completed_at - deadline).total_seconds()
    return max(0, math.floor(late_by / 60))


def effort_scores(
    members: Sequence[Member],
    completions: Iterable[CompletionRecord],
    laziness_enabled: bool = False,
    floor: float = LAZINESS_FLOOR,
) -> dict[str, EffortScore]:
    """
    Compute raw and scaled effort credit for every member.

    Members without completions get zero credit; completions from users who are
    no longer members are left out.
    """
    credit = raw_credit(completions)
    scores = {}
    for member in members:
        raw = credit.get(member.id, 0.0)
        scores[member.id] = EffortScore(
            member_id=member.id,
            raw_credit=raw,
            scaled_score=scaled_score(
                raw, effective_laziness(member, laziness_enabled), floor
            ),
        )
    return scores


def average_delay_minutes(completions: Iterable[CompletionRecord]) -> dict[str, float]:
    """Mean historical delay per user across all their completions."""
    sums: dict[str, float] = {}
    counts: dict[str, int] = {}
    for completion in completions:
        sums[completion.user_id] = sums.get(completion.user_id, 0.0) + max(
            0, completion.delay_minutes
        )
        counts[completion.user_id] = counts.get(completion.user_id, 0) + 1
    return {user_id: sums[user_id] / counts[user_id] for user_id in sums}


def task_stats(completions: Sequence[CompletionRecord]) -> TaskStats:
    """Summarize completions: volume, punctuality and peer rating."""
    total = len(completions)
    if total == 0:
        return TaskStats(
            total=0, average_delay_minutes=0.0, on_time_rate=0.0, rating_count=0
        )

    delays = [max(0, completion.delay_minutes) for completion in completions]
    ratings = [
        completion.rating for completion in completions if completion.rating is not None
    ]

    return TaskStats(
        total=total,
        average_delay_minutes=sum(delays) / total,
        on_time_rate=sum(1 for delay in delays if delay <= 0) / total,
        rating_count=len(ratings),
        rating_average=sum(ratings) / len(ratings) if ratings else None,
    )


def member_of_month(
    completions: Iterable[CompletionRecord], start: datetime, end: datetime
) -> MemberOfMonth | None:
    """
    Find the member who earned the most credit within [start, end].

    Ties go to the lower average delay, then to the lower user ID.

    Returns:
        The winner, or None when nobody completed anything in the range
    """
    in_range = [
        completion
        for completion in completions
        if start <= completion.completed_at <= end
    ]
    if not in_range:
        return None

    credit = raw_credit(in_range)
    delays = average_delay_minutes(in_range)
    counts: dict[str, int] = {}
    for completion in in_range:
        counts[completion.user_id] = counts.get(completion.user_id, 0) + 1

    rows = [
        MemberOfMonth(
            user_id=user_id,
            total_pimpers=credit[user_id],
            average_delay_minutes=delays[user_id],
            completion_count=counts[user_id],
        )
        for user_id in credit
    ]
    rows.sort(key=lambda row: (-row.total_pimpers, row.average_delay_minutes, row.user_id))

    return rows[0]


def _percentile(sorted_values: Sequence[float], fraction: float) -> float:
    # Linear interpolation between closest ranks
    position = fraction * (len(sorted_values) - 1)
    lower = math.floor(position)
    upper = math.ceil(position)
    if lower == upper:
        return sorted_values[lower]
    weight = position - lower
    return sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight


def vacation_return_credit(
    member_id: str, credit: dict[str, float], members: Sequence[Member]
) -> float:
    """
    Credit a member should hold after returning from vacation.

    Returning members are lifted to the winsorized mean (10th to 90th
    percentile clamp) of the other active members' credit so they do not come
    back at the bottom of every rotation. Credit is never lowered.
    """
    own = credit.get(member_id, 0.0)
    others = sorted(
        credit.get(member.id, 0.0)
        for member in members
        if member.id != member_id and not member.vacation_mode
    )
    if not others:
        return own

    p10 = _percentile(others, 0.1)
    p90 = _percentile(others, 0.9)
    winsorized_mean = sum(min(max(value, p10), p90) for value in others) / len(others)

    logger.info(
        f"Member {member_id} returning from vacation: own credit {own:.2f}, "
        f"household winsorized mean {winsorized_mean:.2f}"
    )

    return max(own, winsorized_mean)
