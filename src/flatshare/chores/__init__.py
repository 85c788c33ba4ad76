"""Chore effort accounting, rotation scheduling and fairness forecasting."""

from .effort import (
    LAZINESS_FLOOR,
    average_delay_minutes,
    delay_minutes,
    earned_credit,
    effort_scores,
    member_of_month,
    raw_credit,
    scaled_score,
    task_stats,
    vacation_return_credit,
)
from .forecast import forecast_rows, projected_credit, turns_until_turn
from .rotation import (
    assignment_preview,
    complete,
    next_assignee,
    reorder_rotation,
    rotation_order,
    set_active,
    skip,
    take_over,
    task_state,
    toggle_active,
)

__all__ = [
    "LAZINESS_FLOOR",
    "assignment_preview",
    "average_delay_minutes",
    "complete",
    "delay_minutes",
    "earned_credit",
    "effort_scores",
    "forecast_rows",
    "member_of_month",
    "next_assignee",
    "projected_credit",
    "raw_credit",
    "reorder_rotation",
    "rotation_order",
    "scaled_score",
    "set_active",
    "skip",
    "take_over",
    "task_state",
    "task_stats",
    "toggle_active",
    "turns_until_turn",
    "vacation_return_credit",
]
