"""Forecast how much credit members collect from other chores before their turn."""

import logging
import math
from collections.abc import Iterable, Sequence

from ..models import FairnessMode, ForecastRow, HouseholdSnapshot, RotationTask
from .effort import (
    LAZINESS_FLOOR,
    MINUTES_PER_DAY,
    average_delay_minutes,
    effective_laziness,
    raw_credit,
    scaled_score,
)

logger = logging.getLogger(__name__)


def turns_until_turn(
    rotation_order: Sequence[str], assignee_id: str | None, candidate_id: str
) -> int:
    """
    Forward distance from the current assignee to the candidate, wrapping.

    The current assignee is 0 turns away. Without a (known) assignee the
    rotation is counted from its first member. Candidates outside the rotation
    are never up, so they are reported as 0 turns away as well.
    """
    if candidate_id not in rotation_order:
        return 0
    current_index = (
        rotation_order.index(assignee_id) if assignee_id in rotation_order else 0
    )
    candidate_index = rotation_order.index(candidate_id)
    return (candidate_index - current_index) % len(rotation_order)


def horizon_days(
    task: RotationTask,
    turns: int,
    mode: FairnessMode = FairnessMode.PROJECTION,
    average_delay_minutes: float = 0.0,
) -> float:
    """
    Calendar days until the candidate's turn.

    In expected mode the horizon shrinks by the candidate's average historical
    delay, floored at zero.
    """
    days = float(turns * max(1, task.frequency_days))
    if mode == FairnessMode.EXPECTED:
        days = max(days - average_delay_minutes / MINUTES_PER_DAY, 0.0)
    return days


def projected_credit(
    task: RotationTask,
    candidate_id: str,
    rotation_order: Sequence[str],
    tasks: Iterable[RotationTask],
    mode: FairnessMode = FairnessMode.PROJECTION,
    average_delay_minutes: float = 0.0,
) -> float:
    """
    Estimate the credit a candidate earns from other chores before their turn.

    For every other active task that includes the candidate in its rotation,
    the number of whole occurrences that fit into the horizon is multiplied by
    the task's effort and divided evenly across that task's rotation.

    Args:
        task: Task whose rotation is being forecast
        candidate_id: Member to forecast for
        rotation_order: Rotation order used to count turns
        tasks: All household tasks (the task itself is skipped)
        mode: Fairness mode; expected mode shortens the horizon by delay
        average_delay_minutes: Candidate's mean historical delay

    Returns:
        Projected credit in pimpers (0 when it is the candidate's turn now)
    """
    turns = turns_until_turn(rotation_order, task.assignee_id, candidate_id)
    if turns == 0:
        return 0.0

    horizon = horizon_days(task, turns, mode, average_delay_minutes)

    total = 0.0
    for other in tasks:
        if other.id == task.id or not other.is_active:
            continue
        if not other.rotation_user_ids or candidate_id not in other.rotation_user_ids:
            continue

        occurrences = max(0, math.floor(horizon / max(1, other.frequency_days)))
        total += occurrences * other.effort_pimpers / len(other.rotation_user_ids)

    return total


def forecast_rows(
    task: RotationTask,
    household: HouseholdSnapshot,
    laziness_enabled: bool = False,
    mode: FairnessMode = FairnessMode.PROJECTION,
    floor: float = LAZINESS_FLOOR,
) -> list[ForecastRow]:
    """
    Build the fairness forecast for every rotation member of a task.

    Only rotation members the household still knows are included.

    Returns:
        One row per candidate in rotation order
    """
    rotation = [
        user_id
        for user_id in task.rotation_user_ids
        if household.get_member(user_id) is not None
    ]
    if not rotation:
        logger.debug(f"Task {task.id} has no known rotation members to forecast")
        return []

    credit = raw_credit(household.completions)
    delays = average_delay_minutes(household.completions)

    rows = []
    for candidate_id in rotation:
        current = credit.get(candidate_id, 0.0)
        projected = projected_credit(
            task,
            candidate_id,
            rotation,
            household.tasks,
            mode=mode,
            average_delay_minutes=delays.get(candidate_id, 0.0),
        )
        factor = effective_laziness(household.get_member(candidate_id), laziness_enabled)
        rows.append(
            ForecastRow(
                candidate_id=candidate_id,
                turns_until_turn=turns_until_turn(rotation, task.assignee_id, candidate_id),
                current_credit=current,
                projected_credit=projected,
                projected_total_scaled=scaled_score(current + projected, factor, floor),
            )
        )

    return rows
