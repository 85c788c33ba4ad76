"""Rotation task state machine and fair next-assignee selection.

Every task cycles through SCHEDULED -> DUE (within grace) -> OVERDUE until its
assignee completes or skips it, or another member takes it over. Each accepted
transition returns a new task with the due date pushed forward by one interval
and the next assignee chosen; nothing is modified in place.

Who goes next is plain round robin, unless the task prioritizes members with
low credit. In that case candidates are ordered by a fairness score:

- actual:     credit earned so far
- projection: credit plus what they will earn from other chores before their turn
- expected:   like projection, with the horizon shortened by their average delay

Members on vacation sort last. Ties keep the rotation's own order.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta

from ..exceptions import (
    InvalidRotationOrderError,
    InvalidTakeoverError,
    NotAssigneeError,
    TaskInactiveError,
    TaskNotDueError,
)
from ..models import (
    AssignmentPreview,
    CompletionRecord,
    FairnessMode,
    HouseholdSnapshot,
    RotationTask,
    TaskState,
    TransitionResult,
)
from .effort import (
    LAZINESS_FLOOR,
    average_delay_minutes,
    delay_minutes,
    earned_credit,
    effective_laziness,
    raw_credit,
    scaled_score,
)
from .forecast import projected_credit

logger = logging.getLogger(__name__)

EARLY_COMPLETION_WINDOW_HOURS = 24


# =============================================================================
# STATE QUERIES
# =============================================================================


def task_state(task: RotationTask, now: datetime) -> TaskState:
    """Where the task sits in its current cycle."""
    if now < task.due_at:
        return TaskState.SCHEDULED
    if now <= task.due_at + timedelta(minutes=task.grace_period_minutes):
        return TaskState.DUE
    return TaskState.OVERDUE


def _is_assignee(task: RotationTask, user_id: str) -> bool:
    return task.assignee_id is None or task.assignee_id == user_id


def can_complete(
    task: RotationTask,
    user_id: str,
    now: datetime,
    window_hours: int = EARLY_COMPLETION_WINDOW_HOURS,
) -> bool:
    """Assignee only, and no earlier than the window before the due date."""
    return (
        task.is_active
        and _is_assignee(task, user_id)
        and task.due_at <= now + timedelta(hours=window_hours)
    )


def can_skip(task: RotationTask, user_id: str, now: datetime) -> bool:
    """Assignee only, once the task is due."""
    return task.is_active and _is_assignee(task, user_id) and now >= task.due_at


def can_take_over(task: RotationTask, user_id: str, now: datetime) -> bool:
    """Any other rotation member but the assignee, once the task is due."""
    return (
        task.is_active
        and task.assignee_id is not None
        and task.assignee_id != user_id
        and user_id in task.rotation_user_ids
        and now >= task.due_at
    )


# =============================================================================
# ORDERING
# =============================================================================


def _vacationing(household: HouseholdSnapshot | None) -> set[str]:
    if household is None:
        return set()
    return {member.id for member in household.members if member.vacation_mode}


def _active_rotation(
    task: RotationTask, household: HouseholdSnapshot | None
) -> list[str]:
    """Rotation members not on vacation; everyone if the whole rotation is away."""
    away = _vacationing(household)
    active = [user_id for user_id in task.rotation_user_ids if user_id not in away]
    return active or list(task.rotation_user_ids)


def fairness_scores(
    task: RotationTask,
    mode: FairnessMode,
    household: HouseholdSnapshot,
    laziness_enabled: bool = False,
    floor: float = LAZINESS_FLOOR,
) -> dict[str, float]:
    """Score every rotation member under a fairness mode (lower goes first)."""
    credit = raw_credit(household.completions)
    delays = average_delay_minutes(household.completions)
    order = _active_rotation(task, household)

    scores = {}
    for user_id in task.rotation_user_ids:
        total = credit.get(user_id, 0.0)
        if mode != FairnessMode.ACTUAL:
            total += projected_credit(
                task,
                user_id,
                order,
                household.tasks,
                mode=mode,
                average_delay_minutes=delays.get(user_id, 0.0),
            )
        factor = effective_laziness(household.get_member(user_id), laziness_enabled)
        scores[user_id] = scaled_score(total, factor, floor)
    return scores


def rotation_order(
    task: RotationTask,
    mode: FairnessMode,
    household: HouseholdSnapshot,
    laziness_enabled: bool = False,
    floor: float = LAZINESS_FLOOR,
) -> list[str]:
    """
    Order rotation members by fairness score, lowest first.

    Members on vacation go last. With laziness enabled, members whose factor
    is zero are exempt and sort just before them. Ties keep the rotation's
    original order.
    """
    scores = fairness_scores(task, mode, household, laziness_enabled, floor)
    away = _vacationing(household)
    exempt = {
        user_id
        for user_id in scores
        if laziness_enabled
        and effective_laziness(household.get_member(user_id), laziness_enabled) <= 0
    }
    positions: dict[str, int] = {}
    for index, user_id in enumerate(task.rotation_user_ids):
        positions.setdefault(user_id, index)

    return sorted(
        scores,
        key=lambda user_id: (
            user_id in away,
            user_id in exempt,
            scores[user_id],
            positions[user_id],
        ),
    )


def _round_robin(task: RotationTask, household: HouseholdSnapshot | None) -> str:
    rotation = task.rotation_user_ids
    current_index = (
        rotation.index(task.assignee_id) if task.assignee_id in rotation else -1
    )
    away = _vacationing(household)

    for step in range(1, len(rotation) + 1):
        candidate = rotation[(current_index + step) % len(rotation)]
        if candidate not in away:
            return candidate

    # Everyone is away: fall back to strict rotation
    return rotation[(current_index + 1) % len(rotation)]


def next_assignee(
    task: RotationTask,
    household: HouseholdSnapshot | None = None,
    laziness_enabled: bool = False,
    floor: float = LAZINESS_FLOOR,
) -> str:
    """
    Decide who takes the task after the current assignee.

    Args:
        task: Task in its current (pre-transition) state
        household: Household context; without it only round robin is possible
        laziness_enabled: Whether laziness factors scale fairness scores
        floor: Smallest laziness factor used for division

    Returns:
        Member ID of the next assignee
    """
    if household is None or not task.prioritize_low_pimpers:
        return _round_robin(task, household)

    order = rotation_order(
        task, task.fairness_mode, household, laziness_enabled, floor
    )
    if len(_active_rotation(task, household)) <= 1:
        return order[0]

    for user_id in order:
        if user_id != task.assignee_id:
            return user_id
    return order[0]


def assignment_preview(
    task: RotationTask,
    household: HouseholdSnapshot,
    laziness_enabled: bool = False,
    floor: float = LAZINESS_FLOOR,
) -> AssignmentPreview:
    """Show the next assignee and the rotation order under every fairness mode."""
    return AssignmentPreview(
        task_id=task.id,
        next_assignee_id=next_assignee(task, household, laziness_enabled, floor),
        rotation_order_by_mode={
            mode: rotation_order(task, mode, household, laziness_enabled, floor)
            for mode in FairnessMode
        },
    )


# =============================================================================
# TRANSITIONS
# =============================================================================


def _advance(
    task: RotationTask,
    household: HouseholdSnapshot | None,
    laziness_enabled: bool,
    floor: float,
) -> RotationTask:
    return task.model_copy(
        update={
            "due_at": task.due_at + timedelta(days=task.frequency_days),
            "assignee_id": next_assignee(task, household, laziness_enabled, floor),
            "ignore_delay_penalty_once": False,
        }
    )


def _record_completion(task: RotationTask, user_id: str, now: datetime) -> CompletionRecord:
    delay = delay_minutes(task.due_at, task.grace_period_minutes, now)
    penalty_per_day = 0.0 if task.ignore_delay_penalty_once else task.delay_penalty_per_day
    return CompletionRecord(
        task_id=task.id,
        user_id=user_id,
        completed_at=now,
        delay_minutes=delay,
        pimpers_earned=earned_credit(task.effort_pimpers, delay, penalty_per_day),
        due_at_snapshot=task.due_at,
    )


def _with_completion(
    household: HouseholdSnapshot | None, completion: CompletionRecord
) -> HouseholdSnapshot | None:
    if household is None:
        return None
    return household.model_copy(
        update={"completions": [*household.completions, completion]}
    )


def complete(
    task: RotationTask,
    user_id: str,
    now: datetime,
    household: HouseholdSnapshot | None = None,
    laziness_enabled: bool = False,
    floor: float = LAZINESS_FLOOR,
    window_hours: int = EARLY_COMPLETION_WINDOW_HOURS,
) -> TransitionResult:
    """
    Complete the current cycle of a task.

    Raises:
        TaskInactiveError: The task is deactivated
        NotAssigneeError: Someone other than the assignee asked
        TaskNotDueError: The due date is more than the window away
    """
    if not task.is_active:
        raise TaskInactiveError(task.id)
    if not _is_assignee(task, user_id):
        raise NotAssigneeError(task.id, user_id, task.assignee_id)
    if task.due_at > now + timedelta(hours=window_hours):
        raise TaskNotDueError(task.id, task.due_at.isoformat())

    completion = _record_completion(task, user_id, now)
    updated = _advance(
        task, _with_completion(household, completion), laziness_enabled, floor
    )

    logger.info(
        f"Task {task.id} completed by {user_id} "
        f"({completion.pimpers_earned:.2f} pimpers, {completion.delay_minutes} min late); "
        f"next: {updated.assignee_id}"
    )

    return TransitionResult(
        action="complete",
        task=updated,
        previous_assignee_id=task.assignee_id,
        completion=completion,
    )


def skip(
    task: RotationTask,
    user_id: str,
    now: datetime,
    household: HouseholdSnapshot | None = None,
    laziness_enabled: bool = False,
    floor: float = LAZINESS_FLOOR,
) -> TransitionResult:
    """
    Skip the current cycle, forfeiting its credit.

    Any challenge shown before skipping is the caller's concern; this only
    checks the task's own preconditions.

    Raises:
        TaskInactiveError: The task is deactivated
        NotAssigneeError: Someone other than the assignee asked
        TaskNotDueError: The task is not due yet
    """
    if not task.is_active:
        raise TaskInactiveError(task.id)
    if not _is_assignee(task, user_id):
        raise NotAssigneeError(task.id, user_id, task.assignee_id)
    if now < task.due_at:
        raise TaskNotDueError(task.id, task.due_at.isoformat())

    updated = _advance(task, household, laziness_enabled, floor)

    logger.info(f"Task {task.id} skipped by {user_id}; next: {updated.assignee_id}")

    return TransitionResult(
        action="skip",
        task=updated,
        previous_assignee_id=task.assignee_id,
    )


def take_over(
    task: RotationTask,
    user_id: str,
    now: datetime,
    household: HouseholdSnapshot | None = None,
    laziness_enabled: bool = False,
    floor: float = LAZINESS_FLOOR,
) -> TransitionResult:
    """
    Let another member do a due task in the assignee's place.

    The member taking over earns the completion credit. The rotation advances
    from the original assignee's position exactly as if they had completed it.

    Raises:
        TaskInactiveError: The task is deactivated
        InvalidTakeoverError: No assignee to take over from, or the requester is
            the assignee or not in the rotation
        TaskNotDueError: The task is not due yet
    """
    if not task.is_active:
        raise TaskInactiveError(task.id)
    if task.assignee_id is None:
        raise InvalidTakeoverError(
            task.id, f"Task {task.id} has no assignee; complete it instead"
        )
    if task.assignee_id == user_id:
        raise InvalidTakeoverError(
            task.id, f"{user_id} is already assigned to task {task.id}"
        )
    if user_id not in task.rotation_user_ids:
        raise InvalidTakeoverError(
            task.id, f"{user_id} is not in the rotation of task {task.id}"
        )
    if now < task.due_at:
        raise TaskNotDueError(task.id, task.due_at.isoformat())

    completion = _record_completion(task, user_id, now)
    updated = _advance(
        task, _with_completion(household, completion), laziness_enabled, floor
    )

    logger.info(
        f"Task {task.id} taken over by {user_id} from {task.assignee_id}; "
        f"next: {updated.assignee_id}"
    )

    return TransitionResult(
        action="takeover",
        task=updated,
        previous_assignee_id=task.assignee_id,
        completion=completion,
    )


def set_active(task: RotationTask, active: bool) -> RotationTask:
    """Activate or deactivate a task. The due date stays frozen either way."""
    if task.is_active == active:
        return task.model_copy()
    logger.info(f"Task {task.id} {'activated' if active else 'deactivated'}")
    return task.model_copy(update={"is_active": active})


def toggle_active(task: RotationTask) -> RotationTask:
    """Flip a task between active and inactive."""
    return set_active(task, not task.is_active)


# =============================================================================
# ROTATION EDITING
# =============================================================================


def move_rotation_member(
    order: Sequence[str], from_index: int, to_index: int
) -> list[str]:
    """Move one member to a new position, shifting the others (drag and drop)."""
    if not 0 <= from_index < len(order) or not 0 <= to_index < len(order):
        raise IndexError(
            f"Cannot move position {from_index} to {to_index} in a rotation of {len(order)}"
        )
    reordered = list(order)
    member = reordered.pop(from_index)
    reordered.insert(to_index, member)
    return reordered


def reorder_rotation(task: RotationTask, new_order: Sequence[str]) -> RotationTask:
    """
    Replace a task's rotation order.

    Raises:
        InvalidRotationOrderError: new_order is not a permutation of the rotation
    """
    if sorted(new_order) != sorted(task.rotation_user_ids):
        raise InvalidRotationOrderError(
            task.id,
            f"New rotation for task {task.id} must contain exactly the current members",
        )
    return task.model_copy(update={"rotation_user_ids": list(new_order)})
