"""Tests for the rotation task state machine."""

from datetime import UTC, datetime, timedelta

import pytest

from flatshare.chores.rotation import (
    assignment_preview,
    can_complete,
    can_skip,
    can_take_over,
    complete,
    move_rotation_member,
    next_assignee,
    reorder_rotation,
    rotation_order,
    skip,
    take_over,
    task_state,
    toggle_active,
)
from flatshare.exceptions import (
    InvalidRotationOrderError,
    InvalidTakeoverError,
    NotAssigneeError,
    TaskInactiveError,
    TaskNotDueError,
)
from flatshare.models import (
    CompletionRecord,
    FairnessMode,
    HouseholdSnapshot,
    Member,
    RotationTask,
    TaskState,
)

DUE = datetime(2026, 3, 2, 18, 0, tzinfo=UTC)


# Helper functions for tests
def make_task(
    rotation: list[str] | None = None,
    assignee: str | None = "A",
    **overrides,
) -> RotationTask:
    """Create a weekly RotationTask for testing."""
    fields = {
        "id": "kitchen",
        "title": "Kitchen",
        "rotation_user_ids": rotation or ["A", "B", "C"],
        "assignee_id": assignee,
        "frequency_days": 7,
        "effort_pimpers": 4.0,
        "prioritize_low_pimpers": False,
        "due_at": DUE,
    }
    fields.update(overrides)
    return RotationTask(**fields)


def make_household(
    credit: dict[str, float] | None = None,
    away: tuple[str, ...] = (),
    tasks: list[RotationTask] | None = None,
    members: tuple[str, ...] = ("A", "B", "C"),
) -> HouseholdSnapshot:
    """Create a household where each member has earned the given credit."""
    return HouseholdSnapshot(
        members=[Member(id=m, vacation_mode=m in away) for m in members],
        tasks=tasks or [],
        completions=[
            CompletionRecord(
                task_id="history", user_id=user_id, completed_at=DUE, pimpers_earned=value
            )
            for user_id, value in (credit or {}).items()
        ],
    )


class TestTaskState:
    """Test the scheduled / due / overdue states."""

    def test_before_due(self):
        assert task_state(make_task(), DUE - timedelta(minutes=1)) == TaskState.SCHEDULED

    def test_within_grace(self):
        assert task_state(make_task(), DUE + timedelta(hours=1)) == TaskState.DUE

    def test_after_grace(self):
        assert task_state(make_task(), DUE + timedelta(minutes=1441)) == TaskState.OVERDUE


class TestComplete:
    """Test completing a task cycle."""

    def test_advances_round_robin(self):
        """A completes, B is next."""
        result = complete(make_task(), "A", DUE)

        assert result.action == "complete"
        assert result.task.assignee_id == "B"
        assert result.previous_assignee_id == "A"
        assert result.completion is not None
        assert result.completion.user_id == "A"
        assert result.completion.pimpers_earned == 4.0

    def test_due_date_moves_one_interval(self):
        result = complete(make_task(), "A", DUE + timedelta(days=3))

        assert result.task.due_at == DUE + timedelta(days=7)

    def test_wraps_around(self):
        result = complete(make_task(assignee="C"), "C", DUE)

        assert result.task.assignee_id == "A"

    def test_late_completion_is_penalized(self):
        """Two days past the grace period cost half a pimper."""
        now = DUE + timedelta(minutes=1440 + 2880)

        result = complete(make_task(), "A", now)

        assert result.completion.delay_minutes == 2880
        assert result.completion.pimpers_earned == 3.5

    def test_penalty_waived_once(self):
        now = DUE + timedelta(days=5)

        result = complete(make_task(ignore_delay_penalty_once=True), "A", now)

        assert result.completion.pimpers_earned == 4.0
        assert result.completion.delay_minutes > 0
        assert result.task.ignore_delay_penalty_once is False

    def test_early_within_window(self):
        result = complete(make_task(), "A", DUE - timedelta(hours=23))

        assert result.task.assignee_id == "B"

    def test_too_early(self):
        with pytest.raises(TaskNotDueError):
            complete(make_task(), "A", DUE - timedelta(hours=25))

    def test_custom_window(self):
        result = complete(make_task(), "A", DUE - timedelta(hours=47), window_hours=48)

        assert result.completion is not None

    def test_not_assignee(self):
        with pytest.raises(NotAssigneeError) as exc_info:
            complete(make_task(), "B", DUE)

        assert exc_info.value.assignee_id == "A"
        assert exc_info.value.task_id == "kitchen"

    def test_unassigned_task_anyone_can_complete(self):
        result = complete(make_task(assignee=None), "B", DUE)

        assert result.completion.user_id == "B"
        assert result.task.assignee_id == "A"

    def test_inactive(self):
        with pytest.raises(TaskInactiveError):
            complete(make_task(is_active=False), "A", DUE)

    def test_input_not_modified(self):
        task = make_task()

        complete(task, "A", DUE)

        assert task.assignee_id == "A"
        assert task.due_at == DUE


class TestSkip:
    """Test skipping a task cycle."""

    def test_advances_without_credit(self):
        """A skips, B is next and nobody earns anything."""
        result = skip(make_task(), "A", DUE)

        assert result.action == "skip"
        assert result.task.assignee_id == "B"
        assert result.task.due_at == DUE + timedelta(days=7)
        assert result.completion is None

    def test_not_due(self):
        with pytest.raises(TaskNotDueError):
            skip(make_task(), "A", DUE - timedelta(minutes=1))

    def test_not_assignee(self):
        with pytest.raises(NotAssigneeError):
            skip(make_task(), "C", DUE)

    def test_inactive(self):
        with pytest.raises(TaskInactiveError):
            skip(make_task(is_active=False), "A", DUE)


class TestTakeOver:
    """Test doing someone else's task."""

    def test_taker_earns_credit(self):
        result = take_over(make_task(), "C", DUE)

        assert result.action == "takeover"
        assert result.completion.user_id == "C"
        assert result.previous_assignee_id == "A"

    def test_rotation_advances_from_original_assignee(self):
        """B takes over A's turn, and B is still next in the rotation."""
        result = take_over(make_task(), "B", DUE)

        assert result.task.assignee_id == "B"

    def test_fairness_counts_the_takeover_credit(self):
        """The taker's fresh credit pushes them behind a member with less."""
        household = make_household({"A": 10.0})
        task = make_task(prioritize_low_pimpers=True, fairness_mode=FairnessMode.ACTUAL)

        result = take_over(task, "B", DUE, household)

        assert result.task.assignee_id == "C"

    def test_assignee_cannot_take_over(self):
        with pytest.raises(InvalidTakeoverError):
            take_over(make_task(), "A", DUE)

    def test_no_assignee(self):
        with pytest.raises(InvalidTakeoverError):
            take_over(make_task(assignee=None), "A", DUE)

    def test_not_due(self):
        with pytest.raises(TaskNotDueError):
            take_over(make_task(), "B", DUE - timedelta(hours=1))

    def test_outsider_cannot_take_over(self):
        """Only members of the rotation may step in."""
        with pytest.raises(InvalidTakeoverError):
            take_over(make_task(), "Z", DUE + timedelta(hours=1))


class TestPermissions:
    """Test the non-raising capability checks."""

    def test_can_complete(self):
        task = make_task()

        assert can_complete(task, "A", DUE - timedelta(hours=2))
        assert not can_complete(task, "B", DUE)
        assert not can_complete(task, "A", DUE - timedelta(days=2))

    def test_can_skip(self):
        task = make_task()

        assert can_skip(task, "A", DUE)
        assert not can_skip(task, "A", DUE - timedelta(hours=2))

    def test_can_take_over(self):
        task = make_task()

        assert can_take_over(task, "B", DUE)
        assert not can_take_over(task, "A", DUE)
        assert not can_take_over(task, "Z", DUE)
        assert not can_take_over(make_task(is_active=False), "B", DUE)


class TestNextAssignee:
    """Test fair selection of the next assignee."""

    def test_round_robin_skips_vacation(self):
        household = make_household(away=("B",))

        assert next_assignee(make_task(), household) == "C"

    def test_everyone_away_falls_back_to_rotation(self):
        household = make_household(away=("A", "B", "C"))

        assert next_assignee(make_task(), household) == "B"

    def test_lowest_credit_goes_next(self):
        household = make_household({"A": 5.0, "B": 1.0, "C": 3.0})
        task = make_task(prioritize_low_pimpers=True, fairness_mode=FairnessMode.ACTUAL)

        assert next_assignee(task, household) == "B"

    def test_current_assignee_not_picked_again(self):
        household = make_household({"A": 0.0, "B": 1.0, "C": 3.0})
        task = make_task(prioritize_low_pimpers=True, fairness_mode=FairnessMode.ACTUAL)

        assert next_assignee(task, household) == "B"

    def test_vacation_sorts_last(self):
        household = make_household({"A": 5.0, "B": 1.0, "C": 3.0}, away=("B",))
        task = make_task(prioritize_low_pimpers=True, fairness_mode=FairnessMode.ACTUAL)

        assert rotation_order(task, FairnessMode.ACTUAL, household) == ["C", "A", "B"]
        assert next_assignee(task, household) == "C"

    def test_single_active_member_keeps_task(self):
        household = make_household(away=("B",), members=("A", "B"))
        task = make_task(
            rotation=["A", "B"], prioritize_low_pimpers=True, fairness_mode=FairnessMode.ACTUAL
        )

        assert next_assignee(task, household) == "A"

    def test_ties_keep_rotation_order(self):
        household = make_household()

        assert rotation_order(make_task(), FairnessMode.ACTUAL, household) == ["A", "B", "C"]

    def test_laziness_changes_order(self):
        household = HouseholdSnapshot(
            members=[Member(id="A"), Member(id="B", laziness_factor=0.5)],
            completions=[
                CompletionRecord(task_id="x", user_id="A", completed_at=DUE, pimpers_earned=3),
                CompletionRecord(task_id="x", user_id="B", completed_at=DUE, pimpers_earned=2),
            ],
        )
        task = make_task(rotation=["A", "B"])

        assert rotation_order(task, FairnessMode.ACTUAL, household) == ["B", "A"]
        assert rotation_order(
            task, FairnessMode.ACTUAL, household, laziness_enabled=True
        ) == ["A", "B"]

    def test_exempt_member_sorts_last(self):
        """A member with laziness factor zero is never preferred over active members."""
        household = HouseholdSnapshot(
            members=[Member(id="A"), Member(id="B"), Member(id="C", laziness_factor=0.0)],
            completions=[
                CompletionRecord(task_id="x", user_id="B", completed_at=DUE, pimpers_earned=2),
            ],
        )
        task = make_task(prioritize_low_pimpers=True, fairness_mode=FairnessMode.ACTUAL)

        assert rotation_order(
            task, FairnessMode.ACTUAL, household, laziness_enabled=True
        ) == ["A", "B", "C"]
        assert next_assignee(task, household, laziness_enabled=True) == "B"
        assert rotation_order(task, FairnessMode.ACTUAL, household) == ["A", "C", "B"]

    def test_expected_mode_shortens_late_members_horizon(self):
        """A habitually late member is forecast to earn less before their turn."""
        plants = make_task(
            id="plants", rotation=["B", "C"], assignee="B", frequency_days=1, effort_pimpers=2.0
        )
        task = make_task()
        household = HouseholdSnapshot(
            members=[Member(id="A"), Member(id="B"), Member(id="C")],
            tasks=[task, plants],
            completions=[
                CompletionRecord(task_id="x", user_id="A", completed_at=DUE, pimpers_earned=10),
                CompletionRecord(
                    task_id="x",
                    user_id="C",
                    completed_at=DUE,
                    delay_minutes=14400,
                    pimpers_earned=0,
                ),
            ],
        )

        # C is two turns away: 14 days of plants, or 4 after ten days of average delay
        assert rotation_order(task, FairnessMode.PROJECTION, household) == ["B", "A", "C"]
        assert rotation_order(task, FairnessMode.EXPECTED, household) == ["C", "B", "A"]


class TestAssignmentPreview:
    """Test previewing the rotation under every fairness mode."""

    def test_projection_accounts_for_other_chores(self):
        """B will earn seven pimpers from a daily chore before their turn."""
        daily = make_task(
            id="plants", rotation=["B"], assignee="B", frequency_days=1, effort_pimpers=1.0
        )
        task = make_task(rotation=["A", "B"], prioritize_low_pimpers=True)
        household = make_household({"A": 3.0}, tasks=[task, daily], members=("A", "B"))

        preview = assignment_preview(task, household)

        assert set(preview.rotation_order_by_mode) == set(FairnessMode)
        assert preview.rotation_order_by_mode[FairnessMode.ACTUAL] == ["B", "A"]
        assert preview.rotation_order_by_mode[FairnessMode.PROJECTION] == ["A", "B"]
        assert preview.next_assignee_id == "B"


class TestActivation:
    """Test pausing tasks and editing rotations."""

    def test_toggle_keeps_due_date(self):
        paused = toggle_active(make_task())

        assert paused.is_active is False
        assert paused.due_at == DUE
        assert toggle_active(paused).is_active is True

    def test_move_member(self):
        assert move_rotation_member(["A", "B", "C"], 0, 2) == ["B", "C", "A"]
        assert move_rotation_member(["A", "B", "C"], 2, 0) == ["C", "A", "B"]

    def test_move_out_of_range(self):
        with pytest.raises(IndexError):
            move_rotation_member(["A", "B"], 0, 2)

    def test_reorder(self):
        task = reorder_rotation(make_task(), ["C", "A", "B"])

        assert task.rotation_user_ids == ["C", "A", "B"]

    def test_reorder_must_be_permutation(self):
        with pytest.raises(InvalidRotationOrderError):
            reorder_rotation(make_task(), ["A", "B"])
