"""Pydantic domain models for Flatshare."""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

# ============================================================================
# Household Models
# ============================================================================


class Member(BaseModel):
    """A household member as seen by the engine (read-only)."""

    id: str
    display_name: str | None = None
    laziness_factor: float = Field(default=1.0, ge=0.0, le=2.0)
    vacation_mode: bool = False
    common_area_factor: float = Field(default=1.0, ge=0.0, le=2.0)
    room_size_sqm: float | None = Field(default=None, ge=0.0)

    @property
    def label(self) -> str:
        """Name shown in tables, falling back to the member ID."""
        return self.display_name or self.id


# ============================================================================
# Finance Models
# ============================================================================


class SplitTransaction(BaseModel):
    """A shared cost (or effort event) split between payers and beneficiaries.

    Finance entries and chore-effort events are both normalized into this
    shape. Construction validates the amount; the ledger still skips
    transactions built with ``model_construct`` that carry bad values.
    """

    id: str | None = None
    amount: Decimal = Field(ge=0)
    payer_ids: list[str] = Field(default_factory=list)
    beneficiary_ids: list[str] = Field(default_factory=list)
    timestamp: datetime
    description: str = ""


class Transfer(BaseModel):
    """A single point-to-point payment in a settlement plan."""

    from_member_id: str
    to_member_id: str
    amount: Decimal = Field(gt=0)


class SettlementSummary(BaseModel):
    """Balances and the transfer plan that zeroes them."""

    balances: dict[str, Decimal]
    transfers: list[Transfer]

    @property
    def is_settled(self) -> bool:
        """True when nobody owes anybody anything."""
        return not self.transfers


class RentShare(BaseModel):
    """One member's part of the monthly housing costs.

    A component is None when it could not be computed (no weights to split by).
    """

    member_id: str
    private_rent: Decimal | None
    common_rent: Decimal | None
    utilities: Decimal | None

    @property
    def total(self) -> Decimal | None:
        parts = (self.private_rent, self.common_rent, self.utilities)
        if any(part is None for part in parts):
            return None
        return sum(parts, Decimal("0"))


# ============================================================================
# Chore Models
# ============================================================================


class FairnessMode(StrEnum):
    """Policy deciding which score orders rotation candidates."""

    ACTUAL = "actual"
    PROJECTION = "projection"
    EXPECTED = "expected"


class TaskState(StrEnum):
    """Where a rotation task currently sits within its cycle."""

    SCHEDULED = "scheduled"
    DUE = "due"
    OVERDUE = "overdue"


class RotationTask(BaseModel):
    """A recurring chore passed around a fixed rotation of members."""

    id: str
    title: str = ""
    rotation_user_ids: list[str] = Field(min_length=1)
    assignee_id: str | None = None
    frequency_days: int = Field(ge=1)
    effort_pimpers: float = Field(gt=0)
    grace_period_minutes: int = Field(default=1440, ge=0)
    delay_penalty_per_day: float = Field(default=0.25, ge=0)
    prioritize_low_pimpers: bool = True
    fairness_mode: FairnessMode = FairnessMode.EXPECTED
    is_active: bool = True
    due_at: datetime
    ignore_delay_penalty_once: bool = False


class CompletionRecord(BaseModel):
    """Immutable record of a completed chore cycle."""

    task_id: str
    user_id: str
    completed_at: datetime
    delay_minutes: int = Field(default=0, ge=0)
    pimpers_earned: float = Field(ge=0)
    due_at_snapshot: datetime | None = None
    rating: float | None = Field(default=None, ge=1, le=5)


class EffortScore(BaseModel):
    """Raw and laziness-normalized effort credit for one member."""

    member_id: str
    raw_credit: float
    scaled_score: float


class TransitionResult(BaseModel):
    """Outcome of an accepted rotation task transition.

    ``task`` is a new object; the input task is never modified.
    """

    action: Literal["complete", "skip", "takeover"]
    task: RotationTask
    previous_assignee_id: str | None
    completion: CompletionRecord | None = None


class AssignmentPreview(BaseModel):
    """Who gets the task next and how each fairness mode would order the rotation."""

    task_id: str
    next_assignee_id: str | None
    rotation_order_by_mode: dict[FairnessMode, list[str]]


class ForecastRow(BaseModel):
    """Projected effort credit for one rotation candidate."""

    candidate_id: str
    turns_until_turn: int
    current_credit: float
    projected_credit: float
    projected_total_scaled: float


class TaskStats(BaseModel):
    """Aggregate completion statistics for a task or a member."""

    total: int
    average_delay_minutes: float
    on_time_rate: float
    rating_count: int
    rating_average: float | None = None


class MemberOfMonth(BaseModel):
    """Top contributor within a date range."""

    user_id: str
    total_pimpers: float
    average_delay_minutes: float
    completion_count: int


# ============================================================================
# Snapshot
# ============================================================================


class HouseholdSnapshot(BaseModel):
    """Everything the chore engine needs to know about a household at one instant."""

    members: list[Member] = Field(default_factory=list)
    tasks: list[RotationTask] = Field(default_factory=list)
    completions: list[CompletionRecord] = Field(default_factory=list)

    @property
    def member_ids(self) -> list[str]:
        return [member.id for member in self.members]

    def get_member(self, member_id: str) -> Member | None:
        """Look up a member by ID, None when the ID is unknown."""
        for member in self.members:
            if member.id == member_id:
                return member
        return None
