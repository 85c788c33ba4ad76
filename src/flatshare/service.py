"""Service layer that composes the ledger and chore engines.

This module provides a higher-level API that applies household settings to
the pure engine functions and memoizes their results, so a UI can call it on
every render without recomputing unchanged snapshots.
"""

import copy
import hashlib
import json
import logging
from collections import OrderedDict
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from .chores import effort, forecast, rotation
from .config import Settings
from .ledger import rent, settlement, splitting
from .models import (
    AssignmentPreview,
    EffortScore,
    ForecastRow,
    HouseholdSnapshot,
    Member,
    RentShare,
    RotationTask,
    SettlementSummary,
    SplitTransaction,
    TransitionResult,
)

logger = logging.getLogger(__name__)


class HouseholdService:
    """Settings-aware, memoizing facade over the fairness engine."""

    def __init__(self, settings: Settings):
        """Initialize the service."""
        self.settings = settings
        self._cache: OrderedDict[str, Any] = OrderedDict()

    # ------------------------------------------------------------------
    # Memoization
    # ------------------------------------------------------------------

    def _memoized(self, operation: str, compute, *inputs: Any) -> Any:
        if self.settings.cache_size <= 0:
            return compute()

        key = compute_snapshot_hash(operation, *inputs)
        if key in self._cache:
            self._cache.move_to_end(key)
            logger.debug(f"Cache hit for {operation} ({key[:8]}...)")
            return copy.deepcopy(self._cache[key])

        result = compute()
        self._cache[key] = result
        if len(self._cache) > self.settings.cache_size:
            self._cache.popitem(last=False)
        return copy.deepcopy(result)

    def clear_cache(self) -> None:
        """Drop every memoized result."""
        self._cache.clear()

    # ------------------------------------------------------------------
    # Finances
    # ------------------------------------------------------------------

    def settlement(
        self,
        transactions: Sequence[SplitTransaction],
        member_ids: Sequence[str],
        since: datetime | None = None,
    ) -> SettlementSummary:
        """
        Compute balances and a settlement plan for the current period.

        Args:
            transactions: All finance entries of the household
            member_ids: Current household members
            since: Time of the last cash audit; earlier entries are ignored

        Returns:
            Balances per member and the transfers that settle them
        """

        def compute() -> SettlementSummary:
            period = splitting.transactions_since(transactions, since)
            member_balances = splitting.balances(
                period, member_ids, unit=self.settings.currency_unit
            )
            transfers = settlement.settle(
                member_balances, tolerance=self.settings.dust_tolerance
            )
            logger.info(
                f"Settlement over {len(period)} entries: {len(transfers)} transfers"
            )
            return SettlementSummary(balances=member_balances, transfers=transfers)

        return self._memoized(
            "settlement", compute, list(transactions), list(member_ids), since
        )

    def reimbursement_preview(
        self,
        amount: Decimal | float | int,
        payer_ids: Sequence[str],
        beneficiary_ids: Sequence[str],
    ) -> list[tuple[str, Decimal]]:
        """Who would be owed money by a prospective entry."""
        return splitting.reimbursement_preview(
            amount,
            payer_ids,
            beneficiary_ids,
            tolerance=self.settings.dust_tolerance,
            unit=self.settings.currency_unit,
        )

    def rent_shares(
        self,
        cold_rent: Decimal | float | int,
        utilities: Decimal | float | int,
        apartment_size_sqm: Decimal | float | int | None,
        members: Sequence[Member],
        utilities_on_room_sqm_percent: Decimal | float | int = 0,
    ) -> list[RentShare]:
        """Monthly housing cost share per member."""
        return rent.rent_shares(
            cold_rent,
            utilities,
            apartment_size_sqm,
            members,
            utilities_on_room_sqm_percent,
            unit=self.settings.currency_unit,
        )

    # ------------------------------------------------------------------
    # Chores
    # ------------------------------------------------------------------

    def effort_scores(self, household: HouseholdSnapshot) -> dict[str, EffortScore]:
        """Raw and scaled credit per member."""
        return self._memoized(
            "effort_scores",
            lambda: effort.effort_scores(
                household.members,
                household.completions,
                laziness_enabled=self.settings.laziness_enabled,
                floor=self.settings.laziness_floor,
            ),
            household,
        )

    def assignment_preview(
        self, task: RotationTask, household: HouseholdSnapshot
    ) -> AssignmentPreview:
        """Next assignee and rotation order under every fairness mode."""
        return self._memoized(
            "assignment_preview",
            lambda: rotation.assignment_preview(
                task,
                household,
                laziness_enabled=self.settings.laziness_enabled,
                floor=self.settings.laziness_floor,
            ),
            task,
            household,
        )

    def forecast(
        self, task: RotationTask, household: HouseholdSnapshot
    ) -> list[ForecastRow]:
        """Projected credit per rotation member until their turn."""
        return self._memoized(
            "forecast",
            lambda: forecast.forecast_rows(
                task,
                household,
                laziness_enabled=self.settings.laziness_enabled,
                floor=self.settings.laziness_floor,
            ),
            task,
            household,
        )

    def complete(
        self,
        task: RotationTask,
        user_id: str,
        now: datetime,
        household: HouseholdSnapshot | None = None,
    ) -> TransitionResult:
        """Complete a task cycle (see rotation.complete)."""
        return rotation.complete(
            task,
            user_id,
            now,
            household,
            laziness_enabled=self.settings.laziness_enabled,
            floor=self.settings.laziness_floor,
            window_hours=self.settings.early_completion_window_hours,
        )

    def skip(
        self,
        task: RotationTask,
        user_id: str,
        now: datetime,
        household: HouseholdSnapshot | None = None,
    ) -> TransitionResult:
        """Skip a task cycle (see rotation.skip)."""
        return rotation.skip(
            task,
            user_id,
            now,
            household,
            laziness_enabled=self.settings.laziness_enabled,
            floor=self.settings.laziness_floor,
        )

    def take_over(
        self,
        task: RotationTask,
        user_id: str,
        now: datetime,
        household: HouseholdSnapshot | None = None,
    ) -> TransitionResult:
        """Take over a due task (see rotation.take_over)."""
        return rotation.take_over(
            task,
            user_id,
            now,
            household,
            laziness_enabled=self.settings.laziness_enabled,
            floor=self.settings.laziness_floor,
        )

    def new_task(self, **fields: Any) -> RotationTask:
        """Create a task, filling in the household's default grace and penalty."""
        fields.setdefault("grace_period_minutes", self.settings.default_grace_period_minutes)
        fields.setdefault(
            "delay_penalty_per_day", self.settings.default_delay_penalty_per_day
        )
        return RotationTask(**fields)


def _serialize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list | tuple):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    return value


def compute_snapshot_hash(operation: str, *inputs: Any) -> str:
    """
    Compute a stable hash of an operation and its inputs.

    This is a pure function used as the memoization key: identical snapshots
    always hash the same, any changed field changes the hash.
    """
    payload = json.dumps(
        [operation, *(_serialize(item) for item in inputs)],
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(payload.encode()).hexdigest()
