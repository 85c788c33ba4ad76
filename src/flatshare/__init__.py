"""Flatshare - Fairness accounting and settlement for shared households."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .ledger import balances, settle, split_evenly
from .models import (
    CompletionRecord,
    FairnessMode,
    HouseholdSnapshot,
    Member,
    RotationTask,
    SplitTransaction,
    Transfer,
)
from .service import HouseholdService

__all__ = [
    "Settings",
    "load_settings",
    "CompletionRecord",
    "FairnessMode",
    "HouseholdSnapshot",
    "Member",
    "RotationTask",
    "SplitTransaction",
    "Transfer",
    "balances",
    "settle",
    "split_evenly",
    "HouseholdService",
]
