"""Shared-expense ledger: splitting, balances and settlement."""

from .rent import common_area_shares, rent_shares, weighted_split
from .settlement import apply_transfers, settle
from .splitting import (
    DUST_TOLERANCE,
    balances,
    paid_totals,
    reimbursement_preview,
    split_evenly,
    transactions_since,
)

__all__ = [
    "DUST_TOLERANCE",
    "apply_transfers",
    "balances",
    "common_area_shares",
    "paid_totals",
    "reimbursement_preview",
    "rent_shares",
    "settle",
    "split_evenly",
    "transactions_since",
    "weighted_split",
]
