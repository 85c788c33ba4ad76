"""Even splitting of shared amounts and aggregation into member balances."""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from ..models import SplitTransaction

logger = logging.getLogger(__name__)

DUST_TOLERANCE = Decimal("0.004")
DEFAULT_UNIT = Decimal("0.01")


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """
    Convert a numeric value to Decimal without picking up float noise.

    Floats go through ``str`` so that 0.1 becomes Decimal("0.1") rather than
    its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _dedupe(member_ids: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for member_id in member_ids:
        seen.setdefault(member_id, None)
    return list(seen)


def split_evenly(
    amount: Decimal | float | int,
    member_ids: Sequence[str],
    unit: Decimal = DEFAULT_UNIT,
) -> dict[str, Decimal]:
    """
    Split an amount into equal shares that add back up to the amount exactly.

    Steps:
    1. Count how many whole units the amount holds
    2. Give every member the same number of units
    3. Hand leftover units out one at a time in ascending member ID order
    4. Give any sub-unit residue to the first member in ID order

    Args:
        amount: Amount to split (money or effort units)
        member_ids: Members sharing the amount; duplicates are collapsed
        unit: Smallest indivisible unit (one cent by default)

    Returns:
        Share per member, in the order the members were given
    """
    ids = _dedupe(member_ids)
    if not ids:
        return {}

    total = to_decimal(amount)
    total_units = int((total / unit).to_integral_value(rounding=ROUND_FLOOR))
    residue = total - total_units * unit
    base_units, leftover_units = divmod(total_units, len(ids))

    shares = {member_id: base_units * unit for member_id in ids}
    for index, member_id in enumerate(sorted(ids)):
        if index < leftover_units:
            shares[member_id] += unit
    if residue:
        shares[min(ids)] += residue

    assert sum(shares.values(), Decimal("0")) == total, "Split lost a remainder"

    return shares


def is_valid_transaction(transaction: SplitTransaction) -> bool:
    """
    Check whether a transaction can take part in aggregation.

    Pydantic validation already rejects bad amounts, but transactions built
    with ``model_construct`` or mutated afterwards bypass it.
    """
    try:
        amount = to_decimal(transaction.amount)
    except (InvalidOperation, TypeError, ValueError):
        return False
    if not amount.is_finite() or amount < 0:
        return False
    return bool(transaction.payer_ids) and bool(transaction.beneficiary_ids)


def balances(
    transactions: Iterable[SplitTransaction],
    member_ids: Sequence[str],
    unit: Decimal = DEFAULT_UNIT,
) -> dict[str, Decimal]:
    """
    Aggregate transactions into one signed balance per member.

    Positive means the member is owed money, negative means they owe.

    Args:
        transactions: Transactions to aggregate
        member_ids: Known members; each one gets an entry even with no activity
        unit: Smallest indivisible unit used when splitting

    Returns:
        Balance per member. Known members come first in the given order;
        IDs that only appear in transactions (e.g. removed members) follow.
    """
    result = {member_id: Decimal("0") for member_id in _dedupe(member_ids)}
    skipped = 0

    for transaction in transactions:
        if not is_valid_transaction(transaction):
            skipped += 1
            logger.warning(
                f"Excluding transaction {transaction.id or '<unsaved>'} from "
                f"balances: amount={transaction.amount!r}, "
                f"payers={len(transaction.payer_ids)}, "
                f"beneficiaries={len(transaction.beneficiary_ids)}"
            )
            continue

        paid = split_evenly(transaction.amount, transaction.payer_ids, unit)
        consumed = split_evenly(transaction.amount, transaction.beneficiary_ids, unit)

        for member_id in _dedupe([*paid, *consumed]):
            if member_id not in result:
                logger.debug(f"Transaction references unknown member {member_id}")
                result[member_id] = Decimal("0")
            result[member_id] += paid.get(member_id, Decimal("0")) - consumed.get(
                member_id, Decimal("0")
            )

    if skipped:
        logger.info(f"Computed balances with {skipped} transaction(s) excluded")

    return result


def reimbursement_preview(
    amount: Decimal | float | int,
    payer_ids: Sequence[str],
    beneficiary_ids: Sequence[str],
    tolerance: Decimal = DUST_TOLERANCE,
    unit: Decimal = DEFAULT_UNIT,
) -> list[tuple[str, Decimal]]:
    """
    Preview who gets money back from a single prospective entry.

    Returns:
        (member_id, amount owed to them) pairs above the tolerance,
        largest first. Empty for invalid input.
    """
    try:
        value = to_decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        return []
    if not value.is_finite() or value < 0 or not payer_ids or not beneficiary_ids:
        return []

    paid = split_evenly(value, payer_ids, unit)
    consumed = split_evenly(value, beneficiary_ids, unit)

    preview = [
        (member_id, paid.get(member_id, Decimal("0")) - consumed.get(member_id, Decimal("0")))
        for member_id in _dedupe([*payer_ids, *beneficiary_ids])
    ]
    return sorted(
        (entry for entry in preview if entry[1] > tolerance),
        key=lambda entry: (-entry[1], entry[0]),
    )


def paid_totals(
    transactions: Iterable[SplitTransaction], unit: Decimal = DEFAULT_UNIT
) -> list[tuple[str, Decimal]]:
    """Total paid per member across transactions, largest spender first."""
    totals: dict[str, Decimal] = {}
    for transaction in transactions:
        if not is_valid_transaction(transaction):
            continue
        for member_id, share in split_evenly(
            transaction.amount, transaction.payer_ids, unit
        ).items():
            totals[member_id] = totals.get(member_id, Decimal("0")) + share
    return sorted(totals.items(), key=lambda entry: (-entry[1], entry[0]))


def transactions_since(
    transactions: Iterable[SplitTransaction], since: datetime | None
) -> list[SplitTransaction]:
    """Transactions recorded strictly after the last cash audit (all if none)."""
    if since is None:
        return list(transactions)
    return [transaction for transaction in transactions if transaction.timestamp > since]
