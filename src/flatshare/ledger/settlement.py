"""Greedy debt simplification: turn balances into a short list of transfers."""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from ..models import Transfer
from .splitting import DUST_TOLERANCE, to_decimal

logger = logging.getLogger(__name__)


def _largest(side: list[list]) -> list:
    # Descending magnitude, ties broken by ascending member ID
    side.sort(key=lambda entry: (-entry[1], entry[0]))
    return side[0]


def settle(
    balances: Mapping[str, Decimal | float | int],
    tolerance: Decimal = DUST_TOLERANCE,
) -> list[Transfer]:
    """
    Compute transfers that bring every balance back to (about) zero.

    Greedy approach:
    1. Split members into creditors (balance > tolerance) and debtors
       (balance < -tolerance)
    2. Pick the largest remaining creditor and the largest remaining debtor
    3. Transfer the smaller of the two magnitudes from debtor to creditor
    4. Drop whoever is now within tolerance and repeat

    Each step clears at least one side, so the loop ends after at most
    len(creditors) + len(debtors) - 1 transfers. The result is not guaranteed
    to use the fewest possible transfers.

    Args:
        balances: Signed balance per member (positive = owed money)
        tolerance: Amounts at or below this are treated as settled dust

    Returns:
        Ordered list of transfers
    """
    creditors: list[list] = []
    debtors: list[list] = []
    for member_id, raw_balance in balances.items():
        balance = to_decimal(raw_balance)
        if not balance.is_finite():
            logger.warning(f"Ignoring non-finite balance for member {member_id}")
            continue
        if balance > tolerance:
            creditors.append([member_id, balance])
        elif balance < -tolerance:
            debtors.append([member_id, -balance])

    transfers: list[Transfer] = []

    while creditors and debtors:
        creditor = _largest(creditors)
        debtor = _largest(debtors)
        amount = min(creditor[1], debtor[1])

        if amount > tolerance:
            transfers.append(
                Transfer(
                    from_member_id=debtor[0],
                    to_member_id=creditor[0],
                    amount=amount,
                )
            )

        creditor[1] -= amount
        debtor[1] -= amount

        if creditor[1] <= tolerance:
            creditors.remove(creditor)
        if debtor[1] <= tolerance:
            debtors.remove(debtor)

    if creditors or debtors:
        # Only possible when the balances did not sum to zero
        leftover = sum((entry[1] for entry in creditors), Decimal("0")) - sum(
            (entry[1] for entry in debtors), Decimal("0")
        )
        logger.warning(f"Settlement left an unmatched residual of {leftover}")

    logger.debug(f"Settled {len(balances)} balances with {len(transfers)} transfers")

    return transfers


def apply_transfers(
    balances: Mapping[str, Decimal | float | int], transfers: Iterable[Transfer]
) -> dict[str, Decimal]:
    """
    Return the balances left after every transfer has been paid.

    The sender's debt shrinks (balance goes up) and the receiver's credit
    shrinks (balance goes down). The input mapping is not modified.
    """
    remaining = {member_id: to_decimal(value) for member_id, value in balances.items()}
    for transfer in transfers:
        remaining[transfer.from_member_id] = (
            remaining.get(transfer.from_member_id, Decimal("0")) + transfer.amount
        )
        remaining[transfer.to_member_id] = (
            remaining.get(transfer.to_member_id, Decimal("0")) - transfer.amount
        )
    return remaining
