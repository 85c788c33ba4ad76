"""Rich tables for presenting engine results.

Amounts are rounded to two decimals here and nowhere else. Rows that refer to
members the household no longer knows are left out, since they have no name
to show.
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from rich.table import Table

from .models import EffortScore, ForecastRow, Member, RentShare, Transfer

logger = logging.getLogger(__name__)

MISSING = "-"


def format_amount(value: Decimal | float | None) -> str:
    """Format an amount with two decimals, or a dash when unavailable."""
    if value is None:
        return MISSING
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if not value.is_finite():
        return MISSING
    return f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):,.2f}"


def _labels(members: Sequence[Member]) -> dict[str, str]:
    return {member.id: member.label for member in members}


def balance_table(
    balances: Mapping[str, Decimal], members: Sequence[Member]
) -> Table:
    """Balance per member, largest credit first."""
    labels = _labels(members)
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Balance", justify="right")

    for member_id, balance in sorted(balances.items(), key=lambda item: -item[1]):
        if member_id not in labels:
            logger.debug(f"Omitting unresolved member {member_id} from balances")
            continue
        style = "green" if balance > 0 else "red" if balance < 0 else None
        table.add_row(labels[member_id], format_amount(balance), style=style)

    return table


def transfer_table(transfers: Sequence[Transfer], members: Sequence[Member]) -> Table:
    """Settlement plan as From / To / Amount rows."""
    labels = _labels(members)
    table = Table(title="Settlement", show_header=True, header_style="bold magenta")
    table.add_column("From", style="red")
    table.add_column("To", style="green")
    table.add_column("Amount", justify="right")

    for transfer in transfers:
        if transfer.from_member_id not in labels or transfer.to_member_id not in labels:
            logger.debug(
                f"Omitting transfer {transfer.from_member_id} -> "
                f"{transfer.to_member_id}: unresolved member"
            )
            continue
        table.add_row(
            labels[transfer.from_member_id],
            labels[transfer.to_member_id],
            format_amount(transfer.amount),
        )

    return table


def effort_table(
    scores: Mapping[str, EffortScore], members: Sequence[Member]
) -> Table:
    """Raw and scaled credit per member, highest scaled score first."""
    labels = _labels(members)
    table = Table(title="Pimpers", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Raw", justify="right")
    table.add_column("Scaled", justify="right")

    for score in sorted(scores.values(), key=lambda s: (-s.scaled_score, s.member_id)):
        if score.member_id not in labels:
            continue
        table.add_row(
            labels[score.member_id],
            format_amount(score.raw_credit),
            format_amount(score.scaled_score),
        )

    return table


def forecast_table(rows: Sequence[ForecastRow], members: Sequence[Member]) -> Table:
    """Fairness forecast for one task's rotation."""
    labels = _labels(members)
    table = Table(title="Forecast", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Turns", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Until turn", justify="right")
    table.add_column("Projected (scaled)", justify="right", style="yellow")

    for row in rows:
        if row.candidate_id not in labels:
            continue
        table.add_row(
            labels[row.candidate_id],
            str(row.turns_until_turn),
            format_amount(row.current_credit),
            format_amount(row.projected_credit),
            format_amount(row.projected_total_scaled),
        )

    return table


def rent_table(shares: Sequence[RentShare], members: Sequence[Member]) -> Table:
    """Monthly housing cost per member; unavailable components show a dash."""
    labels = _labels(members)
    table = Table(title="Rent", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Room", justify="right")
    table.add_column("Common", justify="right")
    table.add_column("Utilities", justify="right")
    table.add_column("Total", justify="right", style="bold")

    for share in shares:
        if share.member_id not in labels:
            continue
        table.add_row(
            labels[share.member_id],
            format_amount(share.private_rent),
            format_amount(share.common_rent),
            format_amount(share.utilities),
            format_amount(share.total),
        )

    return table
