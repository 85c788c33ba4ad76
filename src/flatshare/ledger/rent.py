"""Weighted split of recurring housing costs (rent and utilities)."""

import logging
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from ..models import Member, RentShare
from .splitting import DEFAULT_UNIT, to_decimal

logger = logging.getLogger(__name__)


def weighted_split(
    amount: Decimal | float | int,
    weights: Mapping[str, Decimal | float | int],
    unit: Decimal = DEFAULT_UNIT,
) -> dict[str, Decimal] | None:
    """
    Split an amount proportionally to weights, exact to the unit.

    Each share is rounded to the unit independently; the rounding residual is
    then added to the largest share (lowest member ID on ties) so the shares
    always add back up to the amount.

    Returns:
        Share per member, or None when the weights sum to zero and there is
        something to split
    """
    total = to_decimal(amount)
    decimal_weights = {member_id: to_decimal(w) for member_id, w in weights.items()}
    total_weight = sum(decimal_weights.values(), Decimal("0"))

    if total == 0:
        return {member_id: Decimal("0") for member_id in decimal_weights}
    if total_weight <= 0:
        return None

    shares = {
        member_id: (total * weight / total_weight).quantize(unit, rounding=ROUND_HALF_UP)
        for member_id, weight in decimal_weights.items()
    }

    residual = total - sum(shares.values(), Decimal("0"))
    if residual != 0:
        largest = min(shares, key=lambda member_id: (-abs(shares[member_id]), member_id))
        shares[largest] += residual
        logger.debug(f"Applied rounding adjustment of {residual} to member {largest}")

    return shares


def common_area_shares(
    amount: Decimal | float | int,
    members: Sequence[Member],
    unit: Decimal = DEFAULT_UNIT,
) -> dict[str, Decimal] | None:
    """Split a common-area cost by each member's common area factor.

    Returns None when every factor is zero.
    """
    return weighted_split(
        amount, {member.id: member.common_area_factor for member in members}, unit
    )


def _room_weights(members: Sequence[Member]) -> dict[str, Decimal]:
    return {member.id: to_decimal(member.room_size_sqm or 0.0) for member in members}


def _add(*parts: Decimal | None) -> Decimal | None:
    if any(part is None for part in parts):
        return None
    return sum(parts, Decimal("0"))  # type: ignore[arg-type]


def rent_shares(
    cold_rent: Decimal | float | int,
    utilities: Decimal | float | int,
    apartment_size_sqm: Decimal | float | int | None,
    members: Sequence[Member],
    utilities_on_room_sqm_percent: Decimal | float | int = 0,
    unit: Decimal = DEFAULT_UNIT,
) -> list[RentShare]:
    """
    Compute each member's monthly share of cold rent and utilities.

    Cold rent is priced per square meter of the apartment. Every member pays
    their own room at that price; the remaining (common) area is split by
    common area factor. Utilities are split ``utilities_on_room_sqm_percent``
    by room size and the rest by common area factor.

    Without an apartment size there is no per-sqm price, so the whole cold
    rent is billed as common area. Components whose weights are all zero come
    back as None instead of raising.

    Args:
        cold_rent: Monthly rent without utilities
        utilities: Monthly utilities
        apartment_size_sqm: Total apartment size; None or 0 if unknown
        members: Members sharing the apartment
        utilities_on_room_sqm_percent: Percentage of utilities billed by room size
        unit: Smallest currency unit

    Returns:
        One RentShare per member, in the given order
    """
    rent = to_decimal(cold_rent)
    rooms = _room_weights(members)
    total_rooms = sum(rooms.values(), Decimal("0"))
    apartment = to_decimal(apartment_size_sqm) if apartment_size_sqm is not None else None

    if apartment is None or apartment <= 0:
        logger.info("No apartment size configured; billing all cold rent as common area")
        private = {member.id: Decimal("0") for member in members}
        common = common_area_shares(rent, members, unit)
    else:
        price_per_sqm = rent / apartment
        private_total = min(price_per_sqm * total_rooms, rent).quantize(
            unit, rounding=ROUND_HALF_UP
        )
        private = weighted_split(private_total, rooms, unit)
        common = common_area_shares(rent - private_total, members, unit)

    utilities_total = to_decimal(utilities)
    room_part = (
        utilities_total * to_decimal(utilities_on_room_sqm_percent) / Decimal("100")
    ).quantize(unit, rounding=ROUND_HALF_UP)
    utilities_by_room = weighted_split(room_part, rooms, unit)
    utilities_by_common = common_area_shares(utilities_total - room_part, members, unit)

    if common is None:
        logger.warning("All common area factors are zero; common rent unavailable")

    shares = []
    for member in members:
        shares.append(
            RentShare(
                member_id=member.id,
                private_rent=private.get(member.id) if private is not None else None,
                common_rent=common.get(member.id) if common is not None else None,
                utilities=_add(
                    utilities_by_room.get(member.id) if utilities_by_room is not None else None,
                    utilities_by_common.get(member.id)
                    if utilities_by_common is not None
                    else None,
                ),
            )
        )

    return shares
