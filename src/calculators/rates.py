"""Effective rate calculator: bracket formula plus withholding reductions."""

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import NamedTuple

from src.calculators.simples_data import BracketRow

HUNDRED = Decimal("100")
ZERO = Decimal("0")


class AdjustedRate(NamedTuple):
    """An item's rate before and after reductions, and what was removed."""

    base: Decimal
    rate: Decimal
    excluded: frozenset[str]


def effective_rate(
    rbt12: Decimal,
    brackets: Sequence[BracketRow],
    index: int,
) -> Decimal:
    """Effective rate (percent) for RBT12 in the bracket at ``index``.

    ``((RBT12 * nominal / 100) - deduction) / RBT12 * 100``. A company with no
    revenue history pays the first bracket's nominal rate.
    """
    if rbt12 <= 0:
        return brackets[0].rate
    row = brackets[index]
    return ((rbt12 * row.rate / HUNDRED) - row.deduction) / rbt12 * HUNDRED


def excluded_categories(
    *,
    municipal_tax: str,
    state_tax: str,
    iss_withheld: bool = False,
    icms_substitution: bool = False,
    fixed_fee_partnership: bool = False,
) -> frozenset[str]:
    """Tax categories collected outside the DAS for an item."""
    excluded = set()
    if iss_withheld or fixed_fee_partnership:
        excluded.add(municipal_tax)
    if icms_substitution:
        excluded.add(state_tax)
    return frozenset(excluded)


def adjust_rate(
    base_rate: Decimal,
    shares: Mapping[str, Decimal],
    excluded: frozenset[str] = frozenset(),
) -> AdjustedRate:
    """Remove the DAS share of excluded categories from a base rate.

    Each exclusion subtracts ``base_rate * share / 100``; categories missing
    from the repartition entry remove nothing. The result never goes below
    zero.
    """
    reduction = sum(
        (base_rate * shares[category] / HUNDRED for category in excluded if category in shares),
        ZERO,
    )
    return AdjustedRate(base=base_rate, rate=max(base_rate - reduction, ZERO), excluded=excluded)


def split_by_category(
    revenue: Decimal,
    adjusted: AdjustedRate,
    shares: Mapping[str, Decimal],
) -> dict[str, Decimal]:
    """Amount of the DAS attributable to each tax category.

    Each category kept in the DAS takes its share of ``revenue * base``.
    An item whose rate was floored at zero owes nothing in any category.
    """
    kept = [category for category in shares if category not in adjusted.excluded]
    if adjusted.rate <= 0:
        return {category: ZERO for category in kept}
    return {
        category: revenue * adjusted.base * shares[category] / (HUNDRED * HUNDRED)
        for category in kept
    }
