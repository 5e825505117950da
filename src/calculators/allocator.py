"""Allocator: spreads the reference month's revenue over calculation items.

Each item is taxed under its own (resolved) annex at the company's RBT12,
with its own reductions; the company-level rate is the revenue-weighted
blend of the items.
"""

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import NamedTuple

from src.calculators.brackets import find_bracket_index, parse_tier, resolve_tier
from src.calculators.models import CalculationItem, ItemResult
from src.calculators.rates import (
    HUNDRED,
    ZERO,
    adjust_rate,
    effective_rate,
    excluded_categories,
    split_by_category,
)
from src.calculators.simples_data import SimplesCatalog

logger = logging.getLogger(__name__)


class Allocation(NamedTuple):
    """Totals of an allocation run."""

    items: tuple[ItemResult, ...]
    revenue: Decimal
    due: Decimal
    effective_rate: Decimal
    taxes: dict[str, Decimal]


def price_item(
    item: CalculationItem,
    rbt12: Decimal,
    fator_r: Decimal,
    catalog: SimplesCatalog,
) -> ItemResult | None:
    """Compute the DAS of one item; None when its annex is not in the catalog."""
    annex = resolve_tier(parse_tier(item.annex, catalog), fator_r)
    table = catalog.annexes.get(annex)
    if table is None:
        logger.warning(
            "Skipping item %s: annex %r not in catalog %s",
            item.activity_code,
            annex,
            catalog.version,
        )
        return None

    index = find_bracket_index(rbt12, table.brackets)
    shares = table.shares_for_band(index)
    excluded = excluded_categories(
        municipal_tax=catalog.municipal_tax,
        state_tax=catalog.state_tax,
        iss_withheld=item.iss_withheld,
        icms_substitution=item.icms_substitution,
        fixed_fee_partnership=item.fixed_fee_partnership,
    )
    adjusted = adjust_rate(effective_rate(rbt12, table.brackets, index), shares, excluded)

    return ItemResult(
        activity_code=item.activity_code,
        declared_annex=item.annex,
        annex=annex,
        bracket_index=index,
        revenue=item.revenue,
        nominal_rate=table.brackets[index].rate,
        base_rate=adjusted.base,
        effective_rate=adjusted.rate,
        due=item.revenue * adjusted.rate / HUNDRED,
        iss_withheld=item.iss_withheld,
        icms_substitution=item.icms_substitution,
        fixed_fee_partnership=item.fixed_fee_partnership,
        taxes=split_by_category(item.revenue, adjusted, shares),
    )


def allocate(
    items: Iterable[CalculationItem],
    rbt12: Decimal,
    fator_r: Decimal,
    catalog: SimplesCatalog,
) -> Allocation:
    """Price every item and sum to company-level totals.

    Items with an unknown annex contribute nothing to the totals and are left
    out of the breakdown.
    """
    results: list[ItemResult] = []
    total_revenue = ZERO
    total_due = ZERO
    taxes: dict[str, Decimal] = {}

    for item in items:
        result = price_item(item, rbt12, fator_r, catalog)
        if result is None:
            continue
        results.append(result)
        total_revenue += result.revenue
        total_due += result.due
        for category, amount in result.taxes.items():
            taxes[category] = taxes.get(category, ZERO) + amount

    blended = total_due / total_revenue * HUNDRED if total_revenue > 0 else ZERO

    return Allocation(
        items=tuple(results),
        revenue=total_revenue,
        due=total_due,
        effective_rate=blended,
        taxes=taxes,
    )
