"""Trailing 12-month simulated rate series for charts and reports."""

from decimal import Decimal

from src.calculators.aggregator import (
    RBT12_WINDOW,
    calculate_fator_r,
    calculate_rbt12,
    shift_month,
)
from src.calculators.brackets import find_bracket_index, parse_tier, resolve_tier
from src.calculators.models import Company, HistoryPoint
from src.calculators.rates import ZERO, effective_rate
from src.calculators.simples_data import SimplesCatalog


def build_history(
    company: Company,
    reference_month: str,
    catalog: SimplesCatalog,
) -> list[HistoryPoint]:
    """Simulate the primary activity's rate for each of the last 12 months.

    Covers the reference month and the 11 before it, oldest first. Each month
    uses its own RBT12 (and Fator R for switchable activities); no reductions
    are applied.
    """
    tier = parse_tier(company.primary_activity.annex, catalog)
    points = []

    for offset in range(RBT12_WINDOW - 1, -1, -1):
        month = shift_month(reference_month, -offset)
        rbt12 = calculate_rbt12(company.monthly_revenue, month)
        annex = resolve_tier(tier, calculate_fator_r(company.payroll_12m, rbt12))
        table = catalog.annexes.get(annex)

        rate = ZERO
        if table is not None:
            index = find_bracket_index(rbt12, table.brackets)
            rate = max(effective_rate(rbt12, table.brackets, index), ZERO)

        points.append(
            HistoryPoint(
                month=month,
                revenue=company.monthly_revenue.get(month, Decimal("0")),
                effective_rate=rate,
            )
        )

    return points
