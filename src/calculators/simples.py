"""Simples Nacional DAS calculator: ties aggregation, allocation and history together."""

import logging
from collections.abc import Sequence
from decimal import Decimal

from src.calculators.aggregator import (
    calculate_fator_r,
    calculate_rbt12,
    parse_month,
    trailing_months,
)
from src.calculators.allocator import allocate
from src.calculators.brackets import find_bracket_index, parse_tier, resolve_tier
from src.calculators.history import build_history
from src.calculators.models import CalculationItem, Company, SimplesResult
from src.calculators.simples_data import DEFAULT_CATALOG_VERSION, get_catalog

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12


def default_items(company: Company, reference_month: str) -> list[CalculationItem]:
    """A single item for the primary activity, or none when the month is empty."""
    revenue = company.monthly_revenue.get(reference_month, Decimal("0"))
    if revenue == 0:
        return []
    return [
        CalculationItem(
            activity_code=company.primary_activity.code,
            annex=company.primary_activity.annex,
            revenue=revenue,
        )
    ]


def _revenue_window(company: Company, reference_month: str, full_history: bool) -> dict[str, Decimal]:
    if full_history:
        return dict(sorted(company.monthly_revenue.items()))
    months = [*trailing_months(reference_month), reference_month]
    return {month: company.monthly_revenue.get(month, Decimal("0")) for month in months}


def calculate_simples(
    company: Company,
    reference_month: str,
    items: Sequence[CalculationItem] | None = None,
    catalog_version: str = DEFAULT_CATALOG_VERSION,
    full_history: bool = True,
) -> SimplesResult:
    """Calculate the DAS due by a company for a reference month.

    Args:
        company: Company snapshot with revenue history and payroll.
        reference_month: Month being settled, ``YYYY-MM``.
        items: Revenue of the month split per activity. When empty, the
            month's aggregate revenue is taxed under the primary activity.
        catalog_version: Version of the Simples tables, e.g. "2018".
        full_history: Include every known month in ``monthly_revenue``
            instead of just the RBT12 window and the reference month.

    Returns:
        SimplesResult with totals, per-item breakdown and trailing history.
    """
    parse_month(reference_month)
    catalog = get_catalog(catalog_version)

    rbt12 = calculate_rbt12(company.monthly_revenue, reference_month)
    fator_r = calculate_fator_r(company.payroll_12m, rbt12)

    if not items:
        items = default_items(company, reference_month)
    allocation = allocate(items, rbt12, fator_r, catalog)

    effective_annex = resolve_tier(parse_tier(company.primary_activity.annex, catalog), fator_r)
    table = catalog.annexes.get(effective_annex)
    if table is None:
        bracket_index, nominal_rate = 0, Decimal("0")
    else:
        bracket_index = find_bracket_index(rbt12, table.brackets)
        nominal_rate = table.brackets[bracket_index].rate

    logger.debug(
        "DAS %s %s: rbt12=%s fator_r=%s annex=%s items=%d",
        company.cnpj,
        reference_month,
        rbt12,
        fator_r,
        effective_annex,
        len(allocation.items),
    )

    return SimplesResult(
        reference_month=reference_month,
        rbt12=rbt12,
        nominal_rate=nominal_rate,
        effective_rate=allocation.effective_rate,
        revenue=allocation.revenue,
        monthly_due=allocation.due,
        annual_due=allocation.due * MONTHS_PER_YEAR,
        monthly_revenue=_revenue_window(company, reference_month, full_history),
        history=tuple(build_history(company, reference_month, catalog)),
        effective_annex=effective_annex,
        bracket_index=bracket_index,
        fator_r=fator_r,
        payroll_12m=company.payroll_12m,
        exceeded_sublimit=rbt12 > catalog.sublimit,
        items=allocation.items,
        taxes=allocation.taxes,
    )
