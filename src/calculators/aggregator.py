"""Revenue aggregation: RBT12, Fator R and monthly revenue consolidation.

Months are ``YYYY-MM`` labels throughout.
"""

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from dateutil.relativedelta import relativedelta

if TYPE_CHECKING:
    from src.calculators.models import Invoice

RBT12_WINDOW = 12

MONTH_FORMAT = "%Y-%m"


def parse_month(label: str) -> date:
    """First day of the month named by a ``YYYY-MM`` label.

    Raises:
        ValueError: If the label is not exactly a zero-padded ``YYYY-MM``.
    """
    message = f"Invalid month label: {label!r}. Expected YYYY-MM."
    try:
        first_day = datetime.strptime(label, MONTH_FORMAT).date()
    except (TypeError, ValueError) as exc:
        raise ValueError(message) from exc
    if month_label(first_day) != label:
        raise ValueError(message)
    return first_day


def month_label(day: date) -> str:
    """``YYYY-MM`` label of the month containing ``day``."""
    return f"{day.year:04d}-{day.month:02d}"


def shift_month(label: str, delta: int) -> str:
    """Move a month label ``delta`` months forward (negative for backward)."""
    return month_label(parse_month(label) + relativedelta(months=delta))


def trailing_months(reference_month: str, count: int = RBT12_WINDOW) -> list[str]:
    """The ``count`` months strictly before the reference month, oldest first."""
    start = parse_month(reference_month)
    return [month_label(start - relativedelta(months=offset)) for offset in range(count, 0, -1)]


def calculate_rbt12(
    monthly_revenue: Mapping[str, Decimal],
    reference_month: str,
) -> Decimal:
    """Gross revenue of the 12 months preceding the reference month.

    The reference month itself is excluded; months absent from the map
    count as zero.
    """
    return sum(
        (monthly_revenue.get(month, Decimal("0")) for month in trailing_months(reference_month)),
        Decimal("0"),
    )


def calculate_fator_r(payroll_12m: Decimal, rbt12: Decimal) -> Decimal:
    """Payroll-to-revenue ratio; zero when there is no revenue history."""
    if rbt12 <= 0:
        return Decimal("0")
    return max(Decimal(payroll_12m) / rbt12, Decimal("0"))


def consolidate_revenue(
    invoices: Iterable["Invoice"],
    manual: Mapping[str, Decimal] | None = None,
) -> dict[str, Decimal]:
    """Group invoice amounts by month, then apply manual overrides.

    A month present in ``manual`` takes the manual value regardless of the
    invoices issued in it.
    """
    consolidated: dict[str, Decimal] = {}
    for invoice in invoices:
        month = month_label(invoice.issued_on)
        consolidated[month] = consolidated.get(month, Decimal("0")) + invoice.amount

    for month, value in (manual or {}).items():
        parse_month(month)
        consolidated[month] = Decimal(value)

    return dict(sorted(consolidated.items()))
