"""Shared test fixtures."""

from decimal import Decimal

import pytest

from src.calculators.models import Activity, ActivityRevenue, Company
from src.calculators.simples_data import SimplesCatalog, get_catalog


# --- Factories ---


def _flat_revenue(start: str, months: int, amount: str) -> dict[str, Decimal]:
    """``months`` consecutive months of identical revenue starting at ``start``."""
    year, month = (int(part) for part in start.split("-"))
    revenue = {}
    for _ in range(months):
        revenue[f"{year:04d}-{month:02d}"] = Decimal(amount)
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return revenue


def _make_company(
    annex: str = "I",
    code: str = "4711-3/02",
    payroll_12m: str = "0",
    monthly_revenue: dict[str, Decimal] | None = None,
    secondary: tuple[Activity, ...] = (),
    activity_revenue: dict[str, tuple[ActivityRevenue, ...]] | None = None,
) -> Company:
    return Company(
        name="Empresa Teste Ltda",
        cnpj="12.345.678/0001-90",
        primary_activity=Activity(code=code, annex=annex),
        secondary_activities=secondary,
        payroll_12m=Decimal(payroll_12m),
        monthly_revenue=monthly_revenue or {},
        activity_revenue=activity_revenue or {},
    )


# --- Fixtures ---


@pytest.fixture
def make_company():
    """Factory for ad-hoc companies (defaults to an Annex I shop with no history)."""
    return _make_company


@pytest.fixture(scope="session")
def catalog() -> SimplesCatalog:
    """The default (2018) Simples Nacional catalog."""
    return get_catalog()


@pytest.fixture
def commerce_company() -> Company:
    """Annex I shop: R$15,000/month through 2024, R$20,000 in Jan 2025.

    RBT12 for 2025-01 is R$180,000, exactly the first bracket ceiling.
    """
    revenue = _flat_revenue("2024-01", 12, "15000")
    revenue["2025-01"] = Decimal("20000")
    return _make_company(annex="I", monthly_revenue=revenue)


@pytest.fixture
def services_company() -> Company:
    """Fator R services firm: R$20,000/month through 2024, R$25,000 in Jan 2025.

    RBT12 for 2025-01 is R$240,000; payroll of R$80,000 gives Fator R 1/3.
    """
    revenue = _flat_revenue("2024-01", 12, "20000")
    revenue["2025-01"] = Decimal("25000")
    return _make_company(
        annex="III_V",
        code="7111-1/00",
        payroll_12m="80000",
        monthly_revenue=revenue,
    )


@pytest.fixture
def mixed_company() -> Company:
    """Shop with a repair service on the side, revenue split per activity in Jan 2025."""
    revenue = _flat_revenue("2024-01", 12, "20000")
    revenue["2025-01"] = Decimal("15000")
    return _make_company(
        annex="I",
        code="4751-2/01",
        monthly_revenue=revenue,
        secondary=(Activity(code="9511-8/00", annex="III"),),
        activity_revenue={
            "2025-01": (
                ActivityRevenue(
                    activity_key="4751-2/01#0",
                    activity_code="4751-2/01",
                    revenue=Decimal("10000"),
                    icms_substitution=True,
                ),
                ActivityRevenue(
                    activity_key="9511-8/00#0",
                    activity_code="9511-8/00",
                    revenue=Decimal("5000"),
                ),
            ),
        },
    )
