"""Tests for company and item record validation."""

import logging
from decimal import Decimal
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from src.calculators.models import Activity, ActivityRevenue, CalculationItem, Company
from src.calculators.simples import calculate_simples

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class TestActivity:
    def test_auto_annex_from_code(self) -> None:
        assert Activity(code="4711-3/02", annex="auto").annex == "I"
        assert Activity(code="6911-7/01", annex="auto").annex == "III_V"

    def test_unknown_annex_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Activity(code="4711-3/02", annex="VI")


class TestRecords:
    def test_negative_item_revenue_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CalculationItem(activity_code="x", annex="I", revenue=Decimal("-1"))

    def test_item_accepts_any_annex_string(self) -> None:
        """Unknown annexes are the allocator's concern, not a validation error."""
        item = CalculationItem(activity_code="x", annex="VI", revenue=Decimal("10"))
        assert item.annex == "VI"

    def test_negative_payroll_rejected(self, make_company) -> None:
        with pytest.raises(ValidationError):
            make_company(payroll_12m="-100")

    def test_malformed_month_key_rejected(self, make_company) -> None:
        with pytest.raises(ValidationError, match="Invalid month label"):
            make_company(monthly_revenue={"2025/01": Decimal("100")})

    def test_records_are_frozen(self, commerce_company) -> None:
        with pytest.raises(ValidationError):
            commerce_company.payroll_12m = Decimal("1")

    def test_company_from_plain_data(self) -> None:
        company = Company.model_validate(
            {
                "name": "Clínica Exemplo",
                "cnpj": "00.000.000/0001-00",
                "primary_activity": {"code": "8630-5/03", "annex": "III_V"},
                "payroll_12m": "36000",
                "monthly_revenue": {"2024-12": "12000.50"},
            }
        )
        assert company.monthly_revenue["2024-12"] == Decimal("12000.50")
        assert company.activities == (company.primary_activity,)


class TestImmutability:
    def test_revenue_maps_are_read_only(self, commerce_company, mixed_company) -> None:
        with pytest.raises(TypeError):
            commerce_company.monthly_revenue["2024-06"] = Decimal("4000000")  # type: ignore[index]
        with pytest.raises(TypeError):
            mixed_company.activity_revenue["2025-02"] = ()  # type: ignore[index]

    def test_caller_dict_changes_do_not_leak(self, make_company) -> None:
        revenue = {"2024-12": Decimal("1000")}
        company = make_company(monthly_revenue=revenue)
        revenue["2024-11"] = Decimal("4000000")
        assert calculate_simples(company, "2025-01").rbt12 == Decimal("1000")

    def test_company_is_hashable(self, make_company, mixed_company) -> None:
        twin = make_company(
            annex="I",
            code="4751-2/01",
            monthly_revenue=dict(mixed_company.monthly_revenue),
            secondary=mixed_company.secondary_activities,
            activity_revenue=dict(mixed_company.activity_revenue),
        )
        assert twin == mixed_company
        assert hash(twin) == hash(mixed_company)
        assert len({twin, mixed_company}) == 1

    def test_result_maps_are_read_only(self, mixed_company) -> None:
        items = mixed_company.calculation_items("2025-01")
        result = calculate_simples(mixed_company, "2025-01", items=items)
        with pytest.raises(TypeError):
            result.taxes["ISS"] = Decimal("0")  # type: ignore[index]
        with pytest.raises(TypeError):
            result.items[0].taxes["ICMS"] = Decimal("0")  # type: ignore[index]
        hash(result)

    def test_dump_gives_plain_dicts(self, commerce_company) -> None:
        dumped = commerce_company.model_dump()
        assert type(dumped["monthly_revenue"]) is dict
        assert Company.model_validate(dumped) == commerce_company


class TestCalculationItemsFromCompany:
    def test_unregistered_activity_kept_with_code_as_annex(self, make_company, caplog) -> None:
        company = make_company(
            activity_revenue={
                "2025-01": (
                    ActivityRevenue(
                        activity_key="9999-9/99#0",
                        activity_code="9999-9/99",
                        revenue=Decimal("700"),
                    ),
                ),
            },
        )
        with caplog.at_level(logging.WARNING, logger="src.calculators.models"):
            (item,) = company.calculation_items("2025-01")
        assert item.annex == "9999-9/99"
        assert "not registered" in caplog.text

    def test_flags_carried_over(self, make_company) -> None:
        company = make_company(
            code="6920-6/01",
            annex="III",
            activity_revenue={
                "2025-01": (
                    ActivityRevenue(
                        activity_key="6920-6/01#0",
                        activity_code="6920-6/01",
                        revenue=Decimal("3000"),
                        iss_withheld=True,
                        fixed_fee_partnership=True,
                    ),
                ),
            },
        )
        (item,) = company.calculation_items("2025-01")
        assert item.annex == "III"
        assert item.iss_withheld is True
        assert item.fixed_fee_partnership is True
        assert item.icms_substitution is False


class TestCompanyFile:
    def test_example_company_file(self) -> None:
        """The sample company prices to R$1,219.46 for Jan 2025.

        RBT12 240,000 and Fator R 96,000 / 240,000 = 0.4 keep the engineering
        line in Annex III at 7.3%, less the 32% ISS share: 4.964% of 22,000.
        The retail line is Annex I at 4.825% less 34% ICMS: 3.1845% of 4,000.
        """
        text = (FIXTURES_DIR / "company_services.yaml").read_text(encoding="utf-8")
        company = Company.model_validate(yaml.safe_load(text))
        assert company.primary_activity.annex == "III_V"
        assert company.secondary_activities[0].annex == "I"

        items = company.calculation_items("2025-01")
        result = calculate_simples(company, "2025-01", items=items)
        assert result.rbt12 == Decimal("240000")
        assert result.effective_annex == "III"
        assert [item.due for item in result.items] == [Decimal("1092.08"), Decimal("127.38")]
        assert result.monthly_due == Decimal("1219.46")
