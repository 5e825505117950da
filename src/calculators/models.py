"""Pydantic models for company records and computation results."""

import logging
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Annotated, Any, Literal, TypeVar
from uuid import UUID, uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)

from src.calculators.aggregator import parse_month
from src.calculators.brackets import suggest_annex

logger = logging.getLogger(__name__)

# "III_V" is the switchable marker: Annex III or V depending on Fator R.
AnnexCode = Literal["I", "II", "III", "IV", "V", "III_V"]

K = TypeVar("K")
V = TypeVar("V")


def _freeze(value: Mapping[Any, Any]) -> Mapping[Any, Any]:
    return MappingProxyType(dict(value))


def _thaw(value: Mapping[Any, Any]) -> dict[Any, Any]:
    return dict(value)


# Read-only mapping field; dumps back to a plain dict.
FrozenMap = Annotated[Mapping[K, V], AfterValidator(_freeze), PlainSerializer(_thaw)]


def _hashable(value: Any) -> Any:
    if isinstance(value, Mapping):
        return frozenset((key, _hashable(item)) for key, item in value.items())
    return value


class FrozenModel(BaseModel):
    """Immutable, hashable record. Mapping fields hash by their items."""

    model_config = {"frozen": True}

    def __hash__(self) -> int:
        return hash(tuple(_hashable(value) for value in self.__dict__.values()))


# --- Company records ---


class Activity(FrozenModel):
    """A registered business activity (CNAE) and its declared annex.

    Passing ``annex="auto"`` picks the annex from the activity code.
    """

    code: str
    annex: AnnexCode

    @model_validator(mode="before")
    @classmethod
    def _suggest_annex(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("annex") == "auto":
            data = {**data, "annex": suggest_annex(str(data.get("code", "")))}
        return data


class ActivityRevenue(FrozenModel):
    """Revenue attributed to one activity occurrence within a month."""

    activity_key: str
    activity_code: str
    revenue: Decimal = Field(ge=0)
    iss_withheld: bool = False
    icms_substitution: bool = False
    fixed_fee_partnership: bool = False


class Invoice(FrozenModel):
    """An already-parsed sales invoice (nota fiscal)."""

    issued_on: date
    amount: Decimal
    origin: str = ""
    description: str = ""


class CalculationItem(FrozenModel):
    """One slice of the reference month's revenue, taxed under one annex."""

    activity_code: str
    annex: str
    revenue: Decimal = Field(ge=0)
    iss_withheld: bool = False
    icms_substitution: bool = False
    fixed_fee_partnership: bool = False


class Company(FrozenModel):
    """Snapshot of a Simples Nacional company as handed to the engine."""

    name: str
    cnpj: str
    primary_activity: Activity
    secondary_activities: tuple[Activity, ...] = ()
    payroll_12m: Decimal = Field(default=Decimal("0"), ge=0)
    monthly_revenue: FrozenMap[str, Decimal] = Field(default_factory=dict, validate_default=True)
    activity_revenue: FrozenMap[str, tuple[ActivityRevenue, ...]] = Field(
        default_factory=dict, validate_default=True
    )

    @field_validator("monthly_revenue", "activity_revenue")
    @classmethod
    def _check_month_keys(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        for month in value:
            parse_month(month)
        return value

    @property
    def activities(self) -> tuple[Activity, ...]:
        return (self.primary_activity, *self.secondary_activities)

    def calculation_items(self, month: str) -> list[CalculationItem]:
        """Build calculation items from the per-activity revenue of a month.

        The annex of each entry comes from the registered activity with the
        same code. Entries with an unregistered code keep the code as annex,
        so the allocator skips them.
        """
        annex_by_code: dict[str, str] = {}
        for activity in self.activities:
            annex_by_code.setdefault(activity.code, activity.annex)

        items = []
        for entry in self.activity_revenue.get(month, ()):
            annex = annex_by_code.get(entry.activity_code)
            if annex is None:
                logger.warning(
                    "Activity %s (%s) is not registered for %s",
                    entry.activity_code,
                    entry.activity_key,
                    self.cnpj,
                )
                annex = entry.activity_code
            items.append(
                CalculationItem(
                    activity_code=entry.activity_code,
                    annex=annex,
                    revenue=entry.revenue,
                    iss_withheld=entry.iss_withheld,
                    icms_substitution=entry.icms_substitution,
                    fixed_fee_partnership=entry.fixed_fee_partnership,
                )
            )
        return items


# --- Computation results ---


class ItemResult(FrozenModel):
    """Per-item breakdown of a DAS computation."""

    activity_code: str
    declared_annex: str
    annex: str
    bracket_index: int
    revenue: Decimal
    nominal_rate: Decimal
    base_rate: Decimal  # effective rate before reductions
    effective_rate: Decimal
    due: Decimal
    iss_withheld: bool
    icms_substitution: bool
    fixed_fee_partnership: bool
    taxes: FrozenMap[str, Decimal] = Field(default_factory=dict, validate_default=True)


class HistoryPoint(FrozenModel):
    """One month of the simulated trailing series."""

    month: str
    revenue: Decimal
    effective_rate: Decimal


class SimplesResult(FrozenModel):
    """Outcome of a DAS computation for one company and reference month."""

    reference_month: str
    rbt12: Decimal
    nominal_rate: Decimal
    effective_rate: Decimal  # blended over all items
    revenue: Decimal
    monthly_due: Decimal
    annual_due: Decimal
    monthly_revenue: FrozenMap[str, Decimal]
    history: tuple[HistoryPoint, ...]
    effective_annex: str
    bracket_index: int
    fator_r: Decimal
    payroll_12m: Decimal
    exceeded_sublimit: bool
    items: tuple[ItemResult, ...]
    taxes: FrozenMap[str, Decimal] = Field(default_factory=dict, validate_default=True)


class HistorySnapshot(FrozenModel):
    """Audit record of a persisted computation. Never mutated."""

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=datetime.now)
    reference_month: str
    rbt12: Decimal
    effective_rate: Decimal
    fator_r: Decimal
    monthly_due: Decimal
    effective_annex: str

    @classmethod
    def from_result(cls, result: SimplesResult) -> "HistorySnapshot":
        return cls(
            reference_month=result.reference_month,
            rbt12=result.rbt12,
            effective_rate=result.effective_rate,
            fator_r=result.fator_r,
            monthly_due=result.monthly_due,
            effective_annex=result.effective_annex,
        )
