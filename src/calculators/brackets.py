"""Bracket resolution: declared annex to concrete annex, RBT12 to bracket."""

from collections.abc import Sequence
from decimal import Decimal
from typing import NamedTuple

from src.calculators.simples_data import BracketRow, SimplesCatalog

SWITCHABLE_MARKER = "III_V"


class FixedTier(NamedTuple):
    """An activity taxed under one annex regardless of payroll."""

    annex: str


class SwitchableTier(NamedTuple):
    """An activity routed between two annexes by its Fator R."""

    above: str
    below: str
    threshold: Decimal


TierSpec = FixedTier | SwitchableTier


def parse_tier(annex: str, catalog: SimplesCatalog) -> TierSpec:
    """Turn a declared annex code into a tier spec.

    The switchable marker takes its annexes and threshold from the catalog.
    """
    if annex == SWITCHABLE_MARKER:
        rule = catalog.fator_r
        return SwitchableTier(above=rule.above, below=rule.below, threshold=rule.threshold)
    return FixedTier(annex)


def resolve_tier(tier: TierSpec, fator_r: Decimal) -> str:
    """Concrete annex for a tier spec given the company's Fator R."""
    if isinstance(tier, SwitchableTier):
        return tier.above if fator_r >= tier.threshold else tier.below
    return tier.annex


def find_bracket_index(rbt12: Decimal, brackets: Sequence[BracketRow]) -> int:
    """Index of the first bracket whose ceiling covers RBT12.

    RBT12 above every ceiling falls into the last bracket.
    """
    for index, row in enumerate(brackets):
        if rbt12 <= row.ceiling:
            return index
    return len(brackets) - 1


def suggest_annex(activity_code: str) -> str:
    """Suggest a declared annex from a CNAE activity code.

    Uses the CNAE division (first two digits): commerce goes to Annex I,
    manufacturing to Annex II, professional and technical services to the
    Fator R switch, everything else to Annex III.
    """
    digits = "".join(ch for ch in activity_code if ch.isdigit())
    if len(digits) < 2:
        return "III"

    division = int(digits[:2])
    if division in (45, 46, 47):
        return "I"
    if 10 <= division <= 33:
        return "II"
    if 68 <= division <= 75:
        return SWITCHABLE_MARKER
    return "III"
