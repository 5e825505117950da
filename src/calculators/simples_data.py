"""Simples Nacional reference tables: Annex I-V brackets and DAS repartition.

Loaded once at import from ``config/simples_catalog.yaml`` and exposed as
read-only NamedTuples. Rates, deductions and shares are Decimals; rates
and shares are percentages (``Decimal("7.3")`` is 7.3%).
"""

import logging
from collections.abc import Mapping
from decimal import Decimal
from types import MappingProxyType
from typing import Any, NamedTuple

from config import load_yaml_config
from config.settings import settings

logger = logging.getLogger(__name__)

BRACKETS_PER_ANNEX = 6


class BracketRow(NamedTuple):
    """A single Simples Nacional bracket (faixa)."""

    ceiling: Decimal  # inclusive upper bound on RBT12
    rate: Decimal  # nominal rate, percent
    deduction: Decimal  # parcela a deduzir


class AnnexTable(NamedTuple):
    """Bracket rows and per-band DAS repartition for one annex."""

    brackets: tuple[BracketRow, ...]
    repartition: tuple[Mapping[str, Decimal], ...]

    def shares_for_band(self, band: int) -> Mapping[str, Decimal]:
        """Repartition shares for a band, clamped to the last defined band."""
        return self.repartition[min(band, len(self.repartition) - 1)]


class FatorRRule(NamedTuple):
    """Payroll-ratio rule that routes switchable activities between annexes."""

    threshold: Decimal
    above: str  # annex when Fator R >= threshold
    below: str


class SimplesCatalog(NamedTuple):
    """All reference data for one version of the Simples Nacional tables."""

    version: str
    annexes: Mapping[str, AnnexTable]
    sublimit: Decimal
    fator_r: FatorRRule
    municipal_tax: str
    state_tax: str


def _dec(value: Any) -> Decimal:
    return Decimal(str(value))


def _parse_annex(name: str, raw: dict[str, Any]) -> AnnexTable:
    brackets = tuple(
        BracketRow(_dec(ceiling), _dec(rate), _dec(deduction))
        for ceiling, rate, deduction in raw["brackets"]
    )
    if len(brackets) != BRACKETS_PER_ANNEX:
        raise ValueError(
            f"Annex {name}: expected {BRACKETS_PER_ANNEX} brackets, got {len(brackets)}"
        )
    ceilings = [row.ceiling for row in brackets]
    if any(lo >= hi for lo, hi in zip(ceilings, ceilings[1:])):
        raise ValueError(f"Annex {name}: bracket ceilings must be strictly increasing")

    repartition = tuple(
        MappingProxyType({category: _dec(share) for category, share in band.items()})
        for band in raw["repartition"]
    )
    if not repartition:
        raise ValueError(f"Annex {name}: repartition table is empty")

    return AnnexTable(brackets=brackets, repartition=repartition)


def parse_catalog(version: str, raw: dict[str, Any]) -> SimplesCatalog:
    """Build a validated catalog from its YAML representation."""
    rule = raw["fator_r"]
    annexes = {str(name): _parse_annex(str(name), body) for name, body in raw["annexes"].items()}
    return SimplesCatalog(
        version=version,
        annexes=MappingProxyType(annexes),
        sublimit=_dec(raw["sublimit"]),
        fator_r=FatorRRule(
            threshold=_dec(rule["threshold"]),
            above=str(rule["above"]),
            below=str(rule["below"]),
        ),
        municipal_tax=raw["municipal_tax"],
        state_tax=raw["state_tax"],
    )


def load_catalogs(filename: str) -> Mapping[str, SimplesCatalog]:
    """Load every catalog version defined in a config/ YAML file."""
    data = load_yaml_config(filename)
    catalogs = {
        str(version): parse_catalog(str(version), body)
        for version, body in data["versions"].items()
    }
    logger.debug("Loaded Simples catalogs %s from %s", sorted(catalogs), filename)
    return MappingProxyType(catalogs)


CATALOGS: Mapping[str, SimplesCatalog] = load_catalogs(settings.simples_catalog_file)

DEFAULT_CATALOG_VERSION = settings.simples_catalog_version


def get_catalog(version: str = DEFAULT_CATALOG_VERSION) -> SimplesCatalog:
    """Return the catalog for a version, e.g. "2018"."""
    if version not in CATALOGS:
        raise ValueError(
            f"Unknown catalog version: {version}. Available: {', '.join(sorted(CATALOGS))}"
        )
    return CATALOGS[version]
