"""CLI script for simulating a month's DAS for one company.

Usage:
    # Compute the DAS for a company file
    python scripts/simulate.py tests/fixtures/company_services.yaml 2025-01

    # Only keep the trailing window in the monthly revenue map
    python scripts/simulate.py company.yaml 2025-01 --window-only

    # Use a specific reference table version
    python scripts/simulate.py company.yaml 2025-01 --catalog-version 2018

    # Revenue from invoice records listed in the company file
    python scripts/simulate.py tests/fixtures/company_invoices.yaml 2025-01

    # Verbose logging
    python scripts/simulate.py company.yaml 2025-01 -v
"""

import argparse
import logging
import sys
from decimal import Decimal
from pathlib import Path

import yaml

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import settings
from src.calculators.aggregator import consolidate_revenue
from src.calculators.models import CalculationItem, Company, HistorySnapshot, Invoice
from src.calculators.simples import calculate_simples
from src.calculators.simples_data import DEFAULT_CATALOG_VERSION, get_catalog

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate the Simples Nacional DAS for a month")
    parser.add_argument("company", type=Path, help="YAML file describing the company")
    parser.add_argument("month", help="Reference month (YYYY-MM)")
    parser.add_argument(
        "--catalog-version",
        default=DEFAULT_CATALOG_VERSION,
        help=f"Reference table version (default: {DEFAULT_CATALOG_VERSION})",
    )
    parser.add_argument(
        "--window-only",
        action="store_true",
        help="Report only the trailing 12 months and the reference month",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser.parse_args()


def load_company(path: Path) -> tuple[Company, list[CalculationItem]]:
    """Read a company and its optional explicit items from a YAML file.

    Explicit items live under an ``items`` key next to the company fields.
    Invoices listed under ``invoices`` are summed per month; a month also
    present in ``monthly_revenue`` keeps the value given there.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")

    raw_items = data.pop("items", None) or []
    raw_invoices = data.pop("invoices", None) or []
    if raw_invoices:
        invoices = [Invoice.model_validate(invoice) for invoice in raw_invoices]
        for invoice in invoices:
            logger.debug(
                "Invoice %s R$ %s from %s: %s",
                invoice.issued_on,
                invoice.amount,
                invoice.origin or "unknown origin",
                invoice.description,
            )
        manual = {
            str(month): Decimal(str(value))
            for month, value in (data.get("monthly_revenue") or {}).items()
        }
        data["monthly_revenue"] = consolidate_revenue(invoices, manual)

    company = Company.model_validate(data)
    items = [CalculationItem.model_validate(item) for item in raw_items]
    return company, items


def run(args: argparse.Namespace) -> None:
    company, items = load_company(args.company)
    if not items:
        items = company.calculation_items(args.month)

    result = calculate_simples(
        company,
        args.month,
        items=items,
        catalog_version=args.catalog_version,
        full_history=not args.window_only,
    )

    logger.info("=" * 60)
    logger.info("%s (%s) - %s", company.name, company.cnpj, result.reference_month)
    logger.info(
        "RBT12 R$ %s | Fator R %.4f | Annex %s, bracket %d",
        result.rbt12,
        result.fator_r,
        result.effective_annex,
        result.bracket_index + 1,
    )
    for item in result.items:
        logger.info(
            "  %s [%s -> %s] revenue R$ %s at %.4f%% = R$ %.2f",
            item.activity_code,
            item.declared_annex,
            item.annex,
            item.revenue,
            item.effective_rate,
            item.due,
        )
    for tax, amount in sorted(result.taxes.items()):
        logger.info("  %-10s R$ %.2f", tax, amount)
    logger.info(
        "Revenue R$ %s | effective rate %.4f%% | DAS R$ %.2f (annualised R$ %.2f)",
        result.revenue,
        result.effective_rate,
        result.monthly_due,
        result.annual_due,
    )
    if result.exceeded_sublimit:
        sublimit = get_catalog(args.catalog_version).sublimit
        logger.warning("RBT12 is above the R$ %s sub-limit", sublimit)

    logger.debug("Trailing series:")
    for point in result.history:
        logger.debug("  %s R$ %s %.4f%%", point.month, point.revenue, point.effective_rate)

    snapshot = HistorySnapshot.from_result(result)
    logger.info("Snapshot %s recorded at %s", snapshot.id, snapshot.created_at.isoformat())


def main() -> None:
    args = parse_args()

    log_level = logging.DEBUG if args.verbose else settings.log_level
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    run(args)


if __name__ == "__main__":
    main()
