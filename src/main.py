from __future__ import annotations

import argparse
import logging
from decimal import Decimal
from pathlib import Path
from typing import Sequence

from config import config
from db.db import init_db
from db.repositories import TaxReportRepository, TransactionRepository
from domain.errors import TaxEngineError
from domain.lots import CostBasisMethod
from domain.report import TaxReport, generate_tax_report
from exports import (
    export_form8949_csv,
    export_income_csv,
    export_tax_summary_csv,
    export_transaction_history_csv,
    export_txf,
)
from importers.transactions_csv import load_transactions
from utils.inventory_summary import compute_inventory_summary, render_inventory_summary
from utils.tax_summary import render_taxable_events, render_tax_summary

logger = logging.getLogger(__name__)


def write_exports(report: TaxReport, out_dir: Path) -> dict[str, Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    prefix = f"crypto_tax_{report.summary.tax_year}_{report.summary.cost_basis_method.lower()}"
    outputs = {
        "form8949": (out_dir / f"{prefix}_form8949.csv", export_form8949_csv(report)),
        "transactions": (out_dir / f"{prefix}_transactions.csv", export_transaction_history_csv(report)),
        "income": (out_dir / f"{prefix}_income.csv", export_income_csv(report)),
        "summary": (out_dir / f"{prefix}_summary.csv", export_tax_summary_csv(report)),
        "txf": (out_dir / f"{prefix}.txf", export_txf(report)),
    }

    paths: dict[str, Path] = {}
    for name, (path, content) in outputs.items():
        path.write_text(content, encoding="utf-8")
        paths[name] = path
    return paths


def run(
    csv_path: Path | None,
    *,
    tax_year: int,
    method: CostBasisMethod,
    state: str | None,
    bracket: Decimal,
    db_file: Path,
    out_dir: Path,
    reset: bool = False,
) -> TaxReport:
    # Setup components
    logger.info("Initializing DB at %s", db_file)
    session = init_db(db_file=db_file, reset=reset)
    transaction_repository = TransactionRepository(session)
    report_repository = TaxReportRepository(session)

    # Get data
    if csv_path is not None:
        imported = load_transactions(csv_path)
        stored = transaction_repository.create_many(imported)
        logger.info("Stored %d new of %d transactions from %s", len(stored), len(imported), csv_path)
    ledger = transaction_repository.list()

    # Process stuff
    report = generate_tax_report(ledger, tax_year, method, state, bracket)
    report_id = report_repository.save(report)
    logger.info("Saved report %s", report_id)
    paths = write_exports(report, out_dir)

    # Print summary
    print(f"Ledger: {len(ledger)} transactions")
    render_tax_summary(report.summary)
    render_taxable_events(report.taxable_events)
    render_inventory_summary(compute_inventory_summary(report.open_lots))
    for name, path in paths.items():
        print(f"  {name}: {path}")
    return report


def _parse_method(value: str) -> CostBasisMethod:
    return CostBasisMethod(value.strip().upper())


def main(argv: Sequence[str] | None = None) -> int:
    settings = config()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    parser = argparse.ArgumentParser(description="Generate a crypto capital-gains tax report.")
    parser.add_argument("--csv", type=Path, default=None, help="Normalized transactions CSV to import first")
    parser.add_argument("--year", type=int, required=True)
    parser.add_argument(
        "--method",
        type=_parse_method,
        choices=list(CostBasisMethod),
        default=settings.cost_basis_method,
    )
    parser.add_argument("--state", default=settings.state)
    parser.add_argument("--bracket", type=Decimal, default=settings.tax_bracket, help="Marginal tax rate in percent")
    parser.add_argument("--db", type=Path, default=settings.db_file)
    parser.add_argument("--out-dir", type=Path, default=settings.exports_dir)
    parser.add_argument("--reset", action="store_true", help="Drop the existing database before importing")
    args = parser.parse_args(argv)

    try:
        run(
            args.csv,
            tax_year=args.year,
            method=args.method,
            state=args.state,
            bracket=args.bracket,
            db_file=args.db,
            out_dir=args.out_dir,
            reset=args.reset,
        )
    except TaxEngineError as err:
        logger.error("Tax report failed: %s", err)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
