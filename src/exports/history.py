from __future__ import annotations

import csv
import io

from domain.report import TaxReport
from utils.formatting import format_amount, format_currency

COLUMNS = [
    "Date",
    "ID",
    "Type",
    "Asset",
    "Amount",
    "Price Per Unit (USD)",
    "Fee (USD)",
    "Total Value (USD)",
    "Exchange",
    "Notes",
]


def export_transaction_history_csv(report: TaxReport) -> str:
    """One row per source transaction of the report's tax year."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(COLUMNS)
    for tx in report.transactions:
        writer.writerow(
            [
                tx.timestamp.date().isoformat(),
                tx.id,
                tx.kind.value,
                tx.asset_symbol,
                format_amount(tx.amount),
                format_currency(tx.price_per_unit),
                format_currency(tx.fee),
                format_currency(tx.total_value),
                tx.exchange or "",
                tx.notes or "",
            ]
        )
    return buffer.getvalue()
