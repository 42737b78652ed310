from __future__ import annotations

import csv
import io

from domain.report import TaxReport
from utils.formatting import format_amount, format_currency

COLUMNS = ["Date", "Type", "Asset", "Amount", "Fair Market Value (USD)", "Exchange", "Notes"]


def export_income_csv(report: TaxReport) -> str:
    summary = report.summary

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["CRYPTOCURRENCY INCOME REPORT"])
    writer.writerow([f"Tax Year: {summary.tax_year}"])
    writer.writerow([])
    writer.writerow(COLUMNS)

    for event in report.income_events:
        writer.writerow(
            [
                event.received_at.date().isoformat(),
                event.income_kind.value,
                event.asset_symbol,
                format_amount(event.amount),
                format_currency(event.fair_market_value_usd),
                event.exchange or "",
                event.notes or "",
            ]
        )

    writer.writerow([])
    writer.writerow(["TOTAL INCOME", format_currency(summary.total_ordinary_income)])
    writer.writerow(["Staking Rewards", format_currency(summary.staking_income)])
    writer.writerow(["Other Income", format_currency(summary.other_income)])
    return buffer.getvalue()
