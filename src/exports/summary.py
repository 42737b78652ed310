from __future__ import annotations

import csv
import io
from datetime import date

from domain.report import TaxReport
from utils.formatting import format_currency


def export_tax_summary_csv(report: TaxReport, *, generated_on: date | None = None) -> str:
    """Aggregate totals only; per-event detail lives in the Form 8949 export."""
    s = report.summary
    generated = generated_on or date.today()

    sections: list[tuple[str, list[tuple[str, str]]]] = [
        (
            "CAPITAL GAINS/LOSSES",
            [
                ("Total Proceeds", format_currency(s.total_proceeds)),
                ("Total Cost Basis", format_currency(s.total_cost_basis)),
                ("Total Gain/Loss", format_currency(s.total_gain_loss)),
            ],
        ),
        (
            "SHORT-TERM (held 1 year or less)",
            [
                ("Gains", format_currency(s.short_term_gains)),
                ("Losses", format_currency(s.short_term_losses)),
                ("Net Short-Term", format_currency(s.net_short_term)),
            ],
        ),
        (
            "LONG-TERM (held more than 1 year)",
            [
                ("Gains", format_currency(s.long_term_gains)),
                ("Losses", format_currency(s.long_term_losses)),
                ("Net Long-Term", format_currency(s.net_long_term)),
            ],
        ),
        (
            "NET CAPITAL GAIN/LOSS",
            [
                ("Net Capital Gain/Loss", format_currency(s.net_capital_gain_loss)),
                ("Net Taxable Gain", format_currency(s.net_taxable_gain)),
            ],
        ),
        (
            "ORDINARY INCOME",
            [
                ("Staking Rewards", format_currency(s.staking_income)),
                ("Other Income", format_currency(s.other_income)),
                ("Total Ordinary Income", format_currency(s.total_ordinary_income)),
            ],
        ),
        (
            "ESTIMATED TAXES",
            [
                ("Federal Tax", format_currency(s.estimated_federal_tax)),
                ("State Tax", format_currency(s.estimated_state_tax)),
                ("Total Estimated Tax", format_currency(s.estimated_total_tax)),
            ],
        ),
    ]
    if s.total_wash_sale_disallowed > 0:
        sections.append(("WASH SALES", [("Disallowed Losses", format_currency(s.total_wash_sale_disallowed))]))
    sections.append(
        (
            "TRANSACTION COUNTS",
            [
                ("Total Transactions", str(s.total_transactions)),
                ("Sales/Dispositions", str(s.sales_count)),
                ("Income Events", str(s.income_events_count)),
            ],
        )
    )

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["CRYPTOCURRENCY TAX SUMMARY"])
    writer.writerow([f"Tax Year: {s.tax_year}"])
    writer.writerow([f"Generated: {generated.isoformat()}"])
    writer.writerow([f"Cost Basis Method: {s.cost_basis_method}"])
    if s.state:
        writer.writerow([f"State: {s.state}"])
    for warning in s.warnings:
        writer.writerow([f"Warning: {warning}"])
    writer.writerow([])

    for title, rows in sections:
        writer.writerow([title])
        writer.writerows(rows)
        writer.writerow([])

    return buffer.getvalue()
