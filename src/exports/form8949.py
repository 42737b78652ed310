from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from domain.report import TaxReport
from domain.tax_events import TaxableEvent
from utils.formatting import format_amount, format_currency, format_us_date, round_currency

WASH_SALE_CODE = "W"

COLUMNS = [
    "(a) Description of property",
    "(b) Date acquired",
    "(c) Date sold",
    "(d) Proceeds",
    "(e) Cost basis",
    "(f) Code",
    "(g) Adjustment",
    "(h) Gain or (loss)",
]


@dataclass(frozen=True)
class Form8949Line:
    description: str
    date_acquired: str
    date_sold: str
    proceeds: Decimal
    cost_basis: Decimal
    adjustment_code: str
    adjustment_amount: Decimal
    gain_or_loss: Decimal


def form8949_line(event: TaxableEvent) -> Form8949Line:
    proceeds = round_currency(event.proceeds_usd)
    cost_basis = round_currency(event.cost_basis_usd)
    adjustment = round_currency(event.wash_sale_disallowed)
    return Form8949Line(
        description=f"{format_amount(event.amount)} {event.asset_symbol}",
        date_acquired=format_us_date(event.acquired_at),
        date_sold=format_us_date(event.disposed_at),
        proceeds=proceeds,
        cost_basis=cost_basis,
        adjustment_code=WASH_SALE_CODE if event.is_wash_sale else "",
        adjustment_amount=adjustment,
        gain_or_loss=proceeds - cost_basis + adjustment,
    )


def form8949_lines(events: Iterable[TaxableEvent]) -> list[Form8949Line]:
    return [form8949_line(event) for event in events]


def _write_part(writer: Any, title: str, total_label: str, lines: list[Form8949Line]) -> None:
    writer.writerow([title])
    writer.writerow(COLUMNS)

    proceeds = cost_basis = adjustment = gain = Decimal(0)
    for line in lines:
        writer.writerow(
            [
                line.description,
                line.date_acquired,
                line.date_sold,
                format_currency(line.proceeds),
                format_currency(line.cost_basis),
                line.adjustment_code,
                format_currency(line.adjustment_amount) if line.adjustment_code else "",
                format_currency(line.gain_or_loss),
            ]
        )
        proceeds += line.proceeds
        cost_basis += line.cost_basis
        adjustment += line.adjustment_amount
        gain += line.gain_or_loss

    writer.writerow(
        [
            total_label,
            "",
            "",
            format_currency(proceeds),
            format_currency(cost_basis),
            "",
            format_currency(adjustment),
            format_currency(gain),
        ]
    )


def export_form8949_csv(report: TaxReport, *, generated_on: date | None = None) -> str:
    """Form 8949 worksheet: Part I short-term, Part II long-term."""
    summary = report.summary
    generated = generated_on or date.today()

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Form 8949 - Sales and Other Dispositions of Capital Assets"])
    writer.writerow([f"Tax Year: {summary.tax_year}"])
    writer.writerow([f"Generated: {generated.isoformat()}"])
    writer.writerow([f"Cost Basis Method: {summary.cost_basis_method}"])
    writer.writerow([])

    _write_part(
        writer,
        "PART I - SHORT-TERM CAPITAL GAINS AND LOSSES (Assets held one year or less)",
        "TOTAL SHORT-TERM",
        form8949_lines(report.short_term_events),
    )
    writer.writerow([])
    _write_part(
        writer,
        "PART II - LONG-TERM CAPITAL GAINS AND LOSSES (Assets held more than one year)",
        "TOTAL LONG-TERM",
        form8949_lines(report.long_term_events),
    )
    return buffer.getvalue()
