"""Tax Exchange Format (TXF v042) export.

Each disposal becomes one ``TD`` record carrying the same fields as a Form
8949 CSV row: description, both dates, basis, proceeds and, for wash sales,
the disallowed loss.
"""

from __future__ import annotations

from datetime import date

from domain.report import TaxReport
from domain.tax_events import HoldingPeriod

from .form8949 import form8949_line

APPLICATION_NAME = "Crypto Tax Engine"
SHORT_TERM_REFERENCE = "N321"
LONG_TERM_REFERENCE = "N323"


def export_txf(report: TaxReport, *, generated_on: date | None = None) -> str:
    generated = generated_on or date.today()
    lines = [
        "V042",
        f"A{APPLICATION_NAME}",
        f"D{generated.strftime('%m/%d/%Y')}",
        "^",
    ]

    for event in report.short_term_events + report.long_term_events:
        line = form8949_line(event)
        reference = SHORT_TERM_REFERENCE if event.holding_period == HoldingPeriod.SHORT_TERM else LONG_TERM_REFERENCE
        lines.extend(
            [
                "TD",
                reference,
                "C1",
                "L1",
                f"P{line.description}",
                f"D{line.date_acquired}",
                f"D{line.date_sold}",
                f"${line.cost_basis:.2f}",
                f"${line.proceeds:.2f}",
            ]
        )
        if line.adjustment_code:
            lines.append(f"${line.adjustment_amount:.2f}")
        lines.append("^")

    return "\n".join(lines) + "\n"
