from __future__ import annotations

from typing import Iterable

from domain.tax_events import HoldingPeriod, TaxableEvent
from domain.tax_summary import TaxReportSummary

from .formatting import format_currency, format_decimal


def render_tax_summary(summary: TaxReportSummary) -> None:
    print(f"Tax year {summary.tax_year} ({summary.cost_basis_method}) totals (USD):")
    if not summary.has_activity:
        print("  (no taxable events)")
        return

    rows = [
        ("Proceeds", summary.total_proceeds),
        ("Cost basis", summary.total_cost_basis),
        ("Short-term gains", summary.short_term_gains),
        ("Short-term losses", summary.short_term_losses),
        ("Net short-term", summary.net_short_term),
        ("Long-term gains", summary.long_term_gains),
        ("Long-term losses", summary.long_term_losses),
        ("Net long-term", summary.net_long_term),
        ("Wash sale disallowed", summary.total_wash_sale_disallowed),
        ("Ordinary income", summary.total_ordinary_income),
        ("Federal tax", summary.estimated_federal_tax),
        ("State tax", summary.estimated_state_tax),
        ("Total tax", summary.estimated_total_tax),
    ]
    label_width = max(len(label) for label, _ in rows)
    value_width = max(len(format_currency(value)) for _, value in rows)

    lines = [f"  {label:<{label_width}} {format_currency(value):>{value_width}}" for label, value in rows]
    for warning in summary.warnings:
        lines.append(f"  ! {warning}")
    print("\n".join(lines))


def render_taxable_events(events: Iterable[TaxableEvent]) -> None:
    events_list = list(events)
    print("Taxable events:")
    if not events_list:
        print("  (none)")
        return

    rows: list[tuple[str, str, str, str, str, str, str]] = []
    for event in events_list:
        rows.append(
            (
                event.disposed_at.date().isoformat(),
                event.asset_symbol,
                format_decimal(event.amount),
                format_currency(event.proceeds_usd),
                format_currency(event.cost_basis_usd),
                format_currency(event.adjusted_gain_loss),
                "LT" if event.holding_period == HoldingPeriod.LONG_TERM else "ST",
            )
        )

    headers = ("Sold", "Asset", "Amount", "Proceeds", "Cost basis", "Gain/loss", "Term")
    widths = [max(len(header), max(len(row[idx]) for row in rows)) for idx, header in enumerate(headers)]

    header = " ".join(
        f"{label:<{widths[idx]}}" if idx < 2 else f"{label:>{widths[idx]}}" for idx, label in enumerate(headers)
    )
    lines = [header, "-" * len(header)]
    for row in rows:
        lines.append(
            " ".join(f"{cell:<{widths[idx]}}" if idx < 2 else f"{cell:>{widths[idx]}}" for idx, cell in enumerate(row))
        )
    print("\n".join(lines))
