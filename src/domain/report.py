from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from enum import StrEnum
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .errors import NoTransactionsForYearError
from .income import IncomeEvent, classify_income
from .ledger import AssetSymbol, Transaction, TransactionId
from .lots import CostBasisMethod, LotMatcher, TaxLot, lot_id_for, validate_ledger
from .tax_events import HoldingPeriod, TaxableEvent, build_events
from .tax_summary import TaxReportSummary, aggregate
from .wash_sale import apply_wash_sales

logger = logging.getLogger(__name__)

DEFAULT_TAX_BRACKET = Decimal("22")


class ReportState(StrEnum):
    COLLECTING = "collecting"
    AGGREGATING = "aggregating"
    COMPLETE = "complete"


class TaxReport(BaseModel):
    """Everything the exporters need for one tax year. Never mutated."""

    model_config = ConfigDict(frozen=True)

    summary: TaxReportSummary
    taxable_events: tuple[TaxableEvent, ...]
    income_events: tuple[IncomeEvent, ...]
    transactions: tuple[Transaction, ...]
    open_lots: tuple[TaxLot, ...]

    @property
    def short_term_events(self) -> list[TaxableEvent]:
        return [event for event in self.taxable_events if event.holding_period == HoldingPeriod.SHORT_TERM]

    @property
    def long_term_events(self) -> list[TaxableEvent]:
        return [event for event in self.taxable_events if event.holding_period == HoldingPeriod.LONG_TERM]


class TaxReportBuilder:
    """Generates a single report; create a new builder for every run."""

    def __init__(
        self,
        *,
        tax_year: int,
        method: CostBasisMethod = CostBasisMethod.FIFO,
        state: str | None = None,
        bracket: Decimal = DEFAULT_TAX_BRACKET,
        strict: bool = False,
    ) -> None:
        self.tax_year = tax_year
        self.method = method
        self.state = state
        self.bracket = bracket
        self.strict = strict
        self.status = ReportState.COLLECTING

    def build(self, ledger: Iterable[Transaction]) -> TaxReport:
        if self.status != ReportState.COLLECTING:
            raise RuntimeError(f"Report builder already used (state={self.status})")

        logger.info("Generating %d tax report using %s", self.tax_year, self.method)
        ordered = validate_ledger(ledger)
        matcher, events = self._replay(ordered)
        income = classify_income(ordered, tax_year=self.tax_year)

        self.status = ReportState.AGGREGATING
        summary = aggregate(events, income, self.tax_year, self.bracket, self.state, method=self.method)
        if not summary.has_activity:
            if self.strict:
                raise NoTransactionsForYearError(self.tax_year)
            logger.info("No taxable activity in %d; returning an empty summary", self.tax_year)

        report = TaxReport(
            summary=summary,
            taxable_events=tuple(event for event in events if event.disposed_at.year == self.tax_year),
            income_events=tuple(income.events),
            transactions=tuple(tx for tx in ordered if tx.timestamp.year == self.tax_year),
            open_lots=tuple(matcher.open_lots()),
        )
        self.status = ReportState.COMPLETE
        logger.info(
            "Tax report %d complete: %d taxable events, %d income events, net gain/loss %s",
            self.tax_year,
            summary.sales_count,
            summary.income_events_count,
            summary.net_capital_gain_loss,
        )
        return report

    def _replay(self, ordered: list[Transaction]) -> tuple[LotMatcher, list[TaxableEvent]]:
        """Walk the ledger up to the end of the tax year.

        Wash-sale adjustments go into the repurchase lot before any later
        disposal can consume it. Repurchases that are still in the future are
        parked until their lot is opened.
        """
        matcher = LotMatcher(self.method)
        acquisitions: dict[AssetSymbol, list[Transaction]] = defaultdict(list)
        for tx in ordered:
            if tx.is_acquisition:
                acquisitions[tx.asset_symbol].append(tx)

        pending_adjustments: dict[TransactionId, Decimal] = defaultdict(Decimal)
        events: list[TaxableEvent] = []

        for tx in ordered:
            if tx.timestamp.year > self.tax_year:
                break

            if tx.is_acquisition:
                lot = matcher.add_acquisition(tx)
                parked = pending_adjustments.pop(tx.id, None)
                if parked:
                    matcher.adjust_basis(lot.id, parked)
                continue

            consumptions = matcher.consume(tx)
            lots = {consumption.lot_id: matcher.lot(consumption.lot_id) for consumption in consumptions}
            disposal_events = build_events(consumptions, lots, tx)

            candidates = [
                acquisition
                for acquisition in acquisitions[tx.asset_symbol]
                if not matcher.has_lot(lot_id_for(acquisition.id)) or matcher.is_open(lot_id_for(acquisition.id))
            ]
            wash_sales = apply_wash_sales(disposal_events, candidates)
            for adjustment in wash_sales.adjustments:
                if matcher.has_lot(adjustment.lot_id):
                    matcher.adjust_basis(adjustment.lot_id, adjustment.amount)
                else:
                    pending_adjustments[adjustment.source_transaction_id] += adjustment.amount

            events.extend(wash_sales.events)

        return matcher, events


def generate_tax_report(
    ledger: Iterable[Transaction],
    tax_year: int,
    method: CostBasisMethod = CostBasisMethod.FIFO,
    state: str | None = None,
    bracket: Decimal = DEFAULT_TAX_BRACKET,
    *,
    strict: bool = False,
) -> TaxReport:
    builder = TaxReportBuilder(tax_year=tax_year, method=method, state=state, bracket=bracket, strict=strict)
    return builder.build(ledger)
