from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from .brackets import LONG_TERM_BRACKETS, SHORT_TERM_BRACKETS, normalize_state, progressive_tax, state_rate
from .errors import UnsupportedStateError
from .income import IncomeSummary
from .ledger import IncomeKind
from .lots import CostBasisMethod
from .tax_events import HoldingPeriod, TaxableEvent

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


class TaxReportSummary(BaseModel):
    """Year totals for one cost-basis method. All amounts are unrounded USD."""

    model_config = ConfigDict(frozen=True)

    tax_year: int
    cost_basis_method: CostBasisMethod
    state: str | None
    tax_bracket: Decimal

    total_proceeds: Decimal
    total_cost_basis: Decimal
    total_gain_loss: Decimal

    short_term_gains: Decimal
    short_term_losses: Decimal
    net_short_term: Decimal
    long_term_gains: Decimal
    long_term_losses: Decimal
    net_long_term: Decimal
    net_capital_gain_loss: Decimal
    net_taxable_gain: Decimal

    staking_income: Decimal
    other_income: Decimal
    total_ordinary_income: Decimal

    short_term_tax: Decimal
    long_term_tax: Decimal
    ordinary_income_tax: Decimal
    estimated_federal_tax: Decimal
    estimated_state_tax: Decimal
    estimated_total_tax: Decimal

    total_wash_sale_disallowed: Decimal

    total_transactions: int
    sales_count: int
    income_events_count: int

    has_activity: bool
    state_rate_applied: bool
    warnings: tuple[str, ...] = ()


def events_for_year(events: Iterable[TaxableEvent], tax_year: int) -> list[TaxableEvent]:
    return [event for event in events if event.disposed_at.year == tax_year]


def net_taxable_split(net_short_term: Decimal, net_long_term: Decimal) -> tuple[Decimal, Decimal]:
    """Offset a net loss in one bucket against a net gain in the other.

    Returns the taxable (short-term, long-term) amounts, neither below zero.
    """
    if net_short_term < 0 and net_long_term > 0:
        return ZERO, max(ZERO, net_long_term + net_short_term)
    if net_long_term < 0 and net_short_term > 0:
        return max(ZERO, net_short_term + net_long_term), ZERO
    return max(ZERO, net_short_term), max(ZERO, net_long_term)


def aggregate(
    events: Iterable[TaxableEvent],
    income: IncomeSummary,
    tax_year: int,
    bracket: Decimal,
    state: str | None = None,
    *,
    method: CostBasisMethod,
) -> TaxReportSummary:
    """Roll taxable events and ordinary income for ``tax_year`` into a summary.

    ``bracket`` is the filer's marginal rate in percent and applies to ordinary
    income only; capital gains go through the bracket tables.
    """
    if bracket < 0 or bracket > 100:
        raise ValueError(f"Tax bracket must be a percentage between 0 and 100, got {bracket}")

    year_events = events_for_year(events, tax_year)
    year_income = [event for event in income.events if event.received_at.year == tax_year]

    total_proceeds = ZERO
    total_cost_basis = ZERO
    short_term_gains = ZERO
    short_term_losses = ZERO
    long_term_gains = ZERO
    long_term_losses = ZERO
    total_wash_sale_disallowed = ZERO

    for event in year_events:
        total_proceeds += event.proceeds_usd
        total_cost_basis += event.cost_basis_usd
        total_wash_sale_disallowed += event.wash_sale_disallowed

        usable = event.adjusted_gain_loss
        if event.holding_period == HoldingPeriod.SHORT_TERM:
            if usable >= 0:
                short_term_gains += usable
            else:
                short_term_losses += -usable
        else:
            if usable >= 0:
                long_term_gains += usable
            else:
                long_term_losses += -usable

    net_short_term = short_term_gains - short_term_losses
    net_long_term = long_term_gains - long_term_losses
    taxable_short, taxable_long = net_taxable_split(net_short_term, net_long_term)
    net_taxable_gain = taxable_short + taxable_long

    staking_income = sum(
        (event.fair_market_value_usd for event in year_income if event.income_kind == IncomeKind.STAKING_REWARD),
        start=ZERO,
    )
    other_income = sum(
        (event.fair_market_value_usd for event in year_income if event.income_kind != IncomeKind.STAKING_REWARD),
        start=ZERO,
    )
    total_ordinary_income = staking_income + other_income

    short_term_tax = progressive_tax(taxable_short, SHORT_TERM_BRACKETS)
    long_term_tax = progressive_tax(taxable_long, LONG_TERM_BRACKETS)
    ordinary_income_tax = total_ordinary_income * bracket / 100
    estimated_federal_tax = short_term_tax + long_term_tax + ordinary_income_tax

    warnings: list[str] = []
    state_code = normalize_state(state) if state else None
    estimated_state_tax = ZERO
    state_rate_applied = False
    if state_code:
        try:
            estimated_state_tax = net_taxable_gain * state_rate(state_code)
            state_rate_applied = True
        except UnsupportedStateError as err:
            logger.warning("State %s has no known rate; estimating federal tax only", err.state)
            warnings.append(f"Unsupported state {err.state!r}: state tax not estimated")

    has_activity = bool(year_events or year_income)

    return TaxReportSummary(
        tax_year=tax_year,
        cost_basis_method=method,
        state=state_code,
        tax_bracket=bracket,
        total_proceeds=total_proceeds,
        total_cost_basis=total_cost_basis,
        total_gain_loss=total_proceeds - total_cost_basis,
        short_term_gains=short_term_gains,
        short_term_losses=short_term_losses,
        net_short_term=net_short_term,
        long_term_gains=long_term_gains,
        long_term_losses=long_term_losses,
        net_long_term=net_long_term,
        net_capital_gain_loss=net_short_term + net_long_term,
        net_taxable_gain=net_taxable_gain,
        staking_income=staking_income,
        other_income=other_income,
        total_ordinary_income=total_ordinary_income,
        short_term_tax=short_term_tax,
        long_term_tax=long_term_tax,
        ordinary_income_tax=ordinary_income_tax,
        estimated_federal_tax=estimated_federal_tax,
        estimated_state_tax=estimated_state_tax,
        estimated_total_tax=estimated_federal_tax + estimated_state_tax,
        total_wash_sale_disallowed=total_wash_sale_disallowed,
        total_transactions=len(year_events) + len(year_income),
        sales_count=len(year_events),
        income_events_count=len(year_income),
        has_activity=has_activity,
        state_rate_applied=state_rate_applied,
        warnings=tuple(warnings),
    )
