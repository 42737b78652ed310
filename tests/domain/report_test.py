from decimal import Decimal

import pydantic
import pytest

from domain.errors import InsufficientLotsError, NoTransactionsForYearError
from domain.ledger import IncomeKind, TransactionKind
from domain.lots import CostBasisMethod, lot_id_for
from domain.report import ReportState, TaxReportBuilder, generate_tax_report
from domain.tax_events import HoldingPeriod
from tests.constants import ATOM, BTC, ETH, UNI
from tests.helpers.transactions import buy, make_tx, sell, utc


def test_short_term_sale_is_taxed_at_ordinary_brackets() -> None:
    ledger = [
        buy("1", "20000", utc(2023, 1, 1)),
        sell("1", "50000", utc(2023, 6, 1)),
    ]

    report = generate_tax_report(ledger, 2023)

    [event] = report.taxable_events
    assert event.holding_period == HoldingPeriod.SHORT_TERM
    assert event.cost_basis_usd == Decimal("20000")
    assert event.gain_loss == Decimal("30000")
    assert report.summary.short_term_gains == Decimal("30000")
    assert report.summary.estimated_federal_tax == Decimal("3368")
    assert report.summary.has_activity


def test_fifo_sells_the_oldest_lot_long_term() -> None:
    ledger = [
        buy("1", "1000", utc(2022, 1, 1), asset=ETH, tx_id="old"),
        buy("1", "2000", utc(2022, 6, 1), asset=ETH, tx_id="new"),
        sell("1", "3000", utc(2023, 7, 1), asset=ETH),
    ]

    report = generate_tax_report(ledger, 2023, CostBasisMethod.FIFO)

    [event] = report.taxable_events
    assert event.lot_id == lot_id_for("old")
    assert event.holding_period == HoldingPeriod.LONG_TERM
    assert event.gain_loss == Decimal("2000")
    assert report.summary.long_term_gains == Decimal("2000")
    assert report.long_term_events == [event]
    assert report.short_term_events == []


def test_hifo_sells_the_most_expensive_lot() -> None:
    ledger = [
        buy("1", "1000", utc(2022, 1, 1), asset=ETH, tx_id="cheap"),
        buy("1", "2000", utc(2022, 6, 1), asset=ETH, tx_id="pricey"),
        sell("1", "3000", utc(2023, 7, 1), asset=ETH),
    ]

    report = generate_tax_report(ledger, 2023, CostBasisMethod.HIFO)

    [event] = report.taxable_events
    assert event.lot_id == lot_id_for("pricey")
    assert event.holding_days == 395
    assert event.holding_period == HoldingPeriod.LONG_TERM
    assert event.gain_loss == Decimal("1000")
    assert [lot.id for lot in report.open_lots] == [lot_id_for("cheap")]


def test_overselling_fails_with_shortfall() -> None:
    ledger = [
        buy("1", "100", utc(2024, 1, 1)),
        sell("2", "150", utc(2024, 2, 1), tx_id="oversell"),
    ]

    with pytest.raises(InsufficientLotsError) as exc_info:
        generate_tax_report(ledger, 2024)

    assert exc_info.value.shortfall == Decimal("1")
    assert exc_info.value.transaction_id == "oversell"


def test_method_changes_the_reported_gain() -> None:
    ledger = [
        buy("1", "1000", utc(2022, 1, 1)),
        buy("1", "3000", utc(2022, 3, 1)),
        buy("1", "2000", utc(2022, 6, 1)),
        sell("1", "2500", utc(2022, 12, 1)),
    ]

    gains = {
        method: generate_tax_report(ledger, 2022, method).summary.total_gain_loss for method in CostBasisMethod
    }

    assert gains == {
        CostBasisMethod.FIFO: Decimal("1500"),
        CostBasisMethod.LIFO: Decimal("500"),
        CostBasisMethod.HIFO: Decimal("-500"),
    }


def test_wash_sale_feeds_basis_of_later_repurchase() -> None:
    ledger = [
        buy("1", "30000", utc(2022, 1, 10), tx_id="first"),
        sell("1", "20000", utc(2022, 3, 1), tx_id="loss"),
        buy("1", "21000", utc(2022, 3, 15), tx_id="again"),
        sell("1", "25000", utc(2022, 6, 1), tx_id="exit"),
    ]

    report = generate_tax_report(ledger, 2022)

    first, second = report.taxable_events
    assert first.gain_loss == Decimal("-10000")
    assert first.wash_sale_disallowed == Decimal("10000")
    assert second.lot_id == lot_id_for("again")
    assert second.cost_basis_usd == Decimal("31000")
    assert second.gain_loss == Decimal("-6000")
    assert not second.is_wash_sale
    assert report.summary.short_term_losses == Decimal("6000")
    assert report.summary.total_wash_sale_disallowed == Decimal("10000")
    assert report.summary.total_gain_loss == Decimal("-16000")


def test_wash_sale_adjusts_open_lot_bought_before_the_sale() -> None:
    ledger = [
        buy("1", "100", utc(2022, 1, 1), tx_id="a"),
        buy("1", "50", utc(2022, 2, 20), tx_id="b"),
        sell("1", "60", utc(2022, 3, 1)),
        sell("1", "100", utc(2022, 4, 15)),
    ]

    report = generate_tax_report(ledger, 2022)

    first, second = report.taxable_events
    assert first.wash_sale_disallowed == Decimal("40")
    assert second.cost_basis_usd == Decimal("90")
    assert second.gain_loss == Decimal("10")
    assert report.summary.net_short_term == Decimal("10")


def test_wash_sale_adjustment_spread_over_several_units_stays_exact() -> None:
    ledger = [
        buy("1", "100", utc(2022, 1, 1)),
        sell("1", "90", utc(2022, 3, 1)),
        buy("3", "100", utc(2022, 3, 10), tx_id="again"),
        sell("3", "100", utc(2022, 6, 1), tx_id="exit"),
    ]

    report = generate_tax_report(ledger, 2022)

    loss, exit_event = report.taxable_events
    assert loss.wash_sale_disallowed == Decimal("10")
    assert exit_event.cost_basis_usd == Decimal("310")
    assert exit_event.gain_loss == Decimal("-10")
    assert report.summary.net_capital_gain_loss == Decimal("-10")


def test_staking_income_and_state_tax() -> None:
    ledger = [
        make_tx(TransactionKind.STAKING_REWARD, "10", "8", utc(2024, 2, 1), asset=ATOM),
        sell("10", "10", utc(2024, 5, 1), asset=ATOM),
    ]

    summary = generate_tax_report(ledger, 2024, state="CA", bracket=Decimal("24")).summary

    assert summary.staking_income == Decimal("80")
    assert summary.ordinary_income_tax == Decimal("19.2")
    assert summary.short_term_gains == Decimal("100")
    assert summary.short_term_tax == Decimal("10")
    assert summary.estimated_federal_tax == Decimal("29.2")
    assert summary.estimated_state_tax == Decimal("13.3")
    assert summary.estimated_total_tax == Decimal("42.5")
    assert summary.state_rate_applied
    assert summary.income_events_count == 1


def test_airdrop_is_other_income() -> None:
    ledger = [
        make_tx(TransactionKind.TRANSFER_IN, "100", "4", utc(2024, 2, 1), asset=UNI, income_kind=IncomeKind.AIRDROP),
    ]

    report = generate_tax_report(ledger, 2024)

    assert report.summary.other_income == Decimal("400")
    assert report.summary.staking_income == Decimal(0)
    assert [event.income_kind for event in report.income_events] == [IncomeKind.AIRDROP]
    assert report.open_lots[0].unit_cost_basis == Decimal("4")


def test_unknown_state_still_produces_report() -> None:
    ledger = [buy("1", "100", utc(2024, 1, 1)), sell("1", "200", utc(2024, 2, 1))]

    summary = generate_tax_report(ledger, 2024, state="ZZ").summary

    assert not summary.state_rate_applied
    assert summary.estimated_state_tax == Decimal(0)
    assert summary.warnings


def test_year_without_activity_gives_empty_summary() -> None:
    ledger = [buy("1", "100", utc(2024, 1, 1))]

    report = generate_tax_report(ledger, 2024)

    assert not report.summary.has_activity
    assert report.taxable_events == ()
    assert report.summary.estimated_total_tax == Decimal(0)
    assert len(report.transactions) == 1


def test_strict_mode_rejects_year_without_activity() -> None:
    with pytest.raises(NoTransactionsForYearError):
        generate_tax_report([buy("1", "100", utc(2024, 1, 1))], 2023, strict=True)


def test_only_tax_year_disposals_are_reported() -> None:
    ledger = [
        buy("2", "100", utc(2022, 6, 1)),
        sell("1", "150", utc(2022, 9, 1), tx_id="this-year"),
        sell("1", "300", utc(2023, 9, 1), tx_id="next-year"),
    ]

    report = generate_tax_report(ledger, 2022)

    assert [event.disposal_transaction_id for event in report.taxable_events] == ["this-year"]
    assert report.summary.total_gain_loss == Decimal("50")
    assert report.open_lots[0].remaining_amount == Decimal("1")


def test_later_shortfall_does_not_break_earlier_year() -> None:
    ledger = [
        buy("1", "100", utc(2022, 6, 1)),
        sell("1", "150", utc(2022, 9, 1)),
        sell("5", "300", utc(2023, 9, 1)),
    ]

    assert generate_tax_report(ledger, 2022).summary.total_gain_loss == Decimal("50")
    with pytest.raises(InsufficientLotsError):
        generate_tax_report(ledger, 2023)


def test_report_is_immutable() -> None:
    report = generate_tax_report([buy("1", "100", utc(2024, 1, 1)), sell("1", "90", utc(2024, 3, 1))], 2024)

    with pytest.raises(pydantic.ValidationError):
        report.summary = report.summary  # type: ignore[misc]


def test_builder_runs_once() -> None:
    builder = TaxReportBuilder(tax_year=2024)
    ledger = [buy("1", "100", utc(2024, 1, 1), asset=BTC)]

    builder.build(ledger)

    assert builder.status == ReportState.COMPLETE
    with pytest.raises(RuntimeError):
        builder.build(ledger)


def test_ledger_is_left_unchanged() -> None:
    ledger = [buy("1", "100", utc(2024, 1, 1)), sell("1", "90", utc(2024, 1, 15)), buy("1", "95", utc(2024, 1, 20))]
    before = [tx.model_copy() for tx in ledger]

    generate_tax_report(ledger, 2024, CostBasisMethod.LIFO)

    assert ledger == before
